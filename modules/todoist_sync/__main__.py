"""
Todoist Sync CLI entry point.

Usage:
    python -m modules.todoist_sync test                       Test configuration and Todoist token
    python -m modules.todoist_sync status                     Show sync status
    python -m modules.todoist_sync connect ACCOUNT TOKEN      Enable sync for an account
    python -m modules.todoist_sync disconnect ACCOUNT         Disable sync for an account
    python -m modules.todoist_sync sync-once [--account ID]   Run one sync cycle
    python -m modules.todoist_sync run                        Start sync service
"""

import argparse
import json
import logging
import sys

from .config import config
from .connection import connect_account, disconnect_account
from .db import Database
from .logging_setup import setup_logging
from .models import RunStatus
from .poller import Poller
from .propagators import TaskPropagator
from .sync_engine import SyncEngine
from .todoist_client import TodoistClient

logger = logging.getLogger(__name__)


class Services:
    """Process-wide instances, built once by the CLI."""

    def __init__(self):
        self.db = Database(config.DB_PATH)
        self.client = TodoistClient(config.TODOIST_BASE_URL, timeout=config.TODOIST_TIMEOUT)
        self.engine = SyncEngine(self.db, self.client)
        self.propagator = TaskPropagator(self.db, self.client)
        self.poller = Poller(self.db, self.engine, interval=config.SYNC_POLL_INTERVAL)


def cmd_test(services: Services, args) -> int:
    """Test configuration and the Todoist token from the environment."""
    print("=" * 60)
    print("Todoist Sync Connection Test")
    print("=" * 60)

    errors = config.validate()
    if errors:
        print("\n[CONFIG ERRORS]")
        for err in errors:
            print(f"  - {err}")
        return 1

    print(f"\nEnvironment: {config.TASK_SYNC_ENV}")
    print(f"Database: {config.DB_PATH}")

    print("\n[Todoist Connection]")
    if not config.TODOIST_API_TOKEN:
        print("  - TODOIST_API_TOKEN not set, skipping token check")
    elif services.client.validate_token(config.TODOIST_API_TOKEN):
        projects = services.client.list_projects(config.TODOIST_API_TOKEN)
        print(f"  ✓ Connected to Todoist")
        print(f"  ✓ Found {len(projects)} projects")
        for p in projects[:5]:
            print(f"    - {p.name}")
    else:
        print(f"  ✗ Todoist token rejected")
        return 1

    print("\n[Database]")
    accounts = services.db.list_sync_enabled_accounts()
    print(f"  ✓ {len(accounts)} accounts with sync enabled")

    print("\n" + "=" * 60)
    print("All checks passed!")
    print("=" * 60)
    return 0


def cmd_status(services: Services, args) -> int:
    """Show current sync status."""
    print("=" * 60)
    print("Todoist Sync Status")
    print("=" * 60)

    print("\n[Configuration]")
    print(f"  Environment: {config.TASK_SYNC_ENV}")
    print(f"  Sync interval: {config.SYNC_POLL_INTERVAL}s")
    print(f"  Request timeout: {config.TODOIST_TIMEOUT}s")

    print("\n[Accounts]")
    accounts = services.db.list_sync_enabled_accounts()
    if accounts:
        for account in accounts:
            tasks = services.db.list_tasks_for_account(account.id)
            linked = sum(1 for t in tasks if t.is_linked)
            print(f"  {account.id}: {len(tasks)} tasks, {linked} linked")
    else:
        print("  No accounts with sync enabled")

    print("\n[Recent Sync Activity]")
    logs = services.db.get_recent_logs(limit=10)
    if logs:
        for log in logs:
            status_icon = "✓" if log['status'] == 'success' else "✗"
            print(f"  {status_icon} {log['timestamp'][:16]} | {log['account_id'] or '-':12} | {log['direction']:20} | {log['action']}")
    else:
        print("  No sync activity recorded yet")

    return 0


def cmd_connect(services: Services, args) -> int:
    """Validate a token and enable sync for an account."""
    if connect_account(services.db, services.client, args.account, args.token):
        print(f"✓ Todoist connected for account {args.account}")
        return 0
    print(f"✗ Invalid Todoist API token")
    return 1


def cmd_disconnect(services: Services, args) -> int:
    """Disable sync for an account."""
    disconnect_account(services.db, args.account)
    print(f"✓ Todoist disconnected for account {args.account}")
    return 0


def cmd_sync_once(services: Services, args) -> int:
    """Run a single sync cycle for one or all accounts."""
    if args.account:
        reports = [services.poller.sync_account(args.account)]
    else:
        reports = services.poller.sync_all_accounts()

    for report in reports:
        if report.result is not None:
            print(f"  {report.account_id}: {report.result.summary()}")
            for err in report.result.errors:
                print(f"      ✗ {err}")
        else:
            print(f"  {report.account_id}: {report.status.value} ({report.error})")

    if args.json:
        print(json.dumps({'results': [r.to_dict() for r in reports]}, indent=2))

    return 0 if all(r.status != RunStatus.ERROR for r in reports) else 1


def cmd_run(services: Services, args) -> int:
    """Start the sync service (continuous polling)."""
    print("=" * 60)
    print("Starting Todoist Sync Service")
    print("=" * 60)
    print(f"Environment: {config.TASK_SYNC_ENV}")
    print(f"Sync interval: {config.SYNC_POLL_INTERVAL}s")
    print("=" * 60)
    print("\nPress Ctrl+C to stop\n")

    try:
        services.poller.start()
    except KeyboardInterrupt:
        print("\nStopped by user")

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Todoist Sync - internal tasks ↔ Todoist')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('test', help='Test configuration and Todoist token')
    sub.add_parser('status', help='Show sync status')

    connect = sub.add_parser('connect', help='Enable sync for an account')
    connect.add_argument('account')
    connect.add_argument('token')

    disconnect = sub.add_parser('disconnect', help='Disable sync for an account')
    disconnect.add_argument('account')

    sync_once = sub.add_parser('sync-once', help='Run one sync cycle')
    sync_once.add_argument('--account', help='Only sync this account')
    sync_once.add_argument('--json', action='store_true', help='Print results as JSON')

    sub.add_parser('run', help='Start sync service')
    return parser


COMMANDS = {
    'test': cmd_test,
    'status': cmd_status,
    'connect': cmd_connect,
    'disconnect': cmd_disconnect,
    'sync-once': cmd_sync_once,
    'run': cmd_run,
}


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    return COMMANDS[args.command](Services(), args)


if __name__ == '__main__':
    sys.exit(main())
