"""
Poller Service - Periodic reconciliation of every sync-enabled account.

Accounts are processed one at a time. A per-account lock guarantees that
two reconciliations for the same account never overlap; a run that finds
the account busy is reported as skipped.
"""

import asyncio
import logging
import signal
import threading
from datetime import datetime
from typing import Optional

from .db import Database
from .models import AccountSyncReport, RunStatus
from .sync_engine import SyncEngine

logger = logging.getLogger(__name__)


class Poller:
    """Async polling service for Todoist sync."""

    def __init__(self, store: Database, engine: SyncEngine, interval: int = 300):
        self.store = store
        self.engine = engine
        self.interval = interval
        self.running = False

        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        # Stats
        self._last_run: Optional[datetime] = None
        self._runs = 0
        self._pushed = 0
        self._pulled = 0
        self._errors = 0

    def _account_lock(self, account_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(account_id, threading.Lock())

    def sync_account(self, account_id: str) -> AccountSyncReport:
        """Reconcile a single account (on-demand trigger)."""
        account = self.store.get_account(account_id)
        if account is None or not account.is_sync_active:
            return AccountSyncReport.skipped(account_id, 'Todoist is not connected')

        lock = self._account_lock(account_id)
        if not lock.acquire(blocking=False):
            logger.warning(f"Sync already running for account {account_id}, skipping")
            return AccountSyncReport.skipped(account_id, 'Sync already in progress')

        try:
            result = self.engine.reconcile_account(account_id, account.todoist_api_token)
        except Exception as e:
            logger.error(f"Todoist sync failed for account {account_id}: {e}")
            try:
                self.store.log_sync(
                    direction='todoist_to_internal',
                    action='error',
                    account_id=account_id,
                    details=str(e),
                    status='error',
                )
            except Exception as log_error:
                logger.warning(f"Could not record sync error for account {account_id}: {log_error}")
            return AccountSyncReport.failed(account_id, str(e))
        finally:
            lock.release()

        if result.errors:
            logger.warning(f"Todoist sync errors for account {account_id}: {result.errors}")
        return AccountSyncReport.ok(account_id, result)

    def sync_all_accounts(self) -> list[AccountSyncReport]:
        """Reconcile every sync-enabled account sequentially."""
        reports = []
        for account in self.store.list_sync_enabled_accounts():
            report = self.sync_account(account.id)
            reports.append(report)

            if report.status == RunStatus.OK:
                self._pushed += report.result.pushed
                self._pulled += report.result.pulled
                self._errors += len(report.result.errors)
            elif report.status == RunStatus.ERROR:
                self._errors += 1

        self._runs += 1
        self._last_run = datetime.now()
        logger.info(f"Sync cycle complete: {len(reports)} accounts")
        return reports

    def _setup_signal_handlers(self):
        """Setup graceful shutdown handlers."""
        def shutdown_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.running = False

        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)

    async def poll(self):
        """Run a sync cycle every `interval` seconds until stopped."""
        loop = asyncio.get_running_loop()
        while self.running:
            try:
                # Run sync in thread pool to not block async loop
                await loop.run_in_executor(None, self.sync_all_accounts)
            except Exception as e:
                self._errors += 1
                logger.error(f"Sync cycle error: {e}")

            # Sleep in short steps so shutdown is prompt
            slept = 0.0
            while self.running and slept < self.interval:
                await asyncio.sleep(min(1.0, self.interval - slept))
                slept += 1.0

    def get_status(self) -> dict:
        """Get current poller status."""
        return {
            'running': self.running,
            'interval': self.interval,
            'stats': {
                'runs': self._runs,
                'pushed': self._pushed,
                'pulled': self._pulled,
                'errors': self._errors,
            },
            'last_run': self._last_run.isoformat() if self._last_run else None,
        }

    async def run(self):
        """Start the polling loop."""
        self.running = True
        self._setup_signal_handlers()

        logger.info("=" * 60)
        logger.info("Todoist Sync Poller Starting")
        logger.info(f"  Sync interval: {self.interval}s")
        logger.info("=" * 60)

        await self.poll()

        logger.info("Poller stopped")
        logger.info(f"Final stats: {self._runs} runs, {self._pushed} pushed, {self._pulled} pulled, {self._errors} errors")

    def start(self):
        """Start the poller (blocking)."""
        asyncio.run(self.run())
