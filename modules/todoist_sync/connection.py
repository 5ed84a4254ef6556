"""Connecting and disconnecting an account's Todoist integration."""

import logging

from .db import Database
from .models import AccountSettings
from .todoist_client import TodoistClient

logger = logging.getLogger(__name__)


def connect_account(store: Database, client: TodoistClient, account_id: str, token: str) -> bool:
    """Validate a token and enable sync for the account. Returns False if the token is rejected."""
    token = (token or '').strip()
    if not token or not client.validate_token(token):
        logger.warning(f"Todoist token rejected for account {account_id}")
        return False

    store.save_account(AccountSettings(id=account_id, todoist_api_token=token, todoist_sync_enabled=True))
    logger.info(f"Todoist sync enabled for account {account_id}")
    return True


def disconnect_account(store: Database, account_id: str) -> int:
    """
    Disable sync, forget the token and unlink the account's tasks.

    Links are cleared so that a later connection to a different Todoist
    account pushes the tasks again instead of reading them as deleted
    upstream. Returns the number of tasks unlinked.
    """
    store.save_account(AccountSettings(id=account_id, todoist_api_token=None, todoist_sync_enabled=False))
    unlinked = store.unlink_account_tasks(account_id)
    logger.info(f"Todoist sync disabled for account {account_id}, {unlinked} tasks unlinked")
    return unlinked
