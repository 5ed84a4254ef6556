"""
Single-task propagation to Todoist.

Called right after a local mutation (create/edit, status change, delete) so
that one record reaches Todoist without waiting for the next full
reconciliation. A propagation failure never fails the local write: errors
are logged and swallowed.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from .db import Database
from .field_mapper import task_to_todoist_fields
from .models import AccountSettings, TaskStatus, utcnow
from .todoist_client import TodoistClient

logger = logging.getLogger(__name__)


class TaskPropagator:
    """Pushes single internal task changes to Todoist."""

    def __init__(self, store: Database, client: TodoistClient, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.client = client
        self.clock = clock

    def _active_account(self, account_id: str) -> Optional[AccountSettings]:
        account = self.store.get_account(account_id)
        if account is None or not account.is_sync_active:
            logger.debug(f"Todoist sync not active for account {account_id}, skipping")
            return None
        return account

    def propagate_upsert(self, account_id: str, task_id: str) -> Optional[str]:
        """
        Push a created or edited task to Todoist.

        Returns the Todoist task ID, or None if sync is inactive, the task is
        gone, or the push failed.
        """
        account = self._active_account(account_id)
        if account is None:
            return None

        task = self.store.get_task(task_id)
        if task is None:
            return None

        token = account.todoist_api_token
        try:
            fields = task_to_todoist_fields(task)
            if task.external_id:
                self.client.update_task(token, task.external_id, **fields)
                self.store.patch_task(task_id, {'last_external_sync_at': self.clock()})
                self.store.log_sync('internal_to_todoist', 'update', account_id, task_id, task.external_id)
                return task.external_id

            created = self.client.create_task(token, **fields)
            self.store.patch_task(task_id, {
                'external_id': created.id,
                'last_external_sync_at': self.clock(),
            })
            self.store.log_sync('internal_to_todoist', 'create', account_id, task_id, created.id)
            return created.id
        except Exception as e:
            logger.error(f"Todoist push failed for task {task_id}: {e}")
            self._log_error(account_id, 'update' if task.external_id else 'create', task_id, task.external_id, e)
            return None

    def propagate_status(self, account_id: str, task_id: str, status: str):
        """Close or reopen the linked Todoist task after a status change."""
        account = self._active_account(account_id)
        if account is None:
            return

        task = self.store.get_task(task_id)
        if task is None or not task.external_id:
            return

        token = account.todoist_api_token
        action = 'close' if status == TaskStatus.COMPLETED.value else 'reopen'
        try:
            if action == 'close':
                self.client.close_task(token, task.external_id)
            else:
                self.client.reopen_task(token, task.external_id)
            self.store.patch_task(task_id, {'last_external_sync_at': self.clock()})
            self.store.log_sync('internal_to_todoist', action, account_id, task_id, task.external_id)
        except Exception as e:
            logger.error(f"Todoist status push failed for task {task_id}: {e}")
            self._log_error(account_id, action, task_id, task.external_id, e)

    def propagate_delete(self, account_id: str, external_id: Optional[str]):
        """Delete the Todoist task for a task already deleted locally."""
        if not external_id:
            return

        account = self._active_account(account_id)
        if account is None:
            return

        try:
            self.client.delete_task(account.todoist_api_token, external_id)
            self.store.log_sync('internal_to_todoist', 'delete', account_id, external_id=external_id)
        except Exception as e:
            logger.error(f"Todoist delete failed for {external_id}: {e}")
            self._log_error(account_id, 'delete', None, external_id, e)

    def _log_error(self, account_id, action, task_id, external_id, error):
        try:
            self.store.log_sync(
                'internal_to_todoist',
                'error',
                account_id,
                task_id,
                external_id,
                details=f"{action}: {error}",
                status='error',
            )
        except Exception as e:
            logger.warning(f"Could not record sync error for account {account_id}: {e}")
