"""
Sync Engine - Full bidirectional reconciliation for one account.

Handles:
- Push of unlinked internal tasks to Todoist
- Reconciliation of linked pairs (completion dominance, then last-write-wins
  against the per-task watermark)
- Pull of Todoist tasks not yet known internally

Callers must not run two reconciliations for the same account at once.
"""

import logging
from datetime import datetime
from typing import Callable

from .db import Database
from .exceptions import SyncFetchError, TodoistError
from .field_mapper import task_to_todoist_fields, todoist_to_task_fields
from .models import (
    EPOCH,
    InternalTask,
    SyncResult,
    TaskStatus,
    TodoistTask,
    utcnow,
)
from .todoist_client import TodoistClient

logger = logging.getLogger(__name__)

TO_TODOIST = 'internal_to_todoist'
TO_INTERNAL = 'todoist_to_internal'


class SyncEngine:
    """Bidirectional task sync engine."""

    def __init__(self, store: Database, client: TodoistClient, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.client = client
        self.clock = clock

    def reconcile_account(self, account_id: str, token: str) -> SyncResult:
        """
        Bring an account's internal tasks and its Todoist tasks into agreement.

        Per-item failures are collected in the result. Only a failure to
        fetch the Todoist task list raises (SyncFetchError), in which case
        nothing has been applied.
        """
        result = SyncResult()

        try:
            todoist_tasks = self.client.list_tasks(token)
        except TodoistError as e:
            logger.error(f"Failed to fetch Todoist tasks for account {account_id}: {e}")
            raise SyncFetchError(account_id, e) from e

        tasks = self.store.list_tasks_for_account(account_id)

        todoist_by_id = {t.id: t for t in todoist_tasks}
        tasks_by_external_id = {t.external_id: t for t in tasks if t.is_linked}

        logger.debug(
            f"Account {account_id}: {len(tasks)} internal tasks "
            f"({len(tasks_by_external_id)} linked), {len(todoist_tasks)} Todoist tasks"
        )

        self._push_unlinked(account_id, token, tasks, result)
        self._reconcile_linked(account_id, token, tasks_by_external_id, todoist_by_id, result)
        self._pull_new(account_id, todoist_by_id, result)

        logger.info(f"Todoist sync for account {account_id}: {result.summary()}")
        return result

    # ==========================================================================
    # Internal → Todoist
    # ==========================================================================

    def _push_unlinked(self, account_id: str, token: str, tasks: list[InternalTask], result: SyncResult):
        """Create Todoist tasks for open internal tasks that have no link yet."""
        for task in tasks:
            if task.is_linked or task.is_completed:
                continue
            try:
                created = self.client.create_task(token, **task_to_todoist_fields(task))
                self.store.patch_task(task.id, {
                    'external_id': created.id,
                    'last_external_sync_at': self.clock(),
                })
                self.store.log_sync(TO_TODOIST, 'create', account_id, task.id, created.id)
                result.pushed += 1
            except Exception as e:
                logger.error(f"Push failed for task {task.id}: {e}")
                result.errors.append(f'Push failed for task "{task.title}": {e}')

    # ==========================================================================
    # Linked pairs
    # ==========================================================================

    def _reconcile_linked(
        self,
        account_id: str,
        token: str,
        tasks_by_external_id: dict[str, InternalTask],
        todoist_by_id: dict[str, TodoistTask],
        result: SyncResult,
    ):
        for external_id, task in tasks_by_external_id.items():
            todoist_task = todoist_by_id.pop(external_id, None)
            try:
                if todoist_task is None:
                    # Deleted in Todoist: treat as completion
                    if not task.is_completed:
                        self._complete_internal(task)
                        self.store.log_sync(TO_INTERNAL, 'complete', account_id, task.id, external_id,
                                            details='deleted in Todoist')
                    continue
                self._merge_pair(account_id, token, task, todoist_task, result)
            except Exception as e:
                logger.error(f"Reconcile failed for task {task.id} (Todoist {external_id}): {e}")
                result.errors.append(f'Reconcile failed for task "{task.title}" (todoist {external_id}): {e}')

    def _merge_pair(
        self,
        account_id: str,
        token: str,
        task: InternalTask,
        todoist_task: TodoistTask,
        result: SyncResult,
    ):
        """Apply the state-merge rule to one linked pair."""
        external_id = todoist_task.id

        # Completion is terminal and wins over any timestamp comparison
        if todoist_task.is_completed and not task.is_completed:
            self._complete_internal(task)
            self.store.log_sync(TO_INTERNAL, 'complete', account_id, task.id, external_id)
            return

        if task.is_completed and not todoist_task.is_completed:
            self.client.close_task(token, external_id)
            self.store.patch_task(task.id, {'last_external_sync_at': self.clock()})
            self.store.log_sync(TO_TODOIST, 'close', account_id, task.id, external_id)
            return

        watermark = task.last_external_sync_at or EPOCH
        internal_updated = task.updated_at or EPOCH
        todoist_updated = todoist_task.updated_at or EPOCH

        if internal_updated > watermark and internal_updated > todoist_updated:
            self.client.update_task(token, external_id, **task_to_todoist_fields(task))
            self.store.patch_task(task.id, {'last_external_sync_at': self.clock()})
            self.store.log_sync(TO_TODOIST, 'update', account_id, task.id, external_id)
            result.pushed += 1
        elif todoist_updated > watermark:
            fields = todoist_to_task_fields(todoist_task)
            fields['last_external_sync_at'] = self.clock()
            self.store.patch_task(task.id, fields)
            self.store.log_sync(TO_INTERNAL, 'update', account_id, task.id, external_id)
            result.pulled += 1
        else:
            logger.debug(f"Task {task.id} already in sync with Todoist {external_id}")

    def _complete_internal(self, task: InternalTask):
        now = self.clock()
        self.store.patch_task(task.id, {
            'status': TaskStatus.COMPLETED,
            'completed_at': now,
            'last_external_sync_at': now,
        })

    # ==========================================================================
    # Todoist → Internal
    # ==========================================================================

    def _pull_new(self, account_id: str, todoist_by_id: dict[str, TodoistTask], result: SyncResult):
        """Create internal tasks for Todoist tasks that are not linked yet."""
        for todoist_task in todoist_by_id.values():
            try:
                if todoist_task.is_completed:
                    # Only actionable work is pulled in
                    logger.debug(f"Ignoring completed Todoist task {todoist_task.id}")
                    self.store.log_sync(TO_INTERNAL, 'ignored_completed', account_id,
                                        external_id=todoist_task.id, details=todoist_task.content)
                    continue
                fields = todoist_to_task_fields(todoist_task)
                fields.update({
                    'account_id': account_id,
                    'external_id': todoist_task.id,
                    'last_external_sync_at': self.clock(),
                })
                task = self.store.insert_task(fields)
                self.store.log_sync(TO_INTERNAL, 'create', account_id, task.id, todoist_task.id)
                result.pulled += 1
            except Exception as e:
                logger.error(f"Pull failed for Todoist task {todoist_task.id}: {e}")
                result.errors.append(f'Pull failed for "{todoist_task.content}": {e}')
