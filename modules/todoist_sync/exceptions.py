# =========================================================================
# CUSTOM EXCEPTIONS
# =========================================================================

from typing import Optional


class TaskSyncError(Exception):
    """Base exception for Todoist sync errors"""
    pass


class TodoistError(TaskSyncError):
    """Todoist request failed"""
    pass


class TodoistConnectionError(TodoistError):
    """Transport failure or timeout talking to Todoist"""
    pass


class TodoistAPIError(TodoistError):
    """Todoist answered with a non-2xx status"""

    def __init__(self, status_code: int, body: str = ''):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Todoist API {status_code}: {body}")


class TodoistNotFoundError(TodoistAPIError):
    """Requested Todoist resource does not exist"""
    pass


class SyncFetchError(TaskSyncError):
    """Initial Todoist task fetch failed; the account run was aborted"""

    def __init__(self, account_id: str, cause: Optional[Exception] = None):
        self.account_id = account_id
        self.cause = cause
        super().__init__(f"Failed to fetch Todoist tasks for account {account_id}: {cause}")
