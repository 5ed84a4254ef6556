"""
Data models for Todoist Sync module.

Internal task rows, Todoist API records and sync run results.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp. Naive values are treated as UTC."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for storage (UTC, ISO-8601)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class TaskStatus(str, Enum):
    """Lifecycle status of an internal task."""
    PENDING = 'pending'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'


class RunStatus(str, Enum):
    """Outcome of one account's reconciliation run."""
    OK = 'ok'
    ERROR = 'error'
    SKIPPED = 'skipped'


@dataclass
class InternalTask:
    """Task owned by the internal task store."""
    id: str
    account_id: str
    title: str
    description: Optional[str] = None
    priority_level: int = 4  # 1-4, 1 being highest
    priority: str = 'low'
    due_date: Optional[str] = None
    status: str = TaskStatus.PENDING.value
    completed_at: Optional[datetime] = None
    external_id: Optional[str] = None
    last_external_sync_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED.value

    @property
    def is_linked(self) -> bool:
        return bool(self.external_id)

    @classmethod
    def from_row(cls, row: Mapping) -> 'InternalTask':
        """Create from a tasks table row."""
        return cls(
            id=row['id'],
            account_id=row['account_id'],
            title=row['title'],
            description=row['description'],
            priority_level=row['priority_level'],
            priority=row['priority'],
            due_date=row['due_date'],
            status=row['status'],
            completed_at=parse_timestamp(row['completed_at']),
            external_id=row['external_id'],
            last_external_sync_at=parse_timestamp(row['last_external_sync_at']),
            created_at=parse_timestamp(row['created_at']),
            updated_at=parse_timestamp(row['updated_at']),
        )


@dataclass
class TodoistTask:
    """Task from Todoist."""
    id: str
    content: str
    description: str = ''
    project_id: Optional[str] = None
    section_id: Optional[str] = None
    parent_id: Optional[str] = None
    priority: int = 1  # 1-4, 4 being highest
    due_date: Optional[str] = None
    due_datetime: Optional[str] = None
    is_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: dict) -> 'TodoistTask':
        """Create from Todoist API response."""
        due = data.get('due', {}) or {}
        return cls(
            id=str(data['id']),
            content=data['content'],
            description=data.get('description') or '',
            project_id=str(data['project_id']) if data.get('project_id') else None,
            section_id=str(data['section_id']) if data.get('section_id') else None,
            parent_id=str(data['parent_id']) if data.get('parent_id') else None,
            priority=data.get('priority', 1),
            due_date=due.get('date'),
            due_datetime=due.get('datetime'),
            is_completed=bool(data.get('is_completed', False)),
            created_at=parse_timestamp(data.get('created_at')),
            updated_at=parse_timestamp(data.get('updated_at')),
        )


@dataclass
class TodoistProject:
    """Project from Todoist."""
    id: str
    name: str
    color: Optional[str] = None
    order: int = 0

    @classmethod
    def from_api(cls, data: dict) -> 'TodoistProject':
        """Create from Todoist API response."""
        return cls(
            id=str(data['id']),
            name=data['name'],
            color=data.get('color'),
            order=data.get('order', 0),
        )


@dataclass
class AccountSettings:
    """Per-account Todoist sync settings."""
    id: str
    todoist_api_token: Optional[str] = None
    todoist_sync_enabled: bool = False

    @property
    def is_sync_active(self) -> bool:
        return self.todoist_sync_enabled and bool(self.todoist_api_token)

    @classmethod
    def from_row(cls, row: Mapping) -> 'AccountSettings':
        """Create from an accounts table row."""
        return cls(
            id=row['id'],
            todoist_api_token=row['todoist_api_token'],
            todoist_sync_enabled=bool(row['todoist_sync_enabled']),
        )


@dataclass
class SyncResult:
    """Counts and per-item errors from one reconciliation run."""
    pushed: int = 0
    pulled: int = 0
    errors: list[str] = field(default_factory=list)

    def summary(self) -> str:
        noun = 'error' if len(self.errors) == 1 else 'errors'
        return f"pushed {self.pushed}, pulled {self.pulled}, {len(self.errors)} {noun}"

    def to_dict(self) -> dict:
        return {'pushed': self.pushed, 'pulled': self.pulled, 'errors': list(self.errors)}


@dataclass
class AccountSyncReport:
    """
    Result of syncing one account from a batch or on-demand trigger.

    Exactly one of `result` (status OK) or `error` (status ERROR/SKIPPED)
    is populated.
    """
    account_id: str
    status: RunStatus
    result: Optional[SyncResult] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, account_id: str, result: SyncResult) -> 'AccountSyncReport':
        return cls(account_id=account_id, status=RunStatus.OK, result=result)

    @classmethod
    def failed(cls, account_id: str, error: str) -> 'AccountSyncReport':
        return cls(account_id=account_id, status=RunStatus.ERROR, error=error)

    @classmethod
    def skipped(cls, account_id: str, reason: str) -> 'AccountSyncReport':
        return cls(account_id=account_id, status=RunStatus.SKIPPED, error=reason)

    def to_dict(self) -> dict:
        data = {'account_id': self.account_id, 'status': self.status.value}
        if self.result is not None:
            data.update(self.result.to_dict())
        if self.error is not None:
            data['error'] = self.error
        return data
