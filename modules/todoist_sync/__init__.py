"""
Todoist Sync Module - internal tasks ↔ Todoist

Bidirectional task synchronization with last-write-wins reconciliation.
"""

__version__ = "0.1.0"

from .models import AccountSyncReport, InternalTask, SyncResult, TodoistTask
from .propagators import TaskPropagator
from .sync_engine import SyncEngine
from .todoist_client import TodoistClient
