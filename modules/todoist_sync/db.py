"""
Database management for Todoist Sync module.

SQLite with WAL mode for concurrent access. Holds the internal task store,
per-account sync settings and the sync audit log.
"""

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

from .config import config
from .field_mapper import priority_label
from .models import (
    AccountSettings,
    InternalTask,
    TaskStatus,
    format_timestamp,
    parse_timestamp,
    utcnow,
)


SCHEMA = """
-- Per-account sync settings
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    todoist_api_token TEXT,
    todoist_sync_enabled INTEGER NOT NULL DEFAULT 0,
    created_at TEXT DEFAULT (datetime('now')),
    updated_at TEXT DEFAULT (datetime('now'))
);

-- Internal task store
CREATE TABLE IF NOT EXISTS tasks (
    id TEXT PRIMARY KEY,
    account_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    priority_level INTEGER NOT NULL DEFAULT 4 CHECK (priority_level BETWEEN 1 AND 4),
    priority TEXT NOT NULL DEFAULT 'low',
    due_date TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'in_progress', 'completed')),
    completed_at TEXT,
    external_id TEXT UNIQUE,  -- Todoist task ID, NULL until linked
    last_external_sync_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_account ON tasks(account_id);
CREATE INDEX IF NOT EXISTS idx_tasks_external ON tasks(external_id);

-- Sync log: audit trail
CREATE TABLE IF NOT EXISTS sync_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT DEFAULT (datetime('now')),
    account_id TEXT,
    direction TEXT NOT NULL,  -- 'internal_to_todoist', 'todoist_to_internal'
    action TEXT NOT NULL,  -- 'create', 'update', 'complete', 'close', 'reopen', 'delete', 'ignored_completed', 'error'
    task_id TEXT,
    external_id TEXT,
    details TEXT,
    status TEXT DEFAULT 'success'
);

CREATE INDEX IF NOT EXISTS idx_sync_log_timestamp ON sync_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_sync_log_status ON sync_log(status);
"""

TASK_FIELDS = {
    'title', 'description', 'priority_level', 'priority', 'due_date',
    'status', 'completed_at', 'external_id', 'last_external_sync_at',
}


class Database:
    """Todoist sync database manager."""

    def __init__(self, db_path: Optional[Path] = None, clock: Callable[[], datetime] = utcnow):
        self.db_path = Path(db_path or config.DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.clock = clock
        self._init_schema()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with WAL mode."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextmanager
    def connection(self):
        """Context manager for database connections."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    # ==========================================================================
    # Accounts
    # ==========================================================================

    def get_account(self, account_id: str) -> Optional[AccountSettings]:
        """Get sync settings for an account."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM accounts WHERE id = ?", (account_id,)
            ).fetchone()
            return AccountSettings.from_row(row) if row else None

    def save_account(self, account: AccountSettings):
        """Insert or replace an account's sync settings."""
        with self.connection() as conn:
            conn.execute("""
                INSERT INTO accounts (id, todoist_api_token, todoist_sync_enabled, updated_at)
                VALUES (?, ?, ?, datetime('now'))
                ON CONFLICT(id) DO UPDATE SET
                    todoist_api_token = excluded.todoist_api_token,
                    todoist_sync_enabled = excluded.todoist_sync_enabled,
                    updated_at = datetime('now')
            """, (account.id, account.todoist_api_token, int(account.todoist_sync_enabled)))

    def list_sync_enabled_accounts(self) -> list[AccountSettings]:
        """Accounts with sync enabled and a token configured."""
        with self.connection() as conn:
            rows = conn.execute("""
                SELECT * FROM accounts
                WHERE todoist_sync_enabled = 1
                  AND todoist_api_token IS NOT NULL AND todoist_api_token != ''
                ORDER BY id
            """).fetchall()
            return [AccountSettings.from_row(row) for row in rows]

    # ==========================================================================
    # Tasks
    # ==========================================================================

    def list_tasks_for_account(self, account_id: str) -> list[InternalTask]:
        """Get every task belonging to an account."""
        with self.connection() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE account_id = ? ORDER BY created_at, id",
                (account_id,),
            ).fetchall()
            return [InternalTask.from_row(row) for row in rows]

    def get_task(self, task_id: str) -> Optional[InternalTask]:
        """Get a task by ID."""
        with self.connection() as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
            return InternalTask.from_row(row) if row else None

    def insert_task(self, fields: dict) -> InternalTask:
        """Create a new task. Returns the stored row."""
        values = self._prepare_fields(fields)
        values.setdefault('priority_level', 4)
        values.setdefault('priority', priority_label(values['priority_level']))
        values.setdefault('status', TaskStatus.PENDING.value)

        now = format_timestamp(self.clock())
        task_id = fields.get('id') or uuid.uuid4().hex
        # A row created by sync is stamped with its watermark
        stamp = values.get('last_external_sync_at') or now

        columns = ['id', 'account_id', *values.keys(), 'created_at', 'updated_at']
        params = [task_id, fields['account_id'], *values.values(), stamp, stamp]
        placeholders = ', '.join('?' for _ in columns)

        with self.connection() as conn:
            conn.execute(
                f"INSERT INTO tasks ({', '.join(columns)}) VALUES ({placeholders})",
                params,
            )
        return self.get_task(task_id)

    def patch_task(self, task_id: str, fields: dict):
        """
        Update a task.

        `updated_at` is bumped on every patch. A patch that carries
        `last_external_sync_at` is a sync write: the watermark only ever
        moves forward, and `updated_at` is stamped with the watermark so the
        write does not read as a newer local edit.
        """
        values = self._prepare_fields(fields)
        if not values:
            return

        with self.connection() as conn:
            row = conn.execute(
                "SELECT last_external_sync_at FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
            if row is None:
                return

            if 'last_external_sync_at' in values:
                current = parse_timestamp(row['last_external_sync_at'])
                proposed = parse_timestamp(values['last_external_sync_at'])
                if current is not None and (proposed is None or proposed < current):
                    values['last_external_sync_at'] = format_timestamp(current)
                values['updated_at'] = values['last_external_sync_at'] or format_timestamp(self.clock())
            else:
                values['updated_at'] = format_timestamp(self.clock())

            sets = ', '.join(f"{k} = ?" for k in values.keys())
            conn.execute(
                f"UPDATE tasks SET {sets} WHERE id = ?",
                [*values.values(), task_id],
            )

    def delete_task(self, task_id: str):
        """Delete a task row outright (local delete)."""
        with self.connection() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    def unlink_account_tasks(self, account_id: str) -> int:
        """Clear Todoist links and watermarks for every task of an account. Returns rows changed."""
        now = format_timestamp(self.clock())
        with self.connection() as conn:
            cursor = conn.execute("""
                UPDATE tasks
                SET external_id = NULL, last_external_sync_at = NULL, updated_at = ?
                WHERE account_id = ? AND external_id IS NOT NULL
            """, (now, account_id))
            return cursor.rowcount

    def _prepare_fields(self, fields: dict) -> dict[str, Any]:
        unknown = set(fields) - TASK_FIELDS - {'id', 'account_id'}
        if unknown:
            raise ValueError(f"Unknown task fields: {sorted(unknown)}")

        values = {}
        for key, value in fields.items():
            if key in ('id', 'account_id'):
                continue
            if isinstance(value, TaskStatus):
                value = value.value
            elif isinstance(value, datetime):
                value = format_timestamp(value)
            values[key] = value
        return values

    # ==========================================================================
    # Sync Log
    # ==========================================================================

    def log_sync(
        self,
        direction: str,
        action: str,
        account_id: Optional[str] = None,
        task_id: Optional[str] = None,
        external_id: Optional[str] = None,
        details: Optional[str] = None,
        status: str = 'success'
    ):
        """Log a sync action."""
        with self.connection() as conn:
            conn.execute("""
                INSERT INTO sync_log (
                    account_id, direction, action, task_id, external_id, details, status
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """, (account_id, direction, action, task_id, external_id, details, status))

    def get_recent_logs(self, limit: int = 50, account_id: Optional[str] = None) -> list[dict]:
        """Get recent sync log entries."""
        with self.connection() as conn:
            if account_id:
                rows = conn.execute(
                    "SELECT * FROM sync_log WHERE account_id = ? ORDER BY id DESC LIMIT ?",
                    (account_id, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM sync_log ORDER BY id DESC LIMIT ?", (limit,)
                ).fetchall()
            return [dict(row) for row in rows]
