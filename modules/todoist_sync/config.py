"""
Configuration management for Todoist Sync module.

Loads environment variables and provides typed config access.
"""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

# Find project root and load .env
PROJECT_ROOT = Path(__file__).parent.parent.parent
load_dotenv(PROJECT_ROOT / '.env')


class Config:
    """Todoist sync configuration."""

    # Environment
    TASK_SYNC_ENV: str = os.getenv('TASK_SYNC_ENV', 'dev')

    # Todoist
    TODOIST_BASE_URL: str = os.getenv('TODOIST_BASE_URL', 'https://api.todoist.com/rest/v2')
    TODOIST_TIMEOUT: float = float(os.getenv('TODOIST_TIMEOUT', '30'))
    # Only used by the `test` command; accounts carry their own tokens
    TODOIST_API_TOKEN: str = os.getenv('TODOIST_API_TOKEN', '')

    # Sync interval (seconds)
    SYNC_POLL_INTERVAL: int = int(os.getenv('SYNC_POLL_INTERVAL', '300'))

    # Database
    DB_PATH: Path = Path(os.getenv('TASK_SYNC_DB_PATH', str(PROJECT_ROOT / 'data' / 'todoist_sync.db')))

    # Logging (set TASK_SYNC_LOG_LEVEL=DEBUG for verbose output)
    LOG_LEVEL: str = os.getenv('TASK_SYNC_LOG_LEVEL', 'INFO')
    LOG_FILE: Optional[str] = os.getenv('TASK_SYNC_LOG_FILE') or None

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration. Returns list of errors."""
        errors = []

        if not cls.TODOIST_BASE_URL.startswith(('http://', 'https://')):
            errors.append("TODOIST_BASE_URL must be an http(s) URL")

        if cls.TODOIST_TIMEOUT <= 0:
            errors.append("TODOIST_TIMEOUT must be positive")

        if cls.SYNC_POLL_INTERVAL <= 0:
            errors.append("SYNC_POLL_INTERVAL must be positive")

        return errors


# Singleton instance
config = Config()
