"""
Todoist API client for Todoist Sync.

Thin typed wrapper over the Todoist REST API v2. The token is passed per
call so one client instance serves every account.
"""

import logging
from typing import Any, Optional

import httpx

from .exceptions import (
    TodoistAPIError,
    TodoistConnectionError,
    TodoistNotFoundError,
)
from .models import TodoistProject, TodoistTask

logger = logging.getLogger(__name__)


class TodoistClient:
    """Todoist REST API client."""

    DEFAULT_BASE_URL = 'https://api.todoist.com/rest/v2'

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport

    def _get_headers(self, token: str) -> dict:
        """Get request headers."""
        return {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        }

    def _request(
        self,
        method: str,
        endpoint: str,
        token: str,
        params: Optional[dict] = None,
        json_data: Optional[dict] = None,
        expect_body: bool = False,
    ) -> Any:
        """
        Make a REST API request.

        Returns None for empty responses, unless `expect_body` is set, in
        which case an empty response raises TodoistAPIError.
        """
        url = f"{self.base_url}/{endpoint}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.request(
                    method,
                    url,
                    headers=self._get_headers(token),
                    params=params,
                    json=json_data,
                )
        except httpx.HTTPError as e:
            logger.warning(f"Todoist {method} {endpoint} failed: {e}")
            raise TodoistConnectionError(f"Todoist {method} {endpoint} failed: {e}") from e

        if not response.is_success:
            logger.debug(f"Todoist {method} {endpoint} -> {response.status_code}")
            if response.status_code == 404:
                raise TodoistNotFoundError(response.status_code, response.text)
            raise TodoistAPIError(response.status_code, response.text)

        # Some endpoints return empty response
        if response.status_code == 204 or not response.content:
            if expect_body:
                raise TodoistAPIError(response.status_code, f"Empty response from {method} {endpoint}")
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Todoist {method} {endpoint} returned invalid JSON: {e}")
            raise TodoistAPIError(response.status_code, response.text) from e

    # ==========================================================================
    # Projects
    # ==========================================================================

    def list_projects(self, token: str) -> list[TodoistProject]:
        """Get all projects."""
        data = self._request('GET', 'projects', token) or []
        return [TodoistProject.from_api(p) for p in data]

    def validate_token(self, token: str) -> bool:
        """Quick check that a token is valid by fetching projects."""
        try:
            self.list_projects(token)
        except TodoistConnectionError:
            return False
        except TodoistAPIError as e:
            logger.info(f"Todoist token rejected: {e.status_code}")
            return False
        return True

    # ==========================================================================
    # Tasks
    # ==========================================================================

    def list_tasks(self, token: str) -> list[TodoistTask]:
        """Get all active tasks visible to the token."""
        data = self._request('GET', 'tasks', token) or []
        return [TodoistTask.from_api(t) for t in data]

    def get_task(self, token: str, task_id: str) -> TodoistTask:
        """Get a single task by ID."""
        data = self._request('GET', f'tasks/{task_id}', token, expect_body=True)
        return TodoistTask.from_api(data)

    def create_task(
        self,
        token: str,
        content: str,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        due_date: Optional[str] = None,
        due_datetime: Optional[str] = None,
        project_id: Optional[str] = None,
        section_id: Optional[str] = None,
        parent_id: Optional[str] = None,
    ) -> TodoistTask:
        """Create a new task."""
        data = {'content': content}

        if description:
            data['description'] = description
        if priority:
            data['priority'] = priority
        if due_datetime:
            data['due_datetime'] = due_datetime
        elif due_date:
            data['due_date'] = due_date
        if project_id:
            data['project_id'] = project_id
        if section_id:
            data['section_id'] = section_id
        if parent_id:
            data['parent_id'] = parent_id

        task_data = self._request('POST', 'tasks', token, json_data=data, expect_body=True)
        logger.info(f"Created Todoist task {task_data['id']}: {content}")
        return TodoistTask.from_api(task_data)

    def update_task(self, token: str, task_id: str, **fields) -> TodoistTask:
        """Update a task. Fields left out (or None) are unchanged server-side."""
        data = {k: v for k, v in fields.items() if v is not None}
        task_data = self._request('POST', f'tasks/{task_id}', token, json_data=data, expect_body=True)
        logger.info(f"Updated Todoist task {task_id}")
        return TodoistTask.from_api(task_data)

    def close_task(self, token: str, task_id: str) -> None:
        """Mark a task as completed."""
        self._request('POST', f'tasks/{task_id}/close', token)
        logger.info(f"Closed Todoist task {task_id}")

    def reopen_task(self, token: str, task_id: str) -> None:
        """Reopen a completed task."""
        self._request('POST', f'tasks/{task_id}/reopen', token)
        logger.info(f"Reopened Todoist task {task_id}")

    def delete_task(self, token: str, task_id: str) -> None:
        """Delete a task."""
        self._request('DELETE', f'tasks/{task_id}', token)
        logger.info(f"Deleted Todoist task {task_id}")
