"""
pytest configuration and fixtures for Todoist sync tests.
"""
import json
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from modules.todoist_sync.db import Database
from modules.todoist_sync.models import AccountSettings
from modules.todoist_sync.poller import Poller
from modules.todoist_sync.propagators import TaskPropagator
from modules.todoist_sync.sync_engine import SyncEngine
from modules.todoist_sync.todoist_client import TodoistClient

TOKEN = 'test-token'
BASE_URL = 'https://todoist.test/rest/v2'


class FakeClock:
    """Strictly increasing clock, one second per reading."""

    def __init__(self, start=None):
        self.current = start or datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FakeTodoist:
    """In-memory Todoist REST API served through httpx.MockTransport."""

    def __init__(self, clock: FakeClock, tokens=(TOKEN,)):
        self.clock = clock
        self.tasks = {token: {} for token in tokens}
        self.calls = []
        self.failures = {}  # (method, path) -> status code
        self.fail_content = set()  # task contents that fail on create
        self._next_id = 1

    # -- test helpers ------------------------------------------------------

    def seed(self, token=TOKEN, **fields) -> dict:
        task_id = fields.pop('id', None) or self._new_id()
        task = {
            'id': task_id,
            'content': fields.pop('content', 'Untitled'),
            'description': fields.pop('description', ''),
            'is_completed': fields.pop('is_completed', False),
            'priority': fields.pop('priority', 1),
            'due': fields.pop('due', None),
            'project_id': None,
            'section_id': None,
            'parent_id': None,
            'created_at': self._now(),
            'updated_at': self._now(),
        }
        task.update(fields)
        self.tasks[token][task_id] = task
        return task

    def edit(self, task_id, token=TOKEN, **fields):
        task = self.tasks[token][task_id]
        task.update(fields)
        task['updated_at'] = self._now()

    def get(self, task_id, token=TOKEN) -> dict:
        return self.tasks[token][task_id]

    def fail(self, method, path, status=500):
        self.failures[(method, path)] = status

    def mutating_calls(self):
        return [c for c in self.calls if c[0] != 'GET']

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    # -- request handling --------------------------------------------------

    def _new_id(self) -> str:
        task_id = f"ext-{self._next_id}"
        self._next_id += 1
        return task_id

    def _now(self) -> str:
        return self.clock().isoformat().replace('+00:00', 'Z')

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len('/rest/v2'):]
        method = request.method
        body = json.loads(request.content) if request.content else {}
        self.calls.append((method, path, body))

        auth = request.headers.get('Authorization', '')
        token = auth[len('Bearer '):] if auth.startswith('Bearer ') else None
        if token not in self.tasks:
            return httpx.Response(401, text='Forbidden')

        if (method, path) in self.failures:
            return httpx.Response(self.failures[(method, path)], text='Service Unavailable')

        tasks = self.tasks[token]
        parts = path.strip('/').split('/')

        if parts == ['projects'] and method == 'GET':
            return httpx.Response(200, json=[{'id': 'p1', 'name': 'Inbox', 'color': 'grey', 'order': 0}])

        if parts == ['tasks'] and method == 'GET':
            return httpx.Response(200, json=list(tasks.values()))

        if parts == ['tasks'] and method == 'POST':
            if body.get('content') in self.fail_content:
                return httpx.Response(500, text='create failed')
            due = {'date': body['due_date']} if body.get('due_date') else None
            task = self.seed(
                token=token,
                content=body['content'],
                description=body.get('description', ''),
                priority=body.get('priority', 1),
                due=due,
            )
            return httpx.Response(200, json=task)

        task = tasks.get(parts[1]) if len(parts) > 1 else None
        if task is None:
            return httpx.Response(404, text='Task not found')

        if len(parts) == 2 and method == 'GET':
            return httpx.Response(200, json=task)

        if len(parts) == 2 and method == 'POST':
            updates = dict(body)
            if 'due_date' in updates:
                updates['due'] = {'date': updates.pop('due_date')}
            self.edit(task['id'], token=token, **updates)
            return httpx.Response(200, json=task)

        if len(parts) == 2 and method == 'DELETE':
            del tasks[task['id']]
            return httpx.Response(204)

        if parts[2:] == ['close'] and method == 'POST':
            self.edit(task['id'], token=token, is_completed=True)
            return httpx.Response(204)

        if parts[2:] == ['reopen'] and method == 'POST':
            self.edit(task['id'], token=token, is_completed=False)
            return httpx.Response(204)

        return httpx.Response(405, text='Method not allowed')


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_todoist(clock):
    return FakeTodoist(clock)


@pytest.fixture
def client(fake_todoist):
    return TodoistClient(BASE_URL, timeout=5, transport=fake_todoist.transport)


@pytest.fixture
def store(tmp_path, clock):
    return Database(tmp_path / 'todoist_sync.db', clock=clock)


@pytest.fixture
def engine(store, client, clock):
    return SyncEngine(store, client, clock=clock)


@pytest.fixture
def propagator(store, client, clock):
    return TaskPropagator(store, client, clock=clock)


@pytest.fixture
def poller(store, engine):
    return Poller(store, engine, interval=1)


@pytest.fixture
def account(store):
    """An account with sync enabled."""
    settings = AccountSettings(id='coach-1', todoist_api_token=TOKEN, todoist_sync_enabled=True)
    store.save_account(settings)
    return settings
