"""Tests for the CLI service wiring."""

from modules.todoist_sync.__main__ import Services
from modules.todoist_sync.config import config
from modules.todoist_sync.propagators import TaskPropagator


def test_services_share_store_and_client(monkeypatch, tmp_path):
    monkeypatch.setattr(config, 'DB_PATH', tmp_path / 'cli.db')

    services = Services()

    assert isinstance(services.propagator, TaskPropagator)
    assert services.propagator.store is services.db
    assert services.propagator.client is services.client
    assert services.engine.store is services.db
