"""Shared fixtures for the webhook logger test suite.

Responsibilities:
- Storage fixtures for each backend plus a parametrized ``storage`` fixture
  that runs contract tests against both
- App/client fixtures wired with explicit Settings (no .env lookup)
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient

from tests.fakes import FakePool
from webhook_logger.app import create_app
from webhook_logger.config import Settings
from webhook_logger.records import WebhookRecord
from webhook_logger.storage import DatabaseStorage, FileStorage

_CREATED_BASE = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── Storage fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def fake_pool() -> FakePool:
    return FakePool()


@pytest.fixture()
def file_storage(tmp_path) -> FileStorage:
    return FileStorage(tmp_path / "logs")


@pytest.fixture()
def database_storage(fake_pool) -> DatabaseStorage:
    return DatabaseStorage(fake_pool)


@pytest.fixture(params=["file", "database"])
def storage(request, tmp_path):
    """Each backend in turn, for tests that must hold for both."""
    if request.param == "file":
        return FileStorage(tmp_path / "logs")
    return DatabaseStorage(FakePool())


@pytest.fixture()
def make_record():
    """Factory for records one second apart, in creation order."""
    counter = {"n": 0}

    def _make(
        body: Any = None,
        *,
        headers: dict[str, Any] | None = None,
        query: dict[str, Any] | None = None,
        at: datetime | None = None,
    ) -> WebhookRecord:
        if at is None:
            counter["n"] += 1
            at = _CREATED_BASE + timedelta(seconds=counter["n"], milliseconds=250)
        return WebhookRecord.create(
            headers=headers if headers is not None else {"content-type": "application/json"},
            body=body if body is not None else {"a": 1},
            query=query if query is not None else {},
            received_at=at,
        )

    return _make


# ── App fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(_env_file=None, storage="file", logs_dir=tmp_path / "logs")


@pytest.fixture()
def make_client(settings):
    """Factory for a TestClient around create_app() with a given backend.

    Keyword overrides are applied to the base Settings.
    """
    clients: list[TestClient] = []

    def _make(storage, **overrides) -> TestClient:
        app_settings = settings.model_copy(update=overrides) if overrides else settings
        client = TestClient(create_app(app_settings, storage))
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client, storage) -> TestClient:
    """TestClient backed by each storage backend in turn."""
    return make_client(storage)
