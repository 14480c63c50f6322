"""
Pytest fixtures for the scheduler sync engine tests.

Provides an in-memory row store laid out like a small scheduler project and a
few helpers to seed it.
"""

from pathlib import Path
from typing import Dict, List

import pytest

from scheduler_Server_API.app.core.Sync_Engine.config import SyncEngineConfig
from scheduler_Server_API.app.core.Sync_Engine.models import Collection
from scheduler_Server_API.app.core.Sync_Engine.row_store import InMemoryRowStore
from scheduler_Server_API.app.core.Sync_Engine.sqlite_store import SQLiteRowStore


TEST_SCHEMAS: Dict[str, List[str]] = {
    Collection.RESOURCES.value: ["name", "calendar"],
    Collection.EVENTS.value: ["title", "name", "startDate", "endDate", "intervals", "exceptionDates", "segments"],
    Collection.ASSIGNMENTS.value: ["eventId", "resourceId", "units"],
    Collection.DEPENDENCIES.value: ["fromEvent", "toEvent", "type", "lag"],
    Collection.CALENDARS.value: ["name", "intervals"],
}


@pytest.fixture
def schemas():
    return {table_id: set(columns) for table_id, columns in TEST_SCHEMAS.items()}


@pytest.fixture
def memory_store():
    """Empty in-memory store holding the five scheduler tables."""
    return InMemoryRowStore(TEST_SCHEMAS)


@pytest.fixture
def sqlite_store(tmp_path: Path):
    store = SQLiteRowStore(tmp_path / "scheduler.sqlite", tables=TEST_SCHEMAS)
    yield store
    store.close_connection()


@pytest.fixture
def engine_config():
    return SyncEngineConfig()


@pytest.fixture
def strict_config():
    return SyncEngineConfig(reject_unknown_fields=True, reject_unresolved_references=True)


@pytest.fixture(autouse=True)
def _clear_sync_env(monkeypatch):
    """Environment overrides must not leak into configs built by tests."""
    for name in (
        "SYNC_PHANTOM_ID_FIELD",
        "SYNC_REJECT_UNKNOWN_FIELDS",
        "SYNC_REJECT_UNRESOLVED_REFERENCES",
        "SYNC_SCHEMA_CACHE_TTL",
        "SYNC_MAX_CONCURRENT_OPERATIONS",
    ):
        monkeypatch.delenv(name, raising=False)
