from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from anna.core.backends import InMemoryBackend, SQLiteBackend
from anna.core.memory import MemoryStore
from anna.tools.memory_client import MemoryClient
from app.main import app, get_store


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path) -> MemoryStore:
    if request.param == "sqlite":
        backend = SQLiteBackend(tmp_path / "anna.db")
    else:
        backend = InMemoryBackend()
    store = MemoryStore(backend)
    yield store
    store.close()


@pytest.fixture
def http(store: MemoryStore):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def client(http) -> MemoryClient:
    return MemoryClient(http=http, api_prefix="/api", default_confidence="medium")
