"""Shared fixtures: an in-memory paste store and an app client wired to it."""
import pytest
from fastapi.testclient import TestClient

from app.config import settings
from app.database import InMemoryStore
from app.main import app
from app.store import PasteStore, get_store

T0 = 1_700_000_000_000


@pytest.fixture
def backend() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def store(backend: InMemoryStore) -> PasteStore:
    return PasteStore(backend)


@pytest.fixture
def test_mode(monkeypatch):
    """Honour the x-test-now-ms header."""
    monkeypatch.setattr(settings, "TEST_MODE", True)


@pytest.fixture
def client(store: PasteStore):
    app.dependency_overrides[get_store] = lambda: store
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
