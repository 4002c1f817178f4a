"""Pytest configuration and shared fixtures.

Organization:
    - Environment: keep tests independent of the developer's STORAGE_/LOG_ variables
    - Storage Fixtures: in-memory backend and a PathStore bound to it
"""

from __future__ import annotations

import os

import pytest
import pytest_asyncio

from path_store.core.settings import clear_all_caches
from path_store.infra.storage import PathStore
from path_store.infra.storage.testing import InMemoryBackend

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def _isolate_settings(monkeypatch: pytest.MonkeyPatch):
    """Drop cached settings and any STORAGE_/LOG_ variables around each test."""
    for name in list(os.environ):
        if name.startswith(("STORAGE_", "LOG_")):
            monkeypatch.delenv(name, raising=False)
    clear_all_caches()
    yield
    clear_all_caches()


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def backend() -> InMemoryBackend:
    """Empty in-memory backend with no buckets."""
    return InMemoryBackend()


@pytest.fixture
def store(backend: InMemoryBackend) -> PathStore:
    """PathStore over ``backend`` with no bucket selected."""
    return PathStore(backend)


@pytest_asyncio.fixture
async def bucket_store(backend: InMemoryBackend, store: PathStore) -> PathStore:
    """PathStore with ``bucket0`` selected and created."""
    store.set_bucket_name("bucket0")
    await store.init_bucket()
    backend.calls.clear()
    return store
