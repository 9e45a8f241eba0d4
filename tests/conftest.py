"""
Shared fixtures for the progress engine tests.

Every test gets a fresh fake remote store, in-memory local cache and catalog,
wired into a gateway and an engine with retries disabled.
"""
from datetime import datetime, timezone

import pytest

from application.gateway import ProgressGateway
from backend.engine import ProgressEngine
from tests.fakes import FakeRemoteStore, InMemoryLocalCache, create_catalog

USER_ID = "user-1"


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def local() -> InMemoryLocalCache:
    return InMemoryLocalCache()


@pytest.fixture
def catalog():
    return create_catalog()


@pytest.fixture
def gateway(remote, local) -> ProgressGateway:
    return ProgressGateway(remote, local, retry_attempts=1, retry_min_wait=0, retry_max_wait=0)


@pytest.fixture
def engine(remote, local, catalog) -> ProgressEngine:
    return ProgressEngine.from_components(remote, local, catalog)


@pytest.fixture
def now() -> datetime:
    # A Wednesday
    return datetime(2024, 5, 15, 18, 30, tzinfo=timezone.utc)
