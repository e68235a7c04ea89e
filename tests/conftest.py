"""
Pytest configuration and shared fixtures for MDB_CONTEXT tests.

This module provides:
- In-memory MongoDB fixtures (mongomock / mongomock-motor)
- Mock pymongo / motor databases for provisioning tests
- Context factories
- Metrics isolation
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import mongomock
import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from mdb_context import AsyncMongoDbContext, MongoDbContext
from mdb_context.observability import clear_correlation_id, clear_entity_context
from mdb_context.observability.metrics import get_metrics_collector

TEST_ACTOR = "alice"


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end tests over an in-memory server")


# ============================================================================
# ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def reset_observability():
    """Reset global metrics and logging context between tests."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
    clear_correlation_id()
    clear_entity_context()


# ============================================================================
# IN-MEMORY MONGODB FIXTURES
# ============================================================================


@pytest.fixture
def mongo_client():
    """In-memory pymongo-compatible client."""
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture
def mongo_db(mongo_client):
    return mongo_client["test_db"]


@pytest_asyncio.fixture
async def async_mongo_client():
    """In-memory motor-compatible client."""
    client = AsyncMongoMockClient()
    yield client
    client.close()


@pytest.fixture
def async_mongo_db(async_mongo_client):
    return async_mongo_client["test_db"]


# ============================================================================
# CONTEXT FACTORIES
# ============================================================================


@pytest.fixture
def make_context(mongo_db):
    """Factory for MongoDbContext over the in-memory database."""
    contexts = []

    def _make(**kwargs: Any) -> MongoDbContext:
        kwargs.setdefault("current_actor", lambda: TEST_ACTOR)
        context = MongoDbContext(mongo_db, **kwargs)
        contexts.append(context)
        return context

    yield _make
    for context in contexts:
        context.close()


@pytest.fixture
def context(make_context) -> MongoDbContext:
    return make_context()


@pytest_asyncio.fixture
async def make_async_context(async_mongo_db):
    """Factory for AsyncMongoDbContext over the in-memory database."""
    contexts = []

    def _make(**kwargs: Any) -> AsyncMongoDbContext:
        kwargs.setdefault("current_actor", lambda: TEST_ACTOR)
        context = AsyncMongoDbContext(async_mongo_db, **kwargs)
        contexts.append(context)
        return context

    yield _make
    for context in contexts:
        await context.close()


# ============================================================================
# MOCK DATABASES (provisioning)
# ============================================================================


def _mock_collection(name: str) -> MagicMock:
    collection = MagicMock()
    collection.name = name
    collection.create_index = MagicMock(side_effect=lambda keys, **kw: kw.get("name") or str(keys))
    return collection


@pytest.fixture
def mock_database() -> MagicMock:
    """
    pymongo-like database mock.

    Collections are created on first subscript and reused afterwards, so
    tests can inspect ``mock_database.collections[name].create_index``.
    """
    db = MagicMock()
    db.name = "test_db"
    db.collections = {}

    def get_collection(name: str) -> MagicMock:
        if name not in db.collections:
            db.collections[name] = _mock_collection(name)
        return db.collections[name]

    db.__getitem__.side_effect = get_collection
    db.list_collection_names = MagicMock(return_value=[])
    db.create_collection = MagicMock()
    return db


@pytest.fixture
def mock_async_database() -> MagicMock:
    """motor-like database mock with awaitable methods."""
    db = MagicMock()
    db.name = "test_db"
    db.collections = {}

    def get_collection(name: str) -> MagicMock:
        if name not in db.collections:
            collection = MagicMock()
            collection.name = name
            collection.create_index = AsyncMock(side_effect=lambda keys, **kw: str(keys))
            db.collections[name] = collection
        return db.collections[name]

    db.__getitem__.side_effect = get_collection
    db.list_collection_names = AsyncMock(return_value=[])
    db.create_collection = AsyncMock()
    return db
