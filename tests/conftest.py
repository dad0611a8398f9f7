#!/usr/bin/env python
"""
pytest configuration file

Shared fixtures: in-memory Redis clients on one FakeServer and the three
storage tiers built on top of them.
"""

import fakeredis
import pytest

from mindful.components.workspace.models import Bookmark, BookmarkGroup
from mindful.components.workspace.registry import WorkspaceRegistry
from mindful.components.workspace.storage import LocalGroupStorage
from mindful.db.keys import RedisKeyPrefix
from mindful.db.kv_store import RedisKeyValueStore, RedisSyncStore
from mindful.services.cache_manager import CacheManager
from mindful.services.events import EventBus

TEST_USER_ID = "user_test"


@pytest.fixture
def fake_server():
    """One in-memory server shared by the sync and async clients."""
    return fakeredis.FakeServer()


@pytest.fixture
def fake_redis_client(fake_server):
    """
    Create a fakeredis client for unit tests.

    This provides an in-memory Redis implementation that allows
    unit tests to run without a real Redis server.
    """
    client = fakeredis.FakeRedis(server=fake_server, decode_responses=True)
    yield client
    client.close()


@pytest.fixture
def fake_async_redis_client(fake_server):
    """Asyncio flavour of the in-memory client."""
    return fakeredis.FakeAsyncRedis(server=fake_server, decode_responses=True)


@pytest.fixture
def persistent_store(fake_async_redis_client):
    return RedisKeyValueStore(fake_async_redis_client, RedisKeyPrefix.LOCAL, root="test")


@pytest.fixture
def session_store(fake_async_redis_client):
    return RedisKeyValueStore(fake_async_redis_client, RedisKeyPrefix.SESSION, ttl_seconds=3600, root="test")


@pytest.fixture
def first_paint_store(fake_redis_client):
    return RedisSyncStore(fake_redis_client, RedisKeyPrefix.FIRST_PAINT, root="test")


@pytest.fixture
def cache_manager(first_paint_store, session_store):
    return CacheManager(first_paint_store, session_store)


@pytest.fixture
def group_storage(persistent_store):
    return LocalGroupStorage(persistent_store, user_id=TEST_USER_ID)


@pytest.fixture
def registry(persistent_store):
    return WorkspaceRegistry(persistent_store)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def make_group():
    """Factory for groups: make_group("g1", "News", ["https://a.com"])."""

    def _make(group_id: str, name: str, urls: list[str] | None = None) -> BookmarkGroup:
        bookmarks = [
            Bookmark(id=f"{group_id}_b{i}", name=f"Link {i}", url=url) for i, url in enumerate(urls or [])
        ]
        return BookmarkGroup(id=group_id, groupName=name, bookmarks=bookmarks)

    return _make
