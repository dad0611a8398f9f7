"""Redis client factory for different deployment modes.

Creates FakeRedis clients for in-memory mode and real Redis clients
otherwise, in both synchronous and asyncio flavours.
"""

import logging

import fakeredis
import redis
import redis.asyncio as aioredis

from mindful.settings import settings

logger = logging.getLogger(__name__)

# Sync and async FakeRedis clients must share one server to see the same data
_fake_server: fakeredis.FakeServer | None = None


def _get_fake_server() -> fakeredis.FakeServer:
    global _fake_server
    if _fake_server is None:
        _fake_server = fakeredis.FakeServer()
    return _fake_server


def _redis_config() -> dict:
    config = {
        "host": settings.redis_host,
        "port": settings.redis_port,
        "db": settings.redis_index,
        "socket_connect_timeout": settings.redis_socket_connect_timeout,
        "socket_timeout": settings.redis_socket_timeout,
        "decode_responses": True,
    }
    if settings.redis_password:
        config["password"] = settings.redis_password
    return config


def create_redis_client() -> redis.Redis:
    """Create a synchronous Redis client based on settings.

    Returns:
        Redis client (either fakeredis or real redis)
    """
    if settings.redis_type == "in_memory":
        client = fakeredis.FakeRedis(server=_get_fake_server(), decode_responses=True)
        logger.info("Using FakeRedis (in-memory, sync)")
        return client

    client = redis.Redis(**_redis_config())
    logger.info(f"Using real Redis (sync): {settings.redis_host}:{settings.redis_port}, db={settings.redis_index}")
    return client


def create_async_redis_client() -> aioredis.Redis:
    """Create an asyncio Redis client based on settings."""
    if settings.redis_type == "in_memory":
        client = fakeredis.FakeAsyncRedis(server=_get_fake_server(), decode_responses=True)
        logger.info("Using FakeRedis (in-memory, async)")
        return client

    client = aioredis.Redis(**_redis_config())
    logger.info(f"Using real Redis (async): {settings.redis_host}:{settings.redis_port}, db={settings.redis_index}")
    return client
