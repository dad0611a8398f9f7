"""
Key-value storage ports backed by Redis.

Three stores share one Redis DB and are isolated by key prefix:
- persistent async store (`RedisKeyValueStore`, no TTL)
- session async store (`RedisKeyValueStore` with a TTL)
- first-paint sync store (`RedisSyncStore`, raw string values)

Async stores hold JSON values and expose the mapping-shaped interface the
engine is written against:

    await store.get("k")          -> {"k": value} (missing keys omitted)
    await store.get(["a", "b"])   -> {"a": ..., "b": ...}
    await store.get(None)         -> every entry in the store's namespace
    await store.set({"k": value})
    await store.remove(["a", "b"])

Redis failures surface as `StorageError`; callers decide whether to swallow.
"""

import json
import logging
from typing import Any, Protocol

import redis
import redis.asyncio as aioredis

from mindful.db.keys import RedisKeyPrefix
from mindful.errors import StorageError

logger = logging.getLogger(__name__)

KeySelector = str | list[str] | tuple[str, ...] | None


class AsyncKeyValueStore(Protocol):
    """Async mapping-shaped store used for persistent and session data."""

    async def get(self, keys: KeySelector = None) -> dict[str, Any]: ...
    async def set(self, items: dict[str, Any]) -> None: ...
    async def remove(self, keys: str | list[str] | tuple[str, ...]) -> None: ...


class SyncKeyValueStore(Protocol):
    """Synchronous string store used only for first paint."""

    def get_item(self, key: str) -> str | None: ...
    def set_item(self, key: str, value: str) -> None: ...
    def remove_item(self, key: str) -> None: ...


def _as_key_list(keys: str | list[str] | tuple[str, ...]) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    return [str(k) for k in keys]


class RedisKeyValueStore:
    """Async JSON store over redis.asyncio, namespaced by a tier prefix.

    Args:
        client: redis.asyncio client (FakeAsyncRedis in tests / in-memory mode)
        prefix: tier prefix, e.g. RedisKeyPrefix.SESSION
        ttl_seconds: expiry applied on every write (session tier only)
        root: key root override (defaults to settings.redis_key_root)
    """

    def __init__(
        self,
        client: aioredis.Redis,
        prefix: RedisKeyPrefix | str = RedisKeyPrefix.LOCAL,
        ttl_seconds: int | None = None,
        root: str | None = None,
    ):
        self._client = client
        if isinstance(prefix, RedisKeyPrefix):
            self._prefix = prefix.prefix(root)
        else:
            self._prefix = prefix
        self.ttl_seconds = ttl_seconds

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    @property
    def namespace(self) -> str:
        return self._prefix

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def _logical_key(self, full_key: str) -> str:
        return full_key[len(self._prefix) + 1 :]

    @staticmethod
    def _decode(full_key: str, raw: str | None) -> tuple[bool, Any]:
        if raw is None:
            return False, None
        try:
            return True, json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Dropping undecodable value at {full_key}: {e}")
            return False, None

    async def _scan_keys(self) -> list[str]:
        keys = []
        async for key in self._client.scan_iter(match=f"{self._prefix}:*"):
            keys.append(key)
        return keys

    async def get(self, keys: KeySelector = None) -> dict[str, Any]:
        """Read entries; `None` returns every entry in this namespace."""
        try:
            if keys is None:
                full_keys = await self._scan_keys()
            else:
                full_keys = [self._full_key(k) for k in _as_key_list(keys)]
            if not full_keys:
                return {}
            values = await self._client.mget(full_keys)
        except redis.RedisError as e:
            raise StorageError(f"Redis read failed in {self._prefix}: {e}") from e

        result: dict[str, Any] = {}
        for full_key, raw in zip(full_keys, values):
            found, value = self._decode(full_key, raw)
            if found:
                result[self._logical_key(full_key)] = value
        logger.debug(f"KV get {self._prefix}: {len(result)}/{len(full_keys)} hit")
        return result

    async def set(self, items: dict[str, Any]) -> None:
        """Write every entry in one pipeline."""
        if not items:
            return
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                for key, value in items.items():
                    pipe.set(self._full_key(key), json.dumps(value), ex=self.ttl_seconds)
                await pipe.execute()
        except redis.RedisError as e:
            raise StorageError(f"Redis write failed in {self._prefix}: {e}") from e
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value not JSON serializable: {e}") from e

    async def remove(self, keys: str | list[str] | tuple[str, ...]) -> None:
        full_keys = [self._full_key(k) for k in _as_key_list(keys)]
        if not full_keys:
            return
        try:
            await self._client.delete(*full_keys)
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed in {self._prefix}: {e}") from e

    async def clear(self) -> None:
        """Remove every entry in this namespace (useful for testing)."""
        try:
            full_keys = await self._scan_keys()
            if full_keys:
                await self._client.delete(*full_keys)
        except redis.RedisError as e:
            raise StorageError(f"Redis clear failed in {self._prefix}: {e}") from e


class RedisSyncStore:
    """Synchronous raw-string store over redis-py for first-paint data."""

    def __init__(
        self,
        client: redis.Redis,
        prefix: RedisKeyPrefix | str = RedisKeyPrefix.FIRST_PAINT,
        root: str | None = None,
    ):
        self._client = client
        if isinstance(prefix, RedisKeyPrefix):
            self._prefix = prefix.prefix(root)
        else:
            self._prefix = prefix

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    def get_item(self, key: str) -> str | None:
        try:
            return self._client.get(self._full_key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis read failed in {self._prefix}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            self._client.set(self._full_key(key), value)
        except redis.RedisError as e:
            raise StorageError(f"Redis write failed in {self._prefix}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._client.delete(self._full_key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed in {self._prefix}: {e}") from e
