from mindful.db.keys import WORKSPACE_PREFIX, RedisKeyPrefix, StorageKeys
from mindful.db.kv_store import AsyncKeyValueStore, RedisKeyValueStore, RedisSyncStore, SyncKeyValueStore
from mindful.db.redis_factory import create_async_redis_client, create_redis_client

__all__ = [
    "WORKSPACE_PREFIX",
    "RedisKeyPrefix",
    "StorageKeys",
    "AsyncKeyValueStore",
    "SyncKeyValueStore",
    "RedisKeyValueStore",
    "RedisSyncStore",
    "create_redis_client",
    "create_async_redis_client",
]
