"""Engine wiring.

Builds the storage tiers from settings and hands out the services that
operate on them.

Usage:
    from mindful.engine import create_engine

    engine = create_engine()
    await engine.registry.initialize()
    view = engine.open_view(await engine.registry.get_active_id())
    await view.boot()
"""

import logging
from dataclasses import dataclass, field

from mindful.components.smart_import.workspace_service import LocalWorkspaceService
from mindful.components.workspace.models import BookmarkGroup, StorageMode
from mindful.components.workspace.registry import WorkspaceRegistry
from mindful.components.workspace.remote_storage import RemoteBookmarkStorage
from mindful.components.workspace.storage import LocalGroupStorage, load_initial_bookmarks
from mindful.db.keys import RedisKeyPrefix
from mindful.db.kv_store import RedisKeyValueStore, RedisSyncStore
from mindful.db.redis_factory import create_async_redis_client, create_redis_client
from mindful.services.bookmark_manager import BookmarkManager
from mindful.services.cache_manager import CacheManager
from mindful.services.copy_move import CopyMoveEngine
from mindful.services.events import EventBus, RedisEventBridge
from mindful.services.hydration import WorkspaceView, storage_group_loader
from mindful.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class MindfulEngine:
    """Shared stores and services for one process."""

    persistent: RedisKeyValueStore
    session: RedisKeyValueStore
    first_paint: RedisSyncStore
    bus: EventBus = field(default_factory=EventBus)
    user_id: str = field(default_factory=lambda: settings.local_user_id)
    bridge: RedisEventBridge | None = None
    remote: RemoteBookmarkStorage | None = None

    def __post_init__(self):
        if self.remote is None and settings.is_remote_storage_configured():
            self.remote = RemoteBookmarkStorage()
        self.registry = WorkspaceRegistry(self.persistent)
        self.storage = LocalGroupStorage(self.persistent, user_id=self.user_id)
        self.cache_manager = CacheManager(self.first_paint, self.session)
        self.copy_engine = CopyMoveEngine(self.storage, cache_manager=self.cache_manager, bus=self.bus)
        self.workspace_service = LocalWorkspaceService(
            self.registry, self.storage, cache_manager=self.cache_manager, bus=self.bus
        )

    def open_view(self, workspace_id: str) -> WorkspaceView:
        view = WorkspaceView(
            self.cache_manager,
            storage_group_loader(self.storage, self.user_id),
            workspace_id,
            bus=self.bus,
        )
        view.mount()
        return view

    async def load_workspace_groups(
        self, workspace_id: str, storage_mode: StorageMode | None = StorageMode.LOCAL
    ) -> list[BookmarkGroup]:
        """Initial load for a workspace; REMOTE mode uses the remote API when one is configured."""
        return await load_initial_bookmarks(
            self.user_id, workspace_id, storage_mode, self.storage, remote=self.remote
        )

    def bookmark_manager(self, workspace_id: str) -> BookmarkManager:
        return BookmarkManager(
            self.storage, workspace_id, cache_manager=self.cache_manager, bus=self.bus, user_id=self.user_id
        )

    async def start_bridge(self) -> RedisEventBridge:
        """Relay BOOKMARKS_UPDATED to other processes sharing the Redis instance."""
        if self.bridge is None:
            self.bridge = RedisEventBridge(self.bus, self.session.client)
            await self.bridge.start()
        return self.bridge

    async def close(self) -> None:
        if self.bridge is not None:
            await self.bridge.stop()
            self.bridge = None
        await self.bus.drain()


def create_engine() -> MindfulEngine:
    """Create an engine backed by the Redis (or FakeRedis) configured in settings."""
    async_client = create_async_redis_client()
    sync_client = create_redis_client()

    engine = MindfulEngine(
        persistent=RedisKeyValueStore(async_client, RedisKeyPrefix.LOCAL),
        session=RedisKeyValueStore(async_client, RedisKeyPrefix.SESSION, ttl_seconds=settings.session_ttl_seconds),
        first_paint=RedisSyncStore(sync_client, RedisKeyPrefix.FIRST_PAINT),
    )
    logger.info(
        f"Engine ready (redis_type={settings.redis_type}, user={engine.user_id}, "
        f"remote={engine.remote is not None})"
    )
    return engine
