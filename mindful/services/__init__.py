"""Engine services: caches, hydration, import-merge, copy/move and events."""

from mindful.services.bookmark_manager import BookmarkManager
from mindful.services.cache_manager import CacheManager
from mindful.services.copy_move import (
    ALL_GROUPS,
    BookmarkTarget,
    CopyMoveEngine,
    CopyOptions,
    CopyResult,
    GroupTarget,
)
from mindful.services.events import EventBus, EventType, RedisEventBridge
from mindful.services.hydration import WorkspaceView, storage_group_loader
from mindful.services.import_merge import (
    ensure_single_empty,
    insert_groups,
    merge_groups,
    normalize_groups,
    parse_json_import,
)

__all__ = [
    "BookmarkManager",
    "CacheManager",
    "ALL_GROUPS",
    "BookmarkTarget",
    "CopyMoveEngine",
    "CopyOptions",
    "CopyResult",
    "GroupTarget",
    "EventBus",
    "EventType",
    "RedisEventBridge",
    "WorkspaceView",
    "storage_group_loader",
    "ensure_single_empty",
    "insert_groups",
    "merge_groups",
    "normalize_groups",
    "parse_json_import",
]
