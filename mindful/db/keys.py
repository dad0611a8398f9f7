"""
Key namespace for every storage tier.

Two layers of naming:

1. Redis key prefixes (`RedisKeyPrefix`) isolate the three tiers inside a
   single Redis DB:
       mindful:local:{logical key}      persistent async store
       mindful:session:{logical key}    session-scoped async store (TTL)
       mindful:firstpaint:{logical key} synchronous first-paint store

2. Logical keys (`StorageKeys`) are what the engine reads and writes through
   a store. Workspace-scoped logical keys are derived from the workspace id
   alone:
       WS_{workspace_id}__{key}             workspace-scoped entries
       WS_{workspace_id}::groups_index_v1   first-paint index
       WS_{workspace_id}::groups_blob_v1    first-paint snapshot
       groupsIndex:{workspace_id}           session index mirror
       groupsSnapshot:{workspace_id}        session snapshot mirror
"""

from enum import Enum

from mindful.settings import settings

WORKSPACE_PREFIX = "WS_"

CACHE_INDEX_VERSION = "v1"
CACHE_BLOB_VERSION = "v1"


class RedisKeyPrefix(str, Enum):
    """Redis key prefixes, one per storage tier.

    Every key starts with the configured root (default 'mindful').
    """

    LOCAL = "local"  # persistent async store
    SESSION = "session"  # session-scoped async store
    FIRST_PAINT = "firstpaint"  # synchronous first-paint store
    EVENTS = "events"  # cross-view pub/sub channel

    def prefix(self, root: str | None = None) -> str:
        """Full prefix for this tier, e.g. 'mindful:session'."""
        return f"{root or settings.redis_key_root}:{self.value}"

    @classmethod
    def events_channel(cls, root: str | None = None) -> str:
        """Pub/sub channel used for cross-view notifications."""
        return cls.EVENTS.prefix(root)

    @classmethod
    def get_description(cls, prefix: "RedisKeyPrefix") -> str:
        """Describe what a tier prefix is used for."""
        descriptions = {
            cls.LOCAL: "Persistent workspace data and registry",
            cls.SESSION: "Session-scoped index/snapshot mirrors",
            cls.FIRST_PAINT: "Synchronous first-paint index and snapshot",
            cls.EVENTS: "Cross-view 'bookmarks updated' broadcasts",
        }
        return descriptions.get(prefix, "undefined")

    @classmethod
    def list_all(cls) -> dict:
        """List every tier prefix with its purpose."""
        return {member.name: {"prefix": member.prefix(), "description": cls.get_description(member)} for member in cls}


class StorageKeys:
    """Logical key builders shared by the registry, storage and cache manager."""

    REGISTRY = "mindful_workspace_registry_v1"
    LEGACY_WORKSPACES = "mindful_workspaces_v1"  # legacy items map
    LEGACY_ACTIVE = "mindful_active_workspace_v1"  # legacy active id

    SESSION_INDEX_PREFIX = "groupsIndex:"
    SESSION_SNAPSHOT_PREFIX = "groupsSnapshot:"

    @staticmethod
    def normalize_workspace_id(workspace_id: str) -> str:
        return str(workspace_id or "").strip()

    @classmethod
    def workspace_key(cls, workspace_id: str, key: str) -> str:
        """Namespace a logical key under a workspace."""
        return f"{WORKSPACE_PREFIX}{cls.normalize_workspace_id(workspace_id)}__{key}"

    @staticmethod
    def groups_storage_key(user_id: str) -> str:
        """Logical key of a user's authoritative group list."""
        return f"bookmarks_{user_id}"

    @classmethod
    def user_groups_key(cls, user_id: str, workspace_id: str) -> str:
        """Fully qualified key of a user's groups inside one workspace."""
        return cls.workspace_key(workspace_id, cls.groups_storage_key(user_id))

    @classmethod
    def fp_groups_index_key(cls, workspace_id: str) -> str:
        return f"{WORKSPACE_PREFIX}{cls.normalize_workspace_id(workspace_id)}::groups_index_{CACHE_INDEX_VERSION}"

    @classmethod
    def fp_groups_blob_key(cls, workspace_id: str) -> str:
        return f"{WORKSPACE_PREFIX}{cls.normalize_workspace_id(workspace_id)}::groups_blob_{CACHE_BLOB_VERSION}"

    @classmethod
    def session_index_key(cls, workspace_id: str) -> str:
        return f"{cls.SESSION_INDEX_PREFIX}{cls.normalize_workspace_id(workspace_id)}"

    @classmethod
    def session_snapshot_key(cls, workspace_id: str) -> str:
        return f"{cls.SESSION_SNAPSHOT_PREFIX}{cls.normalize_workspace_id(workspace_id)}"

    @classmethod
    def is_global_key(cls, key: str) -> bool:
        """Keys that must never be moved into a workspace namespace."""
        return key in (cls.REGISTRY, cls.LEGACY_WORKSPACES, cls.LEGACY_ACTIVE) or key.startswith(WORKSPACE_PREFIX)
