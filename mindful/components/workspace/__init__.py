"""Workspace Management Module.

Components:
- models.py: Workspace, registry record, groups, bookmarks and cache payloads
- registry.py: Workspace lifecycle and the active pointer
- storage.py: Authoritative local group storage and the initial loader
- remote_storage.py: HTTP backend with the same load/save/delete contract
"""

from mindful.components.workspace.models import (
    DEFAULT_WORKSPACE_ID,
    EMPTY_GROUP_IDENTIFIER,
    Bookmark,
    BookmarkGroup,
    GroupsIndex,
    GroupsIndexEntry,
    GroupsSnapshot,
    StorageMode,
    Workspace,
    WorkspaceRegistryRecord,
    is_placeholder_group,
)
from mindful.components.workspace.registry import WorkspaceRegistry
from mindful.components.workspace.remote_storage import RemoteBookmarkStorage
from mindful.components.workspace.storage import (
    GroupStorageProtocol,
    LocalGroupStorage,
    load_initial_bookmarks,
    migrate_storage_mode,
)

__all__ = [
    # Models
    "Workspace",
    "WorkspaceRegistryRecord",
    "Bookmark",
    "BookmarkGroup",
    "GroupsIndex",
    "GroupsIndexEntry",
    "GroupsSnapshot",
    "StorageMode",
    "DEFAULT_WORKSPACE_ID",
    "EMPTY_GROUP_IDENTIFIER",
    "is_placeholder_group",
    # Registry
    "WorkspaceRegistry",
    # Storage
    "GroupStorageProtocol",
    "LocalGroupStorage",
    "RemoteBookmarkStorage",
    "load_initial_bookmarks",
    "migrate_storage_mode",
]
