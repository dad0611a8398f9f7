"""Authoritative group storage.

Groups for a user live in the persistent store under a workspace-scoped key:

    WS_{workspace_id}__bookmarks_{user_id}

`LocalGroupStorage` implements both the load/save/delete backend contract
(shared with `RemoteBookmarkStorage`) and the whole-list read/write calls the
copy/move engine needs.
"""

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from mindful.components.workspace.models import BookmarkGroup, StorageMode, dump_groups, load_groups
from mindful.db.keys import StorageKeys
from mindful.db.kv_store import AsyncKeyValueStore
from mindful.errors import StorageError
from mindful.settings import settings

logger = logging.getLogger(__name__)


class GroupStorageProtocol(Protocol):
    """Load/save/delete contract shared by local and remote backends."""

    async def load(self, user_id: str, workspace_id: str) -> list[BookmarkGroup]: ...
    async def save(self, groups: list[BookmarkGroup], user_id: str, workspace_id: str) -> None: ...
    async def delete(self, user_id: str, workspace_id: str) -> None: ...


class LocalGroupStorage:
    """Group storage over the persistent key-value store."""

    def __init__(self, store: AsyncKeyValueStore, user_id: str | None = None):
        self._store = store
        self.user_id = user_id or settings.local_user_id

    # ==================== Backend contract ====================

    async def load(self, user_id: str, workspace_id: str) -> list[BookmarkGroup]:
        key = StorageKeys.user_groups_key(user_id, workspace_id)
        result = await self._store.get(key)
        try:
            return load_groups(result.get(key))
        except ValidationError as e:
            raise StorageError(f"Stored groups at {key} are malformed: {e}") from e

    async def save(self, groups: list[BookmarkGroup], user_id: str, workspace_id: str) -> None:
        key = StorageKeys.user_groups_key(user_id, workspace_id)
        await self._store.set({key: dump_groups(groups)})
        logger.debug(f"Saved {len(groups)} groups to {key}")

    async def delete(self, user_id: str, workspace_id: str) -> None:
        await self._store.remove(StorageKeys.user_groups_key(user_id, workspace_id))

    # ==================== Whole-list adapter ====================

    async def read_all_groups(self, workspace_id: str) -> list[BookmarkGroup]:
        """All groups of a workspace, no cache side effects."""
        return await self.load(self.user_id, workspace_id)

    async def write_all_groups(self, workspace_id: str, groups: list[BookmarkGroup]) -> None:
        """Overwrite all groups of one workspace."""
        await self.save(groups, self.user_id, workspace_id)

    # ==================== Workspace-scoped KV ====================

    async def get(self, workspace_id: str, key: str) -> Any:
        full_key = StorageKeys.workspace_key(workspace_id, key)
        result = await self._store.get(full_key)
        return result.get(full_key)

    async def set(self, workspace_id: str, key: str, value: Any) -> None:
        await self._store.set({StorageKeys.workspace_key(workspace_id, key): value})

    async def remove(self, workspace_id: str, key: str) -> None:
        await self._store.remove(StorageKeys.workspace_key(workspace_id, key))


async def load_initial_bookmarks(
    user_id: str | None,
    workspace_id: str,
    storage_mode: StorageMode | None,
    local: GroupStorageProtocol,
    remote: GroupStorageProtocol | None = None,
    no_local_fallback: bool = False,
) -> list[BookmarkGroup]:
    """Load a workspace's groups, degrading to [] on storage faults.

    LOCAL mode reads the local backend. Any other mode tries the remote
    backend first; an empty or failed remote load falls back to local unless
    `no_local_fallback` is set.
    """
    if not user_id:
        return []

    if storage_mode == StorageMode.LOCAL:
        try:
            return await local.load(user_id, workspace_id)
        except StorageError as e:
            logger.warning(f"Local load failed for workspace {workspace_id}: {e}")
            return []

    if remote is not None:
        try:
            groups = await remote.load(user_id, workspace_id)
            if no_local_fallback or groups:
                return groups
        except StorageError as e:
            logger.warning(f"Remote load failed for workspace {workspace_id}: {e}")
    else:
        logger.warning("Remote storage requested but no remote backend is configured")

    if no_local_fallback:
        return []

    try:
        return await local.load(user_id, workspace_id)
    except StorageError as e:
        logger.warning(f"Local fallback load failed for workspace {workspace_id}: {e}")
        return []


async def migrate_storage_mode(
    old: GroupStorageProtocol,
    new: GroupStorageProtocol,
    user_id: str,
    workspace_id: str,
) -> int:
    """Copy a workspace's groups from one backend to another, then delete the old copy.

    Returns:
        Number of groups migrated
    """
    groups = await old.load(user_id, workspace_id)
    await new.save(groups, user_id, workspace_id)
    await old.delete(user_id, workspace_id)
    logger.info(f"Migrated {len(groups)} groups for workspace {workspace_id}")
    return len(groups)
