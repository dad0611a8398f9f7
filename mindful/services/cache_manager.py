"""Per-workspace cache tiers.

Each workspace has a compact index ({id, groupName}) and a full snapshot
mirrored across two tiers:

    first-paint (sync, persistent)
        WS_{wid}::groups_index_v1   GroupsIndex JSON
        WS_{wid}::groups_blob_v1    GroupsSnapshot JSON
    session (async, TTL)
        groupsIndex:{wid}           GroupsIndex
        groupsSnapshot:{wid}        GroupsSnapshot

Caches are derived and best-effort: every tier fault is logged at warning
level and treated as a miss or a no-op. Nothing here raises to callers.
"""

import logging

from mindful.components.workspace.models import (
    BookmarkGroup,
    GroupsIndex,
    GroupsIndexEntry,
    GroupsSnapshot,
)
from mindful.db.keys import StorageKeys
from mindful.db.kv_store import AsyncKeyValueStore, SyncKeyValueStore
from mindful.errors import StorageError
from mindful.utils import get_timestamp_ms

logger = logging.getLogger(__name__)


class CacheManager:
    """Owns every cache tier read and write.

    Args:
        persistent_sync_store: first-paint store (get_item/set_item/remove_item)
        session_store: session-scoped async store
    """

    def __init__(self, persistent_sync_store: SyncKeyValueStore, session_store: AsyncKeyValueStore):
        self._fp = persistent_sync_store
        self._session = session_store

    # ==================== First-paint tier (sync) ====================

    def _fp_get(self, key: str) -> str | None:
        try:
            return self._fp.get_item(key)
        except StorageError as e:
            logger.warning(f"First-paint read failed for {key}: {e}")
            return None

    def _fp_set(self, key: str, value: str) -> None:
        try:
            self._fp.set_item(key, value)
        except StorageError as e:
            logger.warning(f"First-paint write failed for {key}: {e}")

    def _fp_remove(self, key: str) -> None:
        try:
            self._fp.remove_item(key)
        except StorageError as e:
            logger.warning(f"First-paint remove failed for {key}: {e}")

    def read_fp_snapshot(self, workspace_id: str) -> GroupsSnapshot | None:
        snapshot = GroupsSnapshot.decode(self._fp_get(StorageKeys.fp_groups_blob_key(workspace_id)))
        if snapshot is not None and snapshot.workspaceId != workspace_id:
            logger.warning(f"First-paint snapshot for {workspace_id} belongs to {snapshot.workspaceId}")
            return None
        return snapshot

    def read_fp_index(self, workspace_id: str) -> list[GroupsIndexEntry]:
        index = GroupsIndex.decode(self._fp_get(StorageKeys.fp_groups_index_key(workspace_id)))
        return index.entries if index is not None else []

    def read_snapshot_sync(self, workspace_id: str) -> list[BookmarkGroup] | None:
        """Phase 1a seed: first-paint groups, or None when absent, empty or bad."""
        snapshot = self.read_fp_snapshot(workspace_id)
        if snapshot is None or not snapshot.groups:
            return None
        logger.debug(f"First-paint hit for {workspace_id}: {len(snapshot.groups)} groups")
        return snapshot.groups

    # ==================== Session tier (async) ====================

    async def _session_read(self, key: str):
        try:
            result = await self._session.get(key)
        except StorageError as e:
            logger.warning(f"Session read failed for {key}: {e}")
            return None
        return result.get(key)

    async def read_session_index(self, workspace_id: str) -> list[GroupsIndexEntry]:
        index = GroupsIndex.decode(await self._session_read(StorageKeys.session_index_key(workspace_id)))
        return index.entries if index is not None else []

    async def read_session_snapshot(self, workspace_id: str) -> GroupsSnapshot | None:
        return GroupsSnapshot.decode(await self._session_read(StorageKeys.session_snapshot_key(workspace_id)))

    async def write_session_index(self, workspace_id: str, entries: list[GroupsIndexEntry]) -> None:
        index = GroupsIndex(workspaceId=workspace_id, entries=entries)
        try:
            await self._session.set({StorageKeys.session_index_key(workspace_id): index.model_dump(mode="json")})
        except StorageError as e:
            logger.warning(f"Session index write failed for {workspace_id}: {e}")

    async def write_session_snapshot(self, snapshot: GroupsSnapshot) -> None:
        key = StorageKeys.session_snapshot_key(snapshot.workspaceId)
        try:
            await self._session.set({key: snapshot.model_dump(mode="json", exclude_none=True)})
        except StorageError as e:
            logger.warning(f"Session snapshot write failed for {snapshot.workspaceId}: {e}")

    async def read_index_fast(self, workspace_id: str) -> list[GroupsIndexEntry]:
        """Cheapest available index.

        Order: session index, index derived from the session snapshot,
        first-paint index, index derived from the first-paint snapshot, [].
        """
        entries = await self.read_session_index(workspace_id)
        if entries:
            return entries

        snapshot = await self.read_session_snapshot(workspace_id)
        if snapshot is not None and snapshot.groups:
            return snapshot.to_index().entries

        entries = self.read_fp_index(workspace_id)
        if entries:
            return entries

        snapshot = self.read_fp_snapshot(workspace_id)
        if snapshot is not None and snapshot.groups:
            return snapshot.to_index().entries

        return []

    # ==================== Write paths ====================

    async def persist_caches_if_non_empty(self, workspace_id: str, groups: list[BookmarkGroup]) -> None:
        """Refresh first-paint index+snapshot and the session index.

        Empty lists are ignored; use clear_caches to drop a workspace's caches.
        """
        if not groups:
            return

        snapshot = GroupsSnapshot(workspaceId=workspace_id, at=get_timestamp_ms(), groups=groups)
        index = snapshot.to_index()
        self._fp_set(StorageKeys.fp_groups_index_key(workspace_id), index.encode())
        self._fp_set(StorageKeys.fp_groups_blob_key(workspace_id), snapshot.encode())
        await self.write_session_index(workspace_id, index.entries)
        logger.debug(f"Persisted caches for {workspace_id}: {len(groups)} groups")

    async def write_through(self, workspace_id: str, groups: list[BookmarkGroup]) -> None:
        """Phase 2 write-back: every tier, non-empty only."""
        if not groups:
            return
        await self.persist_caches_if_non_empty(workspace_id, groups)
        await self.write_session_snapshot(
            GroupsSnapshot(workspaceId=workspace_id, at=get_timestamp_ms(), groups=groups)
        )

    async def clear_caches(self, workspace_id: str) -> None:
        """Drop index and snapshot for one workspace from both tiers."""
        self._fp_remove(StorageKeys.fp_groups_index_key(workspace_id))
        self._fp_remove(StorageKeys.fp_groups_blob_key(workspace_id))
        try:
            await self._session.remove(
                [StorageKeys.session_index_key(workspace_id), StorageKeys.session_snapshot_key(workspace_id)]
            )
        except StorageError as e:
            logger.warning(f"Session cache clear failed for {workspace_id}: {e}")
        logger.debug(f"Cleared caches for {workspace_id}")

    async def clear_session_mirrors_except(self, keep_workspace_id: str) -> None:
        """Remove other workspaces' session index and snapshot mirrors."""
        keep = {
            StorageKeys.session_index_key(keep_workspace_id),
            StorageKeys.session_snapshot_key(keep_workspace_id),
        }
        prefixes = (StorageKeys.SESSION_INDEX_PREFIX, StorageKeys.SESSION_SNAPSHOT_PREFIX)
        try:
            everything = await self._session.get(None)
            stale = [k for k in everything if k.startswith(prefixes) and k not in keep]
            if stale:
                await self._session.remove(stale)
                logger.debug(f"Removed {len(stale)} stale session mirrors")
        except StorageError as e:
            logger.warning(f"Session mirror cleanup failed: {e}")
