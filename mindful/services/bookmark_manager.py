"""In-memory group list owner for the active workspace.

Every mutation goes through `update_and_persist_groups`: apply a pure
updater to a copy of the current list, save it, refresh caches and notify
other views.
"""

import json
import logging
from collections.abc import Callable
from typing import Any

from mindful.components.workspace.models import BookmarkGroup, dump_groups
from mindful.components.workspace.storage import GroupStorageProtocol
from mindful.services.cache_manager import CacheManager
from mindful.services.events import EventBus, EventType
from mindful.services.import_merge import ensure_single_empty, merge_groups, normalize_groups, parse_json_import
from mindful.settings import settings

logger = logging.getLogger(__name__)

GroupsUpdater = Callable[[list[BookmarkGroup]], list[BookmarkGroup]]


class BookmarkManager:
    """Owns the active workspace's groups.

    Args:
        storage: authoritative backend (load/save/delete)
        workspace_id: active workspace
        cache_manager: optional cache tiers to refresh after saves
        bus: optional event bus for BOOKMARKS_UPDATED
        user_id: storage owner (defaults to settings.local_user_id)
    """

    def __init__(
        self,
        storage: GroupStorageProtocol,
        workspace_id: str,
        cache_manager: CacheManager | None = None,
        bus: EventBus | None = None,
        user_id: str | None = None,
    ):
        self.storage = storage
        self.workspace_id = workspace_id
        self.cache_manager = cache_manager
        self.bus = bus
        self.user_id = user_id or settings.local_user_id
        self._groups: list[BookmarkGroup] = []

    @property
    def groups(self) -> list[BookmarkGroup]:
        """Deep copy of the current list."""
        return [g.model_copy(deep=True) for g in self._groups]

    def set_groups(self, groups: list[BookmarkGroup]) -> None:
        """Replace in-memory state without persisting (used by hydration)."""
        self._groups = [g.model_copy(deep=True) for g in groups]

    async def load(self) -> list[BookmarkGroup]:
        self.set_groups(await self.storage.load(self.user_id, self.workspace_id))
        return self.groups

    async def update_and_persist_groups(self, updater: GroupsUpdater) -> list[BookmarkGroup]:
        """Apply `updater`, save, refresh caches, publish BOOKMARKS_UPDATED.

        In-memory state changes only after the save succeeds; storage errors
        propagate.
        """
        new_groups = updater(self.groups)
        await self.storage.save(new_groups, self.user_id, self.workspace_id)
        self.set_groups(new_groups)

        if self.cache_manager is not None:
            if new_groups:
                await self.cache_manager.persist_caches_if_non_empty(self.workspace_id, new_groups)
            else:
                await self.cache_manager.clear_caches(self.workspace_id)
        if self.bus is not None:
            self.bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": self.workspace_id})

        logger.debug(f"Persisted {len(new_groups)} groups for workspace {self.workspace_id}")
        return self.groups

    async def insert_groups(self, raw_groups: list[Any]) -> list[BookmarkGroup]:
        """Merge new groups in before the placeholder."""
        return await self.update_and_persist_groups(lambda current: merge_groups(current, raw_groups))

    async def upload_json(self, text: str) -> list[BookmarkGroup]:
        """Replace the workspace's groups with an exported JSON document.

        Raises:
            ImportValidationError: the document is not valid JSON or not a group array
        """
        raw_groups = parse_json_import(text)
        imported = ensure_single_empty(normalize_groups(raw_groups), move_to_end=True)
        logger.info(f"Uploading {len(imported)} groups into workspace {self.workspace_id}")
        return await self.update_and_persist_groups(lambda _current: imported)

    def export_json(self) -> str | None:
        """Pretty-printed JSON of the current groups, or None when empty."""
        if not self._groups:
            logger.warning("No bookmarks to export")
            return None
        return json.dumps(dump_groups(self._groups), indent=2)
