"""Workspace-side persistence for smart and manual import."""

import logging

from mindful.components.smart_import.models import CategorizedGroup, PurposeId, WorkspaceRef
from mindful.components.workspace.models import Bookmark, BookmarkGroup
from mindful.components.workspace.registry import WorkspaceRegistry
from mindful.components.workspace.storage import LocalGroupStorage
from mindful.services.cache_manager import CacheManager
from mindful.services.events import EventBus, EventType
from mindful.services.import_merge import ensure_single_empty, merge_groups
from mindful.utils import get_timestamp_ms

logger = logging.getLogger(__name__)

WORKSPACE_NAMES = {
    PurposeId.WORK: "Work",
    PurposeId.SCHOOL: "School",
    PurposeId.PERSONAL: "Personal",
}


def map_to_bookmark_groups(groups: list[CategorizedGroup]) -> list[BookmarkGroup]:
    """Convert classifier groups into stored groups, keeping item ids."""
    now = get_timestamp_ms()
    return [
        BookmarkGroup(
            id=group.id or f"grp_{now}_{index}",
            groupName=group.name,
            description=group.description,
            bookmarks=[
                Bookmark(
                    id=item.id,
                    name=item.name or item.url,
                    url=item.url,
                    createdAt=item.lastVisitedAt or now,
                )
                for item in group.items
            ],
        )
        for index, group in enumerate(groups)
    ]


class LocalWorkspaceService:
    """Creates purpose workspaces and writes imported groups into them.

    Args:
        registry: workspace registry used to create workspaces
        storage: authoritative local group storage
        cache_manager: optional cache tiers refreshed after each write
        bus: optional event bus notified after each write
    """

    def __init__(
        self,
        registry: WorkspaceRegistry,
        storage: LocalGroupStorage,
        cache_manager: CacheManager | None = None,
        bus: EventBus | None = None,
    ):
        self.registry = registry
        self.storage = storage
        self.cache_manager = cache_manager
        self.bus = bus

    async def create_workspace_for_purpose(self, purpose: PurposeId) -> WorkspaceRef:
        name = WORKSPACE_NAMES.get(purpose, "Personal")
        workspace = await self.registry.create(name)
        logger.info(f"Created workspace {workspace.id} ({name}) for purpose {purpose.value}")
        return WorkspaceRef(id=workspace.id, purpose=purpose)

    async def _write(self, workspace_id: str, groups: list[BookmarkGroup]) -> None:
        await self.storage.write_all_groups(workspace_id, groups)
        if self.cache_manager is not None:
            await self.cache_manager.persist_caches_if_non_empty(workspace_id, groups)
        if self.bus is not None:
            self.bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": workspace_id})

    async def save_groups_to_workspace(self, workspace_id: str, groups: list[CategorizedGroup]) -> None:
        """Overwrite a workspace's groups with the classifier output. Empty input is a no-op."""
        if not groups:
            return
        stored = ensure_single_empty(map_to_bookmark_groups(groups), move_to_end=True)
        await self._write(workspace_id, stored)
        logger.info(f"Saved {len(stored)} imported groups to workspace {workspace_id}")

    async def append_groups_to_workspace(self, workspace_id: str, groups: list[CategorizedGroup]) -> None:
        """Merge groups in ahead of the workspace's placeholder."""
        if not groups:
            return
        existing = await self.storage.read_all_groups(workspace_id)
        merged = merge_groups(existing, map_to_bookmark_groups(groups))
        await self._write(workspace_id, merged)
        logger.info(f"Appended {len(groups)} groups to workspace {workspace_id}")
