"""Three-phase hydration of one view's workspace state.

Phase 1a (sync)  : seed groups from the first-paint snapshot.
Phase 1b (async) : publish the cheapest available index, stop "loading".
Phase 2  (task)  : load authoritative groups, replace on change, then
                   write every cache tier so the next boot is warm.

Phase 2 re-runs on BOOKMARKS_UPDATED and VISIBILITY_REGAINED without
touching `is_loading`. Its failures are logged; stale-but-present data stays.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from mindful.components.workspace.models import BookmarkGroup, GroupsIndex, GroupsIndexEntry
from mindful.errors import MindfulError
from mindful.services.cache_manager import CacheManager
from mindful.services.events import EventBus, EventType

logger = logging.getLogger(__name__)

GroupLoader = Callable[[str], Awaitable[list[BookmarkGroup]]]


def storage_group_loader(storage, user_id: str) -> GroupLoader:
    """Adapt a load(user_id, workspace_id) backend into a GroupLoader."""

    async def load(workspace_id: str) -> list[BookmarkGroup]:
        return await storage.load(user_id, workspace_id)

    return load


class WorkspaceView:
    """Hydration coordinator for a single view.

    Owns the view's in-memory groups and index; all cache writes for the
    view's workspace are issued from here.
    """

    def __init__(
        self,
        cache_manager: CacheManager,
        group_loader: GroupLoader,
        workspace_id: str,
        bus: EventBus | None = None,
    ):
        self.cache_manager = cache_manager
        self.group_loader = group_loader
        self.workspace_id = workspace_id
        self.bus = bus

        self.groups: list[BookmarkGroup] = []
        self.index: list[GroupsIndexEntry] = []
        self.is_loading = True
        self.is_hydrated = False

        self._phase2_task: asyncio.Task | None = None
        self._switch_lock = asyncio.Lock()
        self._mounted = False

    # ==================== Phases ====================

    def phase_1a(self) -> bool:
        """Adopt the first-paint snapshot when it differs. Returns True if adopted."""
        seed = self.cache_manager.read_snapshot_sync(self.workspace_id)
        if seed is None:
            return False
        adopted = seed != self.groups
        if adopted:
            self.groups = seed
        self.is_hydrated = True
        return adopted

    async def phase_1b(self) -> list[GroupsIndexEntry]:
        self.index = await self.cache_manager.read_index_fast(self.workspace_id)
        self.is_loading = False
        return self.index

    async def phase_2(self) -> bool:
        """Authoritative load and cache write-back. Returns True when state changed."""
        workspace_id = self.workspace_id
        try:
            fresh = await self.group_loader(workspace_id)
        except MindfulError as e:
            logger.warning(f"Background hydrate failed for {workspace_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Background hydrate crashed for {workspace_id}: {type(e).__name__}: {e}")
            return False

        if workspace_id != self.workspace_id:
            logger.debug(f"Discarding hydrate result for {workspace_id}; view switched")
            return False

        changed = fresh != self.groups
        if changed:
            self.groups = [g.model_copy(deep=True) for g in fresh]

        await self.cache_manager.write_through(workspace_id, self.groups)
        self.index = GroupsIndex.from_groups(workspace_id, self.groups).entries
        self.is_hydrated = True
        logger.debug(f"Hydrated {workspace_id}: {len(self.groups)} groups (changed={changed})")
        return changed

    def schedule_phase_2(self) -> asyncio.Task:
        """Run phase 2 as a low-priority task, after a zero-delay tick."""

        async def deferred() -> bool:
            await asyncio.sleep(0)
            return await self.phase_2()

        if self._phase2_task is not None and not self._phase2_task.done():
            self._phase2_task.cancel()
        self._phase2_task = asyncio.create_task(deferred())
        return self._phase2_task

    async def boot(self) -> asyncio.Task:
        """Run phases 1a and 1b, then schedule phase 2. Returns the phase 2 task."""
        self.is_loading = True
        self.phase_1a()
        await self.phase_1b()
        return self.schedule_phase_2()

    async def reload(self) -> bool:
        """Idempotent re-run of phase 2; never toggles `is_loading`."""
        return await self.phase_2()

    async def switch_workspace(self, workspace_id: str) -> asyncio.Task:
        """Point the view at another workspace and re-run the boot phases."""
        async with self._switch_lock:
            if self._phase2_task is not None and not self._phase2_task.done():
                self._phase2_task.cancel()

            await self.cache_manager.clear_session_mirrors_except(workspace_id)
            await self.cache_manager.write_session_index(workspace_id, [])

            self.workspace_id = workspace_id
            self.groups = []
            self.index = []
            self.is_hydrated = False
            logger.info(f"View switched to workspace {workspace_id}")
            return await self.boot()

    # ==================== Event lifecycle ====================

    async def _on_event(self, event_type: EventType, payload: dict[str, Any]) -> None:
        target = payload.get("workspaceId")
        if target and target != self.workspace_id:
            return
        await self.reload()

    def mount(self) -> None:
        if self.bus is None or self._mounted:
            return
        self.bus.subscribe(EventType.BOOKMARKS_UPDATED, self._on_event)
        self.bus.subscribe(EventType.VISIBILITY_REGAINED, self._on_event)
        self._mounted = True

    def unmount(self) -> None:
        if self.bus is not None and self._mounted:
            self.bus.unsubscribe(EventType.BOOKMARKS_UPDATED, self._on_event)
            self.bus.unsubscribe(EventType.VISIBILITY_REGAINED, self._on_event)
        self._mounted = False
        if self._phase2_task is not None and not self._phase2_task.done():
            self._phase2_task.cancel()
