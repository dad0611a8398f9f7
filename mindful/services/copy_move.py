"""Copy and move groups or bookmarks between workspaces.

- Copies never mutate the source; every cloned group and bookmark gets a
  new id.
- With `dedupe_by_url`, a bookmark whose normalized URL already exists
  anywhere in the destination workspace is skipped and counted.
- Work is processed in chunks. The cancellation event is checked before
  each chunk and the loop yields to the event loop after each one.
- Only the destination is written by a copy, with placeholder groups last.
- A move deletes from the source only when the copy added something.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from mindful.components.workspace.models import Bookmark, BookmarkGroup, is_placeholder_group
from mindful.errors import AdapterCapabilityError, DestinationGroupNotFoundError
from mindful.services.events import EventBus, EventType
from mindful.services.import_merge import ensure_single_empty
from mindful.settings import settings
from mindful.utils import new_item_id, normalize_url

logger = logging.getLogger(__name__)

# Group target selecting every non-placeholder source group
ALL_GROUPS = "__ALL__"


# ==================== Options / Result ====================


@dataclass
class GroupTarget:
    """Copy whole groups. `group_id` may be comma-separated or ALL_GROUPS."""

    group_id: str

    def group_ids(self) -> list[str]:
        return [gid for gid in self.group_id.split(",") if gid]


@dataclass
class BookmarkTarget:
    """Copy specific bookmarks into an existing destination group."""

    bookmark_ids: list[str]
    into_group_id: str


@dataclass
class CopyOptions:
    from_workspace_id: str
    to_workspace_id: str
    target: GroupTarget | BookmarkTarget
    dedupe_by_url: bool = True
    chunk_size: int | None = None
    cancel_event: asyncio.Event | None = None
    on_progress: Callable[[int, int], None] | None = None


@dataclass
class CopyResult:
    added: int = 0
    skipped: int = 0
    # Source ids whose processing completed; a move deletes exactly these
    processed_group_ids: list[str] = field(default_factory=list, repr=False)
    processed_bookmark_ids: list[str] = field(default_factory=list, repr=False)


class _CopyRun:
    """Mutable counters and the destination URL set for one copy."""

    def __init__(self, dest_groups: list[BookmarkGroup], dedupe_by_url: bool):
        self.dedupe_by_url = dedupe_by_url
        self.result = CopyResult()
        self.dest_urls: set[str] = set()
        if dedupe_by_url:
            for group in dest_groups:
                for bookmark in group.bookmarks:
                    if bookmark.url:
                        self.dest_urls.add(normalize_url(bookmark.url))

    def copy_into(self, bookmark: Bookmark, dest_group: BookmarkGroup) -> None:
        url_key = normalize_url(bookmark.url) if self.dedupe_by_url and bookmark.url else None
        if url_key is not None and url_key in self.dest_urls:
            self.result.skipped += 1
            return

        dest_group.bookmarks.append(bookmark.model_copy(update={"id": new_item_id()}, deep=True))
        if url_key is not None:
            self.dest_urls.add(url_key)
        self.result.added += 1


def _chunks(items: list, size: int):
    for start in range(0, len(items), size):
        yield items[start : start + size]


class CopyMoveEngine:
    """Copy/move over a whole-list storage adapter.

    Args:
        adapter: object exposing read_all_groups(wid) / write_all_groups(wid, groups)
        cache_manager: optional CacheManager refreshed after every write
        bus: optional EventBus notified with BOOKMARKS_UPDATED after every write
        chunk_size: default bookmarks per chunk
    """

    def __init__(self, adapter, cache_manager=None, bus: EventBus | None = None, chunk_size: int | None = None):
        self.adapter = adapter
        self.cache_manager = cache_manager
        self.bus = bus
        self.chunk_size = chunk_size or settings.copy_chunk_size

    def _require_adapter(self) -> None:
        for name in ("read_all_groups", "write_all_groups"):
            if not callable(getattr(self.adapter, name, None)):
                raise AdapterCapabilityError(f"Storage adapter missing {name}")

    async def _write(self, workspace_id: str, groups: list[BookmarkGroup]) -> None:
        await self.adapter.write_all_groups(workspace_id, groups)
        if self.cache_manager is not None:
            if groups:
                await self.cache_manager.write_through(workspace_id, groups)
            else:
                await self.cache_manager.clear_caches(workspace_id)
        if self.bus is not None:
            self.bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": workspace_id})

    @staticmethod
    def _cancelled(options: CopyOptions) -> bool:
        return options.cancel_event is not None and options.cancel_event.is_set()

    @staticmethod
    def _report(options: CopyOptions, run: _CopyRun) -> None:
        if options.on_progress is not None:
            options.on_progress(run.result.added, run.result.skipped)

    async def copy_items(self, options: CopyOptions) -> CopyResult:
        """Copy the selected groups or bookmarks into the destination workspace.

        Raises:
            AdapterCapabilityError: adapter cannot read/write whole group lists
            DestinationGroupNotFoundError: BookmarkTarget group missing in destination
        """
        self._require_adapter()
        chunk_size = max(1, options.chunk_size or self.chunk_size)

        src_groups, dest_groups = await asyncio.gather(
            self.adapter.read_all_groups(options.from_workspace_id),
            self.adapter.read_all_groups(options.to_workspace_id),
        )
        run = _CopyRun(dest_groups, options.dedupe_by_url)

        if isinstance(options.target, GroupTarget):
            await self._copy_groups(options, run, src_groups, dest_groups, chunk_size)
        else:
            await self._copy_bookmarks(options, run, src_groups, dest_groups, chunk_size)

        await self._write(options.to_workspace_id, ensure_single_empty(dest_groups))

        result = run.result
        logger.info(
            f"Copied {options.from_workspace_id} -> {options.to_workspace_id}: "
            f"added={result.added}, skipped={result.skipped}"
            + (" (cancelled)" if self._cancelled(options) else "")
        )
        return result

    async def _copy_groups(
        self,
        options: CopyOptions,
        run: _CopyRun,
        src_groups: list[BookmarkGroup],
        dest_groups: list[BookmarkGroup],
        chunk_size: int,
    ) -> None:
        target: GroupTarget = options.target
        by_id = {g.id: g for g in src_groups}
        if target.group_id == ALL_GROUPS:
            group_ids = [g.id for g in src_groups if not is_placeholder_group(g)]
        else:
            group_ids = target.group_ids()

        for group_id in group_ids:
            if self._cancelled(options):
                break
            src_group = by_id.get(group_id)
            if src_group is None or is_placeholder_group(src_group):
                continue

            new_group = src_group.model_copy(update={"id": new_item_id(), "bookmarks": []}, deep=True)
            completed = True
            for chunk in _chunks(src_group.bookmarks, chunk_size):
                if self._cancelled(options):
                    completed = False
                    break
                for bookmark in chunk:
                    run.copy_into(bookmark, new_group)
                self._report(options, run)
                await asyncio.sleep(0)

            dest_groups.append(new_group)
            if completed:
                run.result.processed_group_ids.append(group_id)

    async def _copy_bookmarks(
        self,
        options: CopyOptions,
        run: _CopyRun,
        src_groups: list[BookmarkGroup],
        dest_groups: list[BookmarkGroup],
        chunk_size: int,
    ) -> None:
        target: BookmarkTarget = options.target
        dest_group = next((g for g in dest_groups if g.id == target.into_group_id), None)
        if dest_group is None:
            raise DestinationGroupNotFoundError(target.into_group_id)

        source_bookmarks = {b.id: b for g in src_groups for b in g.bookmarks}
        for chunk in _chunks(list(target.bookmark_ids), chunk_size):
            if self._cancelled(options):
                break
            for bookmark_id in chunk:
                bookmark = source_bookmarks.get(bookmark_id)
                if bookmark is not None:
                    run.copy_into(bookmark, dest_group)
                    run.result.processed_bookmark_ids.append(bookmark_id)
            self._report(options, run)
            await asyncio.sleep(0)

    async def move_items(self, options: CopyOptions) -> CopyResult:
        """Copy, then remove what was copied from the source.

        When the copy added nothing the source is neither read nor written.
        """
        result = await self.copy_items(options)
        if result.added == 0:
            logger.info("Move added nothing; source left untouched")
            return result

        src_groups = await self.adapter.read_all_groups(options.from_workspace_id)
        if isinstance(options.target, GroupTarget):
            to_delete = set(result.processed_group_ids)
            remaining = [g for g in src_groups if g.id not in to_delete]
        else:
            to_delete = set(result.processed_bookmark_ids)
            remaining = [
                g.model_copy(update={"bookmarks": [b for b in g.bookmarks if b.id not in to_delete]})
                for g in src_groups
            ]

        await self._write(options.from_workspace_id, ensure_single_empty(remaining))
        logger.info(f"Removed {len(to_delete)} moved items from {options.from_workspace_id}")
        return result
