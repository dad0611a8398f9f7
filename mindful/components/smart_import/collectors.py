"""Source collectors for smart and manual import.

A collector exposes any of `collect_bookmarks()`, `collect_tabs()` and
`collect_history(limit=None)`. Hosts that cannot provide a source either
omit the method or raise SourceUnavailableError.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from mindful.components.smart_import.models import ImportSource, RawItem
from mindful.components.workspace.models import Bookmark, BookmarkGroup
from mindful.errors import SourceUnavailableError
from mindful.utils import get_timestamp_ms, is_http_url, new_item_id, normalize_url

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 300

CHROME_ROOTS = ("bookmark_bar", "other", "synced")

# Chrome stores date_added as microseconds since 1601-01-01
_WINDOWS_EPOCH_OFFSET_US = 11_644_473_600_000_000

SINGLE_GROUP_BOOKMARKS_NAME = "Imported from Chrome"


class SourceCollector(Protocol):
    async def collect_bookmarks(self) -> list[RawItem]: ...
    async def collect_tabs(self) -> list[RawItem]: ...
    async def collect_history(self, limit: int | None = None) -> list[RawItem]: ...


def dedupe_by_normalized_url(items: list[RawItem]) -> list[RawItem]:
    """Keep the first item for each normalized URL, preserving order."""
    seen: set[str] = set()
    result: list[RawItem] = []
    for item in items:
        key = normalize_url(item.url)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


def chrome_time_to_ms(value: Any) -> int | None:
    """Convert a Chrome `date_added` string to epoch milliseconds."""
    try:
        micros = int(value)
    except (TypeError, ValueError):
        return None
    if micros <= 0:
        return None
    return (micros - _WINDOWS_EPOCH_OFFSET_US) // 1000


def _to_bookmark(item: RawItem) -> Bookmark:
    return Bookmark(
        id=new_item_id(),
        name=item.name or item.url or "Untitled",
        url=item.url,
        createdAt=item.lastVisitedAt or get_timestamp_ms(),
    )


class ChromeBookmarksFileSource:
    """Reads a Chromium profile's `Bookmarks` JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load_roots(self) -> dict[str, Any]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise SourceUnavailableError(f"Bookmarks file not found: {self.path}") from e
        except (OSError, json.JSONDecodeError) as e:
            raise SourceUnavailableError(f"Bookmarks file unreadable: {self.path}: {e}") from e

        roots = data.get("roots") if isinstance(data, dict) else None
        if not isinstance(roots, dict):
            raise SourceUnavailableError(f"Bookmarks file has no roots: {self.path}")
        return roots

    def _walk(self, node: dict[str, Any], path: list[str], out: list[tuple[list[str], RawItem]]) -> None:
        node_type = node.get("type")
        if node_type == "url":
            url = node.get("url") or ""
            if not is_http_url(url):
                return
            item = RawItem(
                id=str(node.get("id") or new_item_id()),
                name=node.get("name") or url,
                url=url,
                source=ImportSource.BOOKMARKS,
                lastVisitedAt=chrome_time_to_ms(node.get("date_added")),
            )
            out.append((path, item))
        elif node_type == "folder" or "children" in node:
            child_path = path + [node.get("name") or ""]
            for child in node.get("children") or []:
                if isinstance(child, dict):
                    self._walk(child, child_path, out)

    def _collect_with_paths(self) -> list[tuple[list[str], RawItem]]:
        roots = self._load_roots()
        out: list[tuple[list[str], RawItem]] = []
        for root_name in CHROME_ROOTS:
            root = roots.get(root_name)
            if isinstance(root, dict):
                # Paths exclude the root folder itself
                for child in root.get("children") or []:
                    if isinstance(child, dict):
                        self._walk(child, [], out)

        seen: set[str] = set()
        deduped = []
        for path, item in out:
            key = normalize_url(item.url)
            if key in seen:
                continue
            seen.add(key)
            deduped.append((path, item))
        return deduped

    async def collect_bookmarks(self) -> list[RawItem]:
        items = [item for _path, item in self._collect_with_paths()]
        logger.debug(f"Collected {len(items)} bookmarks from {self.path}")
        return items

    async def bookmark_groups(self, preserve_structure: bool = True) -> list[BookmarkGroup]:
        """Bookmarks as groups: one per folder path, or a single group."""
        collected = self._collect_with_paths()
        if not collected:
            return []

        if not preserve_structure:
            return [
                BookmarkGroup(
                    id=new_item_id(),
                    groupName=SINGLE_GROUP_BOOKMARKS_NAME,
                    bookmarks=[_to_bookmark(item) for _path, item in collected],
                )
            ]

        by_path: dict[str, list[RawItem]] = {}
        for path, item in collected:
            label = " / ".join(p for p in path if p)
            name = f"Bookmarks / {label}" if label else "Bookmarks"
            by_path.setdefault(name, []).append(item)

        return [
            BookmarkGroup(id=new_item_id(), groupName=name, bookmarks=[_to_bookmark(i) for i in items])
            for name, items in by_path.items()
        ]


@dataclass
class TabWindow:
    """Tabs of one browser window, as pushed in by the host."""

    tabs: list[RawItem] = field(default_factory=list)
    label: str = "All windows"


class StaticSource:
    """Pre-collected items handed over by a host process."""

    def __init__(
        self,
        bookmarks: list[RawItem] | None = None,
        tabs: list[RawItem] | None = None,
        history: list[RawItem] | None = None,
        windows: list[TabWindow] | None = None,
    ):
        self.bookmarks = list(bookmarks or [])
        self.tabs = list(tabs or [])
        self.history = list(history or [])
        self.windows = list(windows or [])

    async def collect_bookmarks(self) -> list[RawItem]:
        return list(self.bookmarks)

    async def collect_tabs(self) -> list[RawItem]:
        tabs = list(self.tabs)
        for window in self.windows:
            tabs.extend(window.tabs)
        return tabs

    async def collect_history(self, limit: int | None = None) -> list[RawItem]:
        limit = DEFAULT_HISTORY_LIMIT if limit is None else limit
        return list(self.history[:limit])

    async def tab_groups(self, preserve_structure: bool = True, label: str = "All windows") -> list[BookmarkGroup]:
        """Open tabs as groups: one per window, or a single group."""
        tabs = [t for t in await self.collect_tabs() if is_http_url(t.url)]
        tabs = dedupe_by_normalized_url(tabs)
        if not tabs:
            return []

        if not preserve_structure or not self.windows:
            return [
                BookmarkGroup(
                    id=new_item_id(),
                    groupName=f"Imported from Open Tabs ({label})",
                    bookmarks=[_to_bookmark(t) for t in tabs],
                )
            ]

        allowed = {t.id for t in tabs}
        groups = []
        for number, window in enumerate(self.windows, start=1):
            window_tabs = [t for t in window.tabs if t.id in allowed]
            if not window_tabs:
                continue
            allowed.difference_update(t.id for t in window_tabs)
            groups.append(
                BookmarkGroup(
                    id=new_item_id(),
                    groupName=f"Tabs / Window {number} / {window.label}",
                    bookmarks=[_to_bookmark(t) for t in window_tabs],
                )
            )

        # Loose tabs pushed without a window
        loose = [t for t in tabs if t.id in allowed]
        if loose:
            groups.append(
                BookmarkGroup(
                    id=new_item_id(),
                    groupName=f"Imported from Open Tabs ({label})",
                    bookmarks=[_to_bookmark(t) for t in loose],
                )
            )
        return groups
