"""Tests for source collectors and the safety filter."""

import json

import pytest

from mindful.components.smart_import.collectors import (
    ChromeBookmarksFileSource,
    StaticSource,
    TabWindow,
    chrome_time_to_ms,
    dedupe_by_normalized_url,
)
from mindful.components.smart_import.models import ImportSource, RawItem
from mindful.components.smart_import.safety import BasicSafetyFilter
from mindful.errors import SourceUnavailableError


def url_node(node_id, name, url, date_added="13300000000000000"):
    return {"type": "url", "id": node_id, "name": name, "url": url, "date_added": date_added}


def folder_node(name, children):
    return {"type": "folder", "name": name, "children": children}


@pytest.fixture
def bookmarks_file(tmp_path):
    data = {
        "roots": {
            "bookmark_bar": folder_node(
                "Bookmarks bar",
                [
                    url_node("1", "Python", "https://python.org"),
                    folder_node("Dev", [url_node("2", "PyPI", "https://pypi.org"), url_node("3", "", "chrome://flags")]),
                ],
            ),
            "other": folder_node(
                "Other bookmarks",
                [folder_node("Reading", [url_node("4", "Dup", "HTTPS://python.org/")])],
            ),
            "synced": folder_node("Mobile bookmarks", []),
        }
    }
    path = tmp_path / "Bookmarks"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def raw(item_id, url, name="x", source=ImportSource.TABS):
    return RawItem(id=item_id, name=name, url=url, source=source)


class TestChromeBookmarksFileSource:
    """Reading a Chromium Bookmarks file."""

    @pytest.mark.asyncio
    async def test_collect_bookmarks(self, bookmarks_file):
        items = await ChromeBookmarksFileSource(bookmarks_file).collect_bookmarks()
        assert [i.url for i in items] == ["https://python.org", "https://pypi.org"]
        assert all(i.source == ImportSource.BOOKMARKS for i in items)
        assert items[0].lastVisitedAt == chrome_time_to_ms("13300000000000000")

    @pytest.mark.asyncio
    async def test_preserve_structure_groups(self, bookmarks_file):
        groups = await ChromeBookmarksFileSource(bookmarks_file).bookmark_groups(preserve_structure=True)
        assert [g.groupName for g in groups] == ["Bookmarks", "Bookmarks / Dev"]

    @pytest.mark.asyncio
    async def test_single_group(self, bookmarks_file):
        groups = await ChromeBookmarksFileSource(bookmarks_file).bookmark_groups(preserve_structure=False)
        assert len(groups) == 1
        assert groups[0].groupName == "Imported from Chrome"
        assert len(groups[0].bookmarks) == 2

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(SourceUnavailableError):
            await ChromeBookmarksFileSource(tmp_path / "nope").collect_bookmarks()

    def test_chrome_time_to_ms(self):
        # 1970-01-01 in Chrome time
        assert chrome_time_to_ms("11644473600000000") == 0
        assert chrome_time_to_ms("0") is None
        assert chrome_time_to_ms(None) is None


class TestStaticSource:
    """Host-provided items."""

    @pytest.mark.asyncio
    async def test_history_limit(self):
        history = [raw(f"h{n}", f"https://h.com/{n}", source=ImportSource.HISTORY) for n in range(5)]
        source = StaticSource(history=history)
        assert len(await source.collect_history(limit=2)) == 2
        assert len(await source.collect_history()) == 5

    @pytest.mark.asyncio
    async def test_tab_groups_single(self):
        source = StaticSource(tabs=[raw("t1", "https://a.com"), raw("t2", "about:blank"), raw("t3", "https://a.com/")])
        groups = await source.tab_groups(preserve_structure=False, label="Current window")
        assert [g.groupName for g in groups] == ["Imported from Open Tabs (Current window)"]
        assert [b.url for b in groups[0].bookmarks] == ["https://a.com"]

    @pytest.mark.asyncio
    async def test_tab_groups_per_window(self):
        source = StaticSource(
            windows=[
                TabWindow(tabs=[raw("t1", "https://a.com")], label="Main"),
                TabWindow(tabs=[raw("t2", "https://b.com")], label="Side"),
            ]
        )
        groups = await source.tab_groups(preserve_structure=True)
        assert [g.groupName for g in groups] == ["Tabs / Window 1 / Main", "Tabs / Window 2 / Side"]


class TestDedupe:
    def test_keeps_first_per_normalized_url(self):
        items = [raw("a", "https://x.com"), raw("b", "HTTPS://x.com/"), raw("c", "https://y.com")]
        assert [i.id for i in dedupe_by_normalized_url(items)] == ["a", "c"]


class TestBasicSafetyFilter:
    """Blocked domains and keywords."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url, name, expected",
        [
            ("https://python.org", "Python", True),
            ("https://www.pornhub.com/x", "video", False),
            ("https://example.com/nsfw", "Example", False),
            ("https://example.com", "OnlyFans page", False),
            ("https://essex.ac.uk", "Essex", True),
        ],
    )
    async def test_is_safe(self, url, name, expected):
        assert await BasicSafetyFilter().is_safe(raw("i", url, name=name)) is expected
