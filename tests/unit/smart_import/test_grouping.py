"""Tests for the grouping classifiers (remote calls mocked with httpx.MockTransport)."""

import json

import httpx
import pytest

from mindful.components.smart_import.grouping import LocalGroupingClassifier, RemoteGroupingClassifier
from mindful.components.smart_import.models import GroupingInput, ImportSource, PurposeId, RawItem


def make_items(count: int) -> list[RawItem]:
    return [
        RawItem(id=f"i{n}", name=f"Item {n}", url=f"https://example.com/{n}", source=ImportSource.BOOKMARKS)
        for n in range(count)
    ]


class CountingHandler:
    """MockTransport handler that records requests."""

    def __init__(self, response: httpx.Response | None = None, error: Exception | None = None):
        self.requests: list[httpx.Request] = []
        self.response = response
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response

    def body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


def make_classifier(handler) -> RemoteGroupingClassifier:
    return RemoteGroupingClassifier(
        base_url="https://grouping.test", min_items=6, max_items=100, transport=httpx.MockTransport(handler)
    )


class TestRemoteGroupingPolicy:
    """Thresholds and fallbacks."""

    @pytest.mark.asyncio
    async def test_no_items_no_request(self):
        handler = CountingHandler(httpx.Response(200, json={"groups": []}))
        result = await make_classifier(handler).group(GroupingInput(items=[], purposes=[PurposeId.WORK]))
        assert result.groups == []
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_tiny_import_grouped_locally(self):
        handler = CountingHandler(httpx.Response(200, json={"groups": []}))
        items = make_items(3)

        result = await make_classifier(handler).group(GroupingInput(items=items, purposes=[PurposeId.WORK]))

        assert handler.requests == []
        assert len(result.groups) == 1
        group = result.groups[0]
        assert (group.id, group.name, group.purpose) == ("imported", "Imported", PurposeId.WORK)
        assert group.description == "All imported items"
        assert group.items == items

    @pytest.mark.asyncio
    async def test_tiny_import_without_purposes_is_personal(self):
        handler = CountingHandler()
        result = await make_classifier(handler).group(GroupingInput(items=make_items(2), purposes=[]))
        assert result.groups[0].purpose == PurposeId.PERSONAL

    @pytest.mark.asyncio
    async def test_large_import_is_truncated(self):
        handler = CountingHandler(httpx.Response(200, json={"groups": []}))
        await make_classifier(handler).group(GroupingInput(items=make_items(120), purposes=[PurposeId.WORK]))

        sent = handler.body()["items"]
        assert len(sent) == 100
        assert [i["id"] for i in sent] == [f"i{n}" for n in range(100)]
        assert str(handler.requests[0].url) == "https://grouping.test/groupBookmarks"

    @pytest.mark.asyncio
    async def test_server_error_falls_back_with_all_items(self):
        handler = CountingHandler(httpx.Response(500))
        items = make_items(10)

        result = await make_classifier(handler).group(GroupingInput(items=items, purposes=[PurposeId.SCHOOL]))

        assert len(handler.requests) == 1
        assert len(result.groups) == 1
        assert result.groups[0].name == "Imported"
        assert result.groups[0].purpose == PurposeId.SCHOOL
        assert result.groups[0].items == items

    @pytest.mark.asyncio
    async def test_transport_error_falls_back(self):
        handler = CountingHandler(error=httpx.ConnectError("refused"))
        result = await make_classifier(handler).group(GroupingInput(items=make_items(8), purposes=[PurposeId.WORK]))
        assert len(result.groups[0].items) == 8

    @pytest.mark.asyncio
    async def test_truncated_request_failure_falls_back_untruncated(self):
        handler = CountingHandler(httpx.Response(502))
        result = await make_classifier(handler).group(
            GroupingInput(items=make_items(120), purposes=[PurposeId.WORK])
        )
        assert len(result.groups[0].items) == 120

    @pytest.mark.asyncio
    async def test_malformed_body_falls_back(self):
        handler = CountingHandler(httpx.Response(200, json={"unexpected": True}))
        result = await make_classifier(handler).group(GroupingInput(items=make_items(7), purposes=[PurposeId.WORK]))
        assert result.groups[0].id == "imported"


class TestRemoteGroupingMapping:
    """Response mapping and outbound sanitizing."""

    @pytest.mark.asyncio
    async def test_maps_items_back_by_id(self):
        response = {
            "groups": [
                {"id": "g1", "name": "Docs", "purpose": "work", "items": [{"id": "i0"}, {"id": "i2"}]},
                {"id": "g2", "name": "Misc", "bookmarkIds": ["i1", "unknown"]},
            ]
        }
        handler = CountingHandler(httpx.Response(200, json=response))
        items = make_items(6)

        result = await make_classifier(handler).group(
            GroupingInput(items=items, purposes=[PurposeId.PERSONAL, PurposeId.WORK])
        )

        docs, misc = result.groups
        assert docs.items == [items[0], items[2]]
        assert docs.purpose == PurposeId.WORK
        assert misc.items == [items[1]]
        assert misc.purpose == PurposeId.PERSONAL

    @pytest.mark.asyncio
    async def test_outbound_items_are_sanitized(self):
        handler = CountingHandler(httpx.Response(200, json={"groups": []}))
        items = make_items(6)
        items[0] = RawItem(
            id="i0",
            name="x" * 500,
            url="https://example.com/a?utm_source=mail&id=1#frag",
            source=ImportSource.TABS,
        )

        await make_classifier(handler).group(GroupingInput(items=items, purposes=[PurposeId.WORK]))

        first = handler.body()["items"][0]
        assert first["url"] == "https://example.com/a?id=1"
        assert len(first["name"]) == 200
        assert handler.body()["purposes"] == ["work"]


class TestLocalGroupingClassifier:
    """Offline classifier."""

    @pytest.mark.asyncio
    async def test_empty_inputs(self):
        classifier = LocalGroupingClassifier()
        assert (await classifier.group(GroupingInput(items=[], purposes=[PurposeId.WORK]))).groups == []
        assert (await classifier.group(GroupingInput(items=make_items(1), purposes=[]))).groups == []

    @pytest.mark.asyncio
    async def test_single_purpose(self):
        items = make_items(2)
        result = await LocalGroupingClassifier().group(GroupingInput(items=items, purposes=[PurposeId.WORK]))
        group = result.groups[0]
        assert group.name == "Imported"
        assert group.description == "All imported links"
        assert group.id.startswith("grp_")
        assert group.items == items

    @pytest.mark.asyncio
    async def test_one_group_per_purpose(self):
        items = make_items(2)
        purposes = [PurposeId.WORK, PurposeId.SCHOOL, PurposeId.PERSONAL]
        result = await LocalGroupingClassifier().group(GroupingInput(items=items, purposes=purposes))

        assert [g.name for g in result.groups] == ["Imported – Work", "Imported – School", "Imported – Personal"]
        assert [g.purpose for g in result.groups] == purposes
        assert all(g.items == items for g in result.groups)
