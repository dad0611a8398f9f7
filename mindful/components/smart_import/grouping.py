"""Grouping classifiers that turn a flat item list into purpose-tagged groups.

Two implementations share the `group(GroupingInput) -> GroupingResponse`
contract:
- RemoteGroupingClassifier: POST {base_url}/groupBookmarks over httpx
- LocalGroupingClassifier: offline, one group per purpose

Remote policy:
- no items -> no groups, no request
- fewer than `min_items` -> one local "Imported" group, no request
- more than `max_items` -> only the first `max_items` are sent
- any failure -> the same local group with every original item
"""

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from mindful.components.smart_import.models import (
    CategorizedGroup,
    GroupingInput,
    GroupingResponse,
    PurposeId,
    RawItem,
)
from mindful.errors import ClassificationError
from mindful.settings import settings
from mindful.utils import generate_id, sanitize_url_for_ai, truncate_for_ai

logger = logging.getLogger(__name__)

FALLBACK_GROUP_ID = "imported"
FALLBACK_GROUP_NAME = "Imported"
FALLBACK_GROUP_DESCRIPTION = "All imported items"

PURPOSE_LABELS = {
    PurposeId.WORK: "Work",
    PurposeId.SCHOOL: "School",
    PurposeId.PERSONAL: "Personal",
}


class GroupingClassifier(Protocol):
    async def group(self, grouping_input: GroupingInput) -> GroupingResponse: ...


def make_fallback_response(items: list[RawItem], purposes: list[PurposeId]) -> GroupingResponse:
    """Single group holding every item, tagged with the first purpose."""
    purpose = purposes[0] if purposes else PurposeId.PERSONAL
    return GroupingResponse(
        groups=[
            CategorizedGroup(
                id=FALLBACK_GROUP_ID,
                name=FALLBACK_GROUP_NAME,
                description=FALLBACK_GROUP_DESCRIPTION,
                purpose=purpose,
                items=list(items),
            )
        ]
    )


class RemoteGroupingClassifier:
    """Grouping service client.

    Args:
        base_url: service root; the request goes to {base_url}/groupBookmarks
        min_items: below this the service is not called
        max_items: at most this many items are sent
        timeout: request timeout in seconds
        transport: optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str | None = None,
        min_items: int | None = None,
        max_items: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.grouping_api_base_url).rstrip("/")
        self.min_items = settings.grouping_min_items if min_items is None else min_items
        self.max_items = settings.grouping_max_items if max_items is None else max_items
        self.timeout = settings.grouping_timeout if timeout is None else timeout
        self.transport = transport

    def _outbound_item(self, item: RawItem) -> dict[str, Any]:
        return {
            "id": item.id,
            "name": truncate_for_ai(item.name, settings.grouping_max_name_chars),
            "url": sanitize_url_for_ai(item.url),
            "source": item.source.value,
            "lastVisitedAt": item.lastVisitedAt,
        }

    async def _post(self, items: list[RawItem], purposes: list[PurposeId]) -> dict[str, Any]:
        payload = {
            "items": [self._outbound_item(i) for i in items],
            "purposes": [p.value for p in purposes],
        }
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}/groupBookmarks", json=payload)
            response.raise_for_status()
            body = response.json()
        if not isinstance(body, dict) or not isinstance(body.get("groups"), list):
            raise ClassificationError("Grouping response has no groups array")
        return body

    def _map_back(
        self, body: dict[str, Any], originals: list[RawItem], purposes: list[PurposeId]
    ) -> GroupingResponse:
        """Rebuild groups from the response using the original (unsanitized) items."""
        by_id = {item.id: item for item in originals}
        default_purpose = purposes[0] if purposes else PurposeId.PERSONAL

        groups: list[CategorizedGroup] = []
        for raw in body["groups"]:
            if not isinstance(raw, dict):
                raise ClassificationError("Grouping response group is not an object")

            if isinstance(raw.get("bookmarkIds"), list):
                ids = [str(i) for i in raw["bookmarkIds"]]
            else:
                ids = [str(i.get("id")) for i in raw.get("items") or [] if isinstance(i, dict)]
            items = [by_id[i] for i in ids if i in by_id]

            try:
                purpose = PurposeId(raw.get("purpose")) if raw.get("purpose") else default_purpose
                groups.append(
                    CategorizedGroup(
                        id=raw.get("id"),
                        name=raw.get("name") or FALLBACK_GROUP_NAME,
                        description=raw.get("description"),
                        purpose=purpose,
                        items=items,
                    )
                )
            except (ValueError, ValidationError) as e:
                raise ClassificationError(f"Grouping response group is malformed: {e}") from e
        return GroupingResponse(groups=groups)

    async def group(self, grouping_input: GroupingInput) -> GroupingResponse:
        items = grouping_input.items
        purposes = grouping_input.purposes

        if not items:
            return GroupingResponse(groups=[])

        if len(items) < self.min_items:
            logger.info(f"Only {len(items)} items; grouping locally")
            return make_fallback_response(items, purposes)

        sent = items[: self.max_items]
        if len(sent) < len(items):
            logger.info(f"Sending first {len(sent)} of {len(items)} items to the grouping service")

        try:
            body = await self._post(sent, purposes)
            return self._map_back(body, sent, purposes)
        except (httpx.HTTPError, ValueError, ClassificationError) as e:
            logger.error(f"Grouping request failed, using fallback group: {e}")
            return make_fallback_response(items, purposes)


class LocalGroupingClassifier:
    """Offline classifier: one "Imported" group, or one group per purpose."""

    async def group(self, grouping_input: GroupingInput) -> GroupingResponse:
        items = grouping_input.items
        purposes = grouping_input.purposes
        if not items or not purposes:
            return GroupingResponse(groups=[])

        if len(purposes) == 1:
            return GroupingResponse(
                groups=[
                    CategorizedGroup(
                        id=generate_id("grp"),
                        name=FALLBACK_GROUP_NAME,
                        description="All imported links",
                        purpose=purposes[0],
                        items=list(items),
                    )
                ]
            )

        return GroupingResponse(
            groups=[
                CategorizedGroup(
                    id=generate_id("grp"),
                    name=f"{FALLBACK_GROUP_NAME} – {PURPOSE_LABELS[purpose]}",
                    description="All imported links",
                    purpose=purpose,
                    items=list(items),
                )
                for purpose in purposes
            ]
        )
