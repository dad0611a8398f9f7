"""Folding incoming groups into an existing group list.

Invariant maintained by every function that returns a group list:
at most one placeholder group, and when present it is last.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from mindful.components.workspace.models import (
    EMPTY_GROUP_IDENTIFIER,
    Bookmark,
    BookmarkGroup,
    is_placeholder_group,
)
from mindful.errors import ImportValidationError
from mindful.utils import new_item_id

logger = logging.getLogger(__name__)

INVALID_JSON_MESSAGE = "That JSON file doesn't look valid. Please re-export and try again."
UNRECOGNIZED_JSON_MESSAGE = "JSON format not recognized. Expected an array of groups."
MALFORMED_GROUP_MESSAGE = "Couldn't read group {index} of the import: {detail}"

UNTITLED_BOOKMARK = "Untitled"


def _as_dict(raw: Any) -> dict[str, Any]:
    if isinstance(raw, BaseModel):
        return raw.model_dump()
    if isinstance(raw, dict):
        return dict(raw)
    return {}


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _normalize_bookmark(raw: Any) -> Bookmark:
    data = _as_dict(raw)
    url = str(data.get("url") or "")
    data["id"] = str(data.get("id") or new_item_id())
    data["url"] = url
    data["name"] = str(data.get("name") or url or UNTITLED_BOOKMARK)
    for field in ("createdAt", "dateAdded"):
        if not _is_timestamp(data.get(field)):
            data[field] = None
    if not isinstance(data.get("faviconUrl"), str):
        data["faviconUrl"] = None
    return Bookmark.model_validate(data)


def normalize_groups(raw_groups: list[Any] | None) -> list[BookmarkGroup]:
    """Map arbitrary group-like objects into canonical groups.

    Missing ids are assigned, a missing groupName becomes the placeholder
    sentinel, and bookmark names fall back to the url, then "Untitled".
    Non-dict entries are skipped. Mistyped optional fields are dropped or
    stringified rather than rejected.

    Raises:
        ImportValidationError: a group still fails validation after coercion
    """
    groups: list[BookmarkGroup] = []
    for index, raw in enumerate(raw_groups or [], start=1):
        if not isinstance(raw, (dict, BaseModel)):
            continue
        data = _as_dict(raw)
        data["id"] = str(data.get("id") or new_item_id())
        data["groupName"] = str(data.get("groupName") or EMPTY_GROUP_IDENTIFIER)
        if data.get("description") is not None:
            data["description"] = str(data["description"])
        bookmarks = data.get("bookmarks")
        if not isinstance(bookmarks, list):
            bookmarks = []
        try:
            data["bookmarks"] = [_normalize_bookmark(b) for b in bookmarks if isinstance(b, (dict, BaseModel))]
            groups.append(BookmarkGroup.model_validate(data))
        except ValidationError as e:
            detail = e.errors()[0].get("msg", str(e)) if e.errors() else str(e)
            raise ImportValidationError(MALFORMED_GROUP_MESSAGE.format(index=index, detail=detail)) from e
    return groups


def insert_groups(current: list[BookmarkGroup], new_groups: list[BookmarkGroup]) -> list[BookmarkGroup]:
    """Insert before the first placeholder, or append when there is none."""
    result = list(current)
    for index, group in enumerate(result):
        if is_placeholder_group(group):
            return result[:index] + list(new_groups) + result[index:]
    return result + list(new_groups)


def ensure_single_empty(groups: list[BookmarkGroup], move_to_end: bool = True) -> list[BookmarkGroup]:
    """Keep only the first placeholder; optionally move it to the end."""
    kept: BookmarkGroup | None = None
    result: list[BookmarkGroup] = []
    for group in groups:
        if is_placeholder_group(group):
            if kept is not None:
                continue
            kept = group
            if move_to_end:
                continue
        result.append(group)

    if move_to_end and kept is not None:
        result.append(kept)
    return result


def merge_groups(current: list[BookmarkGroup], raw_groups: list[Any] | None) -> list[BookmarkGroup]:
    """normalize -> insert -> ensure_single_empty(move_to_end=True)."""
    incoming = normalize_groups(raw_groups)
    merged = ensure_single_empty(insert_groups(current, incoming), move_to_end=True)
    logger.debug(f"Merged {len(incoming)} incoming groups into {len(current)} existing")
    return merged


def parse_json_import(text: str) -> list[Any]:
    """Extract the group array from an exported JSON document.

    Accepts a bare array, or an object carrying the array under
    `groups`, `items` or `data`.

    Raises:
        ImportValidationError: unparseable JSON or unrecognized shape
    """
    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ImportValidationError(INVALID_JSON_MESSAGE) from e

    if isinstance(parsed, list):
        return parsed

    if isinstance(parsed, dict):
        for key in ("groups", "items", "data"):
            candidate = parsed.get(key)
            if candidate is not None:
                if isinstance(candidate, list):
                    return candidate
                break

    raise ImportValidationError(UNRECOGNIZED_JSON_MESSAGE)
