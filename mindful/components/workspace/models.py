"""Workspace data models.

Defines the core entities for bookmark organization:
- Workspace: an independently switchable bucket of groups
- WorkspaceRegistryRecord: the set of workspaces plus the active pointer
- BookmarkGroup / Bookmark: the authoritative per-workspace content
- GroupsIndex / GroupsSnapshot: versioned cache payloads derived from groups
"""

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Reserved group name/id for the "no groups yet" placeholder
EMPTY_GROUP_IDENTIFIER = "EMPTY_GROUP_IDENTIFIER"

DEFAULT_WORKSPACE_ID = "local-default"
DEFAULT_WORKSPACE_NAME = "My Bookmarks"
NEW_WORKSPACE_NAME = "Local Workspace"

REGISTRY_VERSION = 1
CACHE_SCHEMA_VERSION = 1


class StorageMode(str, Enum):
    """Where a workspace's authoritative groups live."""

    LOCAL = "LOCAL"
    REMOTE = "REMOTE"


class Workspace(BaseModel):
    """Workspace metadata stored in the registry.

    `archived` stays unset until the workspace is archived; it is excluded
    from the stored record while unset.
    """

    id: str
    name: str
    storageMode: StorageMode = StorageMode.LOCAL
    createdAt: int
    updatedAt: int
    archived: bool | None = None

    @property
    def is_live(self) -> bool:
        return not self.archived


class WorkspaceRegistryRecord(BaseModel):
    """Registry payload stored under a single key."""

    version: Literal[1] = REGISTRY_VERSION
    activeId: str
    items: dict[str, Workspace] = Field(default_factory=dict)
    migratedLegacyLocal: bool = False

    def live_workspaces(self) -> list[Workspace]:
        return [ws for ws in self.items.values() if ws.is_live]

    def to_storage(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Bookmark(BaseModel):
    """A saved link. Unknown fields from imports are preserved."""

    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    url: str
    faviconUrl: str | None = None
    createdAt: int | None = None
    dateAdded: int | None = None


class BookmarkGroup(BaseModel):
    """Named ordered collection of bookmarks within one workspace."""

    model_config = ConfigDict(extra="allow")

    id: str
    groupName: str
    bookmarks: list[Bookmark] = Field(default_factory=list)
    description: str | None = None

    @property
    def is_placeholder(self) -> bool:
        return is_placeholder_group(self)


def is_placeholder_group(group: BookmarkGroup | dict | None) -> bool:
    """True when the group's name or id is the placeholder sentinel."""
    if group is None:
        return False
    if isinstance(group, dict):
        return group.get("groupName") == EMPTY_GROUP_IDENTIFIER or group.get("id") == EMPTY_GROUP_IDENTIFIER
    return group.groupName == EMPTY_GROUP_IDENTIFIER or group.id == EMPTY_GROUP_IDENTIFIER


def make_placeholder_group() -> BookmarkGroup:
    return BookmarkGroup(id=EMPTY_GROUP_IDENTIFIER, groupName=EMPTY_GROUP_IDENTIFIER, bookmarks=[])


def dump_groups(groups: list[BookmarkGroup]) -> list[dict[str, Any]]:
    """Serialize groups for storage, dropping unset optional fields."""
    return [g.model_dump(mode="json", exclude_none=True) for g in groups]


def load_groups(raw: Any) -> list[BookmarkGroup]:
    """Parse a stored group list; raises ValidationError on bad shape."""
    if not isinstance(raw, list):
        return []
    return [BookmarkGroup.model_validate(g) for g in raw]


# ==================== Cache payloads ====================


class GroupsIndexEntry(BaseModel):
    id: str
    groupName: str


class _CachePayload(BaseModel):
    """Base for schema-versioned cache payloads with typed decode misses."""

    schemaVersion: int = CACHE_SCHEMA_VERSION
    workspaceId: str

    def encode(self) -> str:
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def decode(cls, raw: str | bytes | dict | None):
        """Parse a payload; malformed JSON, bad shape or old schema -> None."""
        if raw is None or raw == "":
            return None
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except json.JSONDecodeError:
            return None
        if not isinstance(data, dict) or data.get("schemaVersion") != CACHE_SCHEMA_VERSION:
            return None
        try:
            return cls.model_validate(data)
        except ValidationError:
            return None


class GroupsIndex(_CachePayload):
    """Compact {id, groupName} projection for fast list rendering."""

    entries: list[GroupsIndexEntry] = Field(default_factory=list)

    @classmethod
    def from_groups(cls, workspace_id: str, groups: list[BookmarkGroup]) -> "GroupsIndex":
        return cls(
            workspaceId=workspace_id,
            entries=[GroupsIndexEntry(id=str(g.id), groupName=str(g.groupName)) for g in groups],
        )


class GroupsSnapshot(_CachePayload):
    """Full group state of one workspace at a point in time."""

    at: int
    groups: list[BookmarkGroup] = Field(default_factory=list)

    def to_index(self) -> GroupsIndex:
        return GroupsIndex.from_groups(self.workspaceId, self.groups)
