"""Smart import data models.

RawItem is the minimal bookmark/tab/history shape handed to classifiers;
CategorizedGroup is a classifier's named group tagged with one purpose.
"""

from enum import Enum

from pydantic import BaseModel, Field


class PurposeId(str, Enum):
    """Why the user is organizing (one workspace per selected purpose)."""

    WORK = "work"
    SCHOOL = "school"
    PERSONAL = "personal"


class ImportSource(str, Enum):
    BOOKMARKS = "bookmarks"
    TABS = "tabs"
    JSON = "json"
    HISTORY = "history"


class ImportPhase(str, Enum):
    """Smart import phases, in order."""

    INITIALIZING = "initializing"
    COLLECTING = "collecting"
    FILTERING = "filtering"
    CATEGORIZING = "categorizing"
    PERSISTING = "persisting"
    DONE = "done"


class ImportPostProcessMode(str, Enum):
    PRESERVE_STRUCTURE = "preserveStructure"
    SEMANTIC_GROUPING = "semanticGrouping"


PHASE_MESSAGES: dict[ImportPhase, str] = {
    ImportPhase.INITIALIZING: "Starting Smart Import ...",
    ImportPhase.COLLECTING: "Collecting bookmarks, tabs, and history…",
    ImportPhase.FILTERING: "Filtering out sensitive or NSFW sites…",
    ImportPhase.CATEGORIZING: "Organizing everything neatly…",
    ImportPhase.PERSISTING: "Saving your new workspace…",
    ImportPhase.DONE: "Your workspace is ready.",
}

NO_PURPOSES_MESSAGE = "No purposes selected – skipping Smart Import."


class RawItem(BaseModel):
    id: str
    name: str
    url: str
    source: ImportSource
    lastVisitedAt: int | None = None


class CategorizedGroup(BaseModel):
    id: str | None = None
    name: str
    purpose: PurposeId
    description: str | None = None
    items: list[RawItem] = Field(default_factory=list)


class GroupingInput(BaseModel):
    items: list[RawItem] = Field(default_factory=list)
    purposes: list[PurposeId] = Field(default_factory=list)


class GroupingResponse(BaseModel):
    groups: list[CategorizedGroup] = Field(default_factory=list)


class SmartImportProgress(BaseModel):
    phase: ImportPhase
    message: str | None = None
    totalItems: int | None = None
    processedItems: int | None = None


class SmartImportResult(BaseModel):
    primaryWorkspaceId: str | None = None


class WorkspaceRef(BaseModel):
    id: str
    purpose: PurposeId
