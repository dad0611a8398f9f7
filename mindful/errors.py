"""Exception hierarchy for the workspace data engine.

Storage faults on cache tiers are swallowed by the cache manager and never
reach callers; everything defined here is meant to be seen by the caller.
"""


class MindfulError(Exception):
    """Base class for all engine errors."""


class StorageError(MindfulError):
    """A key-value tier or remote backend failed to read, write or remove."""


class WorkspaceNotFoundError(MindfulError):
    """A workspace id is not present in the registry."""

    def __init__(self, workspace_id: str):
        self.workspace_id = workspace_id
        super().__init__(f"Workspace {workspace_id} not found")


class ImportValidationError(MindfulError):
    """Imported data could not be parsed or has an unrecognized shape."""


class CopyError(MindfulError):
    """Base class for copy/move failures."""


class DestinationGroupNotFoundError(CopyError):
    """Bookmark copy targeted a group that does not exist in the destination."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Destination group {group_id} not found")


class AdapterCapabilityError(CopyError):
    """The storage adapter cannot read or write whole group lists."""


class ClassificationError(MindfulError):
    """The grouping classifier returned an unusable response."""


class SourceUnavailableError(MindfulError):
    """A source collector is not available on this host."""
