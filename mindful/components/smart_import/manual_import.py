"""Manual import into a single existing workspace.

Sources: an exported JSON document, a Chromium bookmarks file and open tabs.
In preserveStructure mode the source groups are appended as they are; in
semanticGrouping mode their items are flattened and regrouped by the
classifier first.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from mindful.components.smart_import.collectors import ChromeBookmarksFileSource, StaticSource
from mindful.components.smart_import.grouping import GroupingClassifier
from mindful.components.smart_import.models import (
    CategorizedGroup,
    GroupingInput,
    ImportPostProcessMode,
    ImportSource,
    PurposeId,
    RawItem,
)
from mindful.components.smart_import.workspace_service import LocalWorkspaceService
from mindful.errors import ImportValidationError
from mindful.services.import_merge import parse_json_import
from mindful.utils import create_unique_id, new_item_id

logger = logging.getLogger(__name__)

MISSING_PURPOSES_MESSAGE = "Missing purposes[] — cannot run semantic grouping."


@dataclass
class ManualImportSelection:
    json_data: str | None = None
    bookmarks: ChromeBookmarksFileSource | None = None
    tabs: StaticSource | None = None
    tab_label: str = "All windows"
    mode: ImportPostProcessMode = ImportPostProcessMode.PRESERVE_STRUCTURE


def _field(raw: Any, name: str) -> Any:
    if isinstance(raw, dict):
        return raw.get(name)
    return getattr(raw, name, None)


def map_imported_groups(raw_groups: list[Any], purpose: PurposeId, source: ImportSource) -> list[CategorizedGroup]:
    """Wrap stored-shape groups (dicts or BookmarkGroups) as categorized groups."""
    groups = []
    for raw in raw_groups or []:
        if not isinstance(raw, dict) and not hasattr(raw, "groupName"):
            continue
        items = []
        for bookmark in _field(raw, "bookmarks") or []:
            url = _field(bookmark, "url")
            if not url:
                continue
            items.append(
                RawItem(
                    id=str(_field(bookmark, "id") or new_item_id()),
                    name=str(_field(bookmark, "name") or url),
                    url=str(url),
                    source=source,
                    lastVisitedAt=_field(bookmark, "lastVisitedAt"),
                )
            )
        description = _field(raw, "description")
        groups.append(
            CategorizedGroup(
                id=str(_field(raw, "id") or create_unique_id()),
                name=str(_field(raw, "groupName") or "Imported"),
                purpose=purpose,
                description=str(description) if description else None,
                items=items,
            )
        )
    return groups


async def commit_manual_import(
    selection: ManualImportSelection,
    workspace_id: str,
    purpose: PurposeId,
    workspace_service: LocalWorkspaceService,
    classifier: GroupingClassifier | None = None,
    purposes: list[PurposeId] | None = None,
    on_progress: Callable[[str], None] | None = None,
) -> None:
    """Collect the selected sources and append them to `workspace_id`.

    Raises:
        ImportValidationError: bad JSON, or semantic grouping without purposes
    """

    def report(message: str) -> None:
        if on_progress is not None:
            on_progress(message)

    report("Importing ...")
    preserve = selection.mode == ImportPostProcessMode.PRESERVE_STRUCTURE

    collected: list[CategorizedGroup] = []
    if selection.json_data:
        collected.extend(map_imported_groups(parse_json_import(selection.json_data), purpose, ImportSource.JSON))

    if selection.bookmarks is not None:
        groups = await selection.bookmarks.bookmark_groups(preserve_structure=preserve)
        collected.extend(map_imported_groups(groups, purpose, ImportSource.BOOKMARKS))

    if selection.tabs is not None:
        groups = await selection.tabs.tab_groups(preserve_structure=preserve, label=selection.tab_label)
        collected.extend(map_imported_groups(groups, purpose, ImportSource.TABS))

    if not collected:
        logger.info("Manual import selected nothing")
        return

    if preserve:
        report("Saving ...")
        await workspace_service.append_groups_to_workspace(workspace_id, collected)
        return

    if not purposes:
        raise ImportValidationError(MISSING_PURPOSES_MESSAGE)
    if classifier is None:
        raise ImportValidationError("Semantic grouping requires a grouping classifier")

    report("Organizing with AI ...")
    items = [item for group in collected for item in group.items]
    response = await classifier.group(GroupingInput(items=items, purposes=purposes))

    report("Saving groups ...")
    regrouped = [
        group.model_copy(update={"id": group.id or create_unique_id(), "purpose": purpose})
        for group in response.groups
    ]
    await workspace_service.append_groups_to_workspace(workspace_id, regrouped)
    logger.info(f"Manual import regrouped {len(items)} items into {len(regrouped)} groups")
