"""Smart import: collect, filter, classify and persist into purpose workspaces.

Phases (each reported through `on_progress`):
    initializing -> collecting -> filtering -> categorizing -> persisting -> done

With no purposes the run reports `done` immediately and creates nothing.
Classifier failures are absorbed by the classifier's fallback; storage
failures propagate.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from mindful.components.smart_import.collectors import SourceCollector, dedupe_by_normalized_url
from mindful.components.smart_import.grouping import GroupingClassifier
from mindful.components.smart_import.models import (
    NO_PURPOSES_MESSAGE,
    PHASE_MESSAGES,
    CategorizedGroup,
    GroupingInput,
    ImportPhase,
    PurposeId,
    RawItem,
    SmartImportProgress,
    SmartImportResult,
)
from mindful.components.smart_import.safety import SafetyClassifier
from mindful.components.smart_import.workspace_service import LocalWorkspaceService
from mindful.errors import SourceUnavailableError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SmartImportProgress], None]


@dataclass
class SmartImportOptions:
    purposes: list[PurposeId]
    source: SourceCollector
    safety: SafetyClassifier
    classifier: GroupingClassifier
    workspace_service: LocalWorkspaceService
    include_bookmarks: bool = True
    include_tabs: bool = True
    include_history: bool = False
    history_limit: int | None = None
    on_progress: ProgressCallback | None = field(default=None, repr=False)


def _emit(options: SmartImportOptions, phase: ImportPhase, message: str | None = None, **counts) -> None:
    if options.on_progress is None:
        return
    options.on_progress(
        SmartImportProgress(phase=phase, message=message or PHASE_MESSAGES[phase], **counts)
    )


async def _collect(source: SourceCollector, method: str, *args) -> list[RawItem]:
    collector = getattr(source, method, None)
    if collector is None:
        logger.warning(f"Source has no {method}; skipping")
        return []
    try:
        return list(await collector(*args))
    except SourceUnavailableError as e:
        logger.warning(f"{method} unavailable: {e}")
        return []


async def collect_items(options: SmartImportOptions) -> list[RawItem]:
    """Run the enabled collectors concurrently and dedupe by normalized URL."""
    calls = []
    if options.include_bookmarks:
        calls.append(_collect(options.source, "collect_bookmarks"))
    if options.include_tabs:
        calls.append(_collect(options.source, "collect_tabs"))
    if options.include_history:
        calls.append(_collect(options.source, "collect_history", options.history_limit))

    results = await asyncio.gather(*calls)
    items = [item for batch in results for item in batch]
    return dedupe_by_normalized_url(items)


async def run_smart_import(options: SmartImportOptions) -> SmartImportResult:
    """Build one workspace per purpose and fill it with classified groups.

    Returns:
        SmartImportResult whose primaryWorkspaceId is the first purpose's workspace
    """
    purposes = list(dict.fromkeys(options.purposes))
    if not purposes:
        _emit(options, ImportPhase.DONE, NO_PURPOSES_MESSAGE)
        return SmartImportResult(primaryWorkspaceId=None)

    _emit(options, ImportPhase.INITIALIZING)

    workspace_by_purpose: dict[PurposeId, str] = {}
    for purpose in purposes:
        ref = await options.workspace_service.create_workspace_for_purpose(purpose)
        workspace_by_purpose[purpose] = ref.id
    primary_workspace_id = workspace_by_purpose[purposes[0]]

    # ==================== Collect ====================
    _emit(options, ImportPhase.COLLECTING)
    items = await collect_items(options)
    logger.info(f"Smart import collected {len(items)} unique items")

    # ==================== Filter ====================
    total = len(items)
    _emit(options, ImportPhase.FILTERING, totalItems=total, processedItems=0)
    safe_items: list[RawItem] = []
    for processed, item in enumerate(items, start=1):
        if await options.safety.is_safe(item):
            safe_items.append(item)
        _emit(options, ImportPhase.FILTERING, totalItems=total, processedItems=processed)
    if len(safe_items) < total:
        logger.info(f"Filtered out {total - len(safe_items)} unsafe items")

    # ==================== Categorize ====================
    _emit(options, ImportPhase.CATEGORIZING, totalItems=len(safe_items))
    response = await options.classifier.group(GroupingInput(items=safe_items, purposes=purposes))

    # ==================== Persist ====================
    _emit(options, ImportPhase.PERSISTING)
    groups_by_workspace: dict[str, list[CategorizedGroup]] = {}
    for group in response.groups:
        workspace_id = workspace_by_purpose.get(group.purpose)
        if workspace_id is None:
            logger.warning(f"Skipping group {group.name!r}: purpose {group.purpose.value} not selected")
            continue
        groups_by_workspace.setdefault(workspace_id, []).append(group)

    for workspace_id, groups in groups_by_workspace.items():
        await options.workspace_service.save_groups_to_workspace(workspace_id, groups)

    _emit(options, ImportPhase.DONE)
    logger.info(f"Smart import finished; primary workspace {primary_workspace_id}")
    return SmartImportResult(primaryWorkspaceId=primary_workspace_id)
