"""Smart Import Module.

Components:
- models.py: Purposes, raw items, categorized groups and progress payloads
- collectors.py: Bookmark file and host-provided sources
- safety.py: Basic unsafe-link filter
- grouping.py: Remote and offline grouping classifiers
- workspace_service.py: Purpose workspaces and imported group writes
- orchestrator.py: The phased smart import run
- manual_import.py: Importing selected sources into one workspace
"""

from mindful.components.smart_import.collectors import (
    ChromeBookmarksFileSource,
    StaticSource,
    TabWindow,
    dedupe_by_normalized_url,
)
from mindful.components.smart_import.grouping import (
    LocalGroupingClassifier,
    RemoteGroupingClassifier,
    make_fallback_response,
)
from mindful.components.smart_import.manual_import import ManualImportSelection, commit_manual_import
from mindful.components.smart_import.models import (
    CategorizedGroup,
    GroupingInput,
    GroupingResponse,
    ImportPhase,
    ImportPostProcessMode,
    ImportSource,
    PurposeId,
    RawItem,
    SmartImportProgress,
    SmartImportResult,
    WorkspaceRef,
)
from mindful.components.smart_import.orchestrator import SmartImportOptions, run_smart_import
from mindful.components.smart_import.safety import BasicSafetyFilter
from mindful.components.smart_import.workspace_service import LocalWorkspaceService

__all__ = [
    # Models
    "CategorizedGroup",
    "GroupingInput",
    "GroupingResponse",
    "ImportPhase",
    "ImportPostProcessMode",
    "ImportSource",
    "PurposeId",
    "RawItem",
    "SmartImportProgress",
    "SmartImportResult",
    "WorkspaceRef",
    # Sources
    "ChromeBookmarksFileSource",
    "StaticSource",
    "TabWindow",
    "dedupe_by_normalized_url",
    # Classifiers
    "BasicSafetyFilter",
    "LocalGroupingClassifier",
    "RemoteGroupingClassifier",
    "make_fallback_response",
    # Orchestration
    "LocalWorkspaceService",
    "SmartImportOptions",
    "run_smart_import",
    "ManualImportSelection",
    "commit_manual_import",
]
