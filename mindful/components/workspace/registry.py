"""Workspace registry: the set of workspaces and the active pointer.

The registry is one record in the persistent store:

    {
        "version": 1,
        "activeId": "local-default",
        "items": {"local-default": {...Workspace}},
        "migratedLegacyLocal": true
    }

Storage errors propagate to the caller. Logical no-ops (archiving the sole
live workspace, renaming to blank, unknown ids) return silently.
"""

import logging
from typing import Any

from pydantic import ValidationError

from mindful.components.workspace.models import (
    DEFAULT_WORKSPACE_ID,
    DEFAULT_WORKSPACE_NAME,
    NEW_WORKSPACE_NAME,
    REGISTRY_VERSION,
    Workspace,
    WorkspaceRegistryRecord,
)
from mindful.db.keys import StorageKeys
from mindful.db.kv_store import AsyncKeyValueStore
from mindful.errors import WorkspaceNotFoundError
from mindful.utils import create_unique_id, get_timestamp_ms

logger = logging.getLogger(__name__)


def make_default_workspace(workspace_id: str | None = None, name: str = DEFAULT_WORKSPACE_NAME) -> Workspace:
    now = get_timestamp_ms()
    return Workspace(
        id=workspace_id or f"local-{create_unique_id()}",
        name=name,
        createdAt=now,
        updatedAt=now,
    )


def _is_workspace_like(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("id"), str) and isinstance(value.get("name"), str)


def _looks_like_items_map(value: Any) -> bool:
    return isinstance(value, dict) and any(_is_workspace_like(v) for v in value.values())


def _parse_items(raw_items: dict) -> dict[str, Workspace]:
    """Parse a legacy items map, filling timestamps the old layout lacked."""
    now = get_timestamp_ms()
    items: dict[str, Workspace] = {}
    for key, value in raw_items.items():
        if not _is_workspace_like(value):
            continue
        data = {"createdAt": now, "updatedAt": now, **value}
        data.pop("mode", None)
        items[key] = Workspace.model_validate(data)
    return items


class WorkspaceRegistry:
    """Owns workspace lifecycle over the persistent async store."""

    def __init__(self, store: AsyncKeyValueStore):
        self._store = store

    # ==================== Record I/O ====================

    async def _read(self, key: str) -> Any:
        result = await self._store.get(key)
        return result.get(key)

    async def load(self) -> WorkspaceRegistryRecord | None:
        """Read the registry record; None when missing or not a v1 record."""
        raw = await self._read(StorageKeys.REGISTRY)
        if not isinstance(raw, dict) or raw.get("version") != REGISTRY_VERSION or not raw.get("activeId"):
            return None
        try:
            return WorkspaceRegistryRecord.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Stored workspace registry is malformed: {e}")
            return None

    async def save(self, registry: WorkspaceRegistryRecord) -> None:
        await self._store.set({StorageKeys.REGISTRY: registry.to_storage()})

    # ==================== Initialization ====================

    async def _coerce_from_legacy(self) -> WorkspaceRegistryRecord | None:
        """Upgrade older registry layouts into a v1 record.

        Handles:
        A) legacy items map + legacy active id under separate keys
        B) registry key holding a bare active id string
        C) registry key holding a raw items map without the version wrapper
        """
        stored = await self._store.get(
            [StorageKeys.LEGACY_WORKSPACES, StorageKeys.LEGACY_ACTIVE, StorageKeys.REGISTRY]
        )
        legacy_items = stored.get(StorageKeys.LEGACY_WORKSPACES)
        legacy_active = stored.get(StorageKeys.LEGACY_ACTIVE)
        raw_registry = stored.get(StorageKeys.REGISTRY)

        registry = None
        if _looks_like_items_map(legacy_items):
            items = _parse_items(legacy_items)
            if isinstance(legacy_active, str) and legacy_active in items:
                active_id = legacy_active
            else:
                active_id = next(iter(items), DEFAULT_WORKSPACE_ID)
            registry = WorkspaceRegistryRecord(activeId=active_id, items=items)
            logger.info("Upgraded workspace registry from legacy items map")
        elif isinstance(raw_registry, str) and raw_registry:
            ws = make_default_workspace(raw_registry)
            registry = WorkspaceRegistryRecord(activeId=raw_registry, items={ws.id: ws})
            logger.info("Upgraded workspace registry from bare active id")
        elif _looks_like_items_map(raw_registry):
            items = _parse_items(raw_registry)
            registry = WorkspaceRegistryRecord(activeId=next(iter(items), DEFAULT_WORKSPACE_ID), items=items)
            logger.info("Upgraded workspace registry from unwrapped items map")

        if registry is None:
            return None

        await self.save(registry)
        await self._store.remove([StorageKeys.LEGACY_WORKSPACES, StorageKeys.LEGACY_ACTIVE])
        return registry

    async def _migrate_legacy_local_data(self, target_workspace_id: str) -> int:
        """Move non-namespaced keys under the target workspace namespace."""
        everything = await self._store.get(None)
        legacy = {k: v for k, v in everything.items() if not StorageKeys.is_global_key(k)}
        if not legacy:
            return 0

        await self._store.set({StorageKeys.workspace_key(target_workspace_id, k): v for k, v in legacy.items()})
        await self._store.remove(list(legacy))
        logger.info(f"Migrated {len(legacy)} legacy keys into workspace {target_workspace_id}")
        return len(legacy)

    async def initialize(self) -> WorkspaceRegistryRecord:
        """Create or upgrade the registry and run the one-time key migration."""
        registry = await self.load()

        if registry is None:
            registry = await self._coerce_from_legacy()

        if registry is None:
            ws = make_default_workspace(DEFAULT_WORKSPACE_ID)
            registry = WorkspaceRegistryRecord(activeId=ws.id, items={ws.id: ws})
            await self.save(registry)
            logger.info(f"Seeded default workspace {ws.id}")

        if not registry.migratedLegacyLocal:
            await self._migrate_legacy_local_data(registry.activeId)
            registry.migratedLegacyLocal = True
            await self.save(registry)

        return registry

    async def _ensure(self) -> WorkspaceRegistryRecord:
        registry = await self.load()
        if registry is None:
            registry = await self.initialize()
        return registry

    async def ensure_default_workspace(self) -> WorkspaceRegistryRecord:
        """Guarantee a registry with at least one live workspace, and make it active.

        An archived default workspace is restored; otherwise a fresh default
        is inserted.
        """
        registry = await self._ensure()
        if registry.live_workspaces():
            return registry

        now = get_timestamp_ms()
        default = registry.items.get(DEFAULT_WORKSPACE_ID)
        if default is not None:
            default.archived = None
            default.updatedAt = now
            logger.info("All workspaces were archived; restored default")
        else:
            default = make_default_workspace(DEFAULT_WORKSPACE_ID)
            registry.items[default.id] = default
            logger.info("Registry had no live workspaces; seeded default")
        registry.activeId = default.id
        await self.save(registry)
        return registry

    # ==================== Lifecycle ====================

    async def create(self, name: str = NEW_WORKSPACE_NAME) -> Workspace:
        """Create a workspace and make it active."""
        registry = await self._ensure()
        ws = make_default_workspace(name=name)
        registry.items[ws.id] = ws
        registry.activeId = ws.id
        await self.save(registry)
        logger.info(f"Created workspace {ws.id} ({name})")
        return ws.model_copy()

    async def rename(self, workspace_id: str, name: str) -> None:
        trimmed = (name or "").strip()
        if not trimmed:
            logger.debug(f"Ignoring blank rename for workspace {workspace_id}")
            return

        registry = await self._ensure()
        ws = registry.items.get(workspace_id)
        if ws is None:
            logger.debug(f"Ignoring rename of unknown workspace {workspace_id}")
            return

        registry.items[workspace_id] = ws.model_copy(update={"name": trimmed, "updatedAt": get_timestamp_ms()})
        await self.save(registry)

    async def archive(self, workspace_id: str) -> None:
        """Soft-archive a workspace, never the last live one."""
        registry = await self._ensure()
        ws = registry.items.get(workspace_id)
        if ws is None:
            logger.debug(f"Ignoring archive of unknown workspace {workspace_id}")
            return

        if len(registry.live_workspaces()) <= 1:
            logger.debug(f"Refusing to archive sole live workspace {workspace_id}")
            return

        now = get_timestamp_ms()
        registry.items[workspace_id] = ws.model_copy(update={"archived": True, "updatedAt": now})

        if registry.activeId == workspace_id:
            default = registry.items.get(DEFAULT_WORKSPACE_ID)
            if default is not None and default.is_live:
                fallback = DEFAULT_WORKSPACE_ID
            else:
                fallback = next(
                    (w.id for w in registry.items.values() if w.is_live and w.id != workspace_id),
                    None,
                )
            if fallback:
                registry.activeId = fallback
                registry.items[fallback].updatedAt = now

        await self.save(registry)
        logger.info(f"Archived workspace {workspace_id}; active is {registry.activeId}")

    async def set_active(self, workspace_id: str) -> None:
        registry = await self._ensure()
        ws = registry.items.get(workspace_id)
        if ws is None:
            raise WorkspaceNotFoundError(workspace_id)
        registry.activeId = workspace_id
        ws.updatedAt = get_timestamp_ms()
        await self.save(registry)

    # ==================== Queries ====================

    async def list(self, include_archived: bool = False) -> list[Workspace]:
        """Workspaces sorted by creation time, oldest first."""
        registry = await self._ensure()
        workspaces = sorted(registry.items.values(), key=lambda w: w.createdAt)
        if not include_archived:
            workspaces = [w for w in workspaces if w.is_live]
        return [w.model_copy() for w in workspaces]

    async def get_active_id(self) -> str:
        registry = await self._ensure()
        return registry.activeId

    async def get_active(self) -> Workspace | None:
        registry = await self._ensure()
        ws = registry.items.get(registry.activeId)
        return ws.model_copy() if ws else None
