"""Tests for WorkspaceRegistry.

Test cases:
- initialize: seeding, legacy layouts, legacy key migration
- create / rename / archive / set_active lifecycle
- list ordering and archived filtering
"""

import pytest

from mindful.components.workspace.models import DEFAULT_WORKSPACE_ID
from mindful.db.keys import StorageKeys
from mindful.errors import WorkspaceNotFoundError


async def _raw(store, key):
    return (await store.get(key)).get(key)


class TestInitialize:
    """Test registry initialization and upgrades."""

    @pytest.mark.asyncio
    async def test_seeds_default_workspace(self, registry, persistent_store):
        record = await registry.initialize()
        assert record.activeId == DEFAULT_WORKSPACE_ID
        assert record.items[DEFAULT_WORKSPACE_ID].name == "My Bookmarks"
        assert record.migratedLegacyLocal is True

        stored = await _raw(persistent_store, StorageKeys.REGISTRY)
        assert stored["version"] == 1
        assert "archived" not in stored["items"][DEFAULT_WORKSPACE_ID]

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, registry):
        first = await registry.initialize()
        second = await registry.initialize()
        assert first.activeId == second.activeId
        assert list(first.items) == list(second.items)

    @pytest.mark.asyncio
    async def test_legacy_items_map_with_active_key(self, registry, persistent_store):
        await persistent_store.set(
            {
                StorageKeys.LEGACY_WORKSPACES: {
                    "w1": {"id": "w1", "name": "One", "mode": "LOCAL"},
                    "w2": {"id": "w2", "name": "Two"},
                },
                StorageKeys.LEGACY_ACTIVE: "w2",
            }
        )
        record = await registry.initialize()

        assert record.activeId == "w2"
        assert set(record.items) == {"w1", "w2"}
        assert record.items["w1"].createdAt > 0
        remaining = await persistent_store.get([StorageKeys.LEGACY_WORKSPACES, StorageKeys.LEGACY_ACTIVE])
        assert remaining == {}

    @pytest.mark.asyncio
    async def test_bare_active_id_string(self, registry):
        await registry._store.set({StorageKeys.REGISTRY: "legacy-ws"})
        record = await registry.initialize()
        assert record.activeId == "legacy-ws"
        assert "legacy-ws" in record.items

    @pytest.mark.asyncio
    async def test_unwrapped_items_map(self, registry, persistent_store):
        await persistent_store.set({StorageKeys.REGISTRY: {"w9": {"id": "w9", "name": "Nine"}}})
        record = await registry.initialize()
        assert record.activeId == "w9"
        assert record.items["w9"].name == "Nine"

    @pytest.mark.asyncio
    async def test_migrates_legacy_keys_once(self, registry, persistent_store):
        await persistent_store.set({"bookmarks_user": [{"id": "g1", "groupName": "Old"}], "theme": "dark"})
        await registry.initialize()

        everything = await persistent_store.get(None)
        assert "bookmarks_user" not in everything
        assert everything[StorageKeys.workspace_key(DEFAULT_WORKSPACE_ID, "bookmarks_user")][0]["id"] == "g1"
        assert everything[StorageKeys.workspace_key(DEFAULT_WORKSPACE_ID, "theme")] == "dark"

        # Keys written after migration stay where they are
        await persistent_store.set({"later": 1})
        await registry.initialize()
        assert (await persistent_store.get("later")) == {"later": 1}


class TestLifecycle:
    """Test create, rename, archive and set_active."""

    @pytest.mark.asyncio
    async def test_create_makes_active(self, registry):
        await registry.initialize()
        ws = await registry.create("Research")
        assert ws.id.startswith("local-")
        assert await registry.get_active_id() == ws.id
        assert (await registry.get_active()).name == "Research"

    @pytest.mark.asyncio
    async def test_rename_trims_and_ignores_blank(self, registry):
        await registry.initialize()
        await registry.rename(DEFAULT_WORKSPACE_ID, "  Reading  ")
        assert (await registry.get_active()).name == "Reading"

        await registry.rename(DEFAULT_WORKSPACE_ID, "   ")
        assert (await registry.get_active()).name == "Reading"

    @pytest.mark.asyncio
    async def test_rename_unknown_is_noop(self, registry):
        await registry.initialize()
        await registry.rename("missing", "X")
        assert [w.id for w in await registry.list()] == [DEFAULT_WORKSPACE_ID]

    @pytest.mark.asyncio
    async def test_archive_sole_workspace_is_refused(self, registry, persistent_store):
        await registry.initialize()
        await registry.archive(DEFAULT_WORKSPACE_ID)

        stored = await _raw(persistent_store, StorageKeys.REGISTRY)
        assert "archived" not in stored["items"][DEFAULT_WORKSPACE_ID]
        assert stored["activeId"] == DEFAULT_WORKSPACE_ID

    @pytest.mark.asyncio
    async def test_archive_active_falls_back_to_default(self, registry):
        await registry.initialize()
        ws = await registry.create("Temp")
        await registry.archive(ws.id)

        assert await registry.get_active_id() == DEFAULT_WORKSPACE_ID
        assert [w.id for w in await registry.list()] == [DEFAULT_WORKSPACE_ID]
        archived = {w.id: w for w in await registry.list(include_archived=True)}
        assert archived[ws.id].archived is True

    @pytest.mark.asyncio
    async def test_archive_default_falls_back_to_other_live(self, registry):
        await registry.initialize()
        ws = await registry.create("Other")
        await registry.set_active(DEFAULT_WORKSPACE_ID)
        await registry.archive(DEFAULT_WORKSPACE_ID)
        assert await registry.get_active_id() == ws.id

    @pytest.mark.asyncio
    async def test_set_active_unknown_raises(self, registry):
        await registry.initialize()
        with pytest.raises(WorkspaceNotFoundError):
            await registry.set_active("nope")

    @pytest.mark.asyncio
    async def test_list_sorted_by_creation(self, registry):
        await registry.initialize()
        first = await registry.create("First")
        second = await registry.create("Second")
        ids = [w.id for w in await registry.list()]
        assert ids.index(first.id) < ids.index(second.id)

    @pytest.mark.asyncio
    async def test_ensure_default_workspace_lazily_initializes(self, registry):
        record = await registry.ensure_default_workspace()
        assert record.activeId in record.items

    @pytest.mark.asyncio
    async def test_ensure_default_workspace_with_all_archived(self, registry, persistent_store):
        await persistent_store.set(
            {
                StorageKeys.REGISTRY: {
                    "version": 1,
                    "activeId": "w1",
                    "items": {"w1": {"id": "w1", "name": "Old", "createdAt": 1, "updatedAt": 1, "archived": True}},
                    "migratedLegacyLocal": True,
                }
            }
        )

        record = await registry.ensure_default_workspace()

        assert record.activeId == DEFAULT_WORKSPACE_ID
        assert [w.id for w in await registry.list()] == [DEFAULT_WORKSPACE_ID]
        assert await registry.get_active_id() == DEFAULT_WORKSPACE_ID

    @pytest.mark.asyncio
    async def test_ensure_default_workspace_restores_archived_default(self, registry, persistent_store):
        await persistent_store.set(
            {
                StorageKeys.REGISTRY: {
                    "version": 1,
                    "activeId": DEFAULT_WORKSPACE_ID,
                    "items": {
                        DEFAULT_WORKSPACE_ID: {
                            "id": DEFAULT_WORKSPACE_ID,
                            "name": "Default",
                            "createdAt": 1,
                            "updatedAt": 1,
                            "archived": True,
                        }
                    },
                    "migratedLegacyLocal": True,
                }
            }
        )

        await registry.ensure_default_workspace()

        stored = await _raw(persistent_store, StorageKeys.REGISTRY)
        assert "archived" not in stored["items"][DEFAULT_WORKSPACE_ID]
        assert [w.name for w in await registry.list()] == ["Default"]
