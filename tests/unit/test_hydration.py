"""Tests for WorkspaceView hydration."""

import asyncio

import pytest

from mindful.errors import StorageError
from mindful.services.events import EventType
from mindful.services.hydration import WorkspaceView, storage_group_loader


@pytest.fixture
def view(cache_manager, group_storage, bus) -> WorkspaceView:
    return WorkspaceView(cache_manager, storage_group_loader(group_storage, group_storage.user_id), "w1", bus=bus)


class TestBootPhases:
    """Phase 1a, 1b and 2."""

    @pytest.mark.asyncio
    async def test_cold_boot(self, view, group_storage, cache_manager, make_group):
        groups = [make_group("g1", "One", ["https://a.com"])]
        await group_storage.write_all_groups("w1", groups)

        task = await view.boot()
        assert view.is_loading is False
        assert view.groups == []
        assert view.index == []

        assert await task is True
        assert view.groups == groups
        assert [e.id for e in view.index] == ["g1"]
        assert view.is_hydrated is True
        # next boot is warm
        assert cache_manager.read_snapshot_sync("w1") == groups

    @pytest.mark.asyncio
    async def test_warm_boot_seeds_from_snapshot(self, view, group_storage, cache_manager, make_group):
        groups = [make_group("g1", "One")]
        await group_storage.write_all_groups("w1", groups)
        await cache_manager.write_through("w1", groups)

        adopted = view.phase_1a()
        assert adopted is True
        assert view.groups == groups

        await view.phase_1b()
        assert [e.id for e in view.index] == ["g1"]
        assert await view.phase_2() is False

    @pytest.mark.asyncio
    async def test_phase_2_failure_keeps_state(self, cache_manager, make_group):
        async def failing_loader(workspace_id):
            raise StorageError("backend down")

        view = WorkspaceView(cache_manager, failing_loader, "w1")
        view.groups = [make_group("g1", "Stale")]

        assert await view.phase_2() is False
        assert [g.id for g in view.groups] == ["g1"]

    @pytest.mark.asyncio
    async def test_scheduled_phase_2_survives_unexpected_loader_error(self, cache_manager, make_group):
        async def broken_loader(workspace_id):
            raise RuntimeError("loader bug")

        view = WorkspaceView(cache_manager, broken_loader, "w1")
        view.groups = [make_group("g1", "Stale")]

        task = await view.boot()

        assert await task is False
        assert [g.id for g in view.groups] == ["g1"]

    @pytest.mark.asyncio
    async def test_reload_does_not_toggle_loading(self, view):
        view.is_loading = False
        await view.reload()
        assert view.is_loading is False


class TestWorkspaceSwitch:
    """Switching the view to another workspace."""

    @pytest.mark.asyncio
    async def test_switch_clears_other_mirrors(self, view, group_storage, cache_manager, session_store, make_group):
        await group_storage.write_all_groups("w1", [make_group("a", "A")])
        await group_storage.write_all_groups("w2", [make_group("b", "B")])
        await cache_manager.write_through("w1", [make_group("a", "A")])

        task = await view.switch_workspace("w2")
        await task

        assert view.workspace_id == "w2"
        assert [g.id for g in view.groups] == ["b"]
        remaining = set(await session_store.get(None))
        assert all(key.endswith("w2") for key in remaining)

    @pytest.mark.asyncio
    async def test_stale_result_discarded_after_switch(self, cache_manager, make_group):
        release = asyncio.Event()

        async def slow_loader(workspace_id):
            if workspace_id == "w1":
                await release.wait()
                return [make_group("old", "Old")]
            return [make_group("new", "New")]

        view = WorkspaceView(cache_manager, slow_loader, "w1")
        pending = asyncio.create_task(view.phase_2())
        await asyncio.sleep(0)

        view.workspace_id = "w2"
        release.set()

        assert await pending is False
        assert view.groups == []


class TestEvents:
    """Re-hydration on bus events."""

    @pytest.mark.asyncio
    async def test_bookmarks_updated_triggers_reload(self, view, group_storage, bus, make_group):
        view.mount()
        await group_storage.write_all_groups("w1", [make_group("g1", "One")])

        bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w1"})
        await bus.drain()

        assert [g.id for g in view.groups] == ["g1"]

    @pytest.mark.asyncio
    async def test_other_workspace_event_ignored(self, view, group_storage, bus, make_group):
        view.mount()
        await group_storage.write_all_groups("w1", [make_group("g1", "One")])

        bus.publish(EventType.BOOKMARKS_UPDATED, {"workspaceId": "w9"})
        await bus.drain()

        assert view.groups == []

    @pytest.mark.asyncio
    async def test_unmount_unsubscribes(self, view, bus):
        view.mount()
        assert bus.subscriber_count(EventType.VISIBILITY_REGAINED) == 1
        view.unmount()
        assert bus.subscriber_count(EventType.BOOKMARKS_UPDATED) == 0
