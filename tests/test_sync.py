"""
Tests for the persistence synchronizer.

Time is driven by the FakeScheduler from conftest, so every timing assertion
is exact: a burst of edits produces one write, delay seconds after the last
edit, and ending the session writes immediately.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from routeflow.graph_store import GraphStore
from routeflow.models import FlowData, Node, Position, Route
from routeflow.storage import MemoryRouteBackend, RouteNotFoundError, StorageError
from routeflow.sync import PersistenceSynchronizer, SyncState, default_flow_for


@pytest.fixture
def sync(backend, store, scheduler):
    return PersistenceSynchronizer(backend, store, delay=1.0, scheduler=scheduler)


def open_saved(sync, backend, route_id="route_users"):
    """Open a route and write its materialized default right away."""
    sync.open_route(route_id)
    sync.save()
    backend.writes.clear()


class TestDefaultFlow:

    def test_default_flow_is_one_url_node(self):
        route = Route(id="r", name="Create user", method="POST", url="/users")
        flow = default_flow_for(route)
        assert flow.edges == []
        assert len(flow.nodes) == 1
        node = flow.nodes[0]
        assert node.type == "url"
        assert node.position == Position(100, 100)
        assert node.data == {"label": "Url", "path": "/users", "method": "POST"}

    def test_open_materializes_and_schedules_write(self, sync, store, backend, scheduler, users_route):
        sync.open_route("route_users")

        assert len(store.nodes) == 1
        assert store.nodes[0].data == {"label": "Url", "path": "/users", "method": "POST"}
        assert sync.state == SyncState.PENDING_WRITE
        assert backend.writes == []

        scheduler.advance_to(1.5)
        assert len(backend.writes) == 1
        written_at, route = backend.writes[0]
        assert written_at == pytest.approx(1.0)
        assert route.flow_data.nodes[0].data["path"] == "/users"
        assert sync.state == SyncState.IDLE

    def test_stored_flow_is_not_replaced(self, backend, scheduler):
        flow = FlowData(nodes=[Node(id="a", type="logic", data={"label": "Logic", "code": "x"})])
        backend.update_route(Route(id="r1", name="R", flow_data=flow))
        backend.writes.clear()

        store = GraphStore()
        sync = PersistenceSynchronizer(backend, store, scheduler=scheduler)
        sync.open_route("r1")
        assert [n.id for n in store.nodes] == ["a"]
        assert sync.state == SyncState.IDLE
        scheduler.advance(10)
        assert backend.writes == []

    def test_reopen_after_materialization_keeps_node(self, sync, store, backend, scheduler, users_route):
        sync.open_route("route_users")
        first_id = store.nodes[0].id
        sync.close()
        sync.open_route("route_users")
        assert [n.id for n in store.nodes] == [first_id]
        assert sync.state == SyncState.IDLE


class TestDebounce:

    def test_burst_of_edits_is_one_write(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        node_id = store.nodes[0].id

        store.update_node_data(node_id, {"path": "/u"})
        scheduler.advance_to(0.2)
        store.update_node_data(node_id, {"path": "/us"})
        scheduler.advance_to(0.4)
        store.update_node_data(node_id, {"path": "/users/v2"})

        scheduler.advance_to(1.39)
        assert backend.writes == []
        assert sync.pending.deadline == pytest.approx(1.4)

        scheduler.advance_to(1.41)
        assert len(backend.writes) == 1
        written_at, route = backend.writes[0]
        assert written_at == pytest.approx(1.4)
        assert route.flow_data.nodes[0].data["path"] == "/users/v2"

        scheduler.advance_to(10)
        assert len(backend.writes) == 1

    def test_only_one_timer_alive(self, sync, store, scheduler, users_route, backend):
        open_saved(sync, backend)
        for i in range(5):
            store.update_node_data(store.nodes[0].id, {"path": f"/{i}"})
        assert len(scheduler.active_timers) == 1

    def test_separate_bursts_write_separately(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        node_id = store.nodes[0].id
        store.update_node_data(node_id, {"path": "/a"})
        scheduler.advance_to(2.0)
        store.update_node_data(node_id, {"path": "/b"})
        scheduler.advance_to(4.0)
        assert [r.flow_data.nodes[0].data["path"] for _, r in backend.writes] == ["/a", "/b"]

    def test_any_mutation_schedules(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        url = store.nodes[0]
        out = store.add_node("output", Position(300, 100))
        store.connect(url.id, out.id)
        store.move_node(out.id, Position(320, 120))
        scheduler.advance(1.0)
        assert len(backend.writes) == 1
        flow = backend.writes[0][1].flow_data
        assert len(flow.nodes) == 2
        assert len(flow.edges) == 1
        assert flow.nodes[1].position == Position(320, 120)

    def test_selection_does_not_schedule(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        store.select(store.nodes[0].id)
        assert sync.state == SyncState.IDLE


class TestFlush:

    def test_close_flushes_pending_edit(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        scheduler.advance_to(0.9)
        store.update_node_data(store.nodes[0].id, {"label": "Signup"})
        scheduler.advance_to(0.95)

        assert sync.close() is True
        assert len(backend.writes) == 1
        written_at, route = backend.writes[0]
        assert written_at == pytest.approx(0.95)
        assert route.flow_data.nodes[0].data["label"] == "Signup"

        scheduler.advance_to(5.0)
        assert len(backend.writes) == 1

    def test_close_without_pending_writes_nothing(self, sync, backend, users_route):
        open_saved(sync, backend)
        assert sync.close() is False
        assert backend.writes == []

    def test_close_twice(self, sync, store, backend, users_route):
        open_saved(sync, backend)
        store.add_node("logic")
        assert sync.close() is True
        assert sync.close() is False
        assert len(backend.writes) == 1

    def test_explicit_save(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        store.add_node("auth")
        assert sync.save() is True
        assert sync.state == SyncState.IDLE
        scheduler.advance(5)
        assert len(backend.writes) == 1

    def test_edits_after_close_are_ignored(self, sync, store, backend, scheduler, users_route):
        open_saved(sync, backend)
        sync.close()
        store.add_node("auth")
        scheduler.advance(5)
        assert backend.writes == []

    def test_switch_route_flushes_previous(self, sync, store, backend, scheduler, users_route):
        backend.update_route(Route(id="route_list", name="List users", url="/users"))
        open_saved(sync, backend)
        store.update_node_data(store.nodes[0].id, {"path": "/users/new"})

        sync.switch_route("route_list")
        assert [r.id for _, r in backend.writes] == ["route_users"]
        assert backend.get_route("route_users").flow_data.nodes[0].data["path"] == "/users/new"

        # The newly opened route materializes its own default
        assert sync.route.id == "route_list"
        assert store.nodes[0].data["path"] == "/users"
        assert store.nodes[0].data["method"] == "GET"
        scheduler.advance(1.0)
        assert [r.id for _, r in backend.writes] == ["route_users", "route_list"]

    def test_empty_flow_is_never_written(self, backend, scheduler):
        backend.update_route(Route(id="r_empty", name="Empty", flow_data=FlowData()))
        backend.writes.clear()
        store = GraphStore()
        sync = PersistenceSynchronizer(backend, store, scheduler=scheduler)
        sync.open_route("r_empty")

        node = store.add_node("logic")
        store.remove_node(node.id)
        scheduler.advance(2)
        assert backend.writes == []
        assert sync.state == SyncState.IDLE

    def test_on_write_callback(self, sync, store, backend, users_route):
        callback = MagicMock()
        sync.on_write(callback)
        open_saved(sync, backend)
        store.add_node("logic")
        sync.save()
        assert callback.call_count == 2
        written = callback.call_args[0][0]
        assert written.id == "route_users"
        assert len(written.flow_data.nodes) == 2

    def test_writes_go_through_storage_protocol(self, store, scheduler):
        storage = MagicMock()
        storage.get_route.return_value = Route(id="r1", name="R", url="/r")
        sync = PersistenceSynchronizer(storage, store, scheduler=scheduler)
        sync.open_route("r1")
        scheduler.advance(1.0)
        storage.get_route.assert_called_once_with("r1")
        storage.update_route.assert_called_once()
        assert storage.update_route.call_args[0][0].flow_data.nodes[0].type == "url"


class TestRoundTrip:

    def test_flow_survives_reopen(self, backend, scheduler, users_route):
        store = GraphStore()
        sync = PersistenceSynchronizer(backend, store, scheduler=scheduler)
        sync.open_route("route_users")
        url = store.nodes[0]
        auth = store.add_node("auth", Position(250, 100))
        out = store.add_node("output", Position(400, 100))
        store.connect(url.id, auth.id)
        store.connect(auth.id, out.id)
        store.update_node_data(out.id, {"statusCode": 201})
        before = store.snapshot()
        sync.close()

        other = GraphStore()
        PersistenceSynchronizer(backend, other, scheduler=scheduler).open_route("route_users")
        assert other.snapshot().to_dict() == before.to_dict()

    def test_route_metadata_is_kept(self, sync, store, backend, users_route):
        sync.open_route("route_users")
        sync.close()
        stored = backend.get_route("route_users")
        assert (stored.name, stored.method, stored.url) == ("Create user", "POST", "/users")


class TestErrors:

    def test_missing_route(self, sync):
        with pytest.raises(RouteNotFoundError):
            sync.open_route("nope")
        assert sync.route is None

    def test_storage_error_propagates(self, store, scheduler):
        class FailingBackend(MemoryRouteBackend):
            fail = False

            def update_route(self, route):
                if self.fail:
                    raise StorageError("disk full")
                super().update_route(route)

        failing = FailingBackend()
        failing.update_route(Route(id="r1", name="R", url="/r"))
        sync = PersistenceSynchronizer(failing, store, scheduler=scheduler)
        sync.open_route("r1")
        failing.fail = True

        with pytest.raises(StorageError):
            sync.save()
        assert sync.state == SyncState.IDLE

    def test_notify_without_route_is_noop(self, sync, scheduler):
        sync.notify(FlowData(nodes=[Node(id="a", type="url")]))
        assert sync.state == SyncState.IDLE
        assert scheduler.active_timers == []


class TestEventLoopScheduler:

    def test_default_scheduler_is_running_loop(self):
        backend = MemoryRouteBackend()
        backend.update_route(Route(id="r1", name="R", method="PUT", url="/items/:id"))

        async def scenario():
            sync = PersistenceSynchronizer(backend, GraphStore(), delay=0.01)
            sync.open_route("r1")
            await asyncio.sleep(0.1)
            return sync

        sync = asyncio.run(scenario())
        assert sync.state == SyncState.IDLE
        stored = backend.get_route("r1")
        assert stored.flow_data.nodes[0].data == {"label": "Url", "path": "/items/:id", "method": "PUT"}
