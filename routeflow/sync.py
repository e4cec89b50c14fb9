"""
Persistence synchronizer for the route editor.

Keeps the working graph of the open route in step with route storage:

- Every graph mutation restarts a fixed delay timer (1s by default). The
  write happens only once the delay passes with no further mutation, so a
  burst of edits (typing) turns into a single write.
- The latest snapshot is tracked independently of the timer. Ending the
  session (save, close, switching route, page teardown) flushes it
  immediately, bypassing the delay.

State machine:
    Idle --notify--> PendingWrite(deadline, snapshot)
    PendingWrite --notify--> PendingWrite (timer cancelled and rescheduled)
    PendingWrite --timer / flush_now--> Idle   (exactly one write)
    Idle --flush_now--> Idle                   (no write)

Writes happen synchronously inside flush_now(), so two writes for the same
route can never be in flight at once.

The timer comes from an injected scheduler: any object with
`call_later(delay, callback) -> handle` (handle has `cancel()`) and
`time()`. By default that is the running asyncio loop, which is also what
NiceGUI runs on.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from routeflow.graph_store import GraphStore, new_node_id
from routeflow.models import FlowData, Node, Position, Route
from routeflow.storage.protocol import RouteStorage

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 1.0


class SyncState(Enum):
    IDLE = "idle"
    PENDING_WRITE = "pending_write"


@dataclass
class PendingWrite:
    deadline: float
    snapshot: FlowData


def default_flow_for(route: Route) -> FlowData:
    """Graph for a route that has never been edited: one url node seeded from the route."""
    node = Node(
        id=new_node_id(),
        type="url",
        position=Position(x=100, y=100),
        data={"label": "Url", "path": route.url, "method": route.method},
    )
    return FlowData(nodes=[node], edges=[])


class PersistenceSynchronizer:
    """Debounced writer of one route's flow data, with flush on teardown."""

    def __init__(self, storage: RouteStorage, store: GraphStore,
                 delay: float = DEFAULT_DELAY, scheduler: Any = None):
        self._storage = storage
        self._store = store
        self._delay = delay
        self._scheduler = scheduler
        self._route: Optional[Route] = None
        self._latest: Optional[FlowData] = None
        self._pending: Optional[PendingWrite] = None
        self._timer = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._on_write: List[Callable[[Route], None]] = []
        self.write_count = 0

    # --- Introspection ---

    @property
    def state(self) -> SyncState:
        return SyncState.PENDING_WRITE if self._pending else SyncState.IDLE

    @property
    def pending(self) -> Optional[PendingWrite]:
        return self._pending

    @property
    def route(self) -> Optional[Route]:
        return self._route

    @property
    def delay(self) -> float:
        return self._delay

    def on_write(self, callback: Callable[[Route], None]) -> None:
        """Register a callback invoked after each successful write."""
        self._on_write.append(callback)

    # --- Scheduling ---

    def _get_scheduler(self):
        if self._scheduler is None:
            return asyncio.get_running_loop()
        return self._scheduler

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def notify(self, snapshot: Optional[FlowData] = None) -> None:
        """Record a mutation: remember the latest state and restart the delay."""
        if self._route is None:
            return
        self._latest = snapshot if snapshot is not None else self._store.snapshot()

        scheduler = self._get_scheduler()
        self._cancel_timer()
        deadline = scheduler.time() + self._delay
        self._pending = PendingWrite(deadline=deadline, snapshot=self._latest)
        self._timer = scheduler.call_later(self._delay, self._on_timer)
        logger.debug(f"Write for route {self._route.id} rescheduled to {deadline:.3f}")

    def _on_store_change(self, store: GraphStore) -> None:
        self.notify(store.snapshot())

    def _on_timer(self) -> None:
        self._timer = None
        self.flush_now()

    def flush_now(self) -> bool:
        """
        Write the latest snapshot now if a write is pending.

        Returns True if a write was issued. Storage errors propagate to the
        caller; the synchronizer is back in Idle either way.
        """
        if self._pending is None or self._route is None:
            return False

        self._cancel_timer()
        snapshot = self._latest if self._latest is not None else self._pending.snapshot
        self._pending = None

        if snapshot.is_empty:
            logger.debug(f"Skipping write of empty flow for route {self._route.id}")
            return False

        route = self._route.with_flow(snapshot)
        self._storage.update_route(route)
        self._route = route
        self.write_count += 1
        logger.info(f"Persisted flow for route {route.id}: "
                    f"{len(snapshot.nodes)} nodes, {len(snapshot.edges)} edges")

        for callback in list(self._on_write):
            callback(route)
        return True

    # --- Session lifecycle ---

    def open_route(self, route_id: str) -> Route:
        """
        Check a route out into the graph store.

        An already open route is flushed and released first. A route without
        flow data gets the default url node, and that graph is queued for
        writing like any other edit.
        """
        if self._route is not None:
            self.close()

        route = self._storage.get_route(route_id)
        materialized = route.flow_data is None
        flow = default_flow_for(route) if materialized else route.flow_data

        self._store.load(flow)
        self._route = route
        self._latest = self._store.snapshot()
        self._unsubscribe = self._store.subscribe(self._on_store_change)
        logger.info(f"Opened route {route.id} ({route.method} {route.url})")

        if materialized:
            self.notify()
        return route

    def switch_route(self, route_id: str) -> Route:
        """Flush the current route, then open another."""
        return self.open_route(route_id)

    def save(self) -> bool:
        """Explicit save: flush without waiting for the delay."""
        return self.flush_now()

    def close(self) -> bool:
        """End the editing session: flush, stop listening, release the route."""
        written = self.flush_now()
        self._cancel_timer()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._route is not None:
            logger.info(f"Closed route {self._route.id}")
        self._route = None
        self._latest = None
        return written
