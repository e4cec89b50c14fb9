import heapq
import itertools

import pytest

from routeflow.graph_store import GraphStore
from routeflow.models import Route
from routeflow.storage.memory_backend import MemoryRouteBackend


class FakeTimer:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Stand-in for the asyncio loop: call_later/time driven by advance()."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        timer = FakeTimer(self.now + delay, callback)
        heapq.heappush(self._queue, (timer.when, next(self._seq), timer))
        return timer

    def advance(self, seconds):
        self.advance_to(self.now + seconds)

    def advance_to(self, target):
        """Fire every live timer due at or before `target`, in order."""
        while self._queue and self._queue[0][0] <= target:
            when, _, timer = heapq.heappop(self._queue)
            self.now = when
            if not timer.cancelled:
                timer.callback()
        self.now = target

    @property
    def active_timers(self):
        return [t for _, _, t in self._queue if not t.cancelled]


class RecordingBackend(MemoryRouteBackend):
    """Memory backend that records (time, route) for every write."""

    def __init__(self, scheduler):
        super().__init__()
        self.scheduler = scheduler
        self.writes = []

    def update_route(self, route):
        super().update_route(route)
        self.writes.append((self.scheduler.time(), route))


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def backend(scheduler):
    return RecordingBackend(scheduler)


@pytest.fixture
def store():
    return GraphStore()


@pytest.fixture
def users_route(backend):
    """A fresh POST /users route with no flow data yet (setup write cleared)."""
    route = Route(id="route_users", name="Create user", method="POST", url="/users")
    backend.update_route(route)
    backend.writes.clear()
    return route
