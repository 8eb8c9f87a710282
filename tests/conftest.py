import heapq
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_coordinator import TimerCoordinator
from storage.db import Database


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start=None):
        self.current = start or datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)

    def now(self):
        return self.current

    def advance(self, seconds=0.0):
        self.current = self.current + timedelta(seconds=seconds)
        return self.current


class FakeScheduler:
    """
    call_later/cancel driven by advance(ms) instead of a real event loop.

    submit() runs the call inline unless hold_background is set; held calls
    run, in order, on finish_background().
    """

    def __init__(self):
        self.now_ms = 0
        self._queue = []
        self._ids = itertools.count(1)
        self._cancelled = set()
        self.hold_background = False
        self.background = []

    def call_later(self, delay_ms, fn):
        handle = next(self._ids)
        heapq.heappush(self._queue, (self.now_ms + delay_ms, handle, fn))
        return handle

    def cancel(self, handle):
        self._cancelled.add(handle)

    def submit(self, fn, on_done):
        if self.hold_background:
            self.background.append((fn, on_done))
        else:
            self._complete(fn, on_done)

    def finish_background(self):
        held, self.background = self.background, []
        for fn, on_done in held:
            self._complete(fn, on_done)

    @staticmethod
    def _complete(fn, on_done):
        try:
            result = fn()
        except Exception as e:
            on_done(None, e)
        else:
            on_done(result, None)

    def pending(self):
        return sum(1 for _, h, _ in self._queue if h not in self._cancelled)

    def advance(self, ms):
        target = self.now_ms + ms
        while self._queue and self._queue[0][0] <= target:
            due, handle, fn = heapq.heappop(self._queue)
            if handle in self._cancelled:
                continue
            self.now_ms = due
            fn()
        self.now_ms = target


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def db():
    database = Database(":memory:")
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def coordinator(db, clock):
    return TimerCoordinator(db, clock=clock)


@pytest.fixture
def task_service(db, clock):
    return TaskService(db, clock=clock)


@pytest.fixture
def stats(db, clock):
    return StatsService(db, clock=clock)


@pytest.fixture
def project(task_service):
    return task_service.create_project("Website relaunch", account_id="acc-1")


@pytest.fixture
def scheduler():
    return FakeScheduler()
