from datetime import datetime, timedelta, timezone

import pytest

from core import timer_state
from core.timer_state import TimerState
from domain.errors import AlreadyTrackingError, NotTrackingError

T0 = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


def idle(total=0):
    return TimerState(kind="task", entity_id="t1", total_tracked_time=total)


def test_start_sets_start_time():
    s = timer_state.start(idle(), T0)
    assert s.is_tracking
    assert s.tracked_start_time == T0
    assert s.total_tracked_time == 0


def test_start_twice_is_rejected():
    s = timer_state.start(idle(), T0)
    with pytest.raises(AlreadyTrackingError):
        timer_state.start(s, T0 + timedelta(seconds=1))


def test_stop_accumulates_floored_seconds():
    s = timer_state.start(idle(total=40), T0)
    stopped, elapsed = timer_state.stop(s, T0 + timedelta(seconds=90, milliseconds=700))
    assert elapsed == 90
    assert stopped.total_tracked_time == 130
    assert not stopped.is_tracking
    assert stopped.tracked_start_time is None


def test_stop_when_idle_is_rejected():
    with pytest.raises(NotTrackingError):
        timer_state.stop(idle(), T0)


def test_stop_with_clock_behind_start_adds_nothing():
    s = timer_state.start(idle(total=10), T0)
    stopped, elapsed = timer_state.stop(s, T0 - timedelta(seconds=3))
    assert elapsed == 0
    assert stopped.total_tracked_time == 10


def test_displayed_elapsed():
    assert timer_state.displayed_elapsed(idle(total=7), T0) == 7
    s = timer_state.start(idle(total=7), T0)
    assert timer_state.displayed_elapsed(s, T0 + timedelta(seconds=3)) == 10


def test_fields_match_storage_columns():
    s = timer_state.start(idle(), T0)
    assert s.fields() == {
        "is_tracking": True,
        "tracked_start_time": T0,
        "total_tracked_time": 0,
    }
