# -*- coding: utf-8 -*-

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple

from core.clock import elapsed_seconds, live_elapsed
from domain.errors import AlreadyTrackingError, NotTrackingError


@dataclass(frozen=True)
class TimerState:
    """
    Tracking fields shared by tasks and projects.

    Idle:     is_tracking=False, tracked_start_time=None
    Tracking: is_tracking=True,  tracked_start_time=<start>
    """

    kind: str  # "task" | "project"
    entity_id: str
    is_tracking: bool = False
    tracked_start_time: Optional[datetime] = None
    total_tracked_time: int = 0

    @classmethod
    def of(cls, kind: str, entity) -> "TimerState":
        return cls(
            kind=kind,
            entity_id=entity.id,
            is_tracking=entity.is_tracking,
            tracked_start_time=entity.tracked_start_time,
            total_tracked_time=entity.total_tracked_time,
        )

    def fields(self) -> dict:
        return {
            "is_tracking": self.is_tracking,
            "tracked_start_time": self.tracked_start_time,
            "total_tracked_time": self.total_tracked_time,
        }


def start(state: TimerState, now: datetime) -> TimerState:
    if state.is_tracking:
        raise AlreadyTrackingError(state.kind, state.entity_id)
    return replace(state, is_tracking=True, tracked_start_time=now)


def stop(state: TimerState, now: datetime) -> Tuple[TimerState, int]:
    """
    Returns (idle state, elapsed seconds of the closed interval).
    """
    if not state.is_tracking or state.tracked_start_time is None:
        raise NotTrackingError(state.kind, state.entity_id)
    elapsed = elapsed_seconds(state.tracked_start_time, now)
    idle = replace(
        state,
        is_tracking=False,
        tracked_start_time=None,
        total_tracked_time=state.total_tracked_time + elapsed,
    )
    return idle, elapsed


def displayed_elapsed(state: TimerState, now: datetime) -> int:
    if not state.is_tracking:
        return state.total_tracked_time
    return live_elapsed(state.total_tracked_time, state.tracked_start_time, now)
