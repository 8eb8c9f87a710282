# -*- coding: utf-8 -*-

from datetime import datetime, timedelta, timezone
from typing import Optional

_ONE_SECOND = timedelta(seconds=1)


class SystemClock:
    """Wall clock in UTC. Anything with a now() -> aware datetime can stand in."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def to_iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    return ts.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_iso(text: Optional[str]) -> Optional[datetime]:
    """
    Parse ISO-8601 text into an aware UTC datetime.
    Accepts a trailing 'Z'; naive values are taken as UTC.
    """
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    ts = datetime.fromisoformat(text)
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def elapsed_seconds(start: Optional[datetime], now: datetime) -> int:
    """Whole seconds from start to now, floored, never negative."""
    if start is None:
        return 0
    return max(0, (now - start) // _ONE_SECOND)


def live_elapsed(total: int, start: Optional[datetime], now: datetime) -> int:
    return int(total) + elapsed_seconds(start, now)


def start_of_day(now: datetime) -> datetime:
    return now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def format_time(seconds: int) -> str:
    """HH:MM:SS when there are hours, otherwise MM:SS."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"


def format_duration(seconds: int) -> str:
    """Coarse form, e.g. '2h 30m', '2h', '45m'."""
    seconds = max(0, int(seconds))
    h = seconds // 3600
    m = (seconds % 3600) // 60
    if h > 0:
        return f"{h}h {m}m" if m > 0 else f"{h}h"
    return f"{m}m"
