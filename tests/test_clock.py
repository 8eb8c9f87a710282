from datetime import datetime, timedelta, timezone

import pytest

from core.clock import (
    elapsed_seconds,
    format_duration,
    format_time,
    live_elapsed,
    parse_iso,
    start_of_day,
    to_iso,
)

T0 = datetime(2024, 5, 1, 9, 0, 0, tzinfo=timezone.utc)


def test_elapsed_is_floored():
    assert elapsed_seconds(T0, T0 + timedelta(seconds=59, milliseconds=999)) == 59
    assert elapsed_seconds(T0, T0 + timedelta(seconds=60)) == 60


def test_elapsed_clamps_clock_skew_to_zero():
    assert elapsed_seconds(T0, T0 - timedelta(seconds=30)) == 0


def test_elapsed_without_start_is_zero():
    assert elapsed_seconds(None, T0) == 0


def test_live_elapsed_adds_running_interval():
    assert live_elapsed(100, T0, T0 + timedelta(seconds=25)) == 125
    assert live_elapsed(100, None, T0 + timedelta(seconds=25)) == 100
    assert live_elapsed(100, T0 + timedelta(seconds=5), T0) == 100


def test_iso_round_trip_keeps_instant():
    local = T0.astimezone(timezone(timedelta(hours=2)))
    assert parse_iso(to_iso(local)) == T0
    assert to_iso(None) is None


@pytest.mark.parametrize(
    "text",
    ["2024-05-01T09:00:00Z", "2024-05-01T09:00:00+00:00", "2024-05-01T11:00:00+02:00", "2024-05-01T09:00:00"],
)
def test_parse_iso_variants(text):
    parsed = parse_iso(text)
    assert parsed == T0
    assert parsed.tzinfo is not None


def test_start_of_day():
    assert start_of_day(T0 + timedelta(hours=5)) == datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "00:00"), (59, "00:59"), (61, "01:01"), (3600, "01:00:00"), (3725, "01:02:05"), (-5, "00:00")],
)
def test_format_time(seconds, expected):
    assert format_time(seconds) == expected


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "0m"), (300, "5m"), (7200, "2h"), (9000, "2h 30m")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
