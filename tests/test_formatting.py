from datetime import datetime, timedelta, timezone

from ccline_usage.formatting import (
    CIRCLE_SLICES,
    FULL_CIRCLE,
    format_reset_duration,
    format_reset_time,
    icon_for,
)

GLYPHS = [glyph for _, glyph in CIRCLE_SLICES] + [FULL_CIRCLE]
NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_icon_buckets_are_monotonic() -> None:
    indices = [GLYPHS.index(icon_for(step / 1000)) for step in range(0, 1051)]

    assert indices == sorted(indices)
    assert indices[0] == 0
    assert indices[-1] == len(GLYPHS) - 1
    assert set(indices) == set(range(len(GLYPHS)))


def test_icon_bucket_boundaries() -> None:
    assert icon_for(0.12) == GLYPHS[0]
    assert icon_for(0.13) == GLYPHS[1]
    assert icon_for(0.50) == GLYPHS[3]
    assert icon_for(0.51) == GLYPHS[4]
    assert icon_for(0.87) == GLYPHS[6]
    assert icon_for(0.88) == FULL_CIRCLE


def test_icon_is_total() -> None:
    assert icon_for(1.0000001) == FULL_CIRCLE
    assert icon_for(42.0) == FULL_CIRCLE
    assert icon_for(-0.5) == GLYPHS[0]
    assert icon_for(float("nan")) == GLYPHS[0]
    assert icon_for(float("inf")) == FULL_CIRCLE


def test_duration_under_one_minute_is_now() -> None:
    reset_at = (NOW + timedelta(seconds=30)).isoformat()

    assert format_reset_duration(reset_at, now=NOW) == "now"


def test_duration_uses_wall_clock_by_default() -> None:
    reset_at = (datetime.now(timezone.utc) + timedelta(seconds=30)).isoformat()

    assert format_reset_duration(reset_at) == "now"


def test_duration_hours_and_minutes() -> None:
    reset_at = (NOW + timedelta(minutes=90)).isoformat()

    assert format_reset_duration(reset_at, now=NOW) == "1h 30m"


def test_duration_days_and_hours() -> None:
    reset_at = (NOW + timedelta(hours=50)).isoformat()

    assert format_reset_duration(reset_at, now=NOW) == "2d 2h"


def test_duration_minutes_only() -> None:
    reset_at = (NOW + timedelta(minutes=45, seconds=59)).isoformat()

    assert format_reset_duration(reset_at, now=NOW) == "45m"


def test_duration_in_the_past_is_now() -> None:
    reset_at = (NOW - timedelta(hours=3)).isoformat()

    assert format_reset_duration(reset_at, now=NOW) == "now"


def test_duration_accepts_zulu_suffix() -> None:
    assert format_reset_duration("2026-01-01T13:00:00Z", now=NOW) == "1h 0m"


def test_duration_unknown_input() -> None:
    assert format_reset_duration(None, now=NOW) == "?"
    assert format_reset_duration("tomorrow", now=NOW) == "?"
    assert format_reset_duration("2026-01-01T13:00:00", now=NOW) == "?"


def test_reset_time_rounds_late_minutes_to_next_hour() -> None:
    assert format_reset_time("2026-03-10T14:50:00Z", tz=timezone.utc) == "3-10-15"
    assert format_reset_time("2026-03-10T14:46:00Z", tz=timezone.utc) == "3-10-15"


def test_reset_time_keeps_hour_up_to_minute_45() -> None:
    assert format_reset_time("2026-03-10T14:45:59Z", tz=timezone.utc) == "3-10-14"
    assert format_reset_time("2026-03-10T09:05:00Z", tz=timezone.utc) == "3-10-9"


def test_reset_time_rounding_rolls_over_the_year() -> None:
    assert format_reset_time("2026-12-31T23:50:00Z", tz=timezone.utc) == "1-1-0"


def test_reset_time_converts_to_target_zone() -> None:
    tokyo = timezone(timedelta(hours=9))

    assert format_reset_time("2026-03-10T20:10:00+00:00", tz=tokyo) == "3-11-5"


def test_reset_time_defaults_to_local_zone() -> None:
    local = datetime(2026, 7, 15, 14, 50).astimezone()

    assert format_reset_time(local.isoformat()) == "7-15-15"


def test_reset_time_unknown_input() -> None:
    assert format_reset_time(None) == "?"
    assert format_reset_time("") == "?"
    assert format_reset_time("not-a-date") == "?"
