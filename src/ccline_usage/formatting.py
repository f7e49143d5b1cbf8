from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone, tzinfo

from ccline_usage.models import parse_timestamp

RESET_SEPARATOR = "·"
UNKNOWN_RESET = "?"

# Nerd Font "circle slice" glyphs, one per eighth of the window.
CIRCLE_SLICES = (
    (12, "\U000f0a9e"),
    (25, "\U000f0a9f"),
    (37, "\U000f0aa0"),
    (50, "\U000f0aa1"),
    (62, "\U000f0aa2"),
    (75, "\U000f0aa3"),
    (87, "\U000f0aa4"),
)
FULL_CIRCLE = "\U000f0aa5"


def icon_for(utilization: float) -> str:
    """Map a 0..1 utilization fraction onto one of eight circle slices."""
    if math.isnan(utilization):
        percent = 0
    else:
        percent = int(max(0.0, min(255.0, utilization * 100.0)))
    for upper, glyph in CIRCLE_SLICES:
        if percent <= upper:
            return glyph
    return FULL_CIRCLE


def format_reset_time(value: str | None, tz: tzinfo | None = None) -> str:
    reset_at = parse_timestamp(value)
    if reset_at is None:
        return UNKNOWN_RESET
    local = reset_at.astimezone(tz)
    # Late in the hour reads as the following hour.
    if local.minute > 45:
        local += timedelta(hours=1)
    return f"{local.month}-{local.day}-{local.hour}"


def format_reset_duration(value: str | None, now: datetime | None = None) -> str:
    reset_at = parse_timestamp(value)
    if reset_at is None:
        return UNKNOWN_RESET
    current = now or datetime.now(timezone.utc)
    remaining = int((reset_at - current).total_seconds())
    if remaining < 60:
        return "now"

    total_minutes = remaining // 60
    days, rest = divmod(total_minutes, 24 * 60)
    hours, minutes = divmod(rest, 60)
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"
