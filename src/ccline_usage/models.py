from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class UsageSnapshot:
    five_hour_utilization: float
    seven_day_utilization: float
    five_hour_resets_at: str | None = None
    seven_day_resets_at: str | None = None


@dataclass(frozen=True)
class SegmentOutput:
    primary: str
    secondary: str
    metadata: dict[str, str] = field(default_factory=dict)


class ResetPeriod(str, Enum):
    SESSION = "session"
    WEEKLY = "weekly"

    @classmethod
    def parse(cls, text: str | None) -> tuple[ResetPeriod, str | None]:
        """Return the matching period and, if ``text`` was rejected, ``text``."""
        return _parse_choice(cls, text, cls.SESSION)


class ResetFormat(str, Enum):
    TIME = "time"
    DURATION = "duration"

    @classmethod
    def parse(cls, text: str | None) -> tuple[ResetFormat, str | None]:
        return _parse_choice(cls, text, cls.TIME)


def _parse_choice(enum_cls: Any, text: str | None, default: Any) -> tuple[Any, str | None]:
    if text is None:
        return default, None
    normalized = text.lower()
    for member in enum_cls:
        if member.value == normalized:
            return member, None
    return default, text


def coerce_utilization(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an RFC3339 instant; anything else (including naive times) is None."""
    if not isinstance(value, str) or not value:
        return None
    normalized = value.strip()
    if normalized[-1:] in {"Z", "z"}:
        normalized = normalized[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return None
    return parsed
