from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from ccline_usage.models import UsageSnapshot, coerce_utilization, parse_timestamp
from ccline_usage.paths import claude_path

logger = logging.getLogger(__name__)

CACHE_FILE_PARTS = ("ccline", ".api_usage_cache.json")
LEGACY_RESETS_KEY = "resets_at"


@dataclass(frozen=True)
class CacheRecord:
    five_hour_utilization: float
    seven_day_utilization: float
    five_hour_resets_at: str | None
    seven_day_resets_at: str | None
    cached_at: str

    @classmethod
    def from_snapshot(cls, snapshot: UsageSnapshot, now: datetime) -> CacheRecord:
        return cls(
            five_hour_utilization=snapshot.five_hour_utilization,
            seven_day_utilization=snapshot.seven_day_utilization,
            five_hour_resets_at=snapshot.five_hour_resets_at,
            seven_day_resets_at=snapshot.seven_day_resets_at,
            cached_at=now.astimezone(timezone.utc).isoformat(),
        )

    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            five_hour_utilization=self.five_hour_utilization,
            seven_day_utilization=self.seven_day_utilization,
            five_hour_resets_at=self.five_hour_resets_at,
            seven_day_resets_at=self.seven_day_resets_at,
        )


def default_cache_path() -> Path | None:
    return claude_path(*CACHE_FILE_PARTS)


def migrate_legacy(payload: dict[str, Any]) -> dict[str, Any]:
    """Fold the old shared ``resets_at`` into the per-window reset fields.

    Records written before the five-hour and seven-day reset times were split
    carry a single ``resets_at``. The result never contains that key, so a
    missing reset field afterwards means the reset time is unknown.
    """
    migrated = dict(payload)
    legacy = migrated.pop(LEGACY_RESETS_KEY, None)
    if legacy is None:
        return migrated
    for key in ("five_hour_resets_at", "seven_day_resets_at"):
        if migrated.get(key) is None:
            migrated[key] = legacy
    return migrated


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheStore:
    def __init__(
        self,
        path_resolver: Callable[[], Path | None] = default_cache_path,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._path_resolver = path_resolver
        self._clock = clock

    def path(self) -> Path | None:
        return self._path_resolver()

    def load(self) -> CacheRecord | None:
        path = self.path()
        if path is None:
            return None
        try:
            payload = json.loads(path.read_text())
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.debug("Ignoring unreadable usage cache %s: %s", path, exc)
            return None

        if not isinstance(payload, dict):
            return None
        return _parse_record(migrate_legacy(payload))

    def save(self, record: CacheRecord) -> bool:
        path = self.path()
        if path is None:
            return False
        payload = {
            "five_hour_utilization": record.five_hour_utilization,
            "seven_day_utilization": record.seven_day_utilization,
            "five_hour_resets_at": record.five_hour_resets_at,
            "seven_day_resets_at": record.seven_day_resets_at,
            "cached_at": record.cached_at,
        }
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except (OSError, TypeError, ValueError) as exc:
            logger.debug("Could not write usage cache %s: %s", path, exc)
            return False
        return True

    def is_valid(self, record: CacheRecord, max_age_seconds: int) -> bool:
        cached_at = parse_timestamp(record.cached_at)
        if cached_at is None:
            return False
        age_seconds = (self._clock() - cached_at).total_seconds()
        return age_seconds < max_age_seconds


def _parse_record(payload: dict[str, Any]) -> CacheRecord | None:
    five_hour = coerce_utilization(payload.get("five_hour_utilization"))
    seven_day = coerce_utilization(payload.get("seven_day_utilization"))
    cached_at = payload.get("cached_at")
    if five_hour is None or seven_day is None or not isinstance(cached_at, str):
        return None

    five_hour_resets_at = payload.get("five_hour_resets_at")
    seven_day_resets_at = payload.get("seven_day_resets_at")
    for value in (five_hour_resets_at, seven_day_resets_at):
        if value is not None and not isinstance(value, str):
            return None

    return CacheRecord(
        five_hour_utilization=five_hour,
        seven_day_utilization=seven_day,
        five_hour_resets_at=five_hour_resets_at,
        seven_day_resets_at=seven_day_resets_at,
        cached_at=cached_at,
    )
