from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping

from ccline_usage.api import fetch_usage
from ccline_usage.cache import CacheRecord, CacheStore
from ccline_usage.config import UsageOptions, load_segment_options, resolve_options
from ccline_usage.credentials import get_token
from ccline_usage.formatting import (
    RESET_SEPARATOR,
    format_reset_duration,
    format_reset_time,
    icon_for,
)
from ccline_usage.models import ResetFormat, ResetPeriod, SegmentOutput, UsageSnapshot

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, str, float], UsageSnapshot | None]


class UsageSegment:
    """Status-line segment showing five-hour and seven-day API utilization.

    Every call to :meth:`collect` is independent; the only state shared between
    calls is the on-disk cache owned by ``store``.
    """

    def __init__(
        self,
        token_provider: Callable[[], str | None] = get_token,
        options_provider: Callable[[], Mapping[str, Any]] = load_segment_options,
        store: CacheStore | None = None,
        fetcher: Fetcher = fetch_usage,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._options_provider = options_provider
        self._clock = clock or _utcnow
        self._store = store or CacheStore(clock=self._clock)
        self._fetcher = fetcher

    def collect(self) -> SegmentOutput | None:
        try:
            return self._collect()
        except Exception:
            logger.debug("Usage segment failed", exc_info=True)
            return None

    def _collect(self) -> SegmentOutput | None:
        token = self._token_provider()
        if not token:
            logger.debug("No OAuth token available; skipping usage segment")
            return None

        options = self._load_options()
        cached = self._store.load()
        steps: list[Callable[[], UsageSnapshot | None]] = [
            lambda: self._from_fresh_cache(cached, options),
            lambda: self._from_network(token, options),
            lambda: self._from_stale_cache(cached),
        ]
        snapshot = _first_available(steps)
        if snapshot is None:
            return None
        return render_output(snapshot, options, now=self._clock())

    def _load_options(self) -> UsageOptions:
        try:
            raw = self._options_provider()
        except Exception:
            logger.warning("Could not load usage segment options; using defaults", exc_info=True)
            raw = {}
        return resolve_options(raw)

    def _from_fresh_cache(
        self, cached: CacheRecord | None, options: UsageOptions
    ) -> UsageSnapshot | None:
        if cached is None or not self._store.is_valid(cached, options.cache_duration):
            return None
        return cached.snapshot()

    def _from_network(self, token: str, options: UsageOptions) -> UsageSnapshot | None:
        snapshot = self._fetcher(options.api_base_url, token, options.timeout)
        if snapshot is None:
            return None
        self._store.save(CacheRecord.from_snapshot(snapshot, self._clock()))
        return snapshot

    def _from_stale_cache(self, cached: CacheRecord | None) -> UsageSnapshot | None:
        if cached is None:
            return None
        logger.debug("Usage fetch failed; falling back to cached data from %s", cached.cached_at)
        return cached.snapshot()


def render_output(
    snapshot: UsageSnapshot,
    options: UsageOptions,
    now: datetime | None = None,
) -> SegmentOutput:
    reset_period, invalid_period = ResetPeriod.parse(options.reset_period)
    reset_format, invalid_format = ResetFormat.parse(options.reset_format)

    resets_at = select_reset(snapshot, reset_period)
    if reset_format is ResetFormat.DURATION:
        reset_text = format_reset_duration(resets_at, now=now)
    else:
        reset_text = format_reset_time(resets_at)

    metadata = {
        "dynamic_icon": icon_for(snapshot.seven_day_utilization / 100.0),
        "five_hour_utilization": _number_text(snapshot.five_hour_utilization),
        "seven_day_utilization": _number_text(snapshot.seven_day_utilization),
        "reset_period": reset_period.value,
        "reset_format": reset_format.value,
    }
    if invalid_period is not None:
        metadata["invalid_reset_period"] = invalid_period
    if invalid_format is not None:
        metadata["invalid_reset_format"] = invalid_format

    return SegmentOutput(
        primary=f"{_round_half_away(snapshot.five_hour_utilization)}%",
        secondary=f"{RESET_SEPARATOR} {reset_text}",
        metadata=metadata,
    )


def select_reset(snapshot: UsageSnapshot, period: ResetPeriod) -> str | None:
    preferred, fallback = snapshot.five_hour_resets_at, snapshot.seven_day_resets_at
    if period is ResetPeriod.WEEKLY:
        preferred, fallback = fallback, preferred
    return preferred if preferred is not None else fallback


def _first_available(
    steps: list[Callable[[], UsageSnapshot | None]],
) -> UsageSnapshot | None:
    for step in steps:
        snapshot = step()
        if snapshot is not None:
            return snapshot
    return None


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _number_text(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)
