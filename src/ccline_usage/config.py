from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from ccline_usage.api import DEFAULT_API_BASE_URL
from ccline_usage.paths import claude_path

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CCLINE_CONFIG"
USAGE_SEGMENT_ID = "usage"
DEFAULT_CACHE_DURATION_SECONDS = 300
DEFAULT_TIMEOUT_SECONDS = 2


@dataclass(frozen=True)
class UsageOptions:
    api_base_url: str = DEFAULT_API_BASE_URL
    cache_duration: int = DEFAULT_CACHE_DURATION_SECONDS
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    reset_period: str | None = None
    reset_format: str | None = None


def config_path(override: str | Path | None = None) -> Path | None:
    if override:
        return Path(override).expanduser()
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()
    return claude_path("ccline", "config.toml")


def load_segment_options(
    segment_id: str = USAGE_SEGMENT_ID,
    path: str | Path | None = None,
) -> dict[str, Any]:
    """Return the ``options`` table of the matching ``[[segments]]`` entry."""
    config_file = config_path(path)
    if config_file is None:
        return {}
    try:
        raw = tomllib.loads(config_file.read_text())
    except FileNotFoundError:
        return {}
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", config_file, exc)
        return {}

    segments = raw.get("segments", [])
    if not isinstance(segments, list):
        logger.warning("Config %s: 'segments' must be an array of tables", config_file)
        return {}
    for segment in segments:
        if not isinstance(segment, dict):
            continue
        if str(segment.get("id", "")).lower() != segment_id.lower():
            continue
        options = segment.get("options", {})
        if isinstance(options, dict):
            return options
        logger.warning("Config %s: options for %r must be a table", config_file, segment_id)
        return {}
    return {}


def resolve_options(raw: Mapping[str, Any] | None) -> UsageOptions:
    values = raw or {}
    defaults = UsageOptions()
    return UsageOptions(
        api_base_url=_parse_str(values.get("api_base_url")) or defaults.api_base_url,
        cache_duration=_parse_int(values.get("cache_duration"), defaults.cache_duration),
        timeout=_parse_int(values.get("timeout"), defaults.timeout),
        reset_period=_parse_choice(values.get("reset_period")),
        reset_format=_parse_choice(values.get("reset_format")),
    )


def _parse_str(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value or None


def _parse_choice(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _parse_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value >= 0 else default
