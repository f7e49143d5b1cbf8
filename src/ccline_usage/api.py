from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any

import httpx

from ccline_usage.models import UsageSnapshot, coerce_utilization
from ccline_usage.paths import claude_path

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.anthropic.com"
USAGE_PATH = "/api/oauth/usage"
BETA_HEADER = "anthropic-beta"
BETA_VALUE = "oauth-2025-04-20"
DEFAULT_USER_AGENT = "claude-code"
CLI_PACKAGE = "@anthropic-ai/claude-code"
VERSION_LOOKUP_TIMEOUT_SECONDS = 2.0


def settings_path() -> Path | None:
    return claude_path("settings.json")


def fetch_usage(
    base_url: str,
    token: str,
    timeout: float,
    client: httpx.Client | None = None,
    settings_file: Path | None = None,
) -> UsageSnapshot | None:
    url = f"{base_url.rstrip('/')}{USAGE_PATH}"
    headers = {
        "Authorization": f"Bearer {token}",
        BETA_HEADER: BETA_VALUE,
        "User-Agent": build_user_agent(),
    }
    try:
        if client is None:
            proxy = read_proxy_from_settings(settings_file)
            with _build_client(timeout, proxy) as session:
                response = session.get(url, headers=headers)
        else:
            response = client.get(url, headers=headers, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as exc:
        # Bad base URLs and non-ASCII tokens fail while the request is built.
        logger.debug("Usage request to %s failed: %s", url, exc)
        return None

    if response.status_code != 200:
        logger.debug("Usage request to %s returned HTTP %s", url, response.status_code)
        return None
    try:
        payload = response.json()
    except ValueError as exc:
        logger.debug("Usage response from %s is not JSON: %s", url, exc)
        return None

    snapshot = parse_usage_response(payload)
    if snapshot is None:
        logger.debug("Usage response from %s has an unexpected shape", url)
    return snapshot


def parse_usage_response(payload: Any) -> UsageSnapshot | None:
    if not isinstance(payload, dict):
        return None
    five_hour = _parse_window(payload.get("five_hour"))
    seven_day = _parse_window(payload.get("seven_day"))
    if five_hour is None or seven_day is None:
        return None
    return UsageSnapshot(
        five_hour_utilization=five_hour[0],
        seven_day_utilization=seven_day[0],
        five_hour_resets_at=five_hour[1],
        seven_day_resets_at=seven_day[1],
    )


def read_proxy_from_settings(path: Path | None = None) -> str | None:
    """Return the HTTPS (else HTTP) proxy from the ``env`` block of settings.json."""
    settings_file = path or settings_path()
    if settings_file is None:
        return None
    try:
        settings = json.loads(settings_file.read_text())
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None

    env = settings.get("env") if isinstance(settings, dict) else None
    if not isinstance(env, dict):
        return None
    for key in ("HTTPS_PROXY", "HTTP_PROXY"):
        value = env.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def build_user_agent(timeout: float = VERSION_LOOKUP_TIMEOUT_SECONDS) -> str:
    try:
        result = subprocess.run(
            ["npm", "view", CLI_PACKAGE, "version"],
            capture_output=True,
            text=True,
            check=False,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired):
        return DEFAULT_USER_AGENT
    if result.returncode != 0:
        return DEFAULT_USER_AGENT
    version = result.stdout.strip()
    if not version:
        return DEFAULT_USER_AGENT
    return f"{DEFAULT_USER_AGENT}/{version}"


def _build_client(timeout: float, proxy: str | None) -> httpx.Client:
    if proxy:
        try:
            return httpx.Client(timeout=httpx.Timeout(timeout), proxy=proxy)
        except (ValueError, ImportError, httpx.InvalidURL) as exc:
            logger.debug("Ignoring unusable proxy %r: %s", proxy, exc)
    return httpx.Client(timeout=httpx.Timeout(timeout))


def _parse_window(entry: Any) -> tuple[float, str | None] | None:
    if not isinstance(entry, dict):
        return None
    utilization = coerce_utilization(entry.get("utilization"))
    if utilization is None:
        return None
    resets_at = entry.get("resets_at")
    if resets_at is not None and not isinstance(resets_at, str):
        return None
    return utilization, resets_at
