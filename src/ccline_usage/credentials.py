from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any

from ccline_usage.paths import claude_path

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "CLAUDE_CODE_OAUTH_TOKEN"
KEYCHAIN_SERVICE = "Claude Code-credentials"
KEYCHAIN_TIMEOUT_SECONDS = 5


class CredentialsError(RuntimeError):
    pass


def credentials_path() -> Path | None:
    return claude_path(".credentials.json")


def get_token(path: Path | None = None) -> str | None:
    """Find the OAuth access token: environment, credentials file, then keychain."""
    token = _string_or_none(os.environ.get(TOKEN_ENV_VAR))
    if token:
        return token

    credentials_file = path or credentials_path()
    if credentials_file is not None:
        try:
            return load_token(credentials_file)
        except CredentialsError as exc:
            logger.debug("%s", exc)

    if _is_macos():
        return _read_keychain_token()
    return None


def load_token(path: Path) -> str:
    data = _load_json(path)
    token = extract_access_token(data)
    if not token:
        raise CredentialsError(f"Credentials file {path} has no claudeAiOauth.accessToken")
    return token


def extract_access_token(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    oauth = data.get("claudeAiOauth")
    if isinstance(oauth, dict):
        token = _string_or_none(oauth.get("accessToken"))
        if token:
            return token
    return _string_or_none(data.get("accessToken"))


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except FileNotFoundError as exc:
        raise CredentialsError(f"Credentials file not found at {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise CredentialsError(f"Credentials file at {path} is unreadable") from exc
    except json.JSONDecodeError as exc:
        raise CredentialsError(f"Credentials file at {path} is not valid JSON") from exc


def _is_macos() -> bool:
    return sys.platform == "darwin"


def _read_keychain_token() -> str | None:
    try:
        result = subprocess.run(
            ["security", "find-generic-password", "-s", KEYCHAIN_SERVICE, "-w"],
            capture_output=True,
            text=True,
            check=False,
            timeout=KEYCHAIN_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    raw = result.stdout.strip()
    if not raw:
        return None
    try:
        return extract_access_token(json.loads(raw))
    except json.JSONDecodeError:
        return raw


def _string_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
