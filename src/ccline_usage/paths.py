from __future__ import annotations

from pathlib import Path

CLAUDE_DIR = ".claude"


def claude_path(*parts: str) -> Path | None:
    """Return ``~/.claude/<parts>``, or None when there is no home directory."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        return None
    return home.joinpath(CLAUDE_DIR, *parts)
