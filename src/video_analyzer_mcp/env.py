"""Load environment variables from the shared analyzer config file.

Reads ``~/.config/video-analyzer-mcp/.env`` with python-dotenv and injects
values only for variables the process environment leaves unset.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import dotenv_values

DEFAULT_ENV_PATH = Path.home() / ".config" / "video-analyzer-mcp" / ".env"


def _is_unset_or_placeholder(key: str, value: str | None) -> bool:
    """Return True when the current env value should be treated as unset.

    Blank values and unresolved self-placeholders such as ``${GEMINI_API_KEY}``
    (passed through verbatim by some MCP hosts) count as unset.
    """
    if value is None:
        return True
    normalized = value.strip().strip("\"'").strip()
    if not normalized:
        return True
    if normalized in {f"${key}", f"${{{key}}}"}:
        return True
    return normalized.startswith(f"${{{key}:-") and normalized.endswith("}")


def load_env_file(path: Path | None = None) -> dict[str, str]:
    """Inject vars from *path* into ``os.environ`` where they are unset.

    Args:
        path: The ``.env`` file. Defaults to :data:`DEFAULT_ENV_PATH`.

    Returns:
        Dict of vars that were actually injected.
    """
    if path is None:
        path = DEFAULT_ENV_PATH
    if not path.is_file():
        return {}

    injected: dict[str, str] = {}
    for key, value in dotenv_values(path, interpolate=False).items():
        if value is None:
            continue
        if _is_unset_or_placeholder(key, os.environ.get(key)):
            os.environ[key] = value
            injected[key] = value
    return injected
