"""Filesystem helpers for persisted store paths."""
from __future__ import annotations

from pathlib import Path

from platformdirs import user_data_dir


APP_NAME = "Torrentarr"
APP_AUTHOR = "Torrentarr"


def default_store_path() -> str:
    """Return the platform-appropriate default location of the torrent store document."""

    base_dir = Path(user_data_dir(APP_NAME, APP_AUTHOR))
    return str(base_dir / "torrents.json")


def ensure_parent_directory(path: str | Path) -> Path:
    """Expand ``path`` and create its parent directory if it does not exist."""

    resolved = Path(path).expanduser()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return resolved
