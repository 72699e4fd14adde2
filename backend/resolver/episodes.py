"""
Episode selection helpers for multi-file series torrents.

Release naming is inconsistent, so a file is matched against a short list of
predicates tried in order: the zero-padded ``S01E02`` token, its unpadded
numeric form, and finally a season-only token for single-file releases.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Sequence


@dataclass(slots=True, frozen=True)
class TorrentFileEntry:
    """A file inside a torrent as reported by the daemon."""

    index: int
    relative_path: str


EpisodePredicate = Callable[[str, str, str, int], bool]


def pad_number(value: str | int) -> str:
    """Left-pad single-digit season/episode numbers to two digits."""

    return str(value).strip().zfill(2)


def episode_token(season: str | int, episode: str | int) -> str:
    """Return the canonical ``SxxEyy`` token."""

    return f"S{pad_number(season)}E{pad_number(episode)}"


def season_token(season: str | int) -> str:
    """Return the season-only token used by season pack names (note the trailing space)."""

    return f"S{pad_number(season)} "


def _matches_padded(path: str, season: str, episode: str, file_count: int) -> bool:
    return episode_token(season, episode).lower() in path.lower()


def _matches_unpadded(path: str, season: str, episode: str, file_count: int) -> bool:
    pattern = rf"s0*{int(season)}\s*e0*{int(episode)}(?!\d)"
    return re.search(pattern, path, re.IGNORECASE) is not None


def _matches_season_only(path: str, season: str, episode: str, file_count: int) -> bool:
    if file_count != 1:
        return False
    return season_token(season).lower() in path.lower()


EPISODE_PREDICATES: tuple[EpisodePredicate, ...] = (
    _matches_padded,
    _matches_unpadded,
    _matches_season_only,
)


def find_episode_file(
    files: Sequence[TorrentFileEntry],
    season: str | int,
    episode: str | int,
) -> TorrentFileEntry | None:
    """Return the first file matching the episode, trying each predicate in order."""

    season_text = str(season).strip()
    episode_text = str(episode).strip()
    if not season_text.isdigit() or not episode_text.isdigit():
        return None

    for predicate in EPISODE_PREDICATES:
        for entry in files:
            if predicate(entry.relative_path, season_text, episode_text, len(files)):
                return entry
    return None


def normalize_relative_path(path: str) -> str:
    """Strip the torrent root from a ``root/dir/file`` path.

    Paths with three or more segments lose their first one. A two-segment path
    whose segments are equal (``Show/Show``) keeps one of them. Anything else
    is returned unchanged.
    """

    parts = [part for part in path.strip("/").split("/") if part]
    if len(parts) > 2:
        parts = parts[1:]
    elif len(parts) == 2 and parts[0] == parts[1]:
        parts = parts[1:]
    return "/".join(parts)


def episode_location(base_path: str, torrent_name: str, file_path: str) -> str:
    """Build the absolute path of an episode file under the series base path."""

    relative = normalize_relative_path(f"{torrent_name}/{file_path}")
    return f"{base_path.rstrip('/')}/{relative}"
