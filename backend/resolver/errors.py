"""Exception hierarchy shared by the resolution engine and the API service."""
from __future__ import annotations


class TorrentarrError(RuntimeError):
    """Base class for every failure raised while resolving a stream."""


class MalformedBencodeError(TorrentarrError, ValueError):
    """Raised when a bencoded payload violates the format."""

    def __init__(self, message: str, position: int | None = None) -> None:
        if position is not None:
            message = f"{message} at offset {position}"
        super().__init__(message)
        self.position = position


class BencodeEncodeError(TorrentarrError, TypeError):
    """Raised when a value has no bencode representation."""


class TorrentSourceError(TorrentarrError):
    """Raised when the torrent file cannot be downloaded from its source."""


class DaemonError(TorrentarrError):
    """Raised when the torrent daemon control API fails."""


class DaemonAuthError(DaemonError):
    """Raised when the daemon rejects the credentials or cannot be reached for login."""


class NotReadyError(TorrentarrError):
    """Raised when a torrent exists but its content cannot be streamed yet."""


class EpisodeNotFoundError(NotReadyError):
    """Raised when no file inside a torrent matches the requested episode."""


class StoreIOError(TorrentarrError):
    """Raised when the torrent store cannot persist its state."""
