"""External clients and orchestration services for the stream API."""

from .daemon_connection import DaemonConnection
from .polling import StreamCoordinator
from .qbittorrent import QBittorrentClient
from .resolution import ResolutionPath, ResolvedTorrent, TorrentResolver
from .streaming import StreamingService
from .torrent_source import TorrentSource

__all__ = [
    "DaemonConnection",
    "QBittorrentClient",
    "ResolutionPath",
    "ResolvedTorrent",
    "StreamCoordinator",
    "StreamingService",
    "TorrentResolver",
    "TorrentSource",
]
