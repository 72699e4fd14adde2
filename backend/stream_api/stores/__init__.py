"""Persistence and caching layers for the stream API."""

from .base import TorrentStore
from .delivery_cache import DeliveryCache, movie_cache_key, series_cache_key
from .sql_torrent_store import SqlTorrentStore
from .torrent_store import JsonTorrentStore

__all__ = [
    "DeliveryCache",
    "JsonTorrentStore",
    "SqlTorrentStore",
    "TorrentStore",
    "movie_cache_key",
    "series_cache_key",
]
