"""Guarantees that a catalog item is backed by a torrent inside the daemon."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Iterable

from ...resolver.bencode import parse_torrent
from ...resolver.errors import StoreIOError
from ..schemas import DaemonTorrentState, HashVerification, TorrentKind, TorrentRecord
from ..stores.base import TorrentStore
from .daemon_connection import DaemonConnection
from .torrent_source import TorrentSource

logger = logging.getLogger(__name__)


class ResolutionPath(str, Enum):
    """How ``TorrentResolver.ensure`` reached a confirmed torrent."""

    STORE_HIT = "store_hit"
    DAEMON_EXISTING = "daemon_existing"
    ADDED = "added"
    REDOWNLOADED = "redownloaded"


@dataclass(slots=True)
class ResolvedTorrent:
    catalog_id: str
    info_hash: str
    state: DaemonTorrentState | None
    path: ResolutionPath


class TorrentResolver:
    """Reconciles store mappings with the daemon and adds torrents when needed.

    The store is only a cache of "this id maps to this hash"; the daemon is
    checked before a stored mapping is trusted.
    """

    def __init__(
        self,
        store: TorrentStore,
        connection: DaemonConnection,
        source: TorrentSource,
        *,
        movies_path: str,
        series_path: str,
        settle_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._store = store
        self._connection = connection
        self._source = source
        self._save_paths: dict[str, str] = {"movie": movies_path, "series": series_path}
        self._settle_delay = settle_delay
        self._sleep = sleep

    async def verify(self, info_hash: str) -> HashVerification:
        return await self._connection.call(lambda client: client.verify_by_hash(info_hash))

    async def ensure(self, catalog_id: str, kind: TorrentKind) -> ResolvedTorrent:
        """Return the hash and live state of the torrent backing ``catalog_id``."""

        record = await asyncio.to_thread(self._store.get, catalog_id)
        stale = False
        if record is not None:
            verification = await self.verify(record.info_hash)
            if verification.exists:
                logger.info("Torrent for %s found in daemon (%s)", catalog_id, record.info_hash[:8])
                await self._touch(catalog_id)
                return ResolvedTorrent(
                    catalog_id, record.info_hash, verification.state, ResolutionPath.STORE_HIT
                )
            logger.warning(
                "Torrent for %s is stored as %s but missing from the daemon, re-adding",
                catalog_id,
                record.info_hash[:8],
            )
            stale = True

        metadata = parse_torrent(await self._source.fetch(catalog_id))
        logger.info(
            "Torrent for %s is %s (%s, %d files)", catalog_id, metadata.info_hash, metadata.name, metadata.file_count
        )
        await self._persist(
            catalog_id,
            TorrentRecord(
                catalog_id=catalog_id,
                info_hash=metadata.info_hash,
                name=metadata.name,
                total_size=metadata.total_size,
                file_count=metadata.file_count,
                kind=kind,
            ),
        )

        verification = await self.verify(metadata.info_hash)
        if verification.exists:
            logger.info("Torrent %s already present in the daemon", metadata.info_hash[:8])
            return ResolvedTorrent(
                catalog_id, metadata.info_hash, verification.state, ResolutionPath.DAEMON_EXISTING
            )

        save_path = self._save_paths[kind]
        download_url = self._source.download_url(catalog_id)
        await self._connection.call(lambda client: client.add_from_url(download_url, save_path))
        await self._sleep(self._settle_delay)
        verification = await self.verify(metadata.info_hash)
        return ResolvedTorrent(
            catalog_id,
            metadata.info_hash,
            verification.state,
            ResolutionPath.REDOWNLOADED if stale else ResolutionPath.ADDED,
        )

    async def daemon_presence(self, catalog_ids: Iterable[str]) -> dict[str, bool]:
        """Report, per catalog id, whether its stored torrent is present in the daemon."""

        records = await asyncio.to_thread(
            lambda: {catalog_id: self._store.get(catalog_id) for catalog_id in catalog_ids}
        )
        hashes = [record.info_hash for record in records.values() if record is not None]
        present: set[str] = set()
        if hashes:
            present = await self._connection.call(lambda client: client.existing_hashes(hashes))
        return {
            catalog_id: record is not None and record.info_hash in present
            for catalog_id, record in records.items()
        }

    async def _persist(self, catalog_id: str, record: TorrentRecord) -> None:
        try:
            await asyncio.to_thread(self._store.put, catalog_id, record)
        except StoreIOError:
            logger.exception("Could not persist torrent mapping for %s, continuing in memory", catalog_id)

    async def _touch(self, catalog_id: str) -> None:
        try:
            await asyncio.to_thread(self._store.touch, catalog_id)
        except StoreIOError:
            logger.exception("Could not refresh torrent mapping for %s", catalog_id)
