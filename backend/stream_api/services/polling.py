"""Turns a confirmed torrent into a playable stream URL."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from ...resolver.episodes import episode_location, find_episode_file
from ...resolver.errors import DaemonAuthError, DaemonError, EpisodeNotFoundError, NotReadyError
from ..schemas import DaemonTorrentState
from ..stores.delivery_cache import DeliveryCache, movie_cache_key, series_cache_key
from .daemon_connection import DaemonConnection
from .resolution import TorrentResolver
from .streaming import StreamingService

logger = logging.getLogger(__name__)

Attempt = Callable[[], Awaitable[str]]


class StreamCoordinator:
    """Resolves catalog requests to stream URLs.

    Readiness is polled a fixed number of times with a fixed delay between
    attempts. Successful URLs are kept in the delivery cache so repeated
    requests skip the daemon entirely.
    """

    def __init__(
        self,
        resolver: TorrentResolver,
        connection: DaemonConnection,
        streaming: StreamingService,
        cache: DeliveryCache,
        *,
        series_path: str,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        cache_ttl: float = 3600,
        resolve_timeout: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._resolver = resolver
        self._connection = connection
        self._streaming = streaming
        self._cache = cache
        self._series_path = series_path
        self._max_retries = max(max_retries, 1)
        self._retry_delay = retry_delay
        self._cache_ttl = cache_ttl
        self._resolve_timeout = resolve_timeout
        self._sleep = sleep

    def cached_url(self, key: str) -> str | None:
        return self._cache.get(key, self._cache_ttl)

    async def deliver_movie(self, catalog_id: str) -> str:
        key = movie_cache_key(catalog_id)
        cached = self.cached_url(key)
        if cached:
            logger.info("Serving cached stream for %s", key)
            return cached

        async def resolve() -> str:
            resolved = await self._resolver.ensure(catalog_id, "movie")
            return await self.poll_movie(resolved.info_hash)

        url = await self._with_deadline(resolve(), key)
        self._cache.set(key, url)
        return url

    async def deliver_episode(self, catalog_id: str, season: str, episode: str) -> str:
        key = series_cache_key(catalog_id, season, episode)
        cached = self.cached_url(key)
        if cached:
            logger.info("Serving cached stream for %s", key)
            return cached

        async def resolve() -> str:
            resolved = await self._resolver.ensure(catalog_id, "series")
            return await self.poll_episode(resolved.info_hash, season, episode)

        url = await self._with_deadline(resolve(), key)
        self._cache.set(key, url)
        return url

    async def poll_movie(self, info_hash: str) -> str:
        async def attempt() -> str:
            state = await self._current_state(info_hash)
            if not state.content_path:
                raise NotReadyError(f"Torrent {info_hash} has no content path yet")
            return await self._stream_url(state.content_path)

        return await self._poll(attempt, info_hash)

    async def poll_episode(self, info_hash: str, season: str, episode: str) -> str:
        async def attempt() -> str:
            state = await self._current_state(info_hash)
            files = await self._connection.call(lambda client: client.list_files(info_hash))
            entry = find_episode_file([item.to_entry() for item in files], season, episode)
            if entry is None:
                raise EpisodeNotFoundError(
                    f"No file for S{season}E{episode} among {len(files)} files of {info_hash}"
                )
            await self._connection.call(
                lambda client: client.set_file_priority(info_hash, entry.index, files)
            )
            path = episode_location(self._series_path, state.name, entry.relative_path)
            return await self._stream_url(path)

        return await self._poll(attempt, f"{info_hash} S{season}E{episode}")

    async def _current_state(self, info_hash: str) -> DaemonTorrentState:
        verification = await self._connection.call(lambda client: client.verify_by_hash(info_hash))
        if not verification.exists or verification.state is None:
            raise NotReadyError(f"Torrent {info_hash} is not registered in the daemon yet")
        return verification.state

    async def _stream_url(self, path: str) -> str:
        url = await self._streaming.request_url(path)
        if not url:
            raise NotReadyError(f"No stream URL for {path} yet")
        return url

    async def _poll(self, attempt: Attempt, label: str) -> str:
        last_error: Exception | None = None
        for number in range(1, self._max_retries + 1):
            try:
                url = await attempt()
            except DaemonAuthError:
                raise
            except (NotReadyError, DaemonError) as exc:
                last_error = exc
                logger.info("Attempt %d/%d for %s: %s", number, self._max_retries, label, exc)
            else:
                logger.info("Stream ready for %s after %d attempt(s)", label, number)
                return url
            if number < self._max_retries:
                await self._sleep(self._retry_delay)

        if isinstance(last_error, DaemonError):
            raise last_error
        raise NotReadyError(f"No stream found for {label} after {self._max_retries} attempts")

    async def _with_deadline(self, operation: Awaitable[str], key: str) -> str:
        if self._resolve_timeout is None:
            return await operation
        try:
            return await asyncio.wait_for(operation, self._resolve_timeout)
        except asyncio.TimeoutError as exc:
            raise NotReadyError(
                f"No stream found for {key} within {self._resolve_timeout:.0f}s"
            ) from exc
