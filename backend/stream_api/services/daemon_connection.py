"""Process-wide, lazily established qBittorrent session."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from ...resolver.errors import DaemonAuthError
from .qbittorrent import QBittorrentClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

ClientFactory = Callable[[], QBittorrentClient]
Sleep = Callable[[float], Awaitable[None]]


class DaemonConnection:
    """Once-guard around the shared daemon session.

    The first caller starts the login; every caller arriving while it is in
    flight awaits the same attempt and sees the same outcome. A failed
    attempt is discarded so the next request starts a fresh one.
    """

    def __init__(
        self,
        factory: ClientFactory,
        *,
        attempts: int = 3,
        backoff: float = 2.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._factory = factory
        self._attempts = max(attempts, 1)
        self._backoff = backoff
        self._sleep = sleep
        self._client: QBittorrentClient | None = None
        self._pending: asyncio.Future[QBittorrentClient] | None = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def get(self) -> QBittorrentClient:
        """Return the authenticated client, connecting on first use."""

        if self._client is not None:
            return self._client

        if self._pending is None:
            self._pending = asyncio.ensure_future(self._connect())
        pending = self._pending
        try:
            client = await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None
        self._client = client
        return client

    async def _connect(self) -> QBittorrentClient:
        for attempt in range(self._attempts):
            client = self._factory()
            logger.info("Connecting to qBittorrent (attempt %d/%d)", attempt + 1, self._attempts)
            try:
                await client.authenticate()
            except DaemonAuthError as exc:
                await client.aclose()
                if attempt == self._attempts - 1:
                    logger.error(
                        "Could not connect to qBittorrent after %d attempts: %s", self._attempts, exc
                    )
                    raise
                delay = self._backoff * (2 ** attempt)
                logger.warning("qBittorrent login failed (%s), retrying in %.1fs", exc, delay)
                await self._sleep(delay)
            else:
                return client
        raise DaemonAuthError("qBittorrent connection attempts exhausted")

    async def call(self, operation: Callable[[QBittorrentClient], Awaitable[T]]) -> T:
        """Run ``operation`` with the shared session, logging in again once if it was rejected."""

        client = await self.get()
        try:
            return await operation(client)
        except DaemonAuthError:
            logger.warning("qBittorrent session rejected, reconnecting")
            await self.invalidate(client)
            client = await self.get()
            return await operation(client)

    async def invalidate(self, stale: QBittorrentClient | None = None) -> None:
        """Drop the cached session so the next ``get`` logs in again.

        When ``stale`` is given, nothing happens unless it is still the
        current session (another request may already have reconnected).
        """

        if stale is not None and stale is not self._client:
            return
        client, self._client = self._client, None
        if client is not None:
            logger.info("Discarding qBittorrent session")
            await client.aclose()

    async def aclose(self) -> None:
        await self.invalidate()
