"""Shared state container for the stream API."""
from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from .db import create_engine_from_settings, init_database
from .services import (
    DaemonConnection,
    QBittorrentClient,
    StreamCoordinator,
    StreamingService,
    TorrentResolver,
    TorrentSource,
)
from .settings import StreamSettings
from .stores import DeliveryCache, JsonTorrentStore, SqlTorrentStore, TorrentStore

logger = logging.getLogger(__name__)


def build_store(settings: StreamSettings) -> TorrentStore:
    """Instantiate the torrent store backend selected in the settings."""

    if settings.store_backend == "sql":
        engine = create_engine_from_settings(settings)
        init_database(engine)
        logger.info("Using SQL torrent store at %s", settings.database_url)
        return SqlTorrentStore(engine)
    store = JsonTorrentStore(settings.store_path)
    logger.info("Using JSON torrent store at %s (%d records)", store.path, len(store))
    return store


@dataclass(slots=True)
class AppState:
    """Encapsulates the long-lived services shared across routers."""

    settings: StreamSettings
    store: TorrentStore
    cache: DeliveryCache
    connection: DaemonConnection
    source: TorrentSource
    streaming: StreamingService
    resolver: TorrentResolver
    coordinator: StreamCoordinator

    def __init__(
        self,
        settings: StreamSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.store = build_store(settings)
        self.cache = DeliveryCache()

        def daemon_factory() -> QBittorrentClient:
            return QBittorrentClient(
                settings.qbit_host,
                settings.qbit_username,
                settings.qbit_password,
                timeout=settings.daemon_timeout,
                transport=transport,
            )

        self.connection = DaemonConnection(
            daemon_factory,
            attempts=settings.daemon_connect_attempts,
            backoff=settings.daemon_connect_backoff,
        )
        self.source = TorrentSource(
            settings.torrent_source_url,
            settings.torrent_source_api_key,
            timeout=settings.torrent_source_timeout,
            transport=transport,
        )
        self.streaming = StreamingService(
            settings.stream_api_url,
            settings.stream_api_token,
            verify_ssl=settings.stream_api_verify_ssl,
            timeout=settings.stream_api_timeout,
            transport=transport,
        )
        self.resolver = TorrentResolver(
            self.store,
            self.connection,
            self.source,
            movies_path=settings.movies_path,
            series_path=settings.series_path,
            settle_delay=settings.retry_delay,
        )
        self.coordinator = StreamCoordinator(
            self.resolver,
            self.connection,
            self.streaming,
            self.cache,
            series_path=settings.series_path,
            max_retries=settings.max_retries,
            retry_delay=settings.retry_delay,
            cache_ttl=settings.cache_duration,
            resolve_timeout=settings.resolve_timeout,
        )

    async def aclose(self) -> None:
        """Release every HTTP client owned by the state."""

        await self.connection.aclose()
        await self.source.aclose()
        await self.streaming.aclose()
