"""Application factory for the Torrentarr stream API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import health, store, streams
from .settings import StreamSettings
from .state import AppState

logger = logging.getLogger(__name__)


def create_app(
    settings: StreamSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    ``transport`` is handed to every outbound HTTP client, which lets tests
    replace the daemon, the torrent source and the streaming API.
    """

    resolved_settings = settings or StreamSettings()
    app_state = AppState(settings=resolved_settings, transport=transport)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if resolved_settings.connect_on_startup:
            # Unreachable daemon after all attempts aborts startup.
            await app_state.connection.get()
        try:
            yield
        finally:
            await app_state.aclose()
            logger.info("Stream API shut down")

    app = FastAPI(title="Torrentarr Stream API", version="0.1.0", lifespan=lifespan)
    app.state.app_state = app_state
    app.state.settings = app_state.settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (health.router, store.router, streams.router):
        app.include_router(router)

    return app
