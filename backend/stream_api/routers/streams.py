"""Addon-facing redirect endpoints."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse

from ...resolver.errors import NotReadyError, TorrentarrError
from ..dependencies import get_coordinator, get_resolver, verify_addon_key
from ..schemas import CachedStatusModel
from ..services import StreamCoordinator, TorrentResolver
from ..stores import movie_cache_key, series_cache_key

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/{addon_key}",
    tags=["streams"],
    dependencies=[Depends(verify_addon_key)],
)


async def _redirect(
    request: Request,
    coordinator: StreamCoordinator,
    key: str,
    deliver: Callable[[], Awaitable[str]],
) -> Response:
    cached = coordinator.cached_url(key)
    if cached:
        return RedirectResponse(cached, status_code=307)
    if request.method == "HEAD":
        return Response(status_code=200)

    try:
        url = await deliver()
    except NotReadyError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TorrentarrError as exc:
        logger.error("Resolving %s failed: %s", key, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return RedirectResponse(url, status_code=307)


@router.api_route("/rd1/{catalog_id}", methods=["GET", "HEAD"], summary="Movie stream redirect")
async def movie_redirect(
    catalog_id: str,
    request: Request,
    coordinator: StreamCoordinator = Depends(get_coordinator),
) -> Response:
    """Redirect to the stream URL of a movie, resolving it on first request."""

    return await _redirect(
        request, coordinator, movie_cache_key(catalog_id), lambda: coordinator.deliver_movie(catalog_id)
    )


@router.api_route(
    "/rd2/{season}/{episode}/{catalog_id}",
    methods=["GET", "HEAD"],
    summary="Episode stream redirect",
)
async def episode_redirect(
    season: str,
    episode: str,
    catalog_id: str,
    request: Request,
    coordinator: StreamCoordinator = Depends(get_coordinator),
) -> Response:
    """Redirect to the stream URL of a single episode."""

    return await _redirect(
        request,
        coordinator,
        series_cache_key(catalog_id, season, episode),
        lambda: coordinator.deliver_episode(catalog_id, season, episode),
    )


@router.get("/cached", response_model=CachedStatusModel)
async def cached_status(
    ids: str = Query(..., description="Comma separated catalog identifiers."),
    resolver: TorrentResolver = Depends(get_resolver),
) -> CachedStatusModel:
    """Report whether each catalog id is stored and present in the daemon."""

    catalog_ids = [value.strip() for value in ids.split(",") if value.strip()]
    try:
        presence = await resolver.daemon_presence(catalog_ids)
    except TorrentarrError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return CachedStatusModel(cached=presence)
