"""FastAPI dependencies for the stream API."""
import secrets

from fastapi import Depends, HTTPException, Request, status

from .services import StreamCoordinator, TorrentResolver
from .state import AppState
from .stores import TorrentStore


def get_app_state(request: Request) -> AppState:
    """Resolve the shared application state from the FastAPI request."""
    return request.app.state.app_state


def get_store(app_state: AppState = Depends(get_app_state)) -> TorrentStore:
    return app_state.store


def get_resolver(app_state: AppState = Depends(get_app_state)) -> TorrentResolver:
    return app_state.resolver


def get_coordinator(app_state: AppState = Depends(get_app_state)) -> StreamCoordinator:
    return app_state.coordinator


def verify_addon_key(addon_key: str, app_state: AppState = Depends(get_app_state)) -> None:
    """Reject requests whose path secret does not match the configured addon key."""

    if not secrets.compare_digest(addon_key.encode(), app_state.settings.addon_key.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid_addon_key")
