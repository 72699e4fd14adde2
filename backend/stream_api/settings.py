"""Runtime configuration for the Torrentarr stream API."""
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.paths import default_store_path


class StreamSettings(BaseSettings):
    """Environment-aware settings for the stream API service."""

    addon_key: str = Field(
        "change-me", description="Path secret required by addon-facing routes."
    )
    public_base_url: str = Field(
        "http://localhost:5000", description="Externally reachable base URL of this service."
    )
    host: str = Field("0.0.0.0", description="Interface the HTTP server binds to.")
    port: int = Field(5000, description="Port the HTTP server listens on.")
    log_level: str = Field("INFO", description="Root logging level.")

    qbit_host: str = Field(
        "http://localhost:8080", description="Base URL of the qBittorrent Web UI."
    )
    qbit_username: str = Field("admin", description="qBittorrent Web UI user.")
    qbit_password: str = Field("", description="qBittorrent Web UI password.")
    daemon_timeout: float = Field(
        10.0, description="Timeout in seconds for each daemon API call."
    )
    daemon_connect_attempts: int = Field(
        3, ge=1, description="Login attempts before the daemon is declared unreachable."
    )
    daemon_connect_backoff: float = Field(
        2.0, ge=0, description="Initial delay between login attempts, doubled each time."
    )
    connect_on_startup: bool = Field(
        default=False,
        description="Connect to the daemon during startup and abort when it is unreachable.",
    )

    torrent_source_url: str = Field(
        "https://lat-team.com/torrent/download/{catalog_id}.{api_key}",
        description="Download URL template for torrent files.",
    )
    torrent_source_api_key: str = Field(
        "", description="API key substituted into the torrent download URL."
    )
    torrent_source_timeout: float = Field(
        15.0, description="Timeout in seconds for torrent file downloads."
    )

    movies_path: str = Field("/downloads/movies", description="Daemon save path for movies.")
    series_path: str = Field(
        "/downloads/series",
        description="Daemon save path for series, also the base path sent to the streaming API.",
    )

    max_retries: int = Field(5, ge=1, description="Polling attempts before giving up.")
    retry_delay: float = Field(
        2.0, ge=0, description="Fixed delay in seconds between polling attempts."
    )
    resolve_timeout: float | None = Field(
        default=None,
        description="Optional overall deadline in seconds for resolving a single stream.",
    )

    stream_api_url: str = Field(
        "http://localhost:8000/api/stream", description="Endpoint converting file paths to URLs."
    )
    stream_api_token: str = Field("", description="Authorization header for the streaming API.")
    stream_api_verify_ssl: bool = Field(
        default=True, description="Verify TLS certificates of the streaming API."
    )
    stream_api_timeout: float = Field(
        10.0, description="Timeout in seconds for streaming API calls."
    )

    cache_duration: int = Field(
        3600, ge=1, description="Sliding expiry in seconds for resolved stream URLs."
    )

    store_backend: Literal["json", "sql"] = Field(
        default="json", description="Persistence backend for the torrent store."
    )
    store_path: str = Field(
        default_factory=default_store_path,
        description="JSON document used by the json store backend.",
    )
    database_url: str = Field(
        default="sqlite:///./data/torrents.db",
        description="Connection URL used by the sql store backend.",
    )
    database_echo: bool = Field(
        default=False, description="Enable SQL echo for debugging queries."
    )

    model_config = SettingsConfigDict(
        env_prefix="TORRENTARR_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
