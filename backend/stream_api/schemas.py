"""Pydantic models used by the stream API, its stores and its external clients."""
from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ..resolver.episodes import TorrentFileEntry

TorrentKind = Literal["movie", "series"]


class TorrentRecord(BaseModel):
    """Persisted mapping between a catalog identifier and a torrent identity."""

    catalog_id: str = Field(description="External catalog identifier.")
    info_hash: str = Field(
        min_length=40, max_length=40, description="Lowercase hex SHA-1 of the info dictionary."
    )
    name: str = Field(default="Unknown", description="Torrent name from the info dictionary.")
    total_size: int = Field(default=0, ge=0, description="Total payload size in bytes.")
    file_count: int = Field(default=0, ge=0, description="Number of files in the torrent.")
    kind: TorrentKind = Field(default="movie")
    added_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("info_hash")
    @classmethod
    def _lowercase_hash(cls, value: str) -> str:
        return value.lower()


class StoreDocument(BaseModel):
    """Whole-document layout of the JSON torrent store."""

    torrents: dict[str, TorrentRecord] = Field(default_factory=dict)


class StoreStatsModel(BaseModel):
    """Aggregate counts over the torrent store."""

    total: int = 0
    movies: int = 0
    series: int = 0
    oldest_added_at: datetime | None = None


class PurgeResultModel(BaseModel):
    """Outcome of an age-based store purge."""

    removed: int = Field(ge=0)
    days: int = Field(ge=0)


class DaemonFileModel(BaseModel):
    """File entry returned by ``/api/v2/torrents/files``."""

    index: int
    name: str = Field(description="Path of the file relative to the torrent save path.")
    size: int = 0
    progress: float = 0.0
    priority: int = 1

    def to_entry(self) -> TorrentFileEntry:
        return TorrentFileEntry(index=self.index, relative_path=self.name)


class DaemonTorrentState(BaseModel):
    """Read-through view of a torrent as reported by the daemon."""

    hash: str
    name: str = ""
    content_path: str = ""
    save_path: str = ""
    progress: float = 0.0
    state: str = ""
    tags: list[str] = Field(default_factory=list)
    files: list[DaemonFileModel] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [tag.strip() for tag in value.split(",") if tag.strip()]
        return value


class HashVerification(BaseModel):
    """Result of looking a hash up in the daemon."""

    exists: bool
    state: DaemonTorrentState | None = None


class TransferStats(BaseModel):
    """Global transfer statistics of the daemon."""

    download_rate: int = Field(default=0, description="Download speed in bytes per second.")
    upload_rate: int = Field(default=0, description="Upload speed in bytes per second.")
    free_space: int | None = Field(default=None, description="Free disk space in bytes.")


class StreamResponse(BaseModel):
    """Body returned by the streaming URL service."""

    url: str | None = None


class DaemonHealthStatus(BaseModel):
    """Represents daemon connectivity status."""

    status: Literal["ok", "error"] = Field(default="ok")
    detail: str | None = Field(
        default=None, description="Optional diagnostic message when the daemon is unavailable."
    )
    transfer: TransferStats | None = None


class HealthStatus(BaseModel):
    """Service health payload."""

    status: Literal["ok"] = Field(default="ok")
    version: str = Field(default="0.1.0", description="Semantic version of the API service.")
    daemon: DaemonHealthStatus = Field(default_factory=DaemonHealthStatus)
    store_size: int = Field(default=0, description="Number of torrent records persisted.")
    cache_size: int = Field(default=0, description="Number of cached stream URLs.")


class CachedStatusModel(BaseModel):
    """Daemon presence for a batch of catalog identifiers."""

    cached: dict[str, bool] = Field(default_factory=dict)
