"""Database models for the sql torrent store backend."""
from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel


class TorrentRecordRow(SQLModel, table=True):
    """Persisted catalog-to-torrent mapping row."""

    __tablename__ = "torrent_records"

    catalog_id: str = Field(primary_key=True)
    info_hash: str = Field(index=True)
    name: str = Field(default="Unknown")
    total_size: int = Field(default=0)
    file_count: int = Field(default=0)
    kind: str = Field(default="movie", index=True)
    added_at: datetime = Field(default_factory=datetime.utcnow, index=True)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
