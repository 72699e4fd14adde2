"""SQLModel-backed torrent store with an indexed info-hash column."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from threading import Lock

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...resolver.errors import StoreIOError
from ..models import TorrentRecordRow
from ..schemas import PurgeResultModel, StoreStatsModel, TorrentRecord
from .base import summarize

logger = logging.getLogger(__name__)


class SqlTorrentStore:
    """Thread-safe torrent store persisting one row per catalog identifier."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = Lock()

    def get(self, catalog_id: str) -> TorrentRecord | None:
        with Session(self._engine) as session:
            row = session.get(TorrentRecordRow, str(catalog_id))
            return _to_model(row) if row else None

    def exists(self, catalog_id: str) -> bool:
        return self.get(catalog_id) is not None

    def put(self, catalog_id: str, record: TorrentRecord) -> TorrentRecord:
        """Upsert a record, keeping the original ``added_at`` of an existing row."""

        key = str(catalog_id)
        try:
            with self._lock, Session(self._engine) as session:
                row = session.get(TorrentRecordRow, key)
                if row is None:
                    row = TorrentRecordRow(catalog_id=key, info_hash=record.info_hash, added_at=record.added_at)
                row.info_hash = record.info_hash
                row.name = record.name
                row.total_size = record.total_size
                row.file_count = record.file_count
                row.kind = record.kind
                row.updated_at = datetime.utcnow()
                session.add(row)
                session.commit()
                session.refresh(row)
                logger.info("Stored torrent %s -> %s", key, row.info_hash[:8])
                return _to_model(row)
        except SQLAlchemyError as exc:
            raise StoreIOError(f"Failed to persist torrent {key}: {exc}") from exc

    def get_by_hash(self, info_hash: str) -> tuple[str, TorrentRecord] | None:
        statement = (
            select(TorrentRecordRow)
            .where(TorrentRecordRow.info_hash == info_hash.lower())
            .order_by(TorrentRecordRow.catalog_id)
        )
        with Session(self._engine) as session:
            row = session.exec(statement).first()
            if row is None:
                return None
            return row.catalog_id, _to_model(row)

    def touch(self, catalog_id: str) -> TorrentRecord | None:
        try:
            with self._lock, Session(self._engine) as session:
                row = session.get(TorrentRecordRow, str(catalog_id))
                if row is None:
                    return None
                row.updated_at = datetime.utcnow()
                session.add(row)
                session.commit()
                session.refresh(row)
                return _to_model(row)
        except SQLAlchemyError as exc:
            raise StoreIOError(f"Failed to touch torrent {catalog_id}: {exc}") from exc

    def delete(self, catalog_id: str) -> bool:
        with self._lock, Session(self._engine) as session:
            row = session.get(TorrentRecordRow, str(catalog_id))
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True

    def purge(self, days: int) -> PurgeResultModel:
        cutoff = datetime.utcnow() - timedelta(days=days)
        with self._lock, Session(self._engine) as session:
            rows = session.exec(select(TorrentRecordRow).where(TorrentRecordRow.added_at < cutoff)).all()
            for row in rows:
                session.delete(row)
            session.commit()
        if rows:
            logger.info("Purged %d torrent records older than %d days", len(rows), days)
        return PurgeResultModel(removed=len(rows), days=days)

    def stats(self) -> StoreStatsModel:
        return summarize(self.records())

    def records(self) -> list[TorrentRecord]:
        with Session(self._engine) as session:
            return [_to_model(row) for row in session.exec(select(TorrentRecordRow)).all()]

    def __len__(self) -> int:
        with Session(self._engine) as session:
            return session.exec(select(func.count()).select_from(TorrentRecordRow)).one()


def _to_model(row: TorrentRecordRow) -> TorrentRecord:
    """Convert a database row into a store record."""

    return TorrentRecord(
        catalog_id=row.catalog_id,
        info_hash=row.info_hash,
        name=row.name,
        total_size=row.total_size,
        file_count=row.file_count,
        kind=row.kind,
        added_at=row.added_at,
        updated_at=row.updated_at,
    )
