"""JSON document store mapping catalog identifiers to torrent identities."""
from __future__ import annotations

import logging
import os
import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from threading import RLock

from ...resolver.errors import StoreIOError
from ..schemas import PurgeResultModel, StoreDocument, StoreStatsModel, TorrentRecord
from ..utils.paths import ensure_parent_directory
from .base import summarize

logger = logging.getLogger(__name__)


class JsonTorrentStore:
    """Thread-safe whole-document store with an in-memory reverse hash index.

    The entire mapping is loaded on start and rewritten on every mutation.
    The hash index is only changed while the write lock is held, together
    with the record it points to.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._lock = RLock()
        self._records: dict[str, TorrentRecord] = {}
        self._hash_index: dict[str, set[str]] = {}
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        """Load the document from disk, starting empty when it is missing or corrupt."""

        with self._lock:
            self._records = {}
            self._hash_index = {}
            if not self._path.exists():
                logger.info("Creating new torrent store at %s", self._path)
                try:
                    self._write()
                except StoreIOError:
                    logger.exception("Unable to create torrent store at %s", self._path)
                return

            try:
                document = StoreDocument.model_validate_json(self._path.read_bytes())
            except (OSError, ValueError) as exc:
                logger.error("Failed to load torrent store %s, starting empty: %s", self._path, exc)
                return

            self._records = {
                str(catalog_id): record.model_copy(update={"catalog_id": str(catalog_id)})
                for catalog_id, record in document.torrents.items()
            }
            self._rebuild_hash_index()
            logger.info(
                "Loaded torrent store: %d records, %d indexed hashes",
                len(self._records),
                len(self._hash_index),
            )

    def _rebuild_hash_index(self) -> None:
        self._hash_index = {}
        for catalog_id, record in self._records.items():
            self._index(record.info_hash, catalog_id)

    def _index(self, info_hash: str, catalog_id: str) -> None:
        self._hash_index.setdefault(info_hash, set()).add(catalog_id)

    def _unindex(self, info_hash: str, catalog_id: str) -> None:
        holders = self._hash_index.get(info_hash)
        if holders is None:
            return
        holders.discard(catalog_id)
        if not holders:
            del self._hash_index[info_hash]

    def _write(self) -> None:
        payload = StoreDocument(torrents=self._records).model_dump_json(indent=2)
        try:
            target = ensure_parent_directory(self._path)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, target)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreIOError(f"Failed to write torrent store {self._path}: {exc}") from exc

    def get(self, catalog_id: str) -> TorrentRecord | None:
        """Return the record stored for ``catalog_id``."""

        with self._lock:
            return self._records.get(str(catalog_id))

    def exists(self, catalog_id: str) -> bool:
        with self._lock:
            return str(catalog_id) in self._records

    def put(self, catalog_id: str, record: TorrentRecord) -> TorrentRecord:
        """Upsert a record and persist the document before returning.

        Raises ``StoreIOError`` when the rewrite fails; the in-memory state
        keeps the new record in that case.
        """

        key = str(catalog_id)
        with self._lock:
            existing = self._records.get(key)
            stored = record.model_copy(
                update={
                    "catalog_id": key,
                    "added_at": existing.added_at if existing else record.added_at,
                    "updated_at": datetime.utcnow(),
                }
            )
            self._records[key] = stored
            if existing is not None and existing.info_hash != stored.info_hash:
                self._unindex(existing.info_hash, key)
            self._index(stored.info_hash, key)
            self._write()
            logger.info("Stored torrent %s -> %s", key, stored.info_hash[:8])
            return stored

    def get_by_hash(self, info_hash: str) -> tuple[str, TorrentRecord] | None:
        """Return ``(catalog_id, record)`` for a hash through the reverse index.

        Several catalog ids may share one torrent; the lowest id is returned.
        """

        wanted = info_hash.lower()
        with self._lock:
            for catalog_id in sorted(self._hash_index.get(wanted, ())):
                record = self._records.get(catalog_id)
                if record is not None and record.info_hash == wanted:
                    return catalog_id, record
            return None

    def touch(self, catalog_id: str) -> TorrentRecord | None:
        """Refresh ``updated_at`` after the record was re-validated against the daemon."""

        key = str(catalog_id)
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            record = record.model_copy(update={"updated_at": datetime.utcnow()})
            self._records[key] = record
            self._write()
            return record

    def delete(self, catalog_id: str) -> bool:
        key = str(catalog_id)
        with self._lock:
            record = self._records.pop(key, None)
            if record is None:
                return False
            self._unindex(record.info_hash, key)
            self._write()
            logger.info("Deleted torrent record %s", key)
            return True

    def purge(self, days: int) -> PurgeResultModel:
        """Remove records added more than ``days`` days ago."""

        cutoff = datetime.utcnow() - timedelta(days=days)
        with self._lock:
            expired = [key for key, record in self._records.items() if record.added_at < cutoff]
            for key in expired:
                record = self._records.pop(key)
                self._unindex(record.info_hash, key)
            if expired:
                self._write()
                logger.info("Purged %d torrent records older than %d days", len(expired), days)
        return PurgeResultModel(removed=len(expired), days=days)

    def stats(self) -> StoreStatsModel:
        return summarize(self.records())

    def records(self) -> list[TorrentRecord]:
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
