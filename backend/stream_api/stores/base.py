"""Contract shared by torrent store backends."""
from __future__ import annotations

from typing import Protocol

from ..schemas import PurgeResultModel, StoreStatsModel, TorrentRecord


class TorrentStore(Protocol):
    """Mapping from catalog identifier to torrent identity with a reverse hash lookup."""

    def get(self, catalog_id: str) -> TorrentRecord | None:
        ...

    def put(self, catalog_id: str, record: TorrentRecord) -> TorrentRecord:
        ...

    def get_by_hash(self, info_hash: str) -> tuple[str, TorrentRecord] | None:
        ...

    def exists(self, catalog_id: str) -> bool:
        ...

    def touch(self, catalog_id: str) -> TorrentRecord | None:
        ...

    def delete(self, catalog_id: str) -> bool:
        ...

    def purge(self, days: int) -> PurgeResultModel:
        ...

    def stats(self) -> StoreStatsModel:
        ...

    def records(self) -> list[TorrentRecord]:
        ...

    def __len__(self) -> int:
        ...


def summarize(records: list[TorrentRecord]) -> StoreStatsModel:
    """Compute store statistics from a list of records."""

    return StoreStatsModel(
        total=len(records),
        movies=sum(1 for record in records if record.kind == "movie"),
        series=sum(1 for record in records if record.kind == "series"),
        oldest_added_at=min((record.added_at for record in records), default=None),
    )
