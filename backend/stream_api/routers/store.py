"""Torrent store maintenance endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_store, verify_addon_key
from ..schemas import PurgeResultModel, StoreStatsModel, TorrentRecord
from ..stores import TorrentStore

router = APIRouter(
    prefix="/{addon_key}/store",
    tags=["store"],
    dependencies=[Depends(verify_addon_key)],
)


@router.get("/stats", response_model=StoreStatsModel)
def store_stats(store: TorrentStore = Depends(get_store)) -> StoreStatsModel:
    """Return aggregate counts over the persisted torrent mappings."""

    return store.stats()


@router.get("/{catalog_id}", response_model=TorrentRecord)
def show_record(catalog_id: str, store: TorrentStore = Depends(get_store)) -> TorrentRecord:
    """Return the torrent mapping stored for a catalog identifier."""

    record = store.get(catalog_id)
    if record is None:
        raise HTTPException(status_code=404, detail="record_not_found")
    return record


@router.post("/purge", response_model=PurgeResultModel)
def purge_records(
    days: int = Query(default=30, ge=0, description="Remove mappings added more than this many days ago."),
    store: TorrentStore = Depends(get_store),
) -> PurgeResultModel:
    """Remove stale mappings from the store."""

    return store.purge(days)
