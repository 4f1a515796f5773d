from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from propcrawl.database import get_db
from propcrawl.schemas.stats import StatsResponse
from propcrawl.services import stats_service
from propcrawl.services.storage_service import StorageManager, get_storage

router = APIRouter()


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    storage: StorageManager = Depends(get_storage),
) -> StatsResponse:
    return stats_service.get_stats(db, storage)
