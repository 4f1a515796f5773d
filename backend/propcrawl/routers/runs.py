from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from propcrawl.database import get_db
from propcrawl.schemas.crawl import CrawlRunResponse
from propcrawl.services import crawl_service

router = APIRouter(prefix="/runs")


@router.get("", response_model=list[CrawlRunResponse])
def list_runs(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> list[CrawlRunResponse]:
    """Most recent crawl runs first."""
    runs = crawl_service.list_crawl_runs(db, skip=skip, limit=limit)
    return [CrawlRunResponse.model_validate(r) for r in runs]
