from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from propcrawl.database import get_db
from propcrawl.schemas.crawl import ScrapeData, ScrapeResponse
from propcrawl.schemas.property import PropertySummary
from propcrawl.services import crawl_service
from propcrawl.utils.exceptions import CrawlFailedError

logger = logging.getLogger(__name__)

router = APIRouter()

SAMPLE_SIZE = 3


def get_orchestrator() -> crawl_service.CrawlOrchestrator:
    return crawl_service.CrawlOrchestrator()


@router.post("/scrape", response_model=ScrapeResponse)
async def scrape(
    db: Session = Depends(get_db),
    orchestrator: crawl_service.CrawlOrchestrator = Depends(get_orchestrator),
) -> ScrapeResponse:
    try:
        summary = await crawl_service.scrape_and_store(db, orchestrator)
    except CrawlFailedError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    result = summary.result
    if result.degraded:
        message = "Search page unavailable; returned placeholder data (not saved)"
    elif not result.properties:
        message = "No properties found"
    else:
        message = f"Scraped {result.succeeded} properties, {summary.new_properties} new"
    logger.info("Scrape request finished: %s", message)

    return ScrapeResponse(
        message=message,
        data=ScrapeData(
            run_id=summary.run_id,
            new_properties=summary.new_properties,
            total_properties=summary.total_properties,
            listings_found=result.listings_found,
            succeeded=result.succeeded,
            failed=result.failed,
            degraded=result.degraded,
            source=result.source,
            duration_ms=summary.duration_ms,
            timestamp=datetime.now(timezone.utc),
        ),
        samples=[PropertySummary.from_record(p) for p in result.properties[:SAMPLE_SIZE]],
    )
