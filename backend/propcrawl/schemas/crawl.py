from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from propcrawl.schemas.property import PropertySummary


class ScrapeData(BaseModel):
    run_id: int
    new_properties: int
    total_properties: int
    listings_found: int
    succeeded: int
    failed: int
    degraded: bool
    source: str
    duration_ms: int
    timestamp: datetime


class ScrapeResponse(BaseModel):
    success: bool = True
    message: str
    data: ScrapeData
    samples: list[PropertySummary]


class CrawlRunResponse(BaseModel):
    id: int
    status: str
    source: str | None
    listings_found: int
    succeeded: int
    failed: int
    new_properties: int
    total_properties: int
    duration_ms: int | None
    error_message: str | None
    started_at: datetime
    completed_at: datetime | None

    model_config = {"from_attributes": True}
