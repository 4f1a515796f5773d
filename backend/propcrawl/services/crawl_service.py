"""End-to-end crawl of the target search page.

One run fetches the search results page, reads its listing stubs and turns
each into a property record, one listing at a time with a fixed pause after
every item. At most one request is in flight at any time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import ValidationError
from sqlalchemy.orm import Session

from propcrawl.config import settings
from propcrawl.models.crawl_run import CrawlRun, CrawlStatus
from propcrawl.schemas.listing import ListingStub
from propcrawl.schemas.property import PropertyRecord
from propcrawl.services.scrapers.enricher import DetailEnricher
from propcrawl.services.scrapers.extractor import extract_data_island
from propcrawl.services.scrapers.fetcher import Fetcher
from propcrawl.services.scrapers.normalizer import normalize
from propcrawl.services.scrapers.utils import dig, find_key
from propcrawl.services.store_service import PropertyStore, SqlPropertyStore
from propcrawl.utils.exceptions import (
    CrawlFailedError,
    ExtractionFailure,
    FetchError,
    ScraperError,
)

logger = logging.getLogger(__name__)

SEARCH_RESULTS_PATH = (
    "props", "pageProps", "searchPageState", "cat1", "searchResults", "listResults",
)

# Served, flagged as degraded, only under fallback_policy="placeholder".
FALLBACK_LISTINGS: list[dict[str, Any]] = [
    {
        "zpid": "fallback-001",
        "address": "123 Mock Street",
        "addressCity": "Cincinnati",
        "addressState": "OH",
        "addressZipcode": "45202",
        "beds": 4,
        "baths": 2,
        "price": "$275,000",
        "area": 1800,
        "propertyType": "Multi-Family",
        "detailUrl": "/fallback-property-1/",
        "latLong": {"latitude": 39.1031, "longitude": -84.5120},
    },
    {
        "zpid": "fallback-002",
        "address": "456 Test Avenue",
        "addressCity": "Cincinnati",
        "addressState": "OH",
        "addressZipcode": "45203",
        "beds": 6,
        "baths": 3,
        "price": "$385,000",
        "area": 2400,
        "propertyType": "Multi-Family",
        "detailUrl": "/fallback-property-2/",
        "latLong": {"latitude": 39.1131, "longitude": -84.5220},
    },
    {
        "zpid": "fallback-003",
        "address": "789 Demo Lane",
        "addressCity": "Cincinnati",
        "addressState": "OH",
        "addressZipcode": "45204",
        "beds": 8,
        "baths": 4,
        "price": "$495,000",
        "area": 3200,
        "propertyType": "Multi-Family",
        "detailUrl": "/fallback-property-3/",
        "latLong": {"latitude": 39.0931, "longitude": -84.5020},
    },
]


@dataclass
class CrawlResult:
    """Outcome of one crawl.

    An empty ``properties`` list with ``degraded=False`` means the search
    page genuinely had no listings; a failed run raises instead.
    """

    properties: list[PropertyRecord] = field(default_factory=list)
    listings_found: int = 0
    succeeded: int = 0
    failed: int = 0
    degraded: bool = False
    source: Literal["live", "fallback"] = "live"
    errors: list[str] = field(default_factory=list)


def read_listing_results(island: dict[str, Any]) -> list[dict[str, Any]]:
    """Pull the raw listing entries out of a search page's data island."""
    results = dig(island, *SEARCH_RESULTS_PATH)
    if results is None:
        results = find_key(island, "listResults")
    if not isinstance(results, list):
        return []
    return [entry for entry in results if isinstance(entry, dict)]


class CrawlOrchestrator:
    """Drives one crawl of the configured search page.

    Every keyword argument defaults to the matching setting.
    """

    def __init__(
        self,
        fetcher: Fetcher | None = None,
        *,
        search_url: str | None = None,
        max_listings: int | None = None,
        request_delay_ms: int | None = None,
        search_fetch_retries: int | None = None,
        enrich_details: bool | None = None,
        detail_failure_policy: Literal["skip", "shallow"] | None = None,
        fallback_policy: Literal["fail", "placeholder"] | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._fetcher = fetcher or Fetcher()
        self._enricher = DetailEnricher(self._fetcher)
        self._search_url = search_url or settings.search_url
        self._max_listings = (
            max_listings if max_listings is not None else settings.max_listings_per_run
        )
        delay_ms = request_delay_ms if request_delay_ms is not None else settings.request_delay_ms
        self._delay_seconds = delay_ms / 1000
        self._retries = (
            search_fetch_retries if search_fetch_retries is not None
            else settings.search_fetch_retries
        )
        self._enrich_details = (
            enrich_details if enrich_details is not None else settings.enrich_details
        )
        self._detail_failure_policy = detail_failure_policy or settings.detail_failure_policy
        self._fallback_policy = fallback_policy or settings.fallback_policy
        self._sleep = sleep

    async def run(self) -> CrawlResult:
        """Crawl the search page and return the processed batch.

        Raises:
            CrawlFailedError: the search page could not be fetched or parsed
                and the fallback policy is "fail".
        """
        started = time.monotonic()
        logger.info(
            "Starting crawl of %s (cap=%d, delay=%.1fs, enrich=%s)",
            self._search_url, self._max_listings, self._delay_seconds, self._enrich_details,
        )

        async with self._fetcher:
            try:
                raw_listings = await self._fetch_search_results()
            except (FetchError, ExtractionFailure) as e:
                return self._handle_search_failure(e)

            result = CrawlResult(listings_found=len(raw_listings))
            if not raw_listings:
                logger.info("Search page has no listings")
                return result

            batch = raw_listings[: self._max_listings]
            if len(batch) < len(raw_listings):
                logger.info(
                    "Processing %d of %d listings (per-run cap)", len(batch), len(raw_listings)
                )

            for position, raw in enumerate(batch, start=1):
                record = await self._process_listing(raw, result)
                if record is not None:
                    result.properties.append(record)
                    result.succeeded += 1
                    logger.info("[%d/%d] Processed %s", position, len(batch), record.address)
                else:
                    result.failed += 1
                    logger.info("[%d/%d] Skipped listing", position, len(batch))
                await self._sleep(self._delay_seconds)

        logger.info(
            "Crawl complete in %.1fs: %d succeeded, %d failed, %d found",
            time.monotonic() - started, result.succeeded, result.failed, result.listings_found,
        )
        return result

    # -- internals -------------------------------------------------------------

    async def _fetch_search_results(self) -> list[dict[str, Any]]:
        attempts = self._retries + 1
        for attempt in range(1, attempts + 1):
            try:
                html = await self._fetcher.fetch(self._search_url)
                break
            except FetchError as e:
                if attempt == attempts:
                    raise
                backoff = self._delay_seconds * attempt
                logger.warning(
                    "Search page fetch failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt, attempts, e, backoff,
                )
                await self._sleep(backoff)

        island = extract_data_island(html)
        listings = read_listing_results(island)
        logger.info("Found %d listings on search page", len(listings))
        return listings

    async def _process_listing(
        self, raw: dict[str, Any], result: CrawlResult
    ) -> PropertyRecord | None:
        try:
            stub = ListingStub.model_validate(raw)
        except ValidationError as e:
            logger.warning("Unusable listing entry (zpid=%s): %s", raw.get("zpid"), e)
            result.errors.append(f"{raw.get('zpid')}: invalid listing entry")
            return None

        if not self._enrich_details:
            return self._search_only_record(stub, result)

        reason = "no property with photos on detail page"
        try:
            record = await self._enricher.enrich(stub)
        except ScraperError as e:
            logger.warning("Enrichment failed for %s: %s", stub.zpid, e)
            record, reason = None, str(e)
        except Exception as e:
            logger.exception("Unexpected error enriching %s", stub.zpid)
            record, reason = None, f"unexpected error: {e}"

        if record is not None:
            return record

        result.errors.append(f"{stub.zpid}: {reason}")
        if self._detail_failure_policy == "shallow":
            logger.info("Keeping search-result data for %s", stub.zpid)
            return self._search_only_record(stub, result)
        return None

    def _search_only_record(
        self, stub: ListingStub, result: CrawlResult
    ) -> PropertyRecord | None:
        try:
            return normalize(stub)
        except ValueError as e:
            logger.warning("Could not normalize listing %s: %s", stub.zpid, e)
            result.errors.append(f"{stub.zpid}: could not normalize listing")
            return None

    def _handle_search_failure(self, error: ScraperError) -> CrawlResult:
        if self._fallback_policy != "placeholder":
            logger.error("Crawl failed at search page: %s", error)
            raise CrawlFailedError(f"Search page crawl failed: {error}") from error

        logger.error("Crawl failed at search page (%s), serving placeholder dataset", error)
        properties = [normalize(ListingStub.model_validate(raw)) for raw in FALLBACK_LISTINGS]
        return CrawlResult(
            properties=properties,
            listings_found=len(properties),
            succeeded=len(properties),
            degraded=True,
            source="fallback",
            errors=[str(error)],
        )


@dataclass
class ScrapeSummary:
    result: CrawlResult
    run_id: int
    new_properties: int
    total_properties: int
    duration_ms: int


async def scrape_and_store(
    db: Session,
    orchestrator: CrawlOrchestrator | None = None,
    store: PropertyStore | None = None,
) -> ScrapeSummary:
    """Run a crawl, merge live results into the store and record the run.

    Degraded (placeholder) results are returned but never persisted.
    """
    orchestrator = orchestrator or CrawlOrchestrator()
    store = store or SqlPropertyStore(db)

    crawl_run = CrawlRun(status=CrawlStatus.IN_PROGRESS.value)
    db.add(crawl_run)
    db.commit()
    db.refresh(crawl_run)
    run_id = crawl_run.id

    started = time.monotonic()
    try:
        result = await orchestrator.run()
        if result.degraded:
            new_properties = 0
            total_properties = len(store.load_all())
            logger.warning("Not persisting %d placeholder properties", len(result.properties))
        else:
            outcome = store.merge_in(result.properties)
            new_properties, total_properties = outcome.added, outcome.total
    except Exception as e:
        if not isinstance(e, CrawlFailedError):
            logger.exception("Scrape run %d failed", run_id)
        db.rollback()
        crawl_run.status = CrawlStatus.FAILED.value
        crawl_run.error_message = str(e)
        crawl_run.duration_ms = int((time.monotonic() - started) * 1000)
        crawl_run.completed_at = datetime.now(timezone.utc)
        db.commit()
        raise

    duration_ms = int((time.monotonic() - started) * 1000)
    crawl_run.status = (
        CrawlStatus.DEGRADED.value if result.degraded else CrawlStatus.COMPLETED.value
    )
    crawl_run.source = result.source
    crawl_run.listings_found = result.listings_found
    crawl_run.succeeded = result.succeeded
    crawl_run.failed = result.failed
    crawl_run.new_properties = new_properties
    crawl_run.total_properties = total_properties
    crawl_run.duration_ms = duration_ms
    crawl_run.error_message = "; ".join(result.errors) or None
    crawl_run.completed_at = datetime.now(timezone.utc)
    db.commit()

    return ScrapeSummary(
        result=result,
        run_id=run_id,
        new_properties=new_properties,
        total_properties=total_properties,
        duration_ms=duration_ms,
    )


def list_crawl_runs(db: Session, skip: int = 0, limit: int = 20) -> list[CrawlRun]:
    return (
        db.query(CrawlRun)
        .order_by(CrawlRun.started_at.desc(), CrawlRun.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
