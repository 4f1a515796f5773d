"""Tests for the HTTP API (TestClient, in-memory database, temp upload dir)."""

from __future__ import annotations

import os
import sys
import time
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import AsyncMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from propcrawl.main import app  # noqa: E402
from propcrawl.routers.scrape import get_orchestrator  # noqa: E402
from propcrawl.schemas.listing import ListingStub  # noqa: E402
from propcrawl.services.crawl_service import CrawlOrchestrator  # noqa: E402
from propcrawl.services.scrapers.normalizer import normalize  # noqa: E402
from propcrawl.services.stats_service import compute_stats  # noqa: E402
from propcrawl.services.store_service import SqlPropertyStore  # noqa: E402

from pages import (  # noqa: E402
    CONNECT_ERROR,
    SEARCH_URL,
    FakeSite,
    detail_page,
    detail_url,
    search_page,
    stub,
)


def seed(db, *entries):
    records = [
        normalize(ListingStub.model_validate(entry), scraped_at=datetime.now(timezone.utc))
        for entry in entries
    ]
    SqlPropertyStore(db).merge_in(records)
    return records


def use_orchestrator(site: FakeSite, **overrides) -> None:
    options = {
        "search_url": SEARCH_URL,
        "request_delay_ms": 0,
        "search_fetch_retries": 0,
        "sleep": AsyncMock(),
        "enrich_details": True,
        "detail_failure_policy": "skip",
        "fallback_policy": "fail",
    }
    options.update(overrides)
    app.dependency_overrides[get_orchestrator] = lambda: CrawlOrchestrator(
        site.fetcher(), **options
    )


class TestIndexAndHealth:
    def test_index_lists_endpoints(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert "properties" in body["endpoints"]
        assert body["storage"]["total_files"] == 0

    def test_health(self, client):
        assert client.get("/api/health").json()["status"] == "healthy"


class TestListProperties:
    def test_pagination(self, client, db):
        seed(db, *[stub(str(i)) for i in range(5)])

        body = client.get("/api/props", params={"page": 2, "page_size": 2}).json()

        assert [p["id"] for p in body["data"]] == ["2", "3"]
        assert body["pagination"] == {
            "page": 2, "page_size": 2, "total_count": 5, "total_pages": 3,
        }

    def test_page_size_limit(self, client):
        assert client.get("/api/props", params={"page_size": 101}).status_code == 422

    def test_bedroom_and_bathroom_minimums(self, client, db):
        seed(db, stub("1", beds=2, baths=1), stub("2", beds=6, baths=3), stub("3", beds=8, baths=2))

        body = client.get("/api/props", params={"bedrooms": 6, "bathrooms": 2.5}).json()

        assert [p["id"] for p in body["data"]] == ["2"]
        assert body["filters"]["bedrooms"] == 6

    def test_price_range_excludes_unknown_price(self, client, db):
        seed(
            db,
            stub("1", price="$150,000"),
            stub("2", price="$300,000"),
            stub("3", price="Contact agent"),
        )

        body = client.get("/api/props", params={"price_max": 200000}).json()
        assert [p["id"] for p in body["data"]] == ["1"]

        body = client.get("/api/props", params={"price_min": 100000}).json()
        assert [p["id"] for p in body["data"]] == ["1", "2"]

    def test_city_substring_and_state_exact(self, client, db):
        seed(
            db,
            stub("1", addressCity="Cincinnati", addressState="OH"),
            stub("2", addressCity="Covington", addressState="KY"),
            stub("3", addressCity="North Cincinnati", addressState="OHIO"),
        )

        body = client.get("/api/props", params={"city": "cincin"}).json()
        assert [p["id"] for p in body["data"]] == ["1", "3"]

        body = client.get("/api/props", params={"state": "oh"}).json()
        assert [p["id"] for p in body["data"]] == ["1"]

    def test_summary_carries_hero_image(self, client, db):
        seed(db, stub("1"))
        item = client.get("/api/props").json()["data"][0]
        assert item["image_count"] == 1
        assert item["hero_image"]

    def test_empty_collection(self, client):
        body = client.get("/api/props").json()
        assert body["data"] == []
        assert body["pagination"]["total_pages"] == 0


class TestPropertyDetail:
    def test_found(self, client, db):
        seed(db, stub("77", beds=8))
        body = client.get("/api/props/77").json()
        assert body["success"]
        assert body["data"]["unit_count"] == 4
        assert body["data"]["images"][0]["is_hero"]

    def test_unknown_id_is_404(self, client):
        assert client.get("/api/props/nope").status_code == 404


class TestScrapeEndpoint:
    def test_successful_scrape(self, client, db):
        site = FakeSite({
            SEARCH_URL: search_page([stub("1"), stub("2")]),
            detail_url("1"): detail_page("1"),
            detail_url("2"): detail_page("2"),
        })
        use_orchestrator(site)

        response = client.post("/api/scrape")

        assert response.status_code == 200
        body = response.json()
        assert body["data"]["new_properties"] == 2
        assert body["data"]["degraded"] is False
        assert len(body["samples"]) == 2
        assert client.get("/api/props").json()["pagination"]["total_count"] == 2

    def test_no_listings_is_success(self, client):
        use_orchestrator(FakeSite({SEARCH_URL: search_page([])}))

        body = client.post("/api/scrape").json()

        assert body["success"]
        assert body["message"] == "No properties found"
        assert body["data"]["total_properties"] == 0

    def test_crawl_failure_is_502(self, client):
        use_orchestrator(FakeSite({SEARCH_URL: CONNECT_ERROR}))

        response = client.post("/api/scrape")

        assert response.status_code == 502
        runs = client.get("/api/runs").json()
        assert runs[0]["status"] == "failed"

    def test_placeholder_data_returned_but_not_saved(self, client):
        use_orchestrator(FakeSite({SEARCH_URL: CONNECT_ERROR}), fallback_policy="placeholder")

        body = client.post("/api/scrape").json()

        assert body["data"]["degraded"] is True
        assert body["data"]["source"] == "fallback"
        assert len(body["samples"]) == 3
        assert client.get("/api/props").json()["data"] == []


class TestStats:
    def test_stats_endpoint(self, client, db):
        seed(
            db,
            stub("1", beds=8, price="$95,000", addressCity="Cincinnati"),
            stub("2", beds=4, price="$250,000", addressCity="Cincinnati"),
            stub("3", beds=1, price="$600,000", addressCity="Dayton"),
        )

        data = client.get("/api/stats").json()["data"]

        assert data["overview"]["total_properties"] == 3
        assert data["pricing"]["min_price"] == 95000
        assert data["pricing"]["max_price"] == 600000
        assert data["pricing"]["price_ranges"]["under_100k"] == 1
        assert data["pricing"]["price_ranges"]["over_500k"] == 1
        assert data["property"]["bedroom_distribution"] == {
            "1 bedroom": 1, "4 bedrooms": 1, "8 bedrooms": 1,
        }
        assert data["property"]["top_cities"][0] == {"city": "Cincinnati", "count": 2}
        assert data["activity"]["recently_scraped"] == 3

    def test_freshness_and_empty_collection(self, storage):
        now = datetime(2026, 5, 1, 12, tzinfo=timezone.utc)
        record = normalize(ListingStub(zpid="1"), scraped_at=now - timedelta(hours=5))

        assert compute_stats([record], storage, now=now).meta.data_freshness == (
            "Last updated 5 hours ago"
        )
        empty = compute_stats([], storage, now=now)
        assert empty.meta.data_freshness == "No data available"
        assert empty.data.pricing.average_price == 0


class TestUploads:
    def _write_image(self, storage, name="hero.jpg"):
        path = storage.properties_root / "123" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\xff\xd8\xff fake jpeg")
        return path

    def test_serves_file_with_cache_headers(self, client, storage):
        self._write_image(storage)

        response = client.get("/uploads/properties/123/hero.jpg")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["cache-control"] == "public, max-age=31536000"
        assert "last-modified" in response.headers
        assert response.content.startswith(b"\xff\xd8\xff")

    def test_unknown_extension_is_octet_stream(self, client, storage):
        self._write_image(storage, "notes.bin")
        response = client.get("/uploads/properties/123/notes.bin")
        assert response.headers["content-type"] == "application/octet-stream"

    def test_not_modified(self, client, storage):
        self._write_image(storage)
        later = datetime.fromtimestamp(time.time() + 60, tz=timezone.utc)

        response = client.get(
            "/uploads/properties/123/hero.jpg",
            headers={"If-Modified-Since": format_datetime(later, usegmt=True)},
        )

        assert response.status_code == 304

    def test_stale_if_modified_since_serves_file(self, client, storage):
        self._write_image(storage)
        earlier = datetime(2000, 1, 1, tzinfo=timezone.utc)

        response = client.get(
            "/uploads/properties/123/hero.jpg",
            headers={"If-Modified-Since": format_datetime(earlier, usegmt=True)},
        )

        assert response.status_code == 200

    def test_missing_file_is_404(self, client):
        assert client.get("/uploads/properties/123/none.jpg").status_code == 404

    def test_traversal_is_403(self, client, storage):
        (storage.root.parent / "secret.txt").write_text("nope")
        response = client.get("/uploads/..%2Fsecret.txt")
        assert response.status_code == 403
