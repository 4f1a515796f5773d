from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from propcrawl.schemas.property import PropertyRecord
from propcrawl.schemas.stats import (
    ActivityStats,
    CityCount,
    OverviewStats,
    PriceRanges,
    PricingStats,
    PropertyMixStats,
    StatsData,
    StatsMeta,
    StatsResponse,
    StorageStats,
    TypeCount,
)
from propcrawl.services.storage_service import StorageManager
from propcrawl.services.store_service import SqlPropertyStore

TOP_CITIES = 10


def _price_ranges(prices: list[int]) -> PriceRanges:
    ranges = PriceRanges()
    for price in prices:
        if price < 100_000:
            ranges.under_100k += 1
        elif price < 200_000:
            ranges.from_100k_to_200k += 1
        elif price < 300_000:
            ranges.from_200k_to_300k += 1
        elif price < 500_000:
            ranges.from_300k_to_500k += 1
        else:
            ranges.over_500k += 1
    return ranges


def _bedroom_label(bedrooms: int) -> str:
    return f"{bedrooms} bedroom" if bedrooms == 1 else f"{bedrooms} bedrooms"


def compute_stats(
    properties: list[PropertyRecord],
    storage: StorageManager,
    now: datetime | None = None,
) -> StatsResponse:
    now = now or datetime.now(timezone.utc)
    active = [p for p in properties if p.is_active]
    prices = [p.price for p in active if p.price and p.price > 0]
    scraped = [p.scraped_at for p in active]

    bedrooms = Counter(p.bedrooms for p in active)
    cities = Counter(p.city or "Unknown" for p in active)
    types = Counter(p.property_type or "Unknown" for p in active)
    units = [p.unit_count for p in active]

    storage_stats = storage.get_storage_stats()
    warning = storage.get_disk_usage_warning(storage_stats)

    last_scraped = max(scraped) if scraped else None
    if last_scraped is not None:
        hours = round((now - last_scraped).total_seconds() / 3600)
        freshness = f"Last updated {hours} hours ago"
    else:
        freshness = "No data available"

    return StatsResponse(
        data=StatsData(
            overview=OverviewStats(
                total_properties=len(properties),
                active_properties=len(active),
                properties_with_images=sum(1 for p in active if p.images),
                last_scraped_at=last_scraped,
            ),
            pricing=PricingStats(
                average_price=round(sum(prices) / len(prices)) if prices else 0,
                min_price=min(prices, default=0),
                max_price=max(prices, default=0),
                properties_with_price=len(prices),
                price_ranges=_price_ranges(prices),
            ),
            property=PropertyMixStats(
                average_units=round(sum(units) / len(units)) if units else 0,
                bedroom_distribution={
                    _bedroom_label(count): bedrooms[count] for count in sorted(bedrooms)
                },
                top_cities=[
                    CityCount(city=city, count=n)
                    for city, n in cities.most_common(TOP_CITIES)
                ],
                property_types=[
                    TypeCount(type=kind, count=n) for kind, n in types.most_common()
                ],
            ),
            activity=ActivityStats(
                recently_scraped=sum(1 for t in scraped if t > now - timedelta(hours=24)),
                total_images=storage_stats["images_count"],
                oldest_property=min(scraped) if scraped else None,
            ),
            storage=StorageStats(**storage_stats, warning=warning["message"]),
        ),
        meta=StatsMeta(generated_at=now, data_freshness=freshness),
    )


def get_stats(db: Session, storage: StorageManager | None = None) -> StatsResponse:
    properties = SqlPropertyStore(db).load_all()
    return compute_stats(properties, storage or StorageManager())
