from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class StorageStats(BaseModel):
    total_size: str
    total_size_bytes: int
    total_files: int
    properties_count: int
    images_count: int
    warning: str | None = None


class OverviewStats(BaseModel):
    total_properties: int
    active_properties: int
    properties_with_images: int
    last_scraped_at: datetime | None


class PriceRanges(BaseModel):
    under_100k: int = 0
    from_100k_to_200k: int = 0
    from_200k_to_300k: int = 0
    from_300k_to_500k: int = 0
    over_500k: int = 0


class PricingStats(BaseModel):
    average_price: int
    min_price: int
    max_price: int
    properties_with_price: int
    price_ranges: PriceRanges


class CityCount(BaseModel):
    city: str
    count: int


class TypeCount(BaseModel):
    type: str
    count: int


class PropertyMixStats(BaseModel):
    average_units: int
    bedroom_distribution: dict[str, int]
    top_cities: list[CityCount]
    property_types: list[TypeCount]


class ActivityStats(BaseModel):
    recently_scraped: int
    total_images: int
    oldest_property: datetime | None


class StatsData(BaseModel):
    overview: OverviewStats
    pricing: PricingStats
    property: PropertyMixStats
    activity: ActivityStats
    storage: StorageStats


class StatsMeta(BaseModel):
    generated_at: datetime
    data_freshness: str


class StatsResponse(BaseModel):
    success: bool = True
    data: StatsData
    meta: StatsMeta
