from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field, field_validator, model_validator


class UnitCountSource(StrEnum):
    DESCRIPTION = "description"
    BEDROOM_HEURISTIC = "bedroom_heuristic"


class ImageRef(BaseModel):
    url: str
    filename: str | None = None
    local_path: str | None = None
    width: int | None = None
    height: int | None = None
    is_hero: bool = False
    order_index: int = Field(default=0, ge=0)
    alt_text: str | None = None

    model_config = {"from_attributes": True}


class PropertyRecord(BaseModel):
    """Canonical property, as persisted and served.

    ``unit_count`` is an estimate; ``unit_count_source`` says whether it came
    from a "<N> unit" phrase in the listing description or from the
    bedroom-count heuristic.
    """

    id: str
    address: str
    city: str
    state: str
    zip_code: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    bedrooms: int = Field(default=0, ge=0)
    bathrooms: float = Field(default=0.0, ge=0)
    price: int | None = None
    square_footage: int | None = None
    lot_size: float | None = None
    year_built: int | None = None
    property_type: str
    unit_count: int = Field(default=1, ge=1)
    unit_count_source: UnitCountSource = UnitCountSource.BEDROOM_HEURISTIC
    is_multi_unit: bool = True

    zestimate: int | None = None
    rent_zestimate: int | None = None
    description: str | None = None

    source_url: str
    scraped_at: datetime
    is_active: bool = True

    images: list[ImageRef] = Field(default_factory=list)

    model_config = {"from_attributes": True}

    @field_validator("scraped_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def check_images(self) -> PropertyRecord:
        if not self.images:
            return self
        heroes = [img for img in self.images if img.is_hero]
        if len(heroes) != 1 or not self.images[0].is_hero:
            raise ValueError("exactly one hero image is required and it must come first")
        for position, image in enumerate(self.images):
            if image.order_index != position:
                raise ValueError("image order_index values must be dense from 0")
        return self

    @property
    def hero_image_url(self) -> str | None:
        for image in self.images:
            if image.is_hero:
                return image.url
        return None


class PropertySummary(BaseModel):
    id: str
    address: str
    city: str
    state: str
    bedrooms: int
    bathrooms: float
    price: int | None
    square_footage: int | None
    property_type: str
    unit_count: int
    unit_count_source: UnitCountSource
    source_url: str
    hero_image: str | None
    image_count: int
    scraped_at: datetime

    @classmethod
    def from_record(cls, record: PropertyRecord) -> PropertySummary:
        return cls(
            id=record.id,
            address=record.address,
            city=record.city,
            state=record.state,
            bedrooms=record.bedrooms,
            bathrooms=record.bathrooms,
            price=record.price,
            square_footage=record.square_footage,
            property_type=record.property_type,
            unit_count=record.unit_count,
            unit_count_source=record.unit_count_source,
            source_url=record.source_url,
            hero_image=record.hero_image_url,
            image_count=len(record.images),
            scraped_at=record.scraped_at,
        )


class PropertyFilters(BaseModel):
    bedrooms: int | None = None
    bathrooms: float | None = None
    price_min: int | None = None
    price_max: int | None = None
    city: str | None = None
    state: str | None = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int


class PropertyListResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: list[PropertySummary]
    pagination: Pagination
    filters: PropertyFilters


class PropertyDetailResponse(BaseModel):
    success: bool = True
    data: PropertyRecord
