from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field, field_validator

from propcrawl.utils.parsing import parse_float, parse_int


class LatLong(BaseModel):
    latitude: float | None = None
    longitude: float | None = None

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def lenient_float(cls, value: Any) -> float | None:
        return parse_float(value)


class ListingStub(BaseModel):
    """One entry of the search page's ``listResults`` array.

    Only ``zpid`` is required; every other key is optional because the
    search payload omits fields freely. Numeric fields that can't be read
    as numbers become ``None`` instead of failing the whole entry.
    """

    zpid: str
    address: str | None = None
    address_city: str | None = Field(default=None, alias="addressCity")
    address_state: str | None = Field(default=None, alias="addressState")
    address_zipcode: str | None = Field(default=None, alias="addressZipcode")
    beds: float | None = None
    baths: float | None = None
    price: str | None = None
    area: float | None = None
    property_type: str | None = Field(default=None, alias="propertyType")
    detail_url: str | None = Field(default=None, alias="detailUrl")
    lat_long: LatLong | None = Field(default=None, alias="latLong")
    lot_area_value: float | None = Field(default=None, alias="lotAreaValue")
    year_built: int | None = Field(default=None, alias="yearBuilt")
    zestimate: float | None = None
    rent_zestimate: float | None = Field(default=None, alias="rentZestimate")

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}

    @field_validator("zpid")
    @classmethod
    def zpid_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("zpid must not be blank")
        return value

    @field_validator(
        "beds", "baths", "area", "lot_area_value", "zestimate", "rent_zestimate",
        mode="before",
    )
    @classmethod
    def lenient_float(cls, value: Any) -> float | None:
        return parse_float(value)

    @field_validator("price", mode="before")
    @classmethod
    def whole_number_price(cls, value: Any) -> Any:
        # 250000.0 must not become the string "250000.0"
        if isinstance(value, float):
            return int(value) if math.isfinite(value) else None
        return value

    @field_validator("year_built", mode="before")
    @classmethod
    def lenient_int(cls, value: Any) -> int | None:
        return parse_int(value)
