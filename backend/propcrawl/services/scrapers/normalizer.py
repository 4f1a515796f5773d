"""Map search-result listing stubs into canonical property records."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from propcrawl.config import settings
from propcrawl.schemas.listing import ListingStub
from propcrawl.schemas.property import ImageRef, PropertyRecord, UnitCountSource
from propcrawl.utils.parsing import parse_int, parse_price

logger = logging.getLogger(__name__)

_UNIT_PATTERN = re.compile(r"\b(\d+)[\s-]*units?\b", re.IGNORECASE)


def estimate_unit_count(
    bedrooms: int,
    description: str | None = None,
) -> tuple[int, UnitCountSource]:
    """Estimate how many units a building has.

    A "<N> unit" phrase in the description wins. Otherwise the bedroom count
    is used as a coarse proxy: 8+ bedrooms -> bedrooms // 2, 4+ -> 2, else 1.
    """
    if description:
        match = _UNIT_PATTERN.search(description)
        if match and int(match.group(1)) >= 1:
            return int(match.group(1)), UnitCountSource.DESCRIPTION
    if bedrooms >= 8:
        return bedrooms // 2, UnitCountSource.BEDROOM_HEURISTIC
    if bedrooms >= 4:
        return 2, UnitCountSource.BEDROOM_HEURISTIC
    return 1, UnitCountSource.BEDROOM_HEURISTIC


def resolve_detail_url(detail_url: str | None) -> str:
    """Make a listing's detail path absolute against the site origin."""
    detail_url = detail_url or ""
    if detail_url.startswith(("http://", "https://")):
        return detail_url
    return f"{settings.site_origin}{detail_url}"


def placeholder_image(property_id: str) -> ImageRef:
    return ImageRef(
        url=settings.placeholder_image_url.format(id=property_id),
        is_hero=True,
        order_index=0,
        alt_text="Property image",
    )


def normalize(
    stub: ListingStub,
    *,
    images: list[ImageRef] | None = None,
    description: str | None = None,
    scraped_at: datetime | None = None,
) -> PropertyRecord:
    """Build a :class:`PropertyRecord` from a listing stub.

    Args:
        stub: Search-result entry
        images: Real images; when omitted a single placeholder hero is used
        description: Listing text, used for the "<N> unit" unit-count match
        scraped_at: Timestamp to record, defaults to now (UTC)
    """
    bedrooms = int(stub.beds) if stub.beds is not None else 0
    bathrooms = float(stub.baths) if stub.baths is not None else 0.0
    unit_count, unit_source = estimate_unit_count(bedrooms, description)
    lat_long = stub.lat_long

    record = PropertyRecord(
        id=stub.zpid,
        address=stub.address or "Unknown Address",
        city=stub.address_city or settings.target_city,
        state=stub.address_state or settings.target_state,
        zip_code=stub.address_zipcode,
        latitude=lat_long.latitude if lat_long else None,
        longitude=lat_long.longitude if lat_long else None,
        bedrooms=max(bedrooms, 0),
        bathrooms=max(bathrooms, 0.0),
        price=parse_price(stub.price),
        square_footage=parse_int(stub.area),
        lot_size=stub.lot_area_value,
        year_built=stub.year_built,
        property_type=stub.property_type or settings.default_property_type,
        unit_count=unit_count,
        unit_count_source=unit_source,
        zestimate=parse_int(stub.zestimate),
        rent_zestimate=parse_int(stub.rent_zestimate),
        description=description,
        source_url=resolve_detail_url(stub.detail_url),
        scraped_at=scraped_at or datetime.now(timezone.utc),
        images=images or [placeholder_image(stub.zpid)],
    )
    logger.debug(
        "Normalized %s: %d bd, unit_count=%d (%s)",
        record.id, record.bedrooms, record.unit_count, record.unit_count_source,
    )
    return record
