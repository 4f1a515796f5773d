"""Detail-page enrichment for listing stubs.

The detail page's data island carries a ``gdpClientCache`` map, usually as a
JSON-encoded string, whose keys name the GraphQL render query that produced
each entry, e.g.::

    {"ForSaleShopperPlatformFullRenderQuery{\"zpid\":123}": {"property": {...}}}

The entry we want is the render-query entry whose ``property`` has photos.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from propcrawl.config import settings
from propcrawl.schemas.listing import LatLong, ListingStub
from propcrawl.schemas.property import ImageRef, PropertyRecord
from propcrawl.services.scrapers.extractor import extract_data_island
from propcrawl.services.scrapers.fetcher import Fetcher
from propcrawl.services.scrapers.normalizer import normalize, resolve_detail_url
from propcrawl.services.scrapers.utils import find_key
from propcrawl.utils.exceptions import EnrichmentSkip
from propcrawl.utils.parsing import parse_float, parse_int, parse_price

logger = logging.getLogger(__name__)

CACHE_KEY = "gdpClientCache"
RENDER_QUERY_TAG = "RenderQuery"
PHOTO_LIST_KEYS = ("responsivePhotos", "photos", "originalPhotos")


def _photos_of(prop: dict[str, Any]) -> list[Any]:
    for key in PHOTO_LIST_KEYS:
        photos = prop.get(key)
        if isinstance(photos, list) and photos:
            return photos
    return []


def find_property_with_photos(island: dict[str, Any]) -> dict[str, Any] | None:
    """Return the cached property object that carries a non-empty photo list."""
    cache = find_key(island, CACHE_KEY)
    if isinstance(cache, str):
        try:
            cache = json.loads(cache)
        except ValueError:
            logger.warning("%s is not valid JSON", CACHE_KEY)
            return None
    if not isinstance(cache, dict):
        return None

    for key, value in cache.items():
        if RENDER_QUERY_TAG not in key or not isinstance(value, dict):
            continue
        prop = value.get("property")
        if isinstance(prop, dict) and _photos_of(prop):
            return prop
    return None


def _best_photo_source(photo: dict[str, Any]) -> tuple[str, int | None, int | None] | None:
    """Pick the widest JPEG source, else the photo's flat ``url``."""
    jpegs = (photo.get("mixedSources") or {}).get("jpeg") or []
    candidates = [src for src in jpegs if isinstance(src, dict) and src.get("url")]
    if candidates:
        best = max(candidates, key=lambda src: src.get("width") or 0)
        return best["url"], best.get("width"), best.get("height")
    url = photo.get("url")
    if isinstance(url, str) and url:
        return url, photo.get("width"), photo.get("height")
    return None


def image_filename(index: int) -> str:
    return "hero.jpg" if index == 0 else f"gallery_{index:02d}.jpg"


def build_image_refs(
    property_id: str,
    photos: list[Any],
    max_images: int,
) -> list[ImageRef]:
    """Turn the first ``max_images`` photos into ordered image references.

    Photos without a usable URL are dropped before numbering, so
    ``order_index`` stays dense and index 0 is always the hero.
    """
    images: list[ImageRef] = []
    for photo in photos[:max_images]:
        if not isinstance(photo, dict):
            continue
        source = _best_photo_source(photo)
        if source is None:
            continue
        url, width, height = source
        index = len(images)
        filename = image_filename(index)
        images.append(
            ImageRef(
                url=url,
                filename=filename,
                local_path=f"properties/{property_id}/{filename}",
                width=width,
                height=height,
                is_hero=index == 0,
                order_index=index,
                alt_text=photo.get("caption") or f"Property photo {index + 1}",
            )
        )
    return images


def _price_text(value: Any) -> str | None:
    price = parse_price(value)
    return str(price) if price is not None else None


def _format_home_type(home_type: Any) -> str | None:
    """Turn e.g. MULTI_FAMILY into Multi Family."""
    if not isinstance(home_type, str) or not home_type:
        return None
    return home_type.replace("_", " ").title()


def fill_gaps(stub: ListingStub, detail: dict[str, Any]) -> ListingStub:
    """Fill the stub's missing fields from the detail property; stub values win."""
    address = detail.get("address") if isinstance(detail.get("address"), dict) else {}
    zipcode = address.get("zipcode") or detail.get("zipcode")
    candidates: dict[str, Any] = {
        "address": address.get("streetAddress") or detail.get("streetAddress"),
        "address_city": address.get("city") or detail.get("city"),
        "address_state": address.get("state") or detail.get("state"),
        "address_zipcode": str(zipcode) if zipcode else None,
        "beds": parse_float(detail.get("bedrooms")),
        "baths": parse_float(detail.get("bathrooms")),
        "price": _price_text(detail.get("price")),
        "area": parse_float(detail.get("livingArea")),
        "lot_area_value": parse_float(detail.get("lotSize") or detail.get("lotAreaValue")),
        "year_built": parse_int(detail.get("yearBuilt")),
        "property_type": _format_home_type(detail.get("homeType")),
        "zestimate": parse_float(detail.get("zestimate")),
        "rent_zestimate": parse_float(detail.get("rentZestimate")),
    }
    updates = {
        field: value
        for field, value in candidates.items()
        if value is not None and getattr(stub, field) is None
    }

    lat_long = stub.lat_long or LatLong()
    latitude = lat_long.latitude if lat_long.latitude is not None else parse_float(detail.get("latitude"))
    longitude = lat_long.longitude if lat_long.longitude is not None else parse_float(detail.get("longitude"))
    if latitude is not None or longitude is not None:
        updates["lat_long"] = LatLong(latitude=latitude, longitude=longitude)

    return stub.model_copy(update=updates)


class DetailEnricher:
    """Builds a full property record from a stub and its detail page."""

    def __init__(self, fetcher: Fetcher, *, max_images: int | None = None) -> None:
        self._fetcher = fetcher
        self._max_images = (
            max_images if max_images is not None else settings.max_images_per_property
        )

    async def enrich(self, stub: ListingStub) -> PropertyRecord | None:
        """Fetch and merge the stub's detail page.

        Returns None when the page holds no property object with photos.
        Fetch and extraction errors propagate to the caller.
        """
        if not stub.detail_url:
            raise EnrichmentSkip(f"Listing {stub.zpid} has no detail URL")

        url = resolve_detail_url(stub.detail_url)
        html = await self._fetcher.fetch(url)
        island = extract_data_island(html)

        detail = find_property_with_photos(island)
        if detail is None:
            logger.warning("No property with photos on detail page for %s", stub.zpid)
            return None

        merged = fill_gaps(stub, detail)
        images = build_image_refs(stub.zpid, _photos_of(detail), self._max_images)
        if not images:
            logger.info("No resolvable photo URLs for %s, using placeholder", stub.zpid)

        description = detail.get("description")
        record = normalize(
            merged,
            images=images or None,
            description=description if isinstance(description, str) else None,
        )
        logger.info(
            "Enriched %s: %d images, unit_count=%d (%s)",
            record.id, len(record.images), record.unit_count, record.unit_count_source,
        )
        return record
