from __future__ import annotations

import math

from sqlalchemy import func
from sqlalchemy.orm import Session

from propcrawl.models.property import Property
from propcrawl.schemas.property import (
    Pagination,
    PropertyFilters,
    PropertyListResponse,
    PropertyRecord,
    PropertySummary,
)
from propcrawl.services.store_service import SqlPropertyStore

MAX_PAGE_SIZE = 100


def list_properties(
    db: Session,
    filters: PropertyFilters,
    page: int = 1,
    page_size: int = 20,
) -> PropertyListResponse:
    """Filtered, paginated view over active properties in stored order.

    A price bound excludes properties with no known price.
    """
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

    query = db.query(Property).filter(Property.is_active.is_(True))
    if filters.bedrooms is not None:
        query = query.filter(Property.bedrooms >= filters.bedrooms)
    if filters.bathrooms is not None:
        query = query.filter(Property.bathrooms >= filters.bathrooms)
    if filters.price_min is not None:
        query = query.filter(Property.price.is_not(None), Property.price >= filters.price_min)
    if filters.price_max is not None:
        query = query.filter(Property.price.is_not(None), Property.price <= filters.price_max)
    if filters.city:
        query = query.filter(Property.city.ilike(f"%{filters.city}%"))
    if filters.state:
        query = query.filter(func.lower(Property.state) == filters.state.lower())

    total_count = query.count()
    rows = (
        query.order_by(Property.position, Property.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    summaries = [PropertySummary.from_record(PropertyRecord.model_validate(r)) for r in rows]

    return PropertyListResponse(
        message=None if total_count else "No properties match the given filters",
        data=summaries,
        pagination=Pagination(
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=math.ceil(total_count / page_size),
        ),
        filters=filters,
    )


def get_property(db: Session, property_id: str) -> PropertyRecord:
    return SqlPropertyStore(db).get(property_id)
