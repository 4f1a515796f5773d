from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from propcrawl.database import get_db
from propcrawl.schemas.property import (
    PropertyDetailResponse,
    PropertyFilters,
    PropertyListResponse,
)
from propcrawl.services import property_service
from propcrawl.utils.exceptions import PropertyNotFoundError

router = APIRouter(prefix="/props")


@router.get("", response_model=PropertyListResponse)
def list_properties(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=property_service.MAX_PAGE_SIZE),
    bedrooms: int | None = Query(None, ge=0, description="Minimum bedrooms"),
    bathrooms: float | None = Query(None, ge=0, description="Minimum bathrooms"),
    price_min: int | None = Query(None, ge=0),
    price_max: int | None = Query(None, ge=0),
    city: str | None = None,
    state: str | None = None,
    db: Session = Depends(get_db),
) -> PropertyListResponse:
    filters = PropertyFilters(
        bedrooms=bedrooms,
        bathrooms=bathrooms,
        price_min=price_min,
        price_max=price_max,
        city=city,
        state=state,
    )
    return property_service.list_properties(db, filters, page=page, page_size=page_size)


@router.get("/{property_id}", response_model=PropertyDetailResponse)
def get_property(
    property_id: str,
    db: Session = Depends(get_db),
) -> PropertyDetailResponse:
    try:
        record = property_service.get_property(db, property_id)
    except PropertyNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return PropertyDetailResponse(data=record)
