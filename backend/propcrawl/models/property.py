from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from propcrawl.database import Base


class Property(Base):
    """Scraped property, keyed by the listing site's external id."""

    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    address: Mapped[str] = mapped_column(String(500))
    city: Mapped[str] = mapped_column(String(255), index=True)
    state: Mapped[str] = mapped_column(String(50), index=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, default=0.0)
    price: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    square_footage: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lot_size: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    property_type: Mapped[str] = mapped_column(String(100))
    unit_count: Mapped[int] = mapped_column(Integer, default=1)
    unit_count_source: Mapped[str] = mapped_column(String(30))
    is_multi_unit: Mapped[bool] = mapped_column(Boolean, default=True)

    zestimate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    rent_zestimate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    source_url: Mapped[str] = mapped_column(String(1000))
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    # Insertion order within the collection
    position: Mapped[int] = mapped_column(Integer, default=0, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    images: Mapped[list["PropertyImage"]] = relationship(
        back_populates="property",
        cascade="all, delete-orphan",
        order_by="PropertyImage.order_index",
        lazy="selectin",
    )


class PropertyImage(Base):
    __tablename__ = "property_images"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    property_id: Mapped[str] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(String(2000))
    filename: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    local_path: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_hero: Mapped[bool] = mapped_column(Boolean, default=False)
    order_index: Mapped[int] = mapped_column(Integer, default=0)
    alt_text: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    property: Mapped["Property"] = relationship(back_populates="images")
