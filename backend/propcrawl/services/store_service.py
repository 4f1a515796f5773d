"""Deduplicating merge of crawl batches into the persisted property collection."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from sqlalchemy import func
from sqlalchemy.orm import Session

from propcrawl.models.property import Property, PropertyImage
from propcrawl.schemas.property import PropertyRecord
from propcrawl.utils.exceptions import PropertyNotFoundError

logger = logging.getLogger(__name__)

# Serializes read-modify-write cycles across every store instance in the process
_write_lock = threading.Lock()


def merge(
    existing: list[PropertyRecord],
    incoming: list[PropertyRecord],
) -> list[PropertyRecord]:
    """Append incoming records whose id is not already present.

    Existing records always win and keep their order; a repeated id inside
    ``incoming`` keeps its first occurrence. Applying the same ``incoming``
    twice gives the same result as applying it once.
    """
    seen = {record.id for record in existing}
    merged = list(existing)
    for record in incoming:
        if record.id in seen:
            continue
        seen.add(record.id)
        merged.append(record)
    return merged


@dataclass
class MergeOutcome:
    added: int
    total: int
    properties: list[PropertyRecord] = field(default_factory=list)


class PropertyStore(ABC):
    """Durable, id-keyed collection of properties."""

    @abstractmethod
    def load_all(self) -> list[PropertyRecord]:
        """Read the full collection in insertion order."""

    @abstractmethod
    def _append(self, records: list[PropertyRecord]) -> None:
        """Persist records known to be new, all or nothing."""

    @abstractmethod
    def get(self, property_id: str) -> PropertyRecord:
        """Return one record; raises PropertyNotFoundError when unknown."""

    def merge_in(self, incoming: list[PropertyRecord]) -> MergeOutcome:
        """Read, merge and write back as one serialized step."""
        with _write_lock:
            existing = self.load_all()
            merged = merge(existing, incoming)
            new_records = merged[len(existing):]
            if new_records:
                self._append(new_records)
        dropped = len(incoming) - len(new_records)
        logger.info(
            "Merged %d incoming properties: %d new, %d already stored, %d total",
            len(incoming), len(new_records), dropped, len(merged),
        )
        return MergeOutcome(added=len(new_records), total=len(merged), properties=merged)


def record_to_orm(record: PropertyRecord, position: int = 0) -> Property:
    data = record.model_dump(exclude={"images"})
    data["unit_count_source"] = record.unit_count_source.value
    prop = Property(**data, position=position)
    prop.images = [PropertyImage(**image.model_dump()) for image in record.images]
    return prop


class SqlPropertyStore(PropertyStore):
    """SQLAlchemy-backed store."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def load_all(self) -> list[PropertyRecord]:
        rows = self._db.query(Property).order_by(Property.position, Property.id).all()
        return [PropertyRecord.model_validate(row) for row in rows]

    def get(self, property_id: str) -> PropertyRecord:
        row = self._db.get(Property, property_id)
        if row is None:
            raise PropertyNotFoundError(f"Property {property_id} not found")
        return PropertyRecord.model_validate(row)

    def _append(self, records: list[PropertyRecord]) -> None:
        start = (self._db.query(func.max(Property.position)).scalar() or 0) + 1
        try:
            self._db.add_all(
                [record_to_orm(record, start + i) for i, record in enumerate(records)]
            )
            self._db.commit()
        except Exception:
            logger.exception("Failed to persist %d properties, rolling back", len(records))
            self._db.rollback()
            raise
