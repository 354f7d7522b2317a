"""
Trip records: a generated itinerary saved on behalf of its owner.
"""

import threading
import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Protocol

import structlog
from pydantic import BaseModel, Field, field_validator

from tripplanner.core.planning.models import DayPlan, GeneratedItinerary, day_count

logger = structlog.get_logger(__name__)


class TripStatus(str, Enum):
    DRAFT = "draft"
    PLANNED = "planned"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TripRecord(BaseModel):
    id: str
    owner_id: str
    trip_name: str = Field(..., min_length=1, max_length=100)
    destination: str = Field(..., min_length=1, max_length=100)
    start_date: date
    end_date: date
    duration: int = Field(..., ge=1)
    itinerary: List[DayPlan]
    status: TripStatus = TripStatus.DRAFT
    created_at: datetime
    updated_at: datetime

    @field_validator("trip_name", "destination")
    @classmethod
    def strip_text(cls, v):
        return v.strip()


def build_trip_record(itinerary: GeneratedItinerary, owner_id: str, trip_name: str) -> TripRecord:
    """Turn a generated itinerary into a draft TripRecord."""
    now = datetime.now(timezone.utc)
    days = [
        day.model_copy(update={"day": index + 1})
        for index, day in enumerate(itinerary.plan)
    ]
    return TripRecord(
        id=uuid.uuid4().hex,
        owner_id=owner_id,
        trip_name=trip_name,
        destination=itinerary.destination,
        start_date=itinerary.start_date,
        end_date=itinerary.end_date,
        duration=day_count(itinerary.start_date, itinerary.end_date),
        itinerary=days,
        status=TripStatus.DRAFT,
        created_at=now,
        updated_at=now,
    )


class TripStore(Protocol):
    def create(self, record: TripRecord) -> TripRecord: ...

    def get(self, trip_id: str, owner_id: str) -> Optional[TripRecord]: ...

    def list(self, owner_id: str) -> List[TripRecord]: ...

    def update_status(self, trip_id: str, owner_id: str, status: TripStatus) -> Optional[TripRecord]: ...

    def delete(self, trip_id: str, owner_id: str) -> bool: ...


class InMemoryTripStore:
    """TripStore kept in process memory. Records are only visible to their owner."""

    def __init__(self):
        self._records: Dict[str, TripRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: TripRecord) -> TripRecord:
        with self._lock:
            self._records[record.id] = record
        logger.info("trip_created", trip_id=record.id, owner_id=record.owner_id)
        return record

    def get(self, trip_id: str, owner_id: str) -> Optional[TripRecord]:
        with self._lock:
            record = self._records.get(trip_id)
        if record is None or record.owner_id != owner_id:
            return None
        return record

    def list(self, owner_id: str) -> List[TripRecord]:
        with self._lock:
            records = [r for r in self._records.values() if r.owner_id == owner_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def update_status(self, trip_id: str, owner_id: str, status: TripStatus) -> Optional[TripRecord]:
        with self._lock:
            record = self._records.get(trip_id)
            if record is None or record.owner_id != owner_id:
                return None
            record = record.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
            self._records[trip_id] = record
        logger.info("trip_status_updated", trip_id=trip_id, status=status.value)
        return record

    def delete(self, trip_id: str, owner_id: str) -> bool:
        with self._lock:
            record = self._records.get(trip_id)
            if record is None or record.owner_id != owner_id:
                return False
            del self._records[trip_id]
        logger.info("trip_deleted", trip_id=trip_id)
        return True
