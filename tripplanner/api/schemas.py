from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator

from tripplanner.core.planning.models import (
    Activity, DayPlan, GeneratedItinerary, Location, TripConstraints,
)
from tripplanner.core.trip_store import TripRecord, TripStatus

__all__ = [
    "Activity", "DayPlan", "GeneratedItinerary", "Location",
    "PlanTripRequest", "SaveTripRequest", "TripStatusUpdate", "TripRecord",
    "ErrorResponse", "HealthResponse",
]

# ===== PLANNING SCHEMAS =====

class PlanTripRequest(TripConstraints):
    """Body of POST /trip/plan-trip"""

    @field_validator("interests", mode="before")
    @classmethod
    def interests_as_list(cls, v):
        # accept a single comma-separated string as well as a list
        if isinstance(v, str):
            return [part for part in v.split(",")]
        return v


class ErrorResponse(BaseModel):
    error: str
    message: str
    raw_excerpt: Optional[str] = None
    errors: Optional[List[Dict[str, Any]]] = None

# ===== TRIP SCHEMAS =====

class SaveTripRequest(BaseModel):
    trip_name: str = Field(..., max_length=100, description="Name shown in the trip list")
    itinerary: GeneratedItinerary

    @field_validator('trip_name')
    @classmethod
    def validate_trip_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Trip name cannot be empty")
        return v.strip()


class TripStatusUpdate(BaseModel):
    status: TripStatus

# ===== HEALTH =====

class HealthResponse(BaseModel):
    status: str
    version: str
    components: Dict[str, str]
    timestamp: str
