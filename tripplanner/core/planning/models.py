"""
Typed shapes flowing through the planning pipeline.
"""

import datetime as dt
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

WEEKDAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class TripConstraints(BaseModel):
    """Caller-supplied trip parameters driving generation."""

    start_date: dt.date
    end_date: dt.date
    interests: List[str] = Field(..., min_length=1)
    budget: str
    travel_style: str

    @field_validator("interests")
    @classmethod
    def dedupe_interests(cls, v):
        seen = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        if not seen:
            raise ValueError("At least one interest is required")
        return seen

    @field_validator("budget", mode="before")
    @classmethod
    def budget_as_text(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("budget", "travel_style")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v.strip()

    @model_validator(mode="after")
    def check_date_order(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must be on or before end_date")
        return self

    @property
    def day_count(self) -> int:
        return day_count(self.start_date, self.end_date)


def day_count(start: dt.date, end: dt.date) -> int:
    """Inclusive number of calendar days between two dates."""
    return (end - start).days + 1


def weekday_label(d: dt.date) -> str:
    # isoweekday: Monday=1 .. Sunday=7, so modulo 7 puts Sunday first
    return WEEKDAYS[d.isoweekday() % 7]


class Location(BaseModel):
    lat: float
    lng: float


class PlaceDetails(BaseModel):
    name: str
    location: Location
    osm_url: Optional[str] = None


class Activity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    time: Optional[str] = None
    description: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    type: Optional[str] = None
    location: Optional[Location] = None
    osm_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Activity name cannot be empty")
        return v.strip()

    @field_validator("estimated_duration_minutes", mode="before")
    @classmethod
    def lenient_duration(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return int(float(v))
        except (TypeError, ValueError, OverflowError):
            return None

    @field_validator("time", "description", "type", mode="before")
    @classmethod
    def text_or_none(cls, v):
        if v is None:
            return None
        return str(v)


class DayPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    day: Optional[int] = None
    date: Optional[dt.date] = None
    day_of_week: Optional[str] = None
    activities: List[Activity]
    notes: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def lenient_date(cls, v):
        if isinstance(v, dt.date):
            return v
        if isinstance(v, str):
            try:
                return dt.date.fromisoformat(v.strip()[:10])
            except ValueError:
                return None
        return None

    @field_validator("day", mode="before")
    @classmethod
    def lenient_day(cls, v):
        return v if isinstance(v, int) and not isinstance(v, bool) else None

    @field_validator("notes", mode="before")
    @classmethod
    def notes_text(cls, v):
        return "" if v is None else str(v)


class ParsedPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    plan: List[DayPlan] = Field(..., min_length=1)


class GeneratedItinerary(BaseModel):
    trip_id: str
    destination: str
    start_date: dt.date
    end_date: dt.date
    plan: List[DayPlan]
    notes: str
