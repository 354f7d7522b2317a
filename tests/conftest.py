import os

# Settings are read once per process; pin the test environment before any import
os.environ["ENABLE_RATE_LIMITING"] = "false"
os.environ["GEMINI_API_KEY"] = ""
os.environ["LOG_FILE"] = ""
os.environ["JWT_SECRET"] = "test-secret"

import json
from typing import List, Optional

import pytest
from geopy.location import Location as GeopyLocation

from tripplanner.core.planning.cache import InMemoryGeocodeCache
from tripplanner.core.planning.enricher import ItineraryEnricher
from tripplanner.core.planning.geocoding import GeocodingClient
from tripplanner.core.planning.orchestrator import TripPlanner
from tripplanner.core.planning.prompt import PromptBuilder

AREA = "Bangkok Central Business District"

TEMPLATE = (
    "Plan {numDays} days in {destination} from {start_date} to {end_date}. "
    "Interests: {interests}. Budget: {budget}. Style: {travel_style}."
)


class FakeGenerator:
    """Stands in for the Gemini model: returns canned text or raises."""

    def __init__(self, text: str = "", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.text


class FakeGeocoder:
    """geopy-compatible geocoder: maps place names to Nominatim raw results."""

    def __init__(self, results: Optional[dict] = None, default: Optional[dict] = None,
                 errors: Optional[dict] = None):
        self.results = results or {}
        self.default = default
        self.errors = errors or {}
        self.queries: List[str] = []

    def geocode(self, query, exactly_one=True, timeout=None):
        self.queries.append(query)
        name = query.rsplit(", " + AREA, 1)[0]
        if name in self.errors:
            raise self.errors[name]
        raw = self.results.get(name, self.default)
        if raw is None:
            return None
        return GeopyLocation(raw["display_name"], (float(raw["lat"]), float(raw["lon"])), raw)


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def nominatim_result(name: str, lat: str = "13.7460", lon: str = "100.5340",
                     osm_type: Optional[str] = "way", osm_id: Optional[int] = 123456) -> dict:
    raw = {
        "display_name": f"{name}, Pathum Wan, Bangkok, 10330, Thailand",
        "lat": lat,
        "lon": lon,
        "type": "attraction",
    }
    if osm_type:
        raw["osm_type"] = osm_type
    if osm_id:
        raw["osm_id"] = osm_id
    return raw


def plan_document(dates, activities_per_day=None, fenced: bool = False) -> str:
    """A well-formed model answer covering ``dates``."""
    activities_per_day = activities_per_day or [["Wat Pho", "Jim Thompson House"]] * len(dates)
    doc = {
        "plan": [
            {
                "date": d,
                "day_of_week": "Someday",
                "activities": [
                    {
                        "time": f"{9 + i * 3:02d}:00",
                        "name": name,
                        "description": f"Time at {name}.",
                        "estimated_duration_minutes": 90,
                        "type": "sight",
                    }
                    for i, name in enumerate(names)
                ],
                "notes": "",
            }
            for d, names in zip(dates, activities_per_day)
        ]
    }
    text = json.dumps(doc)
    return f"```json\n{text}\n```" if fenced else text


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_planner(recording_sleep):
    """Build a TripPlanner wired to fakes; returns (planner, generator, geocoder, cache)."""

    def _make(text: str = "", error: Optional[Exception] = None, geocoder: Optional[FakeGeocoder] = None,
              cache: Optional[InMemoryGeocodeCache] = None, timeout: Optional[float] = None):
        generator = FakeGenerator(text, error)
        geocoder = geocoder or FakeGeocoder(default=nominatim_result("Somewhere"))
        cache = cache if cache is not None else InMemoryGeocodeCache()
        enricher = ItineraryEnricher(
            client=GeocodingClient(geocoder, AREA),
            cache=cache,
            min_delay_seconds=1.1,
            sleep=recording_sleep,
        )
        planner = TripPlanner(
            prompt_builder=PromptBuilder(TEMPLATE, destination=AREA),
            generator=generator,
            enricher=enricher,
            destination=AREA,
            timeout=timeout,
        )
        return planner, generator, geocoder, cache

    return _make
