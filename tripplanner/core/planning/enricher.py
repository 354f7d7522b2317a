"""
Attach geocoordinates to every planned activity and derive calendar fields.
"""

import asyncio
import datetime as dt
from typing import Awaitable, Callable, List, Optional

import structlog

from tripplanner.core.planning.cache import GeocodeCache, normalize_query
from tripplanner.core.planning.geocoding import GeocodingClient
from tripplanner.core.planning.models import Activity, DayPlan, ParsedPlan, PlaceDetails, weekday_label

logger = structlog.get_logger(__name__)


class ItineraryEnricher:
    """
    Walks a parsed plan day by day, activity by activity.

    Uncached lookups are strictly serialized with ``min_delay_seconds`` between
    them so a run never exceeds the geocoding provider's request rate. Cache
    hits cost nothing and never wait. A failed or empty lookup leaves the
    activity unchanged.
    """

    def __init__(
        self,
        client: GeocodingClient,
        cache: GeocodeCache,
        min_delay_seconds: float = 1.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.cache = cache
        self.min_delay_seconds = min_delay_seconds
        self._sleep = sleep

    async def enrich(self, parsed: ParsedPlan, start_date: Optional[dt.date] = None) -> ParsedPlan:
        stats = {"cache_hits": 0, "lookups": 0, "resolved": 0}
        days = []
        for index, day in enumerate(parsed.plan):
            activities = []
            for activity in day.activities:
                activities.append(await self._enrich_activity(activity, stats))
            days.append(self._finish_day(day, index, start_date, activities))

        logger.info("itinerary_enriched", days=len(days), **stats)
        return parsed.model_copy(update={"plan": days})

    def _finish_day(self, day: DayPlan, index: int, start_date: Optional[dt.date],
                    activities: List[Activity]) -> DayPlan:
        date = day.date
        if date is None and start_date is not None:
            date = start_date + dt.timedelta(days=index)
        return day.model_copy(update={
            "day": index + 1,
            "date": date,
            # never trust the model's weekday
            "day_of_week": weekday_label(date) if date is not None else None,
            "activities": activities,
        })

    async def _enrich_activity(self, activity: Activity, stats: dict) -> Activity:
        if not activity.name or not activity.name.strip():
            return activity

        key = normalize_query(activity.name, self.client.area)
        entry = self.cache.get(key)
        if entry is not None:
            stats["cache_hits"] += 1
            logger.debug("geocode_cache_hit", key=key)
            return self._merge(activity, entry.place)

        if stats["lookups"] and self.min_delay_seconds > 0:
            await self._sleep(self.min_delay_seconds)
        stats["lookups"] += 1

        place = await self.client.resolve(activity.name)
        if place is None:
            return activity
        self.cache.put(key, place)
        stats["resolved"] += 1
        return self._merge(activity, place)

    @staticmethod
    def _merge(activity: Activity, place: PlaceDetails) -> Activity:
        return activity.model_copy(update={"location": place.location, "osm_url": place.osm_url})
