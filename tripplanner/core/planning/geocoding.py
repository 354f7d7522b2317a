"""
Place lookup against OpenStreetMap Nominatim (via geopy).

Every query is scoped to the configured destination area and asks for the
single best match. Nominatim's usage policy requires an identifying
User-Agent with contact details on every request and at most one request per
second; the spacing is enforced by the enricher, which knows which calls are
uncached.
"""

from typing import Any, Optional

import structlog
from fastapi.concurrency import run_in_threadpool
from geopy.exc import (
    GeocoderAuthenticationFailure,
    GeocoderInsufficientPrivileges,
    GeocoderQuotaExceeded,
    GeocoderRateLimited,
    GeopyError,
)
from geopy.geocoders import Nominatim

from tripplanner.core.errors import GeocodeLookupFailed
from tripplanner.core.planning.models import Location, PlaceDetails
from tripplanner.core.settings import Settings

logger = structlog.get_logger(__name__)

OSM_BASE_URL = "https://www.openstreetmap.org"

# Rejections tied to who we are (identification / rate policy), as opposed to outages
_REJECTIONS = (
    GeocoderRateLimited,
    GeocoderInsufficientPrivileges,
    GeocoderAuthenticationFailure,
    GeocoderQuotaExceeded,
)


def to_place_details(raw: dict) -> PlaceDetails:
    """Map one Nominatim search result to PlaceDetails."""
    display_name = raw.get("display_name") or ""
    osm_type = raw.get("osm_type")
    osm_id = raw.get("osm_id")
    return PlaceDetails(
        name=display_name.split(",")[0].strip(),
        location=Location(lat=float(raw["lat"]), lng=float(raw["lon"])),
        osm_url=f"{OSM_BASE_URL}/{osm_type}/{osm_id}" if osm_type and osm_id else None,
    )


class GeocodingClient:
    def __init__(self, geocoder: Any, area: str, timeout: float = 10.0):
        self.geocoder = geocoder
        self.area = area
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeocodingClient":
        geocoder = Nominatim(
            user_agent=settings.NOMINATIM_USER_AGENT,
            domain=settings.NOMINATIM_DOMAIN,
            timeout=settings.GEOCODE_TIMEOUT_SECONDS,
        )
        return cls(geocoder, settings.DESTINATION_AREA, settings.GEOCODE_TIMEOUT_SECONDS)

    def build_query(self, place_name: str) -> str:
        return f"{place_name.strip()}, {self.area}"

    async def lookup(self, place_name: str) -> Optional[PlaceDetails]:
        """
        One outbound lookup. Returns None when the provider has no match and
        raises GeocodeLookupFailed when the provider errors or rejects us.
        """
        query = self.build_query(place_name)
        try:
            location = await run_in_threadpool(
                self.geocoder.geocode, query, exactly_one=True, timeout=self.timeout
            )
        except _REJECTIONS as e:
            raise GeocodeLookupFailed(query, f"{type(e).__name__}: {e}", rejected=True) from e
        except GeopyError as e:
            raise GeocodeLookupFailed(query, f"{type(e).__name__}: {e}") from e

        if location is None:
            return None
        try:
            return to_place_details(location.raw)
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeLookupFailed(query, f"unexpected response shape: {e}") from e

    async def resolve(self, place_name: str) -> Optional[PlaceDetails]:
        """Soft-failing lookup: provider problems are logged and read as no result."""
        try:
            place = await self.lookup(place_name)
        except GeocodeLookupFailed as e:
            if e.rejected:
                logger.error("geocode_rejected", query=e.query, reason=e.reason)
            else:
                logger.warning("geocode_failed", query=e.query, reason=e.reason)
            return None

        if place is None:
            logger.info("geocode_no_match", query=self.build_query(place_name))
        return place
