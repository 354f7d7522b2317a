"""
Time-bounded cache of geocoding results.

Keys are normalized place queries. An entry is served only while it is younger
than the TTL; stale entries read as absent and are overwritten by the next put.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from tripplanner.core.planning.models import PlaceDetails

DEFAULT_TTL_SECONDS = 24 * 60 * 60


def normalize_query(place_name: str, area: str) -> str:
    return f"{place_name.strip().lower()}, {area.strip().lower()}"


@dataclass(frozen=True)
class GeocodeCacheEntry:
    place: PlaceDetails
    stored_at: float


class GeocodeCache(Protocol):
    def get(self, key: str) -> Optional[GeocodeCacheEntry]:
        ...

    def put(self, key: str, place: PlaceDetails) -> None:
        ...


class InMemoryGeocodeCache:
    """Process-local GeocodeCache. Safe for concurrent readers and writers."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, GeocodeCacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[GeocodeCacheEntry]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            return None
        return entry

    def put(self, key: str, place: PlaceDetails) -> None:
        entry = GeocodeCacheEntry(place=place, stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
