from tripplanner.core.planning.cache import InMemoryGeocodeCache, normalize_query
from tripplanner.core.planning.models import Location, PlaceDetails

WAT_PHO = PlaceDetails(name="Wat Pho", location=Location(lat=13.7465, lng=100.4927))


def test_normalize_query_ignores_case_and_padding():
    assert normalize_query("  Wat Pho ", "Bangkok") == normalize_query("wat pho", "BANGKOK ")
    assert normalize_query("Wat Pho", "Bangkok") == "wat pho, bangkok"


def test_fresh_entry_is_served(fake_clock):
    cache = InMemoryGeocodeCache(ttl_seconds=60, clock=fake_clock)
    cache.put("wat pho, bangkok", WAT_PHO)
    fake_clock.advance(59)
    entry = cache.get("wat pho, bangkok")
    assert entry is not None
    assert entry.place == WAT_PHO


def test_entry_expires_at_ttl(fake_clock):
    cache = InMemoryGeocodeCache(ttl_seconds=60, clock=fake_clock)
    cache.put("wat pho, bangkok", WAT_PHO)
    fake_clock.advance(60)
    assert cache.get("wat pho, bangkok") is None


def test_unknown_key_is_absent():
    assert InMemoryGeocodeCache().get("nowhere, bangkok") is None


def test_put_overwrites_and_restamps(fake_clock):
    cache = InMemoryGeocodeCache(ttl_seconds=60, clock=fake_clock)
    cache.put("wat pho, bangkok", WAT_PHO)
    fake_clock.advance(50)
    moved = WAT_PHO.model_copy(update={"location": Location(lat=1.0, lng=2.0)})
    cache.put("wat pho, bangkok", moved)
    fake_clock.advance(50)
    entry = cache.get("wat pho, bangkok")
    assert entry is not None
    assert entry.place.location.lat == 1.0
    assert len(cache) == 1
