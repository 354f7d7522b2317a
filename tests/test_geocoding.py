"""
Tests for Nominatim lookups through geopy.
"""

import pytest
from geopy.exc import GeocoderRateLimited, GeocoderUnavailable
from geopy.geocoders import Nominatim

from conftest import AREA, FakeGeocoder, nominatim_result
from tripplanner.core.errors import GeocodeLookupFailed
from tripplanner.core.planning.geocoding import GeocodingClient, to_place_details
from tripplanner.core.settings import Settings


class TestPlaceDetails:

    def test_maps_nominatim_result(self):
        place = to_place_details(nominatim_result("Jim Thompson House", osm_type="node", osm_id=42))
        assert place.name == "Jim Thompson House"
        assert place.location.lat == pytest.approx(13.746)
        assert place.location.lng == pytest.approx(100.534)
        assert place.osm_url == "https://www.openstreetmap.org/node/42"

    def test_no_osm_reference_means_no_url(self):
        place = to_place_details(nominatim_result("Siam Paragon", osm_type=None, osm_id=None))
        assert place.osm_url is None


class TestGeocodingClient:

    def test_query_is_scoped_to_area(self):
        client = GeocodingClient(FakeGeocoder(), AREA)
        assert client.build_query(" Wat Pho ") == f"Wat Pho, {AREA}"

    def test_from_settings_builds_identified_nominatim(self):
        client = GeocodingClient.from_settings(Settings(NOMINATIM_USER_AGENT="tests/1.0 (qa@example.com)"))
        assert isinstance(client.geocoder, Nominatim)
        assert client.geocoder.headers["User-Agent"] == "tests/1.0 (qa@example.com)"
        assert client.area == Settings().DESTINATION_AREA

    @pytest.mark.asyncio
    async def test_lookup_returns_place(self):
        geocoder = FakeGeocoder(results={"Wat Pho": nominatim_result("Wat Pho")})
        place = await GeocodingClient(geocoder, AREA).lookup("Wat Pho")
        assert place.name == "Wat Pho"
        assert geocoder.queries == [f"Wat Pho, {AREA}"]

    @pytest.mark.asyncio
    async def test_no_match_is_none(self):
        client = GeocodingClient(FakeGeocoder(), AREA)
        assert await client.lookup("Atlantis") is None
        assert await client.resolve("Atlantis") is None

    @pytest.mark.asyncio
    async def test_rate_limit_is_a_rejection(self):
        geocoder = FakeGeocoder(errors={"Wat Pho": GeocoderRateLimited("Too many requests", retry_after=1)})
        client = GeocodingClient(geocoder, AREA)
        with pytest.raises(GeocodeLookupFailed) as exc_info:
            await client.lookup("Wat Pho")
        assert exc_info.value.rejected
        assert exc_info.value.query == f"Wat Pho, {AREA}"

    @pytest.mark.asyncio
    async def test_outage_is_not_a_rejection(self):
        geocoder = FakeGeocoder(errors={"Wat Pho": GeocoderUnavailable("down")})
        with pytest.raises(GeocodeLookupFailed) as exc_info:
            await GeocodingClient(geocoder, AREA).lookup("Wat Pho")
        assert not exc_info.value.rejected

    @pytest.mark.asyncio
    async def test_resolve_swallows_provider_errors(self):
        geocoder = FakeGeocoder(errors={"Wat Pho": GeocoderRateLimited("Too many requests")})
        assert await GeocodingClient(geocoder, AREA).resolve("Wat Pho") is None
