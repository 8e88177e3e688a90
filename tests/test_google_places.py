import httpx
import pytest

from bizfinder.core.errors import UpstreamError
from bizfinder.providers.base import BoundingBox, Coordinate
from bizfinder.providers.google_places import (
    GooglePlacesConfig,
    GooglePlacesProvider,
    bias_circle,
    parse_place,
)

API_KEY = "test-key"

RAW_PLACE = {
    "place_id": "ChIJ123",
    "name": "Cafe Uno",
    "formatted_address": "1 Main St, Springfield, IL",
    "rating": 4.6,
    "user_ratings_total": 88,
    "business_status": "OPERATIONAL",
    "price_level": 2,
    "geometry": {"location": {"lat": 39.8, "lng": -89.6}},
}


def _provider(handler, **cfg):
    cfg.setdefault("base_backoff_s", 0.0)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GooglePlacesProvider(GooglePlacesConfig(api_key=API_KEY, **cfg), client=client)


def test_requires_api_key():
    with pytest.raises(ValueError):
        GooglePlacesProvider(GooglePlacesConfig(api_key=""))


def test_parse_place_maps_fields_and_drops_missing_ids():
    p = parse_place(RAW_PLACE)
    assert p.place_id == "ChIJ123"
    assert p.total_reviews == 88
    assert p.status == "OPERATIONAL"
    assert p.location == Coordinate(39.8, -89.6)
    assert parse_place({"name": "No id"}) is None


def test_bias_circle_covers_tile():
    box = BoundingBox(Coordinate(0.0, 0.0), Coordinate(0.1, 0.1))
    center, radius = bias_circle(box)
    assert center == Coordinate(0.05, 0.05)
    # Half the diagonal of a ~11 km square.
    assert 7800 < radius < 7900


async def test_text_search_sends_query_bias_and_token():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(200, json={"status": "OK", "results": [RAW_PLACE], "next_page_token": "NEXT"})

    box = BoundingBox(Coordinate(39.5, -90.0), Coordinate(40.0, -89.5))
    async with _provider(handler) as provider:
        page = await provider.text_search("cafes", box, page_token="TOKEN")

    params = seen[0].url.params
    assert seen[0].url.path == "/maps/api/place/textsearch/json"
    assert params["query"] == "cafes"
    assert params["key"] == API_KEY
    assert params["location"] == "39.750000,-89.750000"
    assert int(params["radius"]) > 0
    assert params["pagetoken"] == "TOKEN"
    assert page.status == "OK"
    assert page.next_page_token == "NEXT"
    assert [p.place_id for p in page.places] == ["ChIJ123"]


async def test_text_search_returns_error_statuses():
    def handler(request):
        assert "location" not in request.url.params
        assert "pagetoken" not in request.url.params
        return httpx.Response(200, json={"status": "INVALID_REQUEST", "results": []})

    async with _provider(handler) as provider:
        page = await provider.text_search("cafes")

    assert page.status == "INVALID_REQUEST"
    assert page.places == []


async def test_geocode_prefers_bounds_then_viewport():
    geometry = {
        "location": {"lat": 40.7, "lng": -74.0},
        "viewport": {"northeast": {"lat": 40.9, "lng": -73.7}, "southwest": {"lat": 40.5, "lng": -74.3}},
    }

    def handler(request):
        return httpx.Response(200, json={"status": "OK", "results": [{"geometry": geometry}]})

    async with _provider(handler) as provider:
        result = await provider.geocode("New York")

    assert result.location == Coordinate(40.7, -74.0)
    assert result.bounds == BoundingBox(Coordinate(40.5, -74.3), Coordinate(40.9, -73.7))


async def test_geocode_without_results():
    def handler(request):
        assert request.url.params["address"] == "Atlantis"
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    async with _provider(handler) as provider:
        result = await provider.geocode("Atlantis")

    assert result.status == "ZERO_RESULTS"
    assert result.location is None
    assert result.bounds is None


async def test_place_details_requests_fields():
    def handler(request):
        params = request.url.params
        assert params["place_id"] == "ChIJ123"
        assert "reviews" in params["fields"]
        return httpx.Response(200, json={"status": "OK", "result": {"name": "Cafe Uno"}})

    async with _provider(handler) as provider:
        resp = await provider.place_details("ChIJ123")

    assert resp.status == "OK"
    assert resp.result == {"name": "Cafe Uno"}


async def test_transient_http_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 2:
            return httpx.Response(503)
        return httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})

    async with _provider(handler) as provider:
        page = await provider.text_search("cafes")

    assert len(calls) == 2
    assert page.status == "ZERO_RESULTS"


async def test_persistent_failure_raises_upstream_error_without_key():
    def handler(request):
        return httpx.Response(500)

    async with _provider(handler, max_retries=1) as provider:
        with pytest.raises(UpstreamError) as info:
            await provider.place_details("ChIJ123")

    assert API_KEY not in str(info.value)
