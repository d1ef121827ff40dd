from datetime import date

import httpx
import pytest

from tripweaver.exceptions import GenerationError
from tripweaver.main import create_app
from tripweaver.services.flights_service import FlightsService
from tripweaver.services.hotels_service import HotelsService
from tripweaver.services.itinerary_orchestrator import ItineraryOrchestrator
from tripweaver.services.providers.weather import FallbackWeatherProvider
from tripweaver.services.weather_service import WeatherService
from tests.fakes import FakeLLM


@pytest.fixture
def app(cache, test_settings):
    app = create_app(with_lifespan=False)
    app.state.cache = cache
    app.state.flights = FlightsService(cache, test_settings)
    app.state.hotels = HotelsService(cache, test_settings)
    app.state.weather = WeatherService(
        cache, test_settings, fallback=FallbackWeatherProvider(today=lambda: date(2026, 5, 4)),
    )
    app.state.llm = FakeLLM(*[GenerationError("down")] * 5)
    app.state.orchestrator = ItineraryOrchestrator(cache, app.state.llm, test_settings)
    return app


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def test_flight_search_envelope_and_cache_flag(client):
    body = {"origin": "LIS", "destination": "JFK", "departure_date": "2026-05-04", "travelers": 2}

    first = (await client.post("/api/flights/search", json=body)).json()
    second = (await client.post("/api/flights/search", json=body)).json()

    assert first["success"] is True
    assert first["source"] == "flights-api"
    assert first["cached"] is False
    assert second["cached"] is True
    assert first["data"]["used_fallback"] is True
    assert len(first["data"]["items"]) == 5
    assert second["data"]["items"] == first["data"]["items"]
    assert {"timestamp", "response_time_ms"} <= set(first)


async def test_flight_search_rejects_return_before_departure(client):
    body = {"origin": "LIS", "destination": "JFK", "departure_date": "2026-05-04", "return_date": "2026-05-01"}
    response = await client.post("/api/flights/search", json=body)
    assert response.status_code == 400


async def test_flight_details_are_cached(client):
    first = (await client.get("/api/flights/fallback-1")).json()
    second = (await client.get("/api/flights/fallback-1")).json()
    assert first["data"]["id"] == "fallback-1"
    assert second["cached"] is True
    assert second["data"]["gate"] == first["data"]["gate"]


async def test_hotel_search_and_availability(client):
    search = await client.post("/api/hotels/search", json={
        "destination": "Lisbon", "check_in_date": "2026-05-04", "check_out_date": "2026-05-07",
    })
    assert search.status_code == 200
    assert len(search.json()["data"]["items"]) == 8

    availability = (await client.post("/api/hotels/fallback-1/availability", json={
        "check_in": "2026-05-04", "check_out": "2026-05-07", "guests": 2,
    })).json()
    assert availability["data"]["nights"] == 3
    room = availability["data"]["rooms"][0]
    assert room["total_price"] == room["price"] * 3


async def test_hotel_search_rejects_inverted_dates(client):
    response = await client.post("/api/hotels/search", json={
        "destination": "Lisbon", "check_in_date": "2026-05-07", "check_out_date": "2026-05-04",
    })
    assert response.status_code == 400


async def test_hotel_details(client):
    body = (await client.get("/api/hotels/fallback-2")).json()
    assert body["data"]["policies"]["check_in"] == "15:00"


async def test_weather_forecast_and_current(client):
    forecast = (await client.get("/api/weather/forecast/Lisbon", params={"days": 3})).json()
    current = (await client.get("/api/weather/current/Lisbon")).json()

    assert [d["date"] for d in forecast["data"]["items"]] == ["2026-05-04", "2026-05-05", "2026-05-06"]
    assert len(current["data"]["items"]) == 1


async def test_weather_days_out_of_range_is_422(client):
    response = await client.get("/api/weather/forecast/Lisbon", params={"days": 30})
    assert response.status_code == 422


async def test_itinerary_route_returns_plan(client):
    response = await client.post("/api/ai-planner/itinerary", json={
        "destination": {"name": "Lisbon", "country": "Portugal", "climate": "temperate"},
        "budget": 3000,
        "duration": 2,
        "travelers": 2,
        "departure_date": "2026-05-04",
    })
    body = response.json()

    assert body["success"] is True
    assert body["source"] == "ai-planner"
    assert body["data"]["source"] == "fallback"
    assert body["data"]["confidence"] == 0.5
    assert len(body["data"]["itinerary"]) == 2
    assert body["data"]["edge_cases"]["duration_conflict"]["detected"] is True


async def test_itinerary_route_validates_budget(client):
    response = await client.post("/api/ai-planner/itinerary", json={
        "destination": {"name": "Lisbon"}, "budget": 0, "duration": 2,
    })
    assert response.status_code == 422


async def test_cache_admin_routes(client, cache):
    await cache.set("flights:a", 1, 60)
    await cache.set("flights:b", 2, 60)
    await cache.set("hotels:a", 3, 60)

    stats = (await client.get("/api/cache/stats")).json()
    assert stats["data"] == {"connected": True, "keys": 3}

    cleared = (await client.delete("/api/cache/pattern/flights:*")).json()
    assert cleared["data"]["deleted"] == 2

    deleted = (await client.delete("/api/cache/hotels:a")).json()
    assert deleted["data"] == {"key": "hotels:a", "deleted": True}

    swept = (await client.post("/api/cache/clear-expired")).json()
    assert swept["data"]["deleted"] == 0


async def test_health(client):
    body = (await client.get("/api/health")).json()
    assert body["status"] == "ok"
    assert body["cache"] is True
