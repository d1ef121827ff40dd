from datetime import date

import pytest

from tripweaver.config import Settings
from tripweaver.schemas.travel import Destination, TravelRequest
from tripweaver.services.cache_service import CacheService
from tests.fakes import FakeClock, FakeRedis


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cache(fake_redis, clock):
    return CacheService(client=fake_redis, clock=clock)


@pytest.fixture
def test_settings():
    # No .env, no credentials: every live provider reports itself unconfigured.
    return Settings(
        _env_file=None,
        openai_api_key="",
        anthropic_api_key="",
        amadeus_client_id="",
        amadeus_client_secret="",
        skyscanner_api_key="",
        google_flights_api_key="",
        rapidapi_key="",
        openweather_api_key="",
        weatherapi_api_key="",
        provider_timeout_seconds=0.5,
    )


@pytest.fixture
def lisbon():
    return Destination(
        id="lisbon",
        name="Lisbon",
        country="Portugal",
        city="Lisbon",
        description="Hilly coastal capital with tiled facades and trams",
        climate="temperate",
        best_months=[4, 5, 6, 9, 10],
    )


@pytest.fixture
def make_request(lisbon):
    def _make(**overrides) -> TravelRequest:
        fields = {
            "destination": lisbon,
            "budget": 5000,
            "duration": 5,
            "travelers": 2,
            "interests": ["food", "history"],
            "travel_style": "cultural",
            "climate": "temperate",
            "departure_date": date(2026, 5, 4),
        }
        fields.update(overrides)
        return TravelRequest(**fields)

    return _make
