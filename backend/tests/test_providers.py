from datetime import date, datetime, timezone

import httpx
import pytest

from tripweaver.exceptions import ProviderError
from tripweaver.schemas.travel import FlightSearchParams, HotelSearchParams, WeatherParams
from tripweaver.services.providers.flights import (
    AmadeusFlightProvider,
    SkyscannerFlightProvider,
    format_iso_duration,
)
from tripweaver.services.providers.hotels import BookingHotelProvider
from tripweaver.services.providers.weather import (
    FallbackWeatherProvider,
    OpenWeatherProvider,
    WeatherApiProvider,
)
from tripweaver.services.weather_service import WeatherService


def mock_client(provider, handler, base_url="https://upstream.test"):
    provider._client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=base_url)
    return provider


@pytest.fixture
def flight_params():
    return FlightSearchParams(origin="LIS", destination="JFK", departure_date=date(2026, 5, 4))


AMADEUS_OFFER = {
    "id": "1",
    "validatingAirlineCodes": ["TP"],
    "itineraries": [{
        "duration": "PT8H15M",
        "segments": [
            {
                "carrierCode": "TP", "number": "201",
                "departure": {"iataCode": "LIS", "at": "2026-05-04T10:00:00", "terminal": "1"},
                "arrival": {"iataCode": "JFK", "at": "2026-05-04T13:15:00"},
                "aircraft": {"code": "339"},
            }
        ],
    }],
    "price": {"total": "512.40", "currency": "USD"},
    "pricingOptions": {"fareType": ["PUBLISHED"]},
    "travelerPricings": [{"fareDetailsBySegment": [{"cabin": "ECONOMY", "includedCheckedBags": {"quantity": 1}}]}],
}


async def test_amadeus_fetches_token_then_offers(flight_params):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path == "/v1/security/oauth2/token":
            return httpx.Response(200, json={"access_token": "tok", "expires_in": 1799})
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.params["originLocationCode"] == "LIS"
        return httpx.Response(200, json={"data": [AMADEUS_OFFER]})

    provider = mock_client(AmadeusFlightProvider("id", "secret", "https://upstream.test"), handler)
    offers = await provider.search(flight_params)

    assert seen == ["/v1/security/oauth2/token", "/v2/shopping/flight-offers"]
    offer = offers[0]
    assert offer.id == "amadeus-1"
    assert offer.airline == "TAP Air Portugal"
    assert offer.flight_number == "TP201"
    assert offer.price == 512.40
    assert offer.duration == "8h 15m"
    assert offer.stops == 0
    assert offer.refundable is True
    assert offer.source == "amadeus"
    await provider.close()


async def test_amadeus_without_credentials_is_provider_error(flight_params):
    with pytest.raises(ProviderError, match="not configured"):
        await AmadeusFlightProvider("", "", "https://upstream.test").search(flight_params)


async def test_http_error_becomes_provider_error(flight_params):
    provider = mock_client(
        SkyscannerFlightProvider("key", "https://upstream.test"),
        lambda request: httpx.Response(503, text="unavailable"),
    )
    with pytest.raises(ProviderError) as exc_info:
        await provider.search(flight_params)
    assert exc_info.value.provider == "skyscanner"
    assert exc_info.value.message == "HTTP 503"


async def test_non_json_body_becomes_provider_error(flight_params):
    provider = mock_client(
        SkyscannerFlightProvider("key", "https://upstream.test"),
        lambda request: httpx.Response(200, text="<html>oops</html>"),
    )
    with pytest.raises(ProviderError, match="not JSON"):
        await provider.search(flight_params)


async def test_skyscanner_converts_milli_prices(flight_params):
    payload = {"content": {"results": {
        "itineraries": {"it-1": {"legIds": ["leg-1"], "pricingOptions": [{"price": {"amount": "431500", "unit": "PRICE_UNIT_MILLI"}}]}},
        "legs": {"leg-1": {
            "originPlaceId": "p1", "destinationPlaceId": "p2",
            "departureDateTime": {"year": 2026, "month": 5, "day": 4, "hour": 9, "minute": 5},
            "arrivalDateTime": {"year": 2026, "month": 5, "day": 4, "hour": 12, "minute": 0},
            "durationInMinutes": 475, "stopCount": 0,
            "marketingCarrierIds": ["c1"], "segmentIds": ["s1"],
        }},
        "segments": {"s1": {"marketingFlightNumber": "209"}},
        "carriers": {"c1": {"name": "TAP Air Portugal", "iata": "TP"}},
        "places": {"p1": {"iata": "LIS"}, "p2": {"iata": "JFK"}},
    }}}
    provider = mock_client(SkyscannerFlightProvider("key", "https://upstream.test"),
                           lambda request: httpx.Response(200, json=payload))
    [offer] = await provider.search(flight_params)

    assert offer.price == 431.5
    assert offer.flight_number == "TP209"
    assert offer.departure.time == "2026-05-04T09:05:00"
    assert offer.duration == "7h 55m"


async def test_booking_price_is_per_night():
    params = HotelSearchParams(destination="Lisbon", check_in_date=date(2026, 5, 4), check_out_date=date(2026, 5, 7))
    payload = {"result": [{
        "hotel_id": 77, "hotel_name": "Alfama Inn", "min_total_price": 360,
        "review_score": 8.6, "address": "Rua A", "latitude": 38.7, "longitude": -9.1,
        "hotel_include_breakfast": 1, "distance": "0.8",
    }]}

    def handler(request):
        assert request.headers["X-RapidAPI-Host"] == "booking-com.p.rapidapi.com"
        return httpx.Response(200, json=payload)

    provider = mock_client(BookingHotelProvider("key"), handler, base_url="https://booking-com.p.rapidapi.com")
    [listing] = await provider.search(params)

    assert listing.price_per_night == 120.0
    assert listing.rating == 4.3
    assert listing.breakfast is True
    assert listing.distance_from_city_center == 0.8


async def test_openweather_groups_three_hour_entries_by_day():
    def entry(ts, tmin, tmax, main="Rain"):
        return {
            "dt": ts,
            "main": {"temp": (tmin + tmax) / 2, "temp_min": tmin, "temp_max": tmax, "humidity": 70},
            "weather": [{"main": main, "icon": "10d"}],
            "wind": {"speed": 4},
        }

    day1 = int(datetime(2026, 5, 4, 9, tzinfo=timezone.utc).timestamp())
    day2 = int(datetime(2026, 5, 5, 9, tzinfo=timezone.utc).timestamp())
    payload = {"list": [entry(day1, 14, 18), entry(day1 + 10800, 16, 22), entry(day2, 12, 17, "Clear")], "city": {}}
    provider = mock_client(OpenWeatherProvider("key", "https://upstream.test"),
                           lambda request: httpx.Response(200, json=payload))

    days = await provider.search(WeatherParams(location="Lisbon", days=2))

    assert [d.date for d in days] == [date(2026, 5, 4), date(2026, 5, 5)]
    assert days[0].temperature.min == 14
    assert days[0].temperature.max == 22
    assert days[0].condition == "Rainy"
    assert days[1].condition == "Clear"


async def test_weatherapi_current_mode_hits_current_endpoint():
    def handler(request):
        assert request.url.path == "/current.json"
        return httpx.Response(200, json={"current": {
            "temp_c": 21, "condition": {"text": "Sunny", "icon": "//x.png"},
            "humidity": 40, "wind_kph": 18, "precip_mm": 0, "uv": 6,
        }})

    provider = mock_client(WeatherApiProvider("key", "https://upstream.test", current=True), handler)
    [today] = await provider.search(WeatherParams(location="Lisbon", days=1))
    assert today.condition == "Sunny"
    assert today.wind_speed == 5.0


def test_fallback_weather_covers_requested_days_from_today():
    provider = FallbackWeatherProvider(today=lambda: date(2026, 5, 4))
    days = provider.generate(WeatherParams(location="Lisbon", days=10))

    assert len(days) == 10
    assert days[0].date == date(2026, 5, 4)
    assert days[-1].date == date(2026, 5, 13)
    assert all(d.source == "fallback" for d in days)


async def test_weather_service_forecast_and_current_fall_back(cache, test_settings):
    service = WeatherService(cache, test_settings, fallback=FallbackWeatherProvider(today=lambda: date(2026, 5, 4)))

    forecast = await service.get_forecast("Lisbon", days=5)
    current = await service.get_current("Lisbon")

    assert len(forecast.data.items) == 5
    assert forecast.data.used_fallback is True
    assert [d.date for d in forecast.data.items] == sorted(d.date for d in forecast.data.items)
    assert len(current.data.items) == 1


@pytest.mark.parametrize("raw, expected", [("PT6H30M", "6h 30m"), ("PT45M", "0h 45m"), ("", ""), ("P1D", "P1D")])
def test_format_iso_duration(raw, expected):
    assert format_iso_duration(raw) == expected
