"""Weather router — forecast and current conditions."""

import time

from fastapi import APIRouter, Depends, Query

from tripweaver.dependencies import get_weather_service
from tripweaver.schemas.envelope import ApiEnvelope
from tripweaver.services.weather_service import WeatherService

router = APIRouter()


@router.get("/forecast/{location}")
async def get_forecast(
    location: str,
    days: int = Query(default=7, ge=1, le=16),
    service: WeatherService = Depends(get_weather_service),
) -> ApiEnvelope:
    started = time.monotonic()
    result = await service.get_forecast(location, days)
    return ApiEnvelope.from_result(result, source="weather-api", started=started)


@router.get("/current/{location}")
async def get_current(
    location: str,
    service: WeatherService = Depends(get_weather_service),
) -> ApiEnvelope:
    started = time.monotonic()
    result = await service.get_current(location)
    return ApiEnvelope.from_result(result, source="weather-api", started=started)
