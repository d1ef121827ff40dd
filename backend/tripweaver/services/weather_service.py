"""Weather service — forecast and current-conditions instantiations of the provider cascade."""

from typing import Sequence

from tripweaver.config import Settings
from tripweaver.schemas.results import AggregatedResult, WeatherDay
from tripweaver.schemas.travel import WeatherParams
from tripweaver.services.cache_service import CacheService, CachedResult
from tripweaver.services.pipeline_config import CURRENT_WEATHER_LIMITS, CascadeLimits
from tripweaver.services.provider_cascade import Provider, ProviderCascade, SyntheticProvider
from tripweaver.services.providers.weather import (
    FallbackWeatherProvider,
    OpenWeatherProvider,
    WeatherApiProvider,
)
from tripweaver.telemetry import Telemetry


def forecast_limits(params: WeatherParams) -> CascadeLimits:
    # One complete forecast is enough; never return more days than asked for.
    return CascadeLimits(sufficiency=params.days, top_n=params.days)


def default_weather_providers(settings: Settings, current: bool = False) -> list[Provider]:
    timeout = min(settings.provider_timeout_seconds, 10.0)
    return [
        OpenWeatherProvider(
            settings.openweather_api_key, settings.openweather_base_url, timeout, current=current,
        ),
        WeatherApiProvider(
            settings.weatherapi_api_key, settings.weatherapi_base_url, timeout, current=current,
        ),
    ]


class WeatherService:
    def __init__(
        self,
        cache: CacheService,
        settings: Settings,
        *,
        providers: Sequence[Provider] | None = None,
        current_providers: Sequence[Provider] | None = None,
        fallback: SyntheticProvider | None = None,
        telemetry: Telemetry | None = None,
    ):
        self._telemetry = telemetry or Telemetry().child("weather")
        fallback = fallback or FallbackWeatherProvider()
        self.forecast_cascade = ProviderCascade(
            "weather",
            providers if providers is not None else default_weather_providers(settings),
            fallback,
            item_model=WeatherDay,
            identity_key=lambda d: d.date,
            sort_key=lambda d: d.date,
            limits=forecast_limits,
            cache=cache,
            ttl=settings.weather_forecast_cache_ttl,
            timeout=settings.provider_timeout_seconds,
            telemetry=self._telemetry,
        )
        self.current_cascade = ProviderCascade(
            "weather-current",
            current_providers if current_providers is not None
            else default_weather_providers(settings, current=True),
            fallback,
            item_model=WeatherDay,
            identity_key=lambda d: d.date,
            sort_key=None,
            limits=CURRENT_WEATHER_LIMITS,
            cache=cache,
            ttl=settings.weather_current_cache_ttl,
            timeout=settings.provider_timeout_seconds,
            telemetry=self._telemetry,
        )

    async def get_forecast(self, location: str, days: int = 7) -> CachedResult[AggregatedResult[WeatherDay]]:
        return await self.forecast_cascade.aggregate(WeatherParams(location=location, days=days))

    async def get_current(self, location: str) -> CachedResult[AggregatedResult[WeatherDay]]:
        return await self.current_cascade.aggregate(WeatherParams(location=location, days=1))

    async def close(self):
        await self.forecast_cascade.close()
        await self.current_cascade.close()
