"""Weather providers — OpenWeather and WeatherAPI, forecast or current mode, plus fallback."""

import math
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

from tripweaver.schemas.results import FALLBACK_SOURCE, TemperatureBand, WeatherDay
from tripweaver.schemas.travel import WeatherParams
from tripweaver.services.provider_cascade import HttpProvider, SyntheticProvider
from tripweaver.services.providers import seeded_rng

# OpenWeather "main" groups → display conditions
OPENWEATHER_CONDITIONS = {
    "Clear": "Clear",
    "Clouds": "Cloudy",
    "Rain": "Rainy",
    "Snow": "Snowy",
    "Thunderstorm": "Stormy",
    "Drizzle": "Light Rain",
    "Mist": "Foggy",
    "Smoke": "Hazy",
    "Haze": "Hazy",
    "Dust": "Dusty",
    "Fog": "Foggy",
    "Sand": "Sandy",
    "Ash": "Ash",
    "Squall": "Windy",
    "Tornado": "Stormy",
}


def _clock(ts: int | None) -> str:
    if not ts:
        return ""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%H:%M")


def _mean(values: list[float]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0


class OpenWeatherProvider(HttpProvider[WeatherParams, WeatherDay]):
    """OpenWeather 5-day/3-hour forecast grouped per day, or current conditions."""

    name = "openweather"

    def __init__(self, api_key: str, base_url: str, timeout: float = 10.0, current: bool = False):
        super().__init__(base_url, timeout)
        self._api_key = api_key
        self._current = current

    async def fetch(self, params: WeatherParams) -> Any:
        self._require(self._api_key, what="OpenWeather API key")
        query = {"q": params.location, "appid": self._api_key, "units": "metric"}
        if self._current:
            return await self._request_json("GET", "/weather", params=query)
        # 3-hour intervals, 40 max
        query["cnt"] = min(params.days * 8, 40)
        return await self._request_json("GET", "/forecast", params=query)

    def transform(self, raw: Any, params: WeatherParams) -> list[WeatherDay]:
        if self._current:
            return [self._current_day(raw, params)]

        sunrise = _clock(raw.get("city", {}).get("sunrise"))
        sunset = _clock(raw.get("city", {}).get("sunset"))
        by_day: dict[date, list[dict]] = defaultdict(list)
        for entry in raw["list"]:
            day = datetime.fromtimestamp(entry["dt"], tz=timezone.utc).date()
            by_day[day].append(entry)

        days = []
        for day in sorted(by_day)[: params.days]:
            entries = by_day[day]
            first = entries[0]
            days.append(WeatherDay(
                id=f"{self.name}-{params.location}-{day.isoformat()}",
                date=day,
                temperature=TemperatureBand(
                    min=min(e["main"]["temp_min"] for e in entries),
                    max=max(e["main"]["temp_max"] for e in entries),
                    current=first["main"]["temp"],
                ),
                condition=OPENWEATHER_CONDITIONS.get(first["weather"][0]["main"], first["weather"][0]["main"]),
                icon=first["weather"][0].get("icon", ""),
                humidity=_mean([e["main"]["humidity"] for e in entries]),
                wind_speed=_mean([e.get("wind", {}).get("speed", 0) for e in entries]),
                precipitation=_mean([e.get("rain", {}).get("3h", 0) for e in entries]),
                sunrise=sunrise,
                sunset=sunset,
                source=self.name,
            ))
        return days

    def _current_day(self, raw: dict, params: WeatherParams) -> WeatherDay:
        today = datetime.now(timezone.utc).date()
        main = raw["main"]
        return WeatherDay(
            id=f"{self.name}-{params.location}-{today.isoformat()}",
            date=today,
            temperature=TemperatureBand(min=main["temp_min"], max=main["temp_max"], current=main["temp"]),
            condition=OPENWEATHER_CONDITIONS.get(raw["weather"][0]["main"], raw["weather"][0]["main"]),
            icon=raw["weather"][0].get("icon", ""),
            humidity=main.get("humidity", 0),
            wind_speed=raw.get("wind", {}).get("speed", 0),
            precipitation=raw.get("rain", {}).get("1h", 0),
            sunrise=_clock(raw.get("sys", {}).get("sunrise")),
            sunset=_clock(raw.get("sys", {}).get("sunset")),
            source=self.name,
        )


class WeatherApiProvider(HttpProvider[WeatherParams, WeatherDay]):
    """weatherapi.com forecast (up to 14 days) or current conditions."""

    name = "weatherapi"

    def __init__(self, api_key: str, base_url: str, timeout: float = 10.0, current: bool = False):
        super().__init__(base_url, timeout)
        self._api_key = api_key
        self._current = current

    async def fetch(self, params: WeatherParams) -> Any:
        self._require(self._api_key, what="WeatherAPI key")
        query = {"key": self._api_key, "q": params.location, "aqi": "no"}
        if self._current:
            return await self._request_json("GET", "/current.json", params=query)
        query["days"] = min(params.days, 14)
        return await self._request_json("GET", "/forecast.json", params=query)

    def transform(self, raw: Any, params: WeatherParams) -> list[WeatherDay]:
        if self._current:
            current = raw["current"]
            today = datetime.now(timezone.utc).date()
            return [WeatherDay(
                id=f"{self.name}-{params.location}-{today.isoformat()}",
                date=today,
                temperature=TemperatureBand(
                    min=current["temp_c"] - 2, max=current["temp_c"] + 2, current=current["temp_c"],
                ),
                condition=current["condition"]["text"],
                icon=current["condition"].get("icon", ""),
                humidity=current.get("humidity", 0),
                wind_speed=round(current.get("wind_kph", 0) / 3.6, 1),  # km/h → m/s
                precipitation=current.get("precip_mm", 0),
                uv_index=current.get("uv", 0),
                source=self.name,
            )]

        days = []
        for forecast_day in raw["forecast"]["forecastday"][: params.days]:
            day = forecast_day["day"]
            astro = forecast_day.get("astro", {})
            days.append(WeatherDay(
                id=f"{self.name}-{params.location}-{forecast_day['date']}",
                date=date.fromisoformat(forecast_day["date"]),
                temperature=TemperatureBand(
                    min=day["mintemp_c"], max=day["maxtemp_c"], current=day["avgtemp_c"],
                ),
                condition=day["condition"]["text"],
                icon=day["condition"].get("icon", ""),
                humidity=day.get("avghumidity", 0),
                wind_speed=round(day.get("maxwind_kph", 0) / 3.6, 1),
                precipitation=day.get("totalprecip_mm", 0),
                uv_index=day.get("uv", 0),
                sunrise=astro.get("sunrise", ""),
                sunset=astro.get("sunset", ""),
                source=self.name,
            ))
        return days


class FallbackWeatherProvider(SyntheticProvider[WeatherParams, WeatherDay]):
    """Smooth synthetic forecast starting today."""

    CONDITIONS = ["Clear", "Cloudy", "Partly Cloudy", "Light Rain", "Sunny"]
    ICONS = ["01d", "02d", "03d", "10d", "01d"]

    def __init__(self, today: Callable[[], date] | None = None):
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def generate(self, params: WeatherParams) -> list[WeatherDay]:
        start = self._today()
        rng = seeded_rng("weather", params.location, start.isoformat())
        days = []
        for i in range(params.days):
            condition = self.CONDITIONS[i % len(self.CONDITIONS)]
            base = 20 + math.sin(i * 0.5) * 10
            day = start + timedelta(days=i)
            days.append(WeatherDay(
                id=f"{FALLBACK_SOURCE}-{params.location}-{day.isoformat()}",
                date=day,
                temperature=TemperatureBand(min=round(base - 5), max=round(base + 5), current=round(base)),
                condition=condition,
                icon=self.ICONS[i % len(self.ICONS)],
                humidity=rng.randint(50, 79),
                wind_speed=rng.randint(5, 14),
                precipitation=rng.randint(5, 14) if "Rain" in condition else 0,
                uv_index=rng.randint(3, 7),
                sunrise="06:00",
                sunset="18:00",
                source=FALLBACK_SOURCE,
            ))
        return days
