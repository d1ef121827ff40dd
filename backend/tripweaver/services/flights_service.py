"""Flight search service — the flights instantiation of the provider cascade."""

from datetime import datetime, timedelta, timezone
from typing import Sequence

from tripweaver.config import Settings
from tripweaver.schemas.results import AggregatedResult, FlightOffer
from tripweaver.schemas.travel import FlightSearchParams
from tripweaver.services.cache_service import CacheService, CachedResult
from tripweaver.services.pipeline_config import FLIGHT_LIMITS
from tripweaver.services.provider_cascade import Provider, ProviderCascade, SyntheticProvider
from tripweaver.services.providers import seeded_rng
from tripweaver.services.providers.flights import (
    AmadeusFlightProvider,
    FallbackFlightProvider,
    GoogleFlightsProvider,
    SkyscannerFlightProvider,
)
from tripweaver.telemetry import Telemetry


def flight_identity(flight: FlightOffer) -> tuple:
    return (flight.airline, flight.flight_number, flight.departure.time)


def default_flight_providers(settings: Settings) -> list[Provider]:
    """Amadeus first (best international coverage), then Skyscanner, then Google."""
    return [
        AmadeusFlightProvider(
            settings.amadeus_client_id,
            settings.amadeus_client_secret,
            settings.amadeus_base_url,
            timeout=min(settings.provider_timeout_seconds, 10.0),
        ),
        SkyscannerFlightProvider(
            settings.skyscanner_api_key,
            settings.skyscanner_base_url,
            timeout=settings.provider_timeout_seconds,
        ),
        GoogleFlightsProvider(
            settings.google_flights_api_key,
            settings.google_flights_base_url,
            timeout=settings.provider_timeout_seconds,
        ),
    ]


class FlightsService:
    """Cached flight search with ordered provider fallback, plus flight details."""

    def __init__(
        self,
        cache: CacheService,
        settings: Settings,
        *,
        providers: Sequence[Provider] | None = None,
        fallback: SyntheticProvider | None = None,
        telemetry: Telemetry | None = None,
    ):
        self.cache = cache
        self.settings = settings
        self._telemetry = telemetry or Telemetry().child("flights")
        self.cascade = ProviderCascade(
            "flights",
            providers if providers is not None else default_flight_providers(settings),
            fallback or FallbackFlightProvider(),
            item_model=FlightOffer,
            identity_key=flight_identity,
            sort_key=lambda f: f.price,
            limits=FLIGHT_LIMITS,
            cache=cache,
            ttl=settings.flight_search_cache_ttl,
            timeout=settings.provider_timeout_seconds,
            telemetry=self._telemetry,
        )

    async def search_flights(self, params: FlightSearchParams) -> CachedResult[AggregatedResult[FlightOffer]]:
        return await self.cascade.aggregate(params)

    async def get_flight_details(self, flight_id: str) -> CachedResult[dict]:
        """Operational details for one flight (gate, terminal, schedule)."""

        async def produce() -> dict:
            return self._mock_flight_details(flight_id)

        return await self.cache.get_or_set(
            f"flight-details:{flight_id}", produce, self.settings.flight_details_cache_ttl
        )

    @staticmethod
    def _mock_flight_details(flight_id: str) -> dict:
        """No upstream exposes live status on our plans; deterministic mock."""
        rng = seeded_rng("flight-details", flight_id)
        departure = datetime.now(timezone.utc).replace(
            hour=rng.choice([6, 8, 11, 14, 18]), minute=0, second=0, microsecond=0
        )
        boarding = departure - timedelta(minutes=30)
        arrival = departure + timedelta(hours=rng.randint(2, 9), minutes=rng.choice([0, 15, 30, 45]))
        return {
            "id": flight_id,
            "status": "Scheduled",
            "gate": f"{rng.choice('ABCDE')}{rng.randint(1, 40)}",
            "terminal": str(rng.randint(1, 3)),
            "boarding_time": boarding.strftime("%H:%M"),
            "estimated_departure": departure.strftime("%H:%M"),
            "estimated_arrival": arrival.strftime("%H:%M"),
            "actual_departure": None,
            "actual_arrival": None,
            "delay_minutes": 0,
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }

    async def close(self):
        await self.cascade.close()
