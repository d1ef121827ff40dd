"""Hotel search service — the hotels instantiation of the provider cascade."""

from datetime import date, datetime, timezone
from typing import Sequence

from tripweaver.config import Settings
from tripweaver.schemas.results import AggregatedResult, HotelListing
from tripweaver.schemas.travel import HotelSearchParams
from tripweaver.services.cache_service import CacheService, CachedResult
from tripweaver.services.pipeline_config import HOTEL_LIMITS
from tripweaver.services.provider_cascade import Provider, ProviderCascade, SyntheticProvider
from tripweaver.services.providers import seeded_rng
from tripweaver.services.providers.hotels import (
    AirbnbHotelProvider,
    BookingHotelProvider,
    ExpediaHotelProvider,
    FallbackHotelProvider,
)
from tripweaver.telemetry import Telemetry


def hotel_identity(hotel: HotelListing) -> tuple:
    return (hotel.name.strip().lower(), hotel.location.strip().lower())


def default_hotel_providers(settings: Settings) -> list[Provider]:
    """Booking.com first (most comprehensive), then Expedia, then Airbnb."""
    timeout = settings.provider_timeout_seconds
    return [
        BookingHotelProvider(settings.rapidapi_key, timeout=timeout),
        ExpediaHotelProvider(settings.rapidapi_key, timeout=timeout),
        AirbnbHotelProvider(settings.rapidapi_key, timeout=timeout),
    ]


class HotelsService:
    """Cached hotel search with ordered provider fallback, details and availability."""

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
        self._telemetry = telemetry or Telemetry().child("hotels")
        self.cascade = ProviderCascade(
            "hotels",
            providers if providers is not None else default_hotel_providers(settings),
            fallback or FallbackHotelProvider(),
            item_model=HotelListing,
            identity_key=hotel_identity,
            sort_key=lambda h: h.price_per_night,
            limits=HOTEL_LIMITS,
            cache=cache,
            ttl=settings.hotel_search_cache_ttl,
            timeout=settings.provider_timeout_seconds,
            telemetry=self._telemetry,
        )

    async def search_hotels(self, params: HotelSearchParams) -> CachedResult[AggregatedResult[HotelListing]]:
        return await self.cascade.aggregate(params)

    async def get_hotel_details(self, hotel_id: str) -> CachedResult[dict]:
        async def produce() -> dict:
            return {
                "id": hotel_id,
                "description": "Detailed hotel description with amenities and policies",
                "policies": {
                    "check_in": "15:00",
                    "check_out": "11:00",
                    "cancellation": "Free cancellation up to 24 hours before arrival",
                    "pets": "Pets allowed with additional fee",
                    "smoking": "Non-smoking rooms available",
                },
                "nearby_attractions": ["City Center - 0.5 km", "Shopping Mall - 1.2 km", "Museum - 2.0 km"],
                "transportation": ["Airport Shuttle - $25", "Public Bus - $2", "Taxi - $15-20"],
                "last_updated": datetime.now(timezone.utc).isoformat(),
            }

        return await self.cache.get_or_set(
            f"hotel-details:{hotel_id}", produce, self.settings.hotel_details_cache_ttl
        )

    async def get_hotel_availability(
        self, hotel_id: str, check_in: date, check_out: date, guests: int
    ) -> CachedResult[dict]:
        """Room availability for a stay. Shorter TTL than details: inventory moves."""
        key = self.cache.generate_key("hotel-availability", {
            "hotel_id": hotel_id,
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "guests": guests,
        })

        async def produce() -> dict:
            rng = seeded_rng("availability", hotel_id, check_in.isoformat(), check_out.isoformat(), guests)
            nights = max(1, (check_out - check_in).days)
            rooms = [
                {
                    "type": "Standard Room",
                    "price": float(rng.randint(100, 199)),
                    "available": rng.randint(1, 5),
                    "amenities": ["WiFi", "TV", "Private Bathroom"],
                },
                {
                    "type": "Deluxe Room",
                    "price": float(rng.randint(200, 349)),
                    "available": rng.randint(1, 3),
                    "amenities": ["WiFi", "TV", "Private Bathroom", "Balcony", "City View"],
                },
            ]
            for room in rooms:
                room["total_price"] = round(room["price"] * nights, 2)
            return {
                "hotel_id": hotel_id,
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "nights": nights,
                "guests": guests,
                "available": True,
                "rooms": rooms,
                "last_updated": datetime.now(timezone.utc).isoformat(),
            }

        return await self.cache.get_or_set(key, produce, self.settings.hotel_availability_cache_ttl)

    async def close(self):
        await self.cascade.close()
