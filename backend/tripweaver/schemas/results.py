from datetime import date, datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from tripweaver.schemas.travel import Coordinates

FALLBACK_SOURCE = "fallback"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderResult(BaseModel):
    """Normalized record produced by a provider transform."""

    id: str
    source: str
    last_updated: datetime = Field(default_factory=utcnow)


class FlightEndpoint(BaseModel):
    airport: str
    airport_code: str
    time: str
    city: str
    terminal: str | None = None


class FlightOffer(ProviderResult):
    airline: str
    airline_code: str
    flight_number: str
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: str = ""
    price: float
    currency: str = "USD"
    stops: int = 0
    aircraft: str = "Unknown"
    cabin_class: str = "Economy"
    baggage_allowance: str = "Not specified"
    refundable: bool = False
    changeable: bool = False


class HotelListing(ProviderResult):
    name: str
    rating: float = 0.0
    price_per_night: float
    currency: str = "USD"
    image_url: str = ""
    amenities: list[str] = Field(default_factory=list)
    location: str = ""
    description: str = ""
    availability: bool = True
    check_in: str = "15:00"
    check_out: str = "11:00"
    room_type: str = "Standard Room"
    cancellation_policy: str = ""
    breakfast: bool = False
    wifi: bool = True
    parking: bool = False
    pet_friendly: bool = False
    coordinates: Coordinates | None = None
    distance_from_airport: float | None = None
    distance_from_city_center: float | None = None


class TemperatureBand(BaseModel):
    min: float
    max: float
    current: float


class WeatherDay(ProviderResult):
    date: date
    temperature: TemperatureBand
    condition: str
    icon: str = ""
    humidity: float = 0
    wind_speed: float = 0
    precipitation: float = 0
    uv_index: float = 0
    sunrise: str = ""
    sunset: str = ""


class ProviderErrorRecord(BaseModel):
    provider: str
    error: str


ItemT = TypeVar("ItemT", bound=ProviderResult)


class AggregatedResult(BaseModel, Generic[ItemT]):
    """Combined, de-duplicated output of one cascade run."""

    items: list[ItemT]
    total_found: int
    sources_used: set[str]
    errors: list[ProviderErrorRecord] | None = None
    used_fallback: bool = False
