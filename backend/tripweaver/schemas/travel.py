from datetime import date, timedelta
from typing import Literal

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    lat: float = 0.0
    lng: float = 0.0


class Destination(BaseModel):
    id: str | None = None
    name: str
    country: str = ""
    city: str = ""
    description: str = ""
    image_url: str = ""
    price_range: Literal["budget", "mid-range", "luxury"] = "mid-range"
    climate: str = "temperate"
    best_months: list[int] = Field(default_factory=list)
    coordinates: Coordinates | None = None


class TravelRequest(BaseModel):
    """Traveler preferences plus the resolved destination."""

    destination: Destination
    budget: float = Field(gt=0)
    duration: int = Field(ge=1)
    travelers: int = Field(default=1, ge=1)
    interests: list[str] = Field(default_factory=list)
    travel_style: str = "any"
    climate: str = "any"
    group_type: str = "couple"
    pace: str = "moderate"
    accommodation_type: str = "any"
    accessibility: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    departure_city: str | None = None
    departure_date: date = Field(default_factory=date.today)

    @property
    def return_date(self) -> date:
        return self.departure_date + timedelta(days=self.duration)


class FlightSearchParams(BaseModel):
    origin: str
    destination: str
    departure_date: date
    return_date: date | None = None
    travelers: int = Field(default=1, ge=1)
    cabin_class: str = "economy"


class HotelSearchParams(BaseModel):
    destination: str
    check_in_date: date
    check_out_date: date
    destination_id: str | None = None
    travelers: int = Field(default=2, ge=1)

    @property
    def nights(self) -> int:
        return max(1, (self.check_out_date - self.check_in_date).days)


class WeatherParams(BaseModel):
    location: str
    days: int = Field(default=7, ge=1, le=16)
