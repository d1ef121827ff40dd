import uuid
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from tripweaver.schemas.edge_cases import EdgeCaseReport
from tripweaver.schemas.results import FlightOffer, HotelListing, WeatherDay, utcnow
from tripweaver.schemas.travel import Destination

PlanSource = Literal["ai", "hybrid", "fallback"]


class Activity(BaseModel):
    id: str
    name: str
    description: str = ""
    duration: float = 2.0  # hours
    price: float = 0.0
    category: str = "cultural"
    rating: float = 4.0
    image_url: str = ""


class ItineraryActivity(BaseModel):
    activity: Activity
    slot: Literal["morning", "afternoon", "evening"] = "morning"
    start_time: str
    end_time: str
    travel_time: int = 0
    travel_method: str = "Walking"
    notes: str = ""


class Meal(BaseModel):
    type: str = "meal"
    time: str = "12:00"
    location: str = "Local restaurant"
    cuisine: str = "Local"
    estimated_cost: float = 15.0
    dietary_options: list[str] = Field(default_factory=lambda: ["Standard"])
    reservation_required: bool = False


class Transportation(BaseModel):
    type: str = "walking"
    from_location: str = "Hotel"
    to_location: str = "City center"
    departure_time: str = "09:00"
    arrival_time: str = "09:15"
    duration: int = 15  # minutes
    cost: float = 0.0
    notes: str = ""


class ItineraryDay(BaseModel):
    day: int
    date: date
    weather: WeatherDay
    activities: list[ItineraryActivity] = Field(default_factory=list)
    meals: list[Meal] = Field(default_factory=list)
    transportation: list[Transportation] = Field(default_factory=list)
    accommodation: HotelListing
    notes: str = ""
    estimated_cost: float = 0.0
    estimated_duration: float = 0.0

    @property
    def activity_cost(self) -> float:
        return sum(a.activity.price for a in self.activities)

    @property
    def meal_cost(self) -> float:
        return sum(m.estimated_cost for m in self.meals)

    @property
    def transportation_cost(self) -> float:
        return sum(t.cost for t in self.transportation)


class BudgetBreakdown(BaseModel):
    flights: float = 0.0
    accommodation: float = 0.0
    activities: float = 0.0
    meals: float = 0.0
    transportation: float = 0.0
    miscellaneous: float = 0.0
    total: float = 0.0
    currency: str = "USD"


class ParsedItinerary(BaseModel):
    """Day plan plus plan-level totals, as produced by the response parser."""

    itinerary: list[ItineraryDay]
    total_cost: float = 0.0
    budget_breakdown: BudgetBreakdown = Field(default_factory=BudgetBreakdown)
    recommendations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    confidence: float = Field(default=0.5, ge=0, le=1)
    reasoning: str = ""


class TravelPlan(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    destination: Destination
    flights: list[FlightOffer] = Field(default_factory=list)
    hotel: HotelListing | None = None
    itinerary: list[ItineraryDay]
    total_cost: float
    budget_breakdown: BudgetBreakdown
    confidence: float = Field(ge=0, le=1)
    recommendations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    alternatives: list[str] = Field(default_factory=list)
    reasoning: str = ""
    edge_cases: EdgeCaseReport = Field(default_factory=EdgeCaseReport)
    source: PlanSource
    last_updated: datetime = Field(default_factory=utcnow)
