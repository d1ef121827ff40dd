"""Response parser — turns untrusted generation text into a day-by-day plan.

Three tiers, tried in order:

1. ``StructuredParse``: the first balanced ``{...}`` object decodes and has a
   non-empty ``itinerary`` list.
2. ``HeuristicParse``: free text split on "Day N" markers, one or two generic
   activities synthesized per chunk.
3. ``TemplatedParse``: generation produced no text at all; one exploration
   activity per requested day.

Every tier returns exactly ``request.duration`` days and none of them raise.
"""

import json
import math
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, ClassVar, Union

from pydantic import BaseModel, ConfigDict, Field

from tripweaver.exceptions import ItineraryValidationError
from tripweaver.schemas.itinerary import (
    Activity,
    ItineraryActivity,
    ItineraryDay,
    Meal,
    ParsedItinerary,
    PlanSource,
    Transportation,
)
from tripweaver.schemas.results import FALLBACK_SOURCE, HotelListing, TemperatureBand, WeatherDay
from tripweaver.schemas.travel import TravelRequest
from tripweaver.services.pipeline_config import PlanningConfig, planning_config
from tripweaver.services.plan_costs import calculate_budget_breakdown, day_cost
from tripweaver.services.providers import seeded_rng
from tripweaver.telemetry import Telemetry

ACTIVITY_IMAGE = "https://via.placeholder.com/300x200?text=Activity"

SLOT_TIMES = {
    "morning": ("09:00", "12:00"),
    "afternoon": ("14:00", "17:00"),
    "evening": ("19:00", "22:00"),
}

CLIMATE_CONDITIONS = {
    "tropical": ["Sunny", "Partly Cloudy", "Light Rain"],
    "temperate": ["Clear", "Cloudy", "Light Rain"],
    "cold": ["Clear", "Cloudy", "Snow"],
}

DAY_MARKER = re.compile(r"day\s*\d+", re.IGNORECASE)
SENTENCE_END = re.compile(r"[.!?]")
NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
# Larger amounts in generated JSON are treated as unreadable.
MAX_AMOUNT = 1_000_000_000


@dataclass
class StructuredParse:
    plan: ParsedItinerary
    source: ClassVar[PlanSource] = "ai"


@dataclass
class HeuristicParse:
    plan: ParsedItinerary
    source: ClassVar[PlanSource] = "hybrid"


@dataclass
class TemplatedParse:
    plan: ParsedItinerary
    source: ClassVar[PlanSource] = "fallback"


ParseOutcome = Union[StructuredParse, HeuristicParse, TemplatedParse]


class TravelInsights(BaseModel):
    """Secondary-pass suggestions merged into an existing plan."""

    model_config = ConfigDict(populate_by_name=True)

    additional_activities: list[str] = Field(default_factory=list, alias="additionalActivities")
    dining_suggestions: list[str] = Field(default_factory=list, alias="diningSuggestions")
    cultural_tips: list[str] = Field(default_factory=list, alias="culturalTips")
    travel_tips: list[str] = Field(default_factory=list, alias="travelTips")
    potential_issues: list[str] = Field(default_factory=list, alias="potentialIssues")

    @property
    def recommendations(self) -> list[str]:
        return [
            *self.additional_activities,
            *self.dining_suggestions,
            *self.cultural_tips,
            *self.travel_tips,
        ]


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring, ignoring braces inside strings."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next opening brace.
        start = text.find("{", start + 1)
    return None


def _number(value: Any, default: float = 0.0) -> float:
    """Leading number of a loose value: ``"2 hours"`` → 2.0, ``"$25"`` → 25.0.

    Non-finite or out-of-range values count as unreadable and give ``default``.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        match = NUMBER.search(value)
        if not match:
            return default
        value = match.group()
    elif not isinstance(value, (int, float)):
        return default
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return default
    if not math.isfinite(number) or abs(number) > MAX_AMOUNT:
        return default
    return number


def _text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return str(value).strip() or default


def _strings(value: Any) -> list[str]:
    """Non-empty strings from a JSON array; anything else gives an empty list."""
    if not isinstance(value, list):
        return []
    return [_text(v) for v in value if _text(v)]


class ResponseParser:
    def __init__(self, config: PlanningConfig = planning_config, telemetry: Telemetry | None = None):
        self.config = config
        self._telemetry = telemetry or Telemetry().child("parser")

    def parse(self, text: str | None, request: TravelRequest) -> ParseOutcome:
        """Parse generation output; ``None`` means generation itself failed."""
        if text is None:
            return TemplatedParse(self._templated_plan(request))

        try:
            data = self._decode(text)
            return StructuredParse(self._structured_plan(data, request))
        except (ItineraryValidationError, ValueError, TypeError, OverflowError) as e:
            self._telemetry.warning("Structured itinerary parse failed, using text heuristic: %s", e)

        return HeuristicParse(self._heuristic_plan(text, request))

    # ─── Tier 1: structured JSON ───

    def _decode(self, text: str) -> dict:
        payload = extract_json_object(text)
        if payload is None:
            raise ItineraryValidationError("no JSON object in response")
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ItineraryValidationError("top-level JSON is not an object")
        days = data.get("itinerary")
        if not isinstance(days, list) or not days:
            raise ItineraryValidationError("itinerary must be a non-empty array")
        if not all(isinstance(d, dict) for d in days):
            raise ItineraryValidationError("itinerary entries must be objects")
        return data

    def _structured_plan(self, data: dict, request: TravelRequest) -> ParsedItinerary:
        days = [
            self._structured_day(raw, index, request)
            for index, raw in enumerate(data["itinerary"][: request.duration])
        ]
        warnings = _strings(data.get("warnings"))
        days = self._normalize_days(days, request, warnings)
        return self._assemble(
            days,
            confidence=self.config.confidence.structured,
            reasoning="AI-generated itinerary with validation and enhancement",
            recommendations=_strings(data.get("recommendations")),
            warnings=warnings,
            alternatives=_strings(data.get("alternatives")),
        )

    def _structured_day(self, raw: dict, index: int, request: TravelRequest) -> ItineraryDay:
        day_number = index + 1
        day_date = self._day_date(raw.get("date"), index, request)

        activities = []
        for slot in SLOT_TIMES:
            slot_data = raw.get(slot)
            if isinstance(slot_data, str):
                slot_data = {"activity": slot_data}
            if isinstance(slot_data, dict):
                activities.append(self._slot_activity(slot_data, slot, day_number))
        if not activities:
            activities.append(self.exploration_activity(day_number, request))

        raw_meals = raw.get("meals")
        meals = (
            [self._meal(m) for m in raw_meals if isinstance(m, dict)]
            if isinstance(raw_meals, list) and raw_meals
            else self.default_meals()
        )
        transportation = self._transportation(raw.get("transportation"))

        day = ItineraryDay(
            day=day_number,
            date=day_date,
            weather=self.weather_stub(request, day_date),
            activities=activities,
            meals=meals,
            transportation=transportation,
            accommodation=self.placeholder_accommodation(request),
            notes=_text(raw.get("notes")),
            estimated_duration=sum(a.activity.duration for a in activities),
        )
        day.estimated_cost = _number(raw.get("totalDayCost")) or day_cost(day)
        return day

    def _slot_activity(self, data: dict, slot: str, day_number: int) -> ItineraryActivity:
        start, end = SLOT_TIMES[slot]
        notes = _text(data.get("notes"))
        location = _text(data.get("location"))
        return ItineraryActivity(
            activity=Activity(
                id=f"ai-{day_number}-{slot}",
                name=_text(data.get("activity"), "Activity"),
                description=notes or location or "Planned activity",
                duration=_number(data.get("duration"), 2.0) or 2.0,
                price=max(0.0, _number(data.get("cost"))),
                category="cultural",
                rating=4.5,
                image_url=ACTIVITY_IMAGE,
            ),
            slot=slot,
            start_time=start,
            end_time=end,
            notes=notes,
        )

    @staticmethod
    def _meal(data: dict) -> Meal:
        dietary = _text(data.get("dietaryNotes"))
        return Meal(
            type=_text(data.get("type"), "meal"),
            time=_text(data.get("time"), "12:00"),
            location=_text(data.get("location"), "Local restaurant"),
            cuisine=_text(data.get("cuisine"), "Local"),
            estimated_cost=max(0.0, _number(data.get("cost"), 15.0)),
            dietary_options=[dietary] if dietary else ["Standard"],
        )

    def _transportation(self, data: Any) -> list[Transportation]:
        if not isinstance(data, dict) or not data:
            return self.default_transportation()
        return [Transportation(
            type=_text(data.get("method"), "walking").lower(),
            from_location="Previous location",
            to_location="Next location",
            departure_time="After activity",
            arrival_time="Before next activity",
            duration=15,
            cost=max(0.0, _number(data.get("cost"))),
            notes=_text(data.get("notes"), "Local transportation"),
        )]

    # ─── Tier 2: plain-text heuristic ───

    def _heuristic_plan(self, text: str, request: TravelRequest) -> ParsedItinerary:
        chunks = DAY_MARKER.split(text)
        if len(chunks) > 1:
            chunks = chunks[1:]  # text before "Day 1" is preamble
        chunks = [c.strip().lstrip(":-.) ").strip() for c in chunks]
        chunks = [c for c in chunks if c]

        days = []
        for index, chunk in enumerate(chunks[: request.duration]):
            day_date = request.departure_date + timedelta(days=index)
            day = ItineraryDay(
                day=index + 1,
                date=day_date,
                weather=self.weather_stub(request, day_date),
                activities=(
                    self._activities_from_text(chunk, index + 1, request)
                    or [self.exploration_activity(index + 1, request)]
                ),
                meals=self.default_meals(),
                transportation=self.default_transportation(),
                accommodation=self.placeholder_accommodation(request),
                notes=chunk,
                estimated_duration=8,
            )
            day.estimated_cost = day_cost(day)
            days.append(day)

        warnings = ["Itinerary parsed from text - verify details"]
        days = self._normalize_days(days, request, warnings)
        return self._assemble(
            days,
            confidence=self.config.confidence.heuristic,
            reasoning="Parsed from AI text response",
            recommendations=["Generated from AI text response"],
            warnings=warnings,
        )

    @staticmethod
    def _activities_from_text(chunk: str, day_number: int, request: TravelRequest) -> list[ItineraryActivity]:
        sentences = [s.strip() for s in SENTENCE_END.split(chunk) if len(s.strip()) > 10]
        rng = seeded_rng("parsed", request.destination.name, day_number)
        activities = []
        for i, sentence in enumerate(sentences[:2]):
            slot = "morning" if i == 0 else "afternoon"
            start = "09:00" if i == 0 else "14:00"
            end = "11:00" if i == 0 else "16:00"
            activities.append(ItineraryActivity(
                activity=Activity(
                    id=f"parsed-{day_number}-{i + 1}",
                    name=f"Activity {i + 1}",
                    description=sentence,
                    duration=2,
                    price=float(rng.randint(25, 74)),
                    category="exploration",
                    rating=4.0,
                    image_url=ACTIVITY_IMAGE,
                ),
                slot=slot,
                start_time=start,
                end_time=end,
                notes=sentence,
            ))
        return activities

    # ─── Tier 3: templated ───

    def _templated_plan(self, request: TravelRequest) -> ParsedItinerary:
        days = [self.templated_day(index, request) for index in range(request.duration)]
        return self._assemble(
            days,
            confidence=self.config.confidence.templated,
            reasoning="Fallback itinerary due to AI generation failure",
            recommendations=["This is a fallback itinerary. Consider customizing based on your interests."],
            warnings=["AI generation failed - using fallback itinerary"],
        )

    def templated_day(self, index: int, request: TravelRequest) -> ItineraryDay:
        day_number = index + 1
        day_date = request.departure_date + timedelta(days=index)
        day = ItineraryDay(
            day=day_number,
            date=day_date,
            weather=self.weather_stub(request, day_date),
            activities=[self.exploration_activity(day_number, request)],
            meals=self.default_meals(),
            transportation=self.default_transportation(),
            accommodation=self.placeholder_accommodation(request),
            notes="Fallback itinerary - customize based on preferences",
            estimated_duration=6,
        )
        day.estimated_cost = day_cost(day)
        return day

    @staticmethod
    def exploration_activity(day_number: int, request: TravelRequest) -> ItineraryActivity:
        """Generic morning slot for a day that would otherwise have no activity."""
        rng = seeded_rng("fallback-day", request.destination.name, day_number)
        return ItineraryActivity(
            activity=Activity(
                id=f"fallback-{day_number}",
                name=f"Day {day_number} Exploration",
                description=f"Explore {request.destination.name} and discover local attractions",
                duration=4,
                price=float(rng.randint(25, 74)),
                category="exploration",
                rating=4.0,
                image_url=request.destination.image_url,
            ),
            slot="morning",
            start_time="09:00",
            end_time="13:00",
            notes="Flexible exploration day",
        )

    # ─── Shared pieces ───

    def _normalize_days(
        self, days: list[ItineraryDay], request: TravelRequest, warnings: list[str]
    ) -> list[ItineraryDay]:
        """Exactly ``request.duration`` days, numbered 1..N."""
        days = days[: request.duration]
        if len(days) < request.duration:
            warnings.append(
                f"Itinerary covered {len(days)} of {request.duration} days; "
                "remaining days use a flexible exploration plan"
            )
            days = days + [self.templated_day(i, request) for i in range(len(days), request.duration)]
        for number, day in enumerate(days, start=1):
            day.day = number
        return days

    @staticmethod
    def _assemble(days: list[ItineraryDay], *, confidence: float, reasoning: str,
                  recommendations: list[str], warnings: list[str],
                  alternatives: list[str] | None = None) -> ParsedItinerary:
        breakdown = calculate_budget_breakdown(days)
        return ParsedItinerary(
            itinerary=days,
            total_cost=breakdown.total,
            budget_breakdown=breakdown,
            recommendations=recommendations,
            warnings=warnings,
            alternatives=alternatives or [],
            confidence=confidence,
            reasoning=reasoning,
        )

    @staticmethod
    def _day_date(value: Any, index: int, request: TravelRequest) -> date:
        if isinstance(value, str):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                pass
        return request.departure_date + timedelta(days=index)

    @staticmethod
    def weather_stub(request: TravelRequest, day_date: date) -> WeatherDay:
        climate = request.destination.climate.lower()
        conditions = CLIMATE_CONDITIONS.get(climate)
        rng = seeded_rng("weather-stub", request.destination.name, day_date.isoformat())
        return WeatherDay(
            id=f"{FALLBACK_SOURCE}-{request.destination.name}-{day_date.isoformat()}",
            source=FALLBACK_SOURCE,
            date=day_date,
            temperature=TemperatureBand(min=15, max=25, current=20),
            condition=rng.choice(conditions) if conditions else "Clear",
            icon="01d",
            humidity=60,
            wind_speed=5,
            precipitation=0,
            uv_index=3,
            sunrise="06:00",
            sunset="18:00",
        )

    @staticmethod
    def placeholder_accommodation(request: TravelRequest) -> HotelListing:
        destination = request.destination
        return HotelListing(
            id="placeholder-hotel",
            source=FALLBACK_SOURCE,
            name=f"{destination.name} Hotel",
            rating=4.0,
            price_per_night=float(int(request.budget) // request.duration // 3),
            image_url=destination.image_url,
            amenities=["WiFi", "Breakfast"],
            location="City center",
            description="Comfortable accommodation",
            room_type="Standard",
            cancellation_policy="Flexible",
            breakfast=True,
            coordinates=destination.coordinates,
            distance_from_airport=20,
            distance_from_city_center=1,
        )

    @staticmethod
    def default_meals() -> list[Meal]:
        return [
            Meal(type="breakfast", time="08:00", location="Hotel", cuisine="International", estimated_cost=0),
            Meal(type="lunch", time="13:00", location="Local restaurant", cuisine="Local", estimated_cost=20),
            Meal(type="dinner", time="19:00", location="Local restaurant", cuisine="Local", estimated_cost=30),
        ]

    @staticmethod
    def default_transportation() -> list[Transportation]:
        return [Transportation(
            type="walking",
            from_location="Hotel",
            to_location="City center",
            departure_time="09:00",
            arrival_time="09:15",
            duration=15,
            cost=0,
            notes="Walking distance",
        )]

    # ─── Insights pass ───

    def parse_insights(self, text: str) -> TravelInsights | None:
        payload = extract_json_object(text)
        if payload is None:
            return None
        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                return None
            return TravelInsights.model_validate(data)
        except ValueError as e:
            self._telemetry.warning("Ignoring unreadable insights response: %s", e)
            return None


def merge_insights(plan: ParsedItinerary, insights: TravelInsights) -> ParsedItinerary:
    return plan.model_copy(update={
        "recommendations": [*plan.recommendations, *insights.recommendations],
        "warnings": [*plan.warnings, *insights.potential_issues],
    })
