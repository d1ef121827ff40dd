"""Pipeline configuration — single source for cascade and planning thresholds."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CascadeLimits:
    """How many items satisfy a cascade and how many are returned."""
    sufficiency: int
    top_n: int


FLIGHT_LIMITS = CascadeLimits(sufficiency=5, top_n=20)
HOTEL_LIMITS = CascadeLimits(sufficiency=8, top_n=25)
CURRENT_WEATHER_LIMITS = CascadeLimits(sufficiency=1, top_n=1)


@dataclass(frozen=True)
class BudgetRules:
    """Rough trip cost estimate: base_share·budget + per_day·days + per_traveler·travelers."""
    base_share: float = 0.8
    per_day: float = 50.0
    per_traveler: float = 100.0
    tolerance: float = 1.2           # flag when estimate > tolerance × budget
    activity_reduction: float = 0.7  # 30% off every activity when flagged


@dataclass(frozen=True)
class DurationRules:
    min_days: int = 3   # below → highlights-only
    max_days: int = 21  # above → slow, immersive pace


@dataclass(frozen=True)
class Confidence:
    """Confidence attached to each parse tier."""
    structured: float = 0.9
    heuristic: float = 0.7
    templated: float = 0.5


@dataclass(frozen=True)
class GenerationParams:
    itinerary_temperature: float = 0.7
    itinerary_max_tokens: int = 4000
    insights_temperature: float = 0.6
    insights_max_tokens: int = 1000


@dataclass(frozen=True)
class PlanningConfig:
    budget: BudgetRules = field(default_factory=BudgetRules)
    duration: DurationRules = field(default_factory=DurationRules)
    confidence: Confidence = field(default_factory=Confidence)
    generation: GenerationParams = field(default_factory=GenerationParams)


planning_config = PlanningConfig()
