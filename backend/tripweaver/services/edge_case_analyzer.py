"""Edge case analyzer — flags budget, duration and climate mismatches in a travel request."""

from tripweaver.schemas.edge_cases import (
    BudgetConflict,
    ClimateConflict,
    DurationConflict,
    EdgeCaseReport,
)
from tripweaver.schemas.travel import TravelRequest
from tripweaver.services.pipeline_config import PlanningConfig, planning_config

BUDGET_HINTS = [
    "Consider traveling during off-peak season",
    "Look for budget accommodation options",
    "Reduce number of activities",
    "Choose a different destination with lower costs",
]

SHORT_TRIP_REASONING = "Very short trips require focused, highlights-only itineraries"
LONG_TRIP_REASONING = "Long trips benefit from slower pace and deeper cultural immersion"

SHORT_TRIP_HINTS = ["Focus on highlights only", "Plan a single activity slot per day"]
LONG_TRIP_HINTS = ["Slow the pace", "Add immersive experiences and day trips"]

CLIMATE_ALTERNATIVES = {
    "tropical": ["Bali, Indonesia", "Costa Rica", "Thailand"],
    "temperate": ["Japan", "France", "Italy"],
    "cold": ["Switzerland", "Norway", "Canada"],
}
DEFAULT_CLIMATE_ALTERNATIVES = ["Consider destinations with your preferred climate"]
INDOOR_NOTE = "Substitute indoor alternatives for weather-dependent activities"


class EdgeCaseAnalyzer:
    """Pure, synchronous checks. Every rule is evaluated independently."""

    def __init__(self, config: PlanningConfig = planning_config):
        self.config = config

    def analyze(self, request: TravelRequest) -> EdgeCaseReport:
        return EdgeCaseReport(
            budget_conflict=self._check_budget(request),
            duration_conflict=self._check_duration(request),
            climate_conflict=self._check_climate(request),
        )

    def estimate_trip_cost(self, request: TravelRequest) -> float:
        rules = self.config.budget
        return (
            request.budget * rules.base_share
            + request.duration * rules.per_day
            + request.travelers * rules.per_traveler
        )

    def _check_budget(self, request: TravelRequest) -> BudgetConflict:
        estimate = self.estimate_trip_cost(request)
        conflict = BudgetConflict(budget=request.budget, estimated_cost=estimate)
        if estimate > request.budget * self.config.budget.tolerance:
            conflict.detected = True
            conflict.detail = (
                f"Estimated cost ${estimate:,.0f} exceeds budget ${request.budget:,.0f}"
            )
            conflict.remediation_hints = list(BUDGET_HINTS)
        return conflict

    def _check_duration(self, request: TravelRequest) -> DurationConflict:
        rules = self.config.duration
        conflict = DurationConflict(duration=request.duration)
        if request.duration < rules.min_days:
            conflict.detected = True
            conflict.kind = "short"
            conflict.detail = SHORT_TRIP_REASONING
            conflict.remediation_hints = list(SHORT_TRIP_HINTS)
        elif request.duration > rules.max_days:
            conflict.detected = True
            conflict.kind = "long"
            conflict.detail = LONG_TRIP_REASONING
            conflict.remediation_hints = list(LONG_TRIP_HINTS)
        return conflict

    def _check_climate(self, request: TravelRequest) -> ClimateConflict:
        preferred = request.climate.strip().lower()
        actual = request.destination.climate.strip().lower()
        conflict = ClimateConflict(preferred_climate=preferred, destination_climate=actual)
        if preferred == "any" or preferred == actual:
            return conflict

        alternatives = CLIMATE_ALTERNATIVES.get(preferred, DEFAULT_CLIMATE_ALTERNATIVES)
        conflict.detected = True
        conflict.detail = (
            f"Your preferred climate ({preferred}) doesn't match "
            f"the destination's climate ({actual})"
        )
        conflict.alternatives = list(alternatives)
        conflict.remediation_hints = [*alternatives, INDOOR_NOTE]
        return conflict
