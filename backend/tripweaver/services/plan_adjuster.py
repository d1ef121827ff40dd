"""Plan adjuster — applies edge-case remediation to a parsed plan."""

from tripweaver.schemas.edge_cases import (
    BudgetConflict,
    ClimateConflict,
    DurationConflict,
    EdgeCaseReport,
)
from tripweaver.schemas.itinerary import ItineraryDay, ParsedItinerary
from tripweaver.services.pipeline_config import PlanningConfig, planning_config
from tripweaver.services.plan_costs import calculate_budget_breakdown

SHORT_TRIP_NOTE = " - Highlights-focused for short trip"

LONG_TRIP_RECOMMENDATIONS = [
    "Long trip optimization: Added cultural immersion activities",
    "Consider local language classes",
    "Include day trips to nearby destinations",
]

INDOOR_WARNING = "Indoor alternatives suggested for weather-dependent activities"
INDOOR_RECOMMENDATIONS = [
    "Museum visits for rainy days",
    "Indoor cultural experiences",
    "Shopping centers and galleries as weather alternatives",
]


class PlanAdjuster:
    """Budget, then duration, then climate; each step works on a copy.

    Totals are always recomputed from the adjusted days at the end.
    """

    def __init__(self, config: PlanningConfig = planning_config):
        self.config = config

    def adjust(self, plan: ParsedItinerary, report: EdgeCaseReport) -> ParsedItinerary:
        adjusted = plan.model_copy(deep=True)
        if report.budget_conflict.detected:
            adjusted = self.optimize_for_budget(adjusted, report.budget_conflict)
        if report.duration_conflict.detected:
            adjusted = self.adapt_for_duration(adjusted, report.duration_conflict)
        if report.climate_conflict.detected:
            adjusted = self.adapt_for_climate(adjusted, report.climate_conflict)
        return self._recalculate(adjusted)

    def optimize_for_budget(self, plan: ParsedItinerary, conflict: BudgetConflict) -> ParsedItinerary:
        factor = self.config.budget.activity_reduction
        days = [self._reprice_day(day, factor) for day in plan.itinerary]
        return plan.model_copy(update={
            "itinerary": days,
            "recommendations": [
                *plan.recommendations,
                "Budget optimization applied:",
                *conflict.remediation_hints,
            ],
        })

    @staticmethod
    def _reprice_day(day: ItineraryDay, factor: float) -> ItineraryDay:
        before = day.activity_cost
        activities = [
            a.model_copy(update={
                "activity": a.activity.model_copy(update={"price": float(int(a.activity.price * factor))}),
            })
            for a in day.activities
        ]
        repriced = day.model_copy(update={"activities": activities})
        # Day totals may come from the model, so shift them by the saving instead of resumming.
        repriced.estimated_cost = round(max(0.0, day.estimated_cost - (before - repriced.activity_cost)), 2)
        return repriced

    @staticmethod
    def adapt_for_duration(plan: ParsedItinerary, conflict: DurationConflict) -> ParsedItinerary:
        if conflict.kind == "short":
            days = []
            for day in plan.itinerary:
                kept = day.activities[:1]
                dropped = sum(a.activity.price for a in day.activities[1:])
                days.append(day.model_copy(update={
                    "activities": kept,
                    "notes": f"{day.notes}{SHORT_TRIP_NOTE}",
                    "estimated_cost": round(max(0.0, day.estimated_cost - dropped), 2),
                    "estimated_duration": sum(a.activity.duration for a in kept),
                }))
            return plan.model_copy(update={"itinerary": days})

        if conflict.kind == "long":
            return plan.model_copy(update={
                "recommendations": [*plan.recommendations, *LONG_TRIP_RECOMMENDATIONS],
            })
        return plan

    @staticmethod
    def adapt_for_climate(plan: ParsedItinerary, conflict: ClimateConflict) -> ParsedItinerary:
        return plan.model_copy(update={
            "warnings": [
                *plan.warnings,
                f"Climate consideration: {conflict.detail}",
                INDOOR_WARNING,
            ],
            "recommendations": [*plan.recommendations, *INDOOR_RECOMMENDATIONS],
            "alternatives": [
                *plan.alternatives,
                *(a for a in conflict.alternatives if a not in plan.alternatives),
            ],
        })

    @staticmethod
    def _recalculate(plan: ParsedItinerary) -> ParsedItinerary:
        breakdown = calculate_budget_breakdown(
            plan.itinerary, flights=plan.budget_breakdown.flights,
        )
        return plan.model_copy(update={"total_cost": breakdown.total, "budget_breakdown": breakdown})
