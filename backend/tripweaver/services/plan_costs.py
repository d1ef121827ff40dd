"""Plan costing — totals and budget breakdown derived from the day list."""

from tripweaver.schemas.itinerary import BudgetBreakdown, ItineraryDay

MISCELLANEOUS_SHARE = 0.1


def day_cost(day: ItineraryDay) -> float:
    return round(day.activity_cost + day.meal_cost + day.transportation_cost, 2)


def calculate_budget_breakdown(days: list[ItineraryDay], flights: float = 0.0) -> BudgetBreakdown:
    """Per-category sums over the days; ``total`` is the plan's total cost.

    Accommodation is one night per day at the day's nightly rate.
    """
    activities = sum(d.activity_cost for d in days)
    meals = sum(d.meal_cost for d in days)
    transportation = sum(d.transportation_cost for d in days)
    accommodation = sum(d.accommodation.price_per_night for d in days)
    miscellaneous = float(int(activities * MISCELLANEOUS_SHARE))

    # Day totals may come from the model rather than our own sums.
    day_totals = sum(d.estimated_cost for d in days)
    total = day_totals + accommodation + miscellaneous + flights

    return BudgetBreakdown(
        flights=round(flights, 2),
        accommodation=round(accommodation, 2),
        activities=round(activities, 2),
        meals=round(meals, 2),
        transportation=round(transportation, 2),
        miscellaneous=miscellaneous,
        total=round(total, 2),
    )
