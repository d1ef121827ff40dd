"""Prompt builder — renders itinerary and insights prompts from a travel request."""

from tripweaver.schemas.edge_cases import EdgeCaseReport
from tripweaver.schemas.itinerary import ParsedItinerary
from tripweaver.schemas.travel import TravelRequest

SYSTEM_PROMPT = (
    "You are an expert travel planner with deep knowledge of destinations, activities, "
    "and cultural experiences. Create detailed, day-by-day itineraries that are practical, "
    "enjoyable, and tailored to the traveler's preferences."
)

ITINERARY_SCHEMA = """{
  "itinerary": [
    {
      "day": 1,
      "date": "YYYY-MM-DD",
      "morning": { "activity": "...", "location": "...", "duration": "...", "cost": 0, "notes": "..." },
      "afternoon": { "activity": "...", "location": "...", "duration": "...", "cost": 0, "notes": "..." },
      "evening": { "activity": "...", "location": "...", "duration": "...", "cost": 0, "notes": "..." },
      "meals": [
        { "type": "breakfast", "location": "...", "cuisine": "...", "cost": 0, "dietaryNotes": "..." }
      ],
      "transportation": { "method": "...", "cost": 0, "notes": "..." },
      "totalDayCost": 0,
      "notes": "..."
    }
  ],
  "totalCost": 0,
  "budgetBreakdown": {
    "accommodation": 0,
    "activities": 0,
    "meals": 0,
    "transportation": 0,
    "miscellaneous": 0
  },
  "recommendations": ["..."],
  "warnings": ["..."],
  "alternatives": ["..."]
}"""

INSIGHTS_SCHEMA = """{
  "additionalActivities": ["..."],
  "diningSuggestions": ["..."],
  "culturalTips": ["..."],
  "travelTips": ["..."],
  "potentialIssues": ["..."]
}"""

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_best_months(months: list[int]) -> str:
    valid = [MONTH_NAMES[m - 1] for m in months if 1 <= m <= 12]
    return ", ".join(valid) if valid else "Year-round"


def _listed(values: list[str]) -> str:
    return ", ".join(values) if values else "None"


def remediation_lines(report: EdgeCaseReport) -> list[str]:
    """Instruction lines for detected conflicts only; empty when nothing is flagged."""
    lines = []
    if report.budget_conflict.detected:
        lines.append(
            "BUDGET CONSTRAINT: The estimated cost exceeds the budget. "
            "Focus on budget-friendly options and free activities."
        )
    if report.duration_conflict.detected:
        lines.append(f"DURATION ADAPTATION: {report.duration_conflict.detail}")
    if report.climate_conflict.detected:
        lines.append(
            f"CLIMATE NOTE: {report.climate_conflict.detail}. "
            "Suggest indoor alternatives for weather-dependent activities."
        )
    return lines


def build_itinerary_prompt(request: TravelRequest, report: EdgeCaseReport) -> str:
    destination = request.destination
    location = ", ".join(p for p in (destination.name, destination.country) if p)

    prompt = f"""Create a detailed {request.duration}-day travel itinerary for {request.travelers} traveler(s) to {location}.

Traveler Profile:
- Budget: ${request.budget:.0f}
- Travel Style: {request.travel_style}
- Interests: {_listed(request.interests)}
- Group Type: {request.group_type}
- Pace: {request.pace}
- Accommodation Type: {request.accommodation_type}
- Accessibility Requirements: {_listed(request.accessibility)}
- Dietary Restrictions: {_listed(request.dietary_restrictions)}
- Departure Date: {request.departure_date.isoformat()}

Destination: {destination.description or destination.name}
Climate: {destination.climate}
Best Time to Visit: {format_best_months(destination.best_months)}

Requirements:
1. Create a day-by-day itinerary with specific time slots (morning, afternoon, evening)
2. Include estimated costs for each activity and meal
3. Consider travel time between locations
4. Adapt to the travel pace and group type
5. Include local cultural experiences and authentic dining options
6. Provide practical tips and recommendations
7. Consider weather conditions and seasonal factors
"""

    remediation = remediation_lines(report)
    if remediation:
        prompt += "\n" + "\n".join(remediation) + "\n"

    prompt += f"\nFormat the response as a structured JSON with the following structure:\n{ITINERARY_SCHEMA}"
    return prompt


def build_itinerary_messages(request: TravelRequest, report: EdgeCaseReport) -> list[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": build_itinerary_prompt(request, report)},
    ]


def build_insights_prompt(plan: ParsedItinerary, request: TravelRequest) -> str:
    summary = "\n".join(
        f"Day {day.day}: {', '.join(a.activity.name for a in day.activities) or 'Free day'}"
        for day in plan.itinerary
    )
    return f"""Analyze this travel itinerary and provide additional insights:

Destination: {request.destination.name}
Duration: {request.duration} days
Budget: ${request.budget:.0f}
Travel Style: {request.travel_style}

Current Itinerary Summary:
{summary}

Provide:
1. 3-5 additional activity recommendations
2. 2-3 local dining suggestions
3. 2-3 cultural tips
4. 2-3 practical travel tips
5. Any potential issues or warnings

Format as JSON:
{INSIGHTS_SCHEMA}"""


def build_insights_messages(plan: ParsedItinerary, request: TravelRequest) -> list[dict]:
    return [{"role": "user", "content": build_insights_prompt(plan, request)}]
