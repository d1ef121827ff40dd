import json
from datetime import date

import pytest

from tripweaver.services.response_parser import (
    HeuristicParse,
    ResponseParser,
    StructuredParse,
    TemplatedParse,
    extract_json_object,
    merge_insights,
)


@pytest.fixture
def parser():
    return ResponseParser()


def structured_day(day: int, morning_cost: float = 20, afternoon_cost: float = 35) -> dict:
    return {
        "day": day,
        "date": f"2026-05-{3 + day:02d}",
        "morning": {"activity": "Tram 28 ride", "location": "Alfama", "duration": "2 hours", "cost": morning_cost, "notes": "Go early"},
        "afternoon": {"activity": "Belem Tower", "location": "Belem", "duration": "3", "cost": afternoon_cost, "notes": "Buy tickets online"},
        "evening": {"activity": "Fado show", "location": "Bairro Alto", "duration": "2", "cost": "$40", "notes": ""},
        "meals": [{"type": "lunch", "location": "Time Out Market", "cuisine": "Portuguese", "cost": 18}],
        "transportation": {"method": "Metro", "cost": 6.5, "notes": "Viva Viagem card"},
        "totalDayCost": 160,
        "notes": "Pack comfortable shoes",
    }


def structured_response(days: int) -> str:
    body = {
        "itinerary": [structured_day(i + 1) for i in range(days)],
        "totalCost": 9999,
        "recommendations": ["Try pasteis de nata"],
        "warnings": ["Hills are steep"],
        "alternatives": ["Porto"],
    }
    return "Here is your plan:\n```json\n" + json.dumps(body) + "\n```\nEnjoy {your} trip!"


def test_extract_json_object_ignores_braces_in_strings():
    text = 'Sure! {"a": "has } and { inside", "b": {"c": 1}} trailing {junk}'
    assert json.loads(extract_json_object(text)) == {"a": "has } and { inside", "b": {"c": 1}}


def test_extract_json_object_skips_unbalanced_prefix():
    assert extract_json_object('{ broken  {"ok": true}') == '{"ok": true}'
    assert extract_json_object("no braces here") is None


def test_well_formed_json_is_structured(parser, make_request):
    request = make_request(duration=3)
    outcome = parser.parse(structured_response(3), request)

    assert isinstance(outcome, StructuredParse)
    assert outcome.source == "ai"
    plan = outcome.plan
    assert plan.confidence == 0.9
    assert [d.day for d in plan.itinerary] == [1, 2, 3]
    assert plan.recommendations == ["Try pasteis de nata"]
    assert plan.alternatives == ["Porto"]

    day = plan.itinerary[0]
    assert day.date == date(2026, 5, 4)
    assert [a.slot for a in day.activities] == ["morning", "afternoon", "evening"]
    assert [a.activity.price for a in day.activities] == [20, 35, 40]
    assert day.activities[0].activity.duration == 2
    assert (day.activities[0].start_time, day.activities[0].end_time) == ("09:00", "12:00")
    assert day.meals[0].estimated_cost == 18
    assert day.transportation[0].type == "metro"
    assert day.estimated_cost == 160
    assert day.accommodation.price_per_night == 5000 // 3 // 3
    assert day.weather.date == day.date


def test_model_total_is_not_trusted(parser, make_request):
    plan = parser.parse(structured_response(2), make_request(duration=2)).plan
    assert plan.total_cost != 9999
    assert plan.total_cost == plan.budget_breakdown.total


def test_structured_day_count_is_normalized(parser, make_request):
    longer = parser.parse(structured_response(5), make_request(duration=3)).plan
    assert len(longer.itinerary) == 3

    shorter = parser.parse(structured_response(2), make_request(duration=4)).plan
    assert [d.day for d in shorter.itinerary] == [1, 2, 3, 4]
    assert shorter.itinerary[3].activities[0].activity.name == "Day 4 Exploration"
    assert any("covered 2 of 4 days" in w for w in shorter.warnings)


def test_missing_meals_and_transport_use_defaults(parser, make_request):
    text = json.dumps({"itinerary": [{"morning": {"activity": "Castle"}}]})
    day = parser.parse(text, make_request(duration=1)).plan.itinerary[0]

    assert [m.type for m in day.meals] == ["breakfast", "lunch", "dinner"]
    assert [m.estimated_cost for m in day.meals] == [0, 20, 30]
    assert day.transportation[0].from_location == "Hotel"
    assert day.date == date(2026, 5, 4)
    assert day.estimated_cost == 50


@pytest.mark.parametrize("text", [
    "Day 1: Walk around the old town and see the cathedral. Day 2: Visit the beach in Cascais today!",
    "I cannot produce JSON, sorry.",
    '{"itinerary": []}',
    '{"itinerary": "day one"}',
    '{"itinerary": [1, 2]}',
    '{"itinerary": [{"day": 1}',
    "",
])
def test_malformed_text_is_heuristic_and_never_raises(parser, make_request, text):
    outcome = parser.parse(text, make_request(duration=2))

    assert isinstance(outcome, HeuristicParse)
    assert outcome.source == "hybrid"
    assert outcome.plan.confidence == 0.7
    assert len(outcome.plan.itinerary) == 2


def test_heuristic_splits_on_day_markers(parser, make_request):
    text = (
        "Here is an idea.\n"
        "Day 1: Start at Praca do Comercio and walk along the river. Lunch nearby! "
        "Take the tram up to the castle for sunset views.\n"
        "DAY 2 - Spend the morning at the Gulbenkian Museum gardens."
    )
    plan = parser.parse(text, make_request(duration=2)).plan

    first, second = plan.itinerary
    assert len(first.activities) == 2
    assert "Praca do Comercio" in first.activities[0].activity.description
    assert first.activities[1].start_time == "14:00"
    assert len(second.activities) == 1
    assert "Gulbenkian" in second.notes
    assert "Itinerary parsed from text - verify details" in plan.warnings


def test_generation_failure_gives_templated_plan(parser, make_request):
    outcome = parser.parse(None, make_request(duration=4))

    assert isinstance(outcome, TemplatedParse)
    assert outcome.source == "fallback"
    plan = outcome.plan
    assert plan.confidence == 0.5
    assert len(plan.itinerary) == 4
    assert all(len(d.activities) == 1 for d in plan.itinerary)
    assert plan.itinerary[1].date == date(2026, 5, 5)
    assert "AI generation failed - using fallback itinerary" in plan.warnings


def test_templated_plan_is_deterministic(parser, make_request):
    request = make_request(duration=3)
    first = parser.parse(None, request).plan
    second = parser.parse(None, request).plan
    assert [d.estimated_cost for d in first.itinerary] == [d.estimated_cost for d in second.itinerary]
    assert first.total_cost == second.total_cost


def test_insights_are_merged_into_recommendations_and_warnings(parser, make_request):
    plan = parser.parse(None, make_request(duration=1)).plan
    insights = parser.parse_insights(json.dumps({
        "additionalActivities": ["Sintra day trip"],
        "diningSuggestions": ["Cervejaria Ramiro"],
        "culturalTips": ["Say obrigado"],
        "travelTips": ["Buy a Viva Viagem card"],
        "potentialIssues": ["Pickpockets on tram 28"],
    }))
    merged = merge_insights(plan, insights)

    assert merged.recommendations[-4:] == [
        "Sintra day trip", "Cervejaria Ramiro", "Say obrigado", "Buy a Viva Viagem card",
    ]
    assert merged.warnings[-1] == "Pickpockets on tram 28"
    assert len(plan.warnings) == 1


@pytest.mark.parametrize("text", ["not json", "[1, 2]", '{"additionalActivities": "one"}'])
def test_unusable_insights_return_none(parser, text):
    assert parser.parse_insights(text) is None


def test_day_without_usable_sentences_gets_exploration_activity(parser, make_request):
    outcome = parser.parse("Day 1: Go. Day 2: Eat.", make_request(duration=2))

    assert isinstance(outcome, HeuristicParse)
    first, second = outcome.plan.itinerary
    assert [a.activity.name for a in first.activities] == ["Day 1 Exploration"]
    assert [a.activity.name for a in second.activities] == ["Day 2 Exploration"]
    assert first.notes == "Go."
    assert first.estimated_cost == first.activity_cost + first.meal_cost + first.transportation_cost


def test_structured_day_without_slots_gets_exploration_activity(parser, make_request):
    text = json.dumps({"itinerary": [{"day": 1, "notes": "rest"}, {"day": 2, "notes": "rest"}]})
    outcome = parser.parse(text, make_request(duration=2))

    assert isinstance(outcome, StructuredParse)
    for number, day in enumerate(outcome.plan.itinerary, start=1):
        assert [a.activity.id for a in day.activities] == [f"fallback-{number}"]
        assert day.estimated_duration == 4
        assert day.notes == "rest"


@pytest.mark.parametrize("cost", ["1e999", "-1e999", "NaN", "1" + "0" * 400, '"' + "9" * 400 + ' EUR"'])
def test_unreadable_numbers_fall_back_to_defaults(parser, make_request, cost):
    text = (
        '{"itinerary": [{"morning": {"activity": "Castle", "cost": ' + cost + '},'
        ' "meals": [{"type": "lunch", "cost": ' + cost + '}],'
        ' "transportation": {"method": "bus", "cost": ' + cost + '},'
        ' "totalDayCost": ' + cost + '}]}'
    )
    outcome = parser.parse(text, make_request(duration=1))

    assert isinstance(outcome, StructuredParse)
    day = outcome.plan.itinerary[0]
    assert day.activities[0].activity.price == 0
    assert day.meals[0].estimated_cost == 15
    assert day.transportation[0].cost == 0
    assert day.estimated_cost == 15
    assert outcome.plan.total_cost == outcome.plan.budget_breakdown.total


def test_amounts_beyond_range_are_ignored(parser, make_request):
    text = json.dumps({"itinerary": [
        {"morning": {"activity": "Castle", "cost": 1e308}, "totalDayCost": 1e308},
        {"morning": {"activity": "Castle", "cost": 1e308}, "totalDayCost": 1e308},
    ]})
    plan = parser.parse(text, make_request(duration=2)).plan

    assert [d.activities[0].activity.price for d in plan.itinerary] == [0, 0]
    assert plan.budget_breakdown.miscellaneous == 0


def test_non_list_advice_fields_are_ignored(parser, make_request):
    text = json.dumps({
        "itinerary": [{"morning": {"activity": "Castle"}}],
        "warnings": "Pack layers",
        "recommendations": {"tip": "Go early"},
        "alternatives": ["Porto", "", None, 7],
    })
    plan = parser.parse(text, make_request(duration=1)).plan

    assert plan.warnings == []
    assert plan.recommendations == []
    assert plan.alternatives == ["Porto", "7"]
