"""Itinerary router — AI-assisted travel plan generation."""

import time

from fastapi import APIRouter, Depends

from tripweaver.dependencies import get_orchestrator
from tripweaver.schemas.envelope import ApiEnvelope
from tripweaver.schemas.travel import TravelRequest
from tripweaver.services.itinerary_orchestrator import ItineraryOrchestrator

router = APIRouter()


@router.post("/itinerary")
async def generate_itinerary(
    travel_request: TravelRequest,
    orchestrator: ItineraryOrchestrator = Depends(get_orchestrator),
) -> ApiEnvelope:
    started = time.monotonic()
    result = await orchestrator.generate_itinerary(travel_request)
    return ApiEnvelope.from_result(result, source="ai-planner", started=started)
