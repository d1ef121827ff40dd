"""Flights router — cascade search and flight details."""

import time

from fastapi import APIRouter, Depends, HTTPException

from tripweaver.dependencies import get_flights_service
from tripweaver.schemas.envelope import ApiEnvelope
from tripweaver.schemas.travel import FlightSearchParams
from tripweaver.services.flights_service import FlightsService

router = APIRouter()


@router.post("/search")
async def search_flights(
    params: FlightSearchParams,
    service: FlightsService = Depends(get_flights_service),
) -> ApiEnvelope:
    started = time.monotonic()
    if params.return_date and params.return_date < params.departure_date:
        raise HTTPException(status_code=400, detail="return_date must not be before departure_date")
    result = await service.search_flights(params)
    return ApiEnvelope.from_result(result, source="flights-api", started=started)


@router.get("/{flight_id}")
async def get_flight_details(
    flight_id: str,
    service: FlightsService = Depends(get_flights_service),
) -> ApiEnvelope:
    started = time.monotonic()
    result = await service.get_flight_details(flight_id)
    return ApiEnvelope.from_result(result, source="flights-api", started=started)
