"""Hotels router — cascade search, details and room availability."""

import time
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from tripweaver.dependencies import get_hotels_service
from tripweaver.schemas.envelope import ApiEnvelope
from tripweaver.schemas.travel import HotelSearchParams
from tripweaver.services.hotels_service import HotelsService

router = APIRouter()


class AvailabilityRequest(BaseModel):
    check_in: date
    check_out: date
    guests: int = Field(default=2, ge=1)


@router.post("/search")
async def search_hotels(
    params: HotelSearchParams,
    service: HotelsService = Depends(get_hotels_service),
) -> ApiEnvelope:
    started = time.monotonic()
    if params.check_in_date >= params.check_out_date:
        raise HTTPException(status_code=400, detail="check_in_date must be before check_out_date")
    result = await service.search_hotels(params)
    return ApiEnvelope.from_result(result, source="hotels-api", started=started)


@router.get("/{hotel_id}")
async def get_hotel_details(
    hotel_id: str,
    service: HotelsService = Depends(get_hotels_service),
) -> ApiEnvelope:
    started = time.monotonic()
    result = await service.get_hotel_details(hotel_id)
    return ApiEnvelope.from_result(result, source="hotels-api", started=started)


@router.post("/{hotel_id}/availability")
async def get_hotel_availability(
    hotel_id: str,
    req: AvailabilityRequest,
    service: HotelsService = Depends(get_hotels_service),
) -> ApiEnvelope:
    started = time.monotonic()
    if req.check_in >= req.check_out:
        raise HTTPException(status_code=400, detail="check_in must be before check_out")
    result = await service.get_hotel_availability(hotel_id, req.check_in, req.check_out, req.guests)
    return ApiEnvelope.from_result(result, source="hotels-api", started=started)
