# backend/studiohub/routes/v1/items.py
"""
Item availability routes - API v1

Endpoints:
    GET /{item_id}/availability?date=      → Open slots for one date
    POST /{item_id}/availability/check     → Are these slots open (nothing is held)
"""

import asyncio
from datetime import date
import logging

from fastapi import APIRouter, Depends, Path, Query

from ...api.dependencies.services import get_availability_service
from ...core.exceptions import DomainException
from ...schemas.availability import ItemAvailabilityResponse, SlotCheckRequest, SlotCheckResponse
from ...services.availability_service import AvailabilityService
from .reservations import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["items-v1"])


@router.get("/{item_id}/availability", response_model=ItemAvailabilityResponse)
async def get_item_availability(
    item_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    day: date = Query(..., alias="date"),
    service: AvailabilityService = Depends(get_availability_service),
) -> ItemAvailabilityResponse:
    try:
        result = await asyncio.to_thread(service.get_item_availability, item_id, day)
        return ItemAvailabilityResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{item_id}/availability/check", response_model=SlotCheckResponse)
async def check_item_slots(
    payload: SlotCheckRequest,
    item_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotCheckResponse:
    try:
        result = await asyncio.to_thread(
            service.check_slots_available, item_id, payload.date, payload.time_slots
        )
        return SlotCheckResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)
