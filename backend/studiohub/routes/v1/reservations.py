# backend/studiohub/routes/v1/reservations.py
"""
Reservation routes - API v1

Versioned reservation endpoints under /api/v1/reservations.
All business logic delegated to ReservationService and RescheduleService.

Endpoints:
    POST /                                → Hold slots (pending, or confirmed for instant book)
    GET /                                 → List reservations
    GET /{reservation_id}                 → Get a reservation (expires a lapsed hold)
    PATCH /{reservation_id}               → Update contact details / add-ons
    PATCH /{reservation_id}/approve       → Confirm a pending hold
    PATCH /{reservation_id}/cancel        → Cancel and release slots
    PATCH /{reservation_id}/reject        → Studio owner declines a pending hold
    GET /{reservation_id}/reschedule/available → Open slots for rescheduling
    POST /{reservation_id}/reschedule/check → Would a move fit (nothing is held)
    POST /{reservation_id}/reschedule     → Move to another date/slots
"""

import asyncio
from datetime import date
import logging
from typing import List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from ...api.dependencies.auth import get_current_user_id, get_current_user_id_optional
from ...api.dependencies.services import get_reschedule_service, get_reservation_service
from ...core.exceptions import DomainException
from ...models.reservation import ReservationStatus
from ...schemas.reservation import (
    RescheduleAvailabilityResponse,
    RescheduleCheckResponse,
    RescheduleRequest,
    ReservationCreate,
    ReservationResponse,
    ReservationUpdate,
)
from ...services.reschedule_service import RescheduleService
from ...services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["reservations-v1"])

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("", response_model=ReservationResponse, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    user_id: Optional[str] = Depends(get_current_user_id_optional),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """
    Hold the requested slots.

    Guests may book without an identity; a signed-in caller books for
    themselves unless an explicit customer_id is given.
    """
    try:
        reservation = await asyncio.to_thread(
            service.create_reservation,
            item_id=payload.item_id,
            studio_id=payload.studio_id,
            customer_id=payload.customer_id or user_id,
            booking_date=payload.booking_date,
            time_slots=payload.time_slots,
            add_on_ids=payload.add_on_ids,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            comment=payload.comment,
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=List[ReservationResponse])
async def list_reservations(
    customer_id: Optional[str] = Query(default=None),
    item_id: Optional[str] = Query(default=None),
    studio_id: Optional[str] = Query(default=None),
    reservation_status: Optional[ReservationStatus] = Query(default=None, alias="status"),
    booking_date: Optional[date] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    service: ReservationService = Depends(get_reservation_service),
) -> List[ReservationResponse]:
    try:
        reservations = await asyncio.to_thread(
            service.list_reservations,
            customer_id=customer_id,
            item_id=item_id,
            studio_id=studio_id,
            status=reservation_status.value if reservation_status else None,
            booking_date=booking_date,
            limit=limit,
            offset=offset,
        )
        return [ReservationResponse.model_validate(r) for r in reservations]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/{reservation_id}", response_model=ReservationResponse)
async def get_reservation(
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(service.get_reservation, reservation_id)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{reservation_id}", response_model=ReservationResponse)
async def update_reservation(
    payload: ReservationUpdate,
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    user_id: str = Depends(get_current_user_id),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(
            service.update_reservation,
            reservation_id,
            user_id,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            comment=payload.comment,
            add_on_ids=payload.add_on_ids,
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{reservation_id}/approve", response_model=ReservationResponse)
async def approve_reservation(
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    user_id: str = Depends(get_current_user_id),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    """Confirm a pending hold. 400 RESERVATION_EXPIRED once the hold has lapsed."""
    try:
        reservation = await asyncio.to_thread(service.confirm_reservation, reservation_id, user_id)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{reservation_id}/cancel", response_model=ReservationResponse)
async def cancel_reservation(
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    user_id: str = Depends(get_current_user_id),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(service.cancel_reservation, reservation_id, user_id)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.patch("/{reservation_id}/reject", response_model=ReservationResponse)
async def reject_reservation(
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    user_id: str = Depends(get_current_user_id),
    service: ReservationService = Depends(get_reservation_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(service.reject_reservation, reservation_id, user_id)
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.get(
    "/{reservation_id}/reschedule/available",
    response_model=RescheduleAvailabilityResponse,
)
async def get_reschedule_availability(
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    days_ahead: Optional[int] = Query(default=None, ge=1, le=90),
    service: RescheduleService = Depends(get_reschedule_service),
) -> RescheduleAvailabilityResponse:
    try:
        result = await asyncio.to_thread(
            service.get_available_slots_for_reschedule, reservation_id, days_ahead
        )
        return RescheduleAvailabilityResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/reschedule", response_model=ReservationResponse)
async def reschedule_reservation(
    payload: RescheduleRequest,
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    user_id: str = Depends(get_current_user_id),
    service: RescheduleService = Depends(get_reschedule_service),
) -> ReservationResponse:
    try:
        reservation = await asyncio.to_thread(
            service.reschedule_reservation,
            reservation_id,
            payload.new_date,
            payload.new_time_slots,
            user_id,
        )
        return ReservationResponse.model_validate(reservation)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{reservation_id}/reschedule/check", response_model=RescheduleCheckResponse)
async def check_reschedule(
    payload: RescheduleRequest,
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    service: RescheduleService = Depends(get_reschedule_service),
) -> RescheduleCheckResponse:
    try:
        result = await asyncio.to_thread(
            service.check_reschedule_availability,
            reservation_id,
            payload.new_date,
            payload.new_time_slots,
        )
        return RescheduleCheckResponse(**result)
    except DomainException as e:
        handle_domain_exception(e)
