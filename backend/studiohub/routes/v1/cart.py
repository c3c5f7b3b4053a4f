# backend/studiohub/routes/v1/cart.py
"""
Cart routes - API v1

Endpoints:
    GET /                      → Current user's cart
    POST /                     → Add a pending reservation
    DELETE /{reservation_id}   → Remove a reservation from the cart
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Path, Response, status

from ...api.dependencies.auth import get_current_user_id
from ...api.dependencies.services import get_cart_service
from ...core.exceptions import DomainException
from ...schemas.cart import CartAdd, CartItemResponse, CartResponse
from ...services.cart_service import CartService
from .reservations import ULID_PATH_PATTERN, handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["cart-v1"])


@router.get("", response_model=CartResponse)
async def get_cart(
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
) -> CartResponse:
    try:
        entries = await asyncio.to_thread(service.get_cart, user_id)
        return CartResponse(
            user_id=user_id,
            items=[CartItemResponse.model_validate(entry) for entry in entries],
        )
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=CartItemResponse, status_code=status.HTTP_201_CREATED)
async def add_to_cart(
    payload: CartAdd,
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
) -> CartItemResponse:
    try:
        entry = await asyncio.to_thread(service.add_to_cart, user_id, payload.reservation_id)
        return CartItemResponse.model_validate(entry)
    except DomainException as e:
        handle_domain_exception(e)


@router.delete("/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_from_cart(
    reservation_id: str = Path(..., pattern=ULID_PATH_PATTERN),
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
) -> Response:
    try:
        await asyncio.to_thread(service.remove_from_cart, user_id, reservation_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except DomainException as e:
        handle_domain_exception(e)
