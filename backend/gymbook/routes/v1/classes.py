# backend/gymbook/routes/v1/classes.py
"""
Class calendar routes - API v1

Endpoints:
    GET /                → Upcoming bookable classes (public)
    GET /{class_id}      → Single class (public)
    POST /{class_id}/book → Book a seat (rate limited, captcha for free sessions)
"""

import asyncio
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Request, status

from ...api.dependencies.auth import get_current_member
from ...api.dependencies.services import (
    get_abuse_guard,
    get_booking_service,
    get_calendar_service,
)
from ...core.abuse_guard import AbuseGuard, client_ip
from ...core.config import settings
from ...core.exceptions import CaptchaFailedException, DomainException, RateLimitException
from ...errors import handle_domain_exception
from ...models.member import Member
from ...schemas.booking import BookingCreateRequest, BookingCreateResponse, BookingResponse
from ...schemas.gym_class import ClassResponse
from ...services.booking_service import BookingService
from ...services.class_calendar_service import ClassCalendarService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["classes-v1"])

BOOKING_LIMIT_MESSAGE = "Too many booking attempts from this location. Please try again tomorrow."


@router.get("", response_model=List[ClassResponse])
async def list_classes(
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> List[ClassResponse]:
    """Upcoming classes; missing weeks are generated from templates first."""
    await asyncio.to_thread(calendar_service.generate_weekly_classes)
    classes = await asyncio.to_thread(calendar_service.get_upcoming_classes)
    return [ClassResponse.model_validate(gym_class) for gym_class in classes]


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: str,
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> ClassResponse:
    try:
        gym_class = await asyncio.to_thread(calendar_service.get_class, class_id)
    except DomainException as e:
        handle_domain_exception(e)
    return ClassResponse.model_validate(gym_class)


@router.post(
    "/{class_id}/book",
    response_model=BookingCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_class(
    class_id: str,
    request: Request,
    payload: Optional[BookingCreateRequest] = Body(default=None),
    current_member: Member = Depends(get_current_member),
    guard: AbuseGuard = Depends(get_abuse_guard),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCreateResponse:
    """
    Book one seat.

    A member's first booking is free and has to pass captcha; later bookings
    are paid by card (payment_token) or reserved for cash at the door.
    """
    payload = payload or BookingCreateRequest()
    ip = client_ip(request)
    try:
        decision = await guard.bookings.check(ip)
        if not decision.allowed:
            raise RateLimitException(BOOKING_LIMIT_MESSAGE)

        if settings.free_session_enabled and not current_member.has_used_free_session:
            captcha_error = await guard.verify_captcha(
                payload.captcha_token, ip, "BOOKING", current_member.email
            )
            if captcha_error is not None:
                raise CaptchaFailedException(missing=captcha_error == "missing")

        result = await asyncio.to_thread(
            booking_service.create_booking,
            current_member,
            class_id,
            payment_token=payload.payment_token,
            pay_with_cash=payload.pay_with_cash,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return BookingCreateResponse(
        booking=BookingResponse.model_validate(result.booking),
        is_free_session=result.is_free_session,
        price=result.price,
        payment_reference=result.payment_reference,
        message=result.message,
    )
