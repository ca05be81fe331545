# backend/gymbook/routes/v1/bookings.py
"""
Booking routes - API v1

Endpoints:
    DELETE /{booking_id} → Cancel own booking
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from ...api.dependencies.auth import get_current_member
from ...api.dependencies.services import get_booking_service
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.member import Member
from ...schemas.booking import CancellationResponse
from ...services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings-v1"])


@router.delete("/{booking_id}", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: str,
    current_member: Member = Depends(get_current_member),
    booking_service: BookingService = Depends(get_booking_service),
) -> CancellationResponse:
    """
    Cancel a booking.

    Free sessions cancelled more than an hour before the class are handed
    back; later cancellations forfeit them.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.cancel_booking, booking_id, current_member
        )
    except DomainException as e:
        handle_domain_exception(e)

    return CancellationResponse(
        message=result.message,
        free_session_restored=result.free_session_restored,
        free_session_forfeited=result.free_session_forfeited,
        refund_eligible=result.refund_eligible,
    )
