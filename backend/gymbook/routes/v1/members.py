# backend/gymbook/routes/v1/members.py
"""
Member profile routes - API v1

Endpoints:
    GET /me           → Current member profile
    PATCH /me         → Update own profile
    DELETE /me        → Delete own account (password confirmation)
    GET /me/bookings  → Own bookings, newest first
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Response

from ...api.dependencies.auth import get_current_member
from ...api.dependencies.services import get_booking_service, get_member_service
from ...core.config import settings
from ...core.exceptions import DomainException
from ...errors import handle_domain_exception
from ...models.member import Member
from ...schemas.booking import BookingResponse
from ...schemas.member import DeleteAccountRequest, MemberResponse, MemberUpdate, MessageResponse
from ...services.booking_service import BookingService
from ...services.member_service import MemberService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["members-v1"])


@router.get("/me", response_model=MemberResponse)
async def read_me(current_member: Member = Depends(get_current_member)) -> MemberResponse:
    return MemberResponse.model_validate(current_member)


@router.patch("/me", response_model=MemberResponse)
async def update_me(
    payload: MemberUpdate = Body(...),
    current_member: Member = Depends(get_current_member),
    member_service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    try:
        member = await asyncio.to_thread(member_service.update_profile, current_member, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return MemberResponse.model_validate(member)


@router.delete("/me", response_model=MessageResponse)
async def delete_me(
    response: Response,
    payload: DeleteAccountRequest = Body(...),
    current_member: Member = Depends(get_current_member),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    """
    Delete the caller's account.

    Booking history is kept for the club's accounts with the member's details
    redacted.
    """
    try:
        await asyncio.to_thread(member_service.delete_own_account, current_member, payload.password)
    except DomainException as e:
        handle_domain_exception(e)
    response.delete_cookie(key=settings.session_cookie_name, path="/")
    return MessageResponse(message="Account deleted successfully")


@router.get("/me/bookings", response_model=List[BookingResponse])
async def my_bookings(
    current_member: Member = Depends(get_current_member),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    bookings = await asyncio.to_thread(booking_service.list_member_bookings, current_member.id)
    return [BookingResponse.model_validate(booking) for booking in bookings]
