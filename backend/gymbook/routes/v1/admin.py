# backend/gymbook/routes/v1/admin.py
"""
Admin routes - API v1

All endpoints require an admin member.

Endpoints:
    GET/POST /classes, PUT/DELETE /classes/{id}       → Class instances
    GET/POST /templates, PUT/DELETE /templates/{id}   → Weekly templates
    GET /stats                                        → Dashboard counters
    GET /members, PATCH/DELETE /members/{id}          → Member directory
    GET /bookings, DELETE /bookings/{id}              → Booking ledger
    GET /bookings/export?period=                      → Finance CSV
    GET /security/events                              → Suspicious activity log
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Query, Response

from ...api.dependencies.auth import require_admin
from ...api.dependencies.services import (
    get_abuse_guard,
    get_booking_service,
    get_calendar_service,
    get_finance_export_service,
    get_member_service,
)
from ...core.abuse_guard import AbuseGuard
from ...core.exceptions import DomainException
from ...core.timezone_utils import club_today
from ...errors import handle_domain_exception
from ...models.member import Member
from ...schemas.admin import AdminStatsResponse, SecurityEventResponse
from ...schemas.booking import AdminBookingResponse, CancellationResponse
from ...schemas.gym_class import (
    ClassCreate,
    ClassResponse,
    ClassTemplateCreate,
    ClassTemplateResponse,
    ClassTemplateUpdate,
    ClassUpdate,
)
from ...schemas.member import AdminMemberUpdate, MemberResponse, MessageResponse
from ...services.booking_service import BookingService
from ...services.class_calendar_service import ClassCalendarService
from ...services.finance_export_service import FinanceExportService
from ...services.member_service import MemberService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin-v1"])


# ============================================================================
# Classes
# ============================================================================


@router.get("/classes", response_model=List[ClassResponse])
async def list_all_classes(
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> List[ClassResponse]:
    classes = await asyncio.to_thread(calendar_service.get_all_classes)
    return [ClassResponse.model_validate(gym_class) for gym_class in classes]


@router.post("/classes", response_model=ClassResponse, status_code=201)
async def create_class(
    payload: ClassCreate = Body(...),
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> ClassResponse:
    try:
        gym_class = await asyncio.to_thread(calendar_service.create_class, payload.model_dump())
    except DomainException as e:
        handle_domain_exception(e)
    return ClassResponse.model_validate(gym_class)


@router.put("/classes/{class_id}", response_model=ClassResponse)
async def update_class(
    class_id: str,
    payload: ClassUpdate = Body(...),
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> ClassResponse:
    try:
        gym_class = await asyncio.to_thread(
            calendar_service.update_class, class_id, payload.model_dump(exclude_unset=True)
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ClassResponse.model_validate(gym_class)


@router.delete("/classes/{class_id}", response_model=MessageResponse)
async def delete_class(
    class_id: str,
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(calendar_service.delete_class, class_id)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message="Class deleted")


# ============================================================================
# Templates
# ============================================================================


@router.get("/templates", response_model=List[ClassTemplateResponse])
async def list_templates(
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> List[ClassTemplateResponse]:
    templates = await asyncio.to_thread(calendar_service.list_templates)
    return [ClassTemplateResponse.model_validate(template) for template in templates]


@router.post("/templates", response_model=ClassTemplateResponse, status_code=201)
async def create_template(
    payload: ClassTemplateCreate = Body(...),
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> ClassTemplateResponse:
    try:
        template = await asyncio.to_thread(calendar_service.create_template, payload.model_dump())
    except DomainException as e:
        handle_domain_exception(e)
    return ClassTemplateResponse.model_validate(template)


@router.put("/templates/{template_id}", response_model=ClassTemplateResponse)
async def update_template(
    template_id: str,
    payload: ClassTemplateUpdate = Body(...),
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> ClassTemplateResponse:
    try:
        template = await asyncio.to_thread(
            calendar_service.update_template,
            template_id,
            payload.model_dump(exclude_unset=True),
        )
    except DomainException as e:
        handle_domain_exception(e)
    return ClassTemplateResponse.model_validate(template)


@router.delete("/templates/{template_id}", response_model=MessageResponse)
async def delete_template(
    template_id: str,
    _: Member = Depends(require_admin),
    calendar_service: ClassCalendarService = Depends(get_calendar_service),
) -> MessageResponse:
    try:
        await asyncio.to_thread(calendar_service.delete_template, template_id)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message="Template deleted")


# ============================================================================
# Stats
# ============================================================================


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    _: Member = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> AdminStatsResponse:
    stats = await asyncio.to_thread(booking_service.get_stats)
    return AdminStatsResponse(**stats)


# ============================================================================
# Members
# ============================================================================


@router.get("/members", response_model=List[MemberResponse])
async def list_members(
    _: Member = Depends(require_admin),
    member_service: MemberService = Depends(get_member_service),
) -> List[MemberResponse]:
    members = await asyncio.to_thread(member_service.list_members)
    return [MemberResponse.model_validate(member) for member in members]


@router.patch("/members/{member_id}", response_model=MemberResponse)
async def update_member(
    member_id: str,
    payload: AdminMemberUpdate = Body(...),
    _: Member = Depends(require_admin),
    member_service: MemberService = Depends(get_member_service),
) -> MemberResponse:
    try:
        member = await asyncio.to_thread(member_service.admin_update_member, member_id, payload)
    except DomainException as e:
        handle_domain_exception(e)
    return MemberResponse.model_validate(member)


@router.delete("/members/{member_id}", response_model=MessageResponse)
async def delete_member(
    member_id: str,
    admin: Member = Depends(require_admin),
    member_service: MemberService = Depends(get_member_service),
) -> MessageResponse:
    """Delete a member; their bookings stay in the ledger, redacted."""
    try:
        await asyncio.to_thread(member_service.admin_delete_member, member_id, admin)
    except DomainException as e:
        handle_domain_exception(e)
    return MessageResponse(message="Member deleted")


# ============================================================================
# Bookings
# ============================================================================


@router.get("/bookings", response_model=List[AdminBookingResponse])
async def list_bookings(
    _: Member = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[AdminBookingResponse]:
    bookings = await asyncio.to_thread(booking_service.list_all_bookings)
    return [AdminBookingResponse.model_validate(booking) for booking in bookings]


# Static path declared before /bookings/{booking_id}
@router.get("/bookings/export")
async def export_bookings(
    period: str = Query("all"),
    _: Member = Depends(require_admin),
    export_service: FinanceExportService = Depends(get_finance_export_service),
) -> Response:
    """Download the bookings ledger for a period as CSV."""
    try:
        content = await asyncio.to_thread(export_service.export_bookings_csv, period)
    except DomainException as e:
        handle_domain_exception(e)

    filename = f"bookings-{period}-{club_today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/bookings/{booking_id}", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: str,
    admin: Member = Depends(require_admin),
    booking_service: BookingService = Depends(get_booking_service),
) -> CancellationResponse:
    try:
        result = await asyncio.to_thread(booking_service.cancel_booking, booking_id, admin)
    except DomainException as e:
        handle_domain_exception(e)
    return CancellationResponse(
        message=result.message,
        free_session_restored=result.free_session_restored,
        free_session_forfeited=result.free_session_forfeited,
        refund_eligible=result.refund_eligible,
    )


# ============================================================================
# Security
# ============================================================================


@router.get("/security/events", response_model=List[SecurityEventResponse])
async def security_events(
    limit: int = Query(100, ge=1, le=1000),
    _: Member = Depends(require_admin),
    guard: AbuseGuard = Depends(get_abuse_guard),
) -> List[SecurityEventResponse]:
    return [SecurityEventResponse.model_validate(event) for event in guard.activity_log.recent(limit)]
