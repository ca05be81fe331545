# backend/gymbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...core.abuse_guard import AbuseGuard
from ...services.booking_service import BookingService
from ...services.class_calendar_service import ClassCalendarService
from ...services.content_service import ContentService
from ...services.finance_export_service import FinanceExportService
from ...services.member_service import MemberService
from ...services.notification_service import NotificationService
from ...services.payment_gateway import StripePaymentGateway
from .database import get_db

logger = logging.getLogger(__name__)


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_payment_gateway() -> StripePaymentGateway:
    return StripePaymentGateway()


def get_member_service(
    db: Session = Depends(get_db),
    notification_service: NotificationService = Depends(get_notification_service),
) -> MemberService:
    """Get MemberService instance with proper dependencies."""
    return MemberService(db, notification_service=notification_service)


def get_booking_service(
    db: Session = Depends(get_db),
    payment_gateway: StripePaymentGateway = Depends(get_payment_gateway),
    notification_service: NotificationService = Depends(get_notification_service),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        payment_gateway: Card processor client
        notification_service: Email dispatcher

    Returns:
        BookingService instance
    """
    return BookingService(
        db, payment_gateway=payment_gateway, notification_service=notification_service
    )


def get_calendar_service(db: Session = Depends(get_db)) -> ClassCalendarService:
    return ClassCalendarService(db)


def get_finance_export_service(db: Session = Depends(get_db)) -> FinanceExportService:
    return FinanceExportService(db)


def get_content_service(db: Session = Depends(get_db)) -> ContentService:
    return ContentService(db)


def get_abuse_guard(request: Request) -> AbuseGuard:
    """The application-wide guard built at startup."""
    return request.app.state.abuse_guard
