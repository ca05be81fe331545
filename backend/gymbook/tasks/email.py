# backend/gymbook/tasks/email.py
"""
Email Celery tasks.

Each task reloads its rows by id, so a message reflects the committed state
at send time. Failures retry with backoff through BaseTask.
"""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..database import SessionLocal
from ..repositories.booking_repository import BookingRepository
from ..repositories.member_repository import MemberRepository
from ..services.email import EmailService
from .celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)


def _send_booking_email(booking_id: str, kind: str) -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        booking = BookingRepository(db).get_with_details(booking_id)
        if booking is None:
            logger.error(f"Booking {booking_id} not found")
            return {"status": "error", "message": f"Booking {booking_id} not found"}
        if booking.member is None:
            # Member deleted before the worker picked this up
            return {"status": "skipped", "booking_id": booking_id}

        email_service = EmailService(db)
        if kind == "confirmation":
            email_service.send_booking_confirmation(booking)
        else:
            email_service.send_booking_cancellation(booking)
        return {"status": "success", "booking_id": booking_id}
    finally:
        db.close()


@celery_app.task(base=BaseTask, name="gymbook.tasks.email.send_booking_confirmation")
def send_booking_confirmation(booking_id: str) -> Dict[str, Any]:
    return _send_booking_email(booking_id, "confirmation")


@celery_app.task(base=BaseTask, name="gymbook.tasks.email.send_booking_cancellation")
def send_booking_cancellation(booking_id: str) -> Dict[str, Any]:
    return _send_booking_email(booking_id, "cancellation")


@celery_app.task(base=BaseTask, name="gymbook.tasks.email.send_verification_email")
def send_verification_email(member_id: str) -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        member = MemberRepository(db).get_by_id(member_id)
        if member is None or not member.email_verification_token:
            return {"status": "skipped", "member_id": member_id}
        EmailService(db).send_verification_email(member)
        return {"status": "success", "member_id": member_id}
    finally:
        db.close()


@celery_app.task(base=BaseTask, name="gymbook.tasks.email.send_password_reset")
def send_password_reset(member_id: str) -> Dict[str, Any]:
    db: Session = SessionLocal()
    try:
        member = MemberRepository(db).get_by_id(member_id)
        if member is None or not member.password_reset_token:
            return {"status": "skipped", "member_id": member_id}
        EmailService(db).send_password_reset(member)
        return {"status": "success", "member_id": member_id}
    finally:
        db.close()
