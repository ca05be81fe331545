# backend/gymbook/tasks/bookings.py
"""Periodic booking and calendar housekeeping."""

import asyncio
import logging
from typing import Dict

from sqlalchemy.orm import Session

from ..database import SessionLocal
from .celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="gymbook.tasks.bookings.cancel_stale_bookings")
def cancel_stale_bookings() -> Dict[str, int]:
    """Cancel unpaid pending bookings past the cutoff and free their seats."""
    from ..services.booking_service import BookingService

    db: Session = SessionLocal()
    try:
        cancelled = BookingService(db).cancel_stale_pending()
        if cancelled:
            logger.info(f"Cancelled {cancelled} stale pending bookings")
        return {"cancelled": cancelled}
    finally:
        db.close()


@celery_app.task(name="gymbook.tasks.bookings.generate_weekly_classes")
def generate_weekly_classes() -> Dict[str, int]:
    from ..services.class_calendar_service import ClassCalendarService

    db: Session = SessionLocal()
    try:
        created = ClassCalendarService(db).generate_weekly_classes()
        return {"created": len(created)}
    finally:
        db.close()


@celery_app.task(name="gymbook.tasks.bookings.purge_abuse_counters")
def purge_abuse_counters() -> Dict[str, int]:
    """
    Sweep abuse counters left over from previous days.

    Only meaningful for the shared Redis store; in-memory counters live in the
    API process and are purged there.
    """
    from ..core.abuse_guard import build_abuse_guard

    guard = build_abuse_guard()
    removed = asyncio.run(guard.purge_stale())
    return {"removed": removed}
