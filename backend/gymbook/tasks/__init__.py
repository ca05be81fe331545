"""
Celery tasks package.

Importing the package registers every task with the app, so enqueue_task
can look tasks up by name.
"""

from .celery_app import BaseTask, celery_app
from .bookings import cancel_stale_bookings, generate_weekly_classes, purge_abuse_counters
from .email import (
    send_booking_cancellation,
    send_booking_confirmation,
    send_password_reset,
    send_verification_email,
)

__all__ = [
    "celery_app",
    "BaseTask",
    "cancel_stale_bookings",
    "generate_weekly_classes",
    "purge_abuse_counters",
    "send_booking_cancellation",
    "send_booking_confirmation",
    "send_password_reset",
    "send_verification_email",
]
