"""
Centralized email subject builders.

Keep subjects in code (not templates) for versioning and logging.
Bodies remain in Jinja templates.
"""

from datetime import date

from ..core.constants import BRAND_NAME


def _format_class_date(class_date: date) -> str:
    # e.g. "Monday 3 November 2026"
    return f"{class_date:%A} {class_date.day} {class_date:%B %Y}"


class EmailSubject:
    """Utility class with static builders for email subjects."""

    @staticmethod
    def booking_confirmed(title: str, class_date: date) -> str:
        return f"Booking Confirmed - {title} on {_format_class_date(class_date)}"

    @staticmethod
    def booking_cancelled(title: str, class_date: date) -> str:
        return f"Booking Cancelled - {title} on {_format_class_date(class_date)}"

    @staticmethod
    def verify_email() -> str:
        return f"Verify your email - {BRAND_NAME}"

    @staticmethod
    def password_reset() -> str:
        return f"Reset your password - {BRAND_NAME}"
