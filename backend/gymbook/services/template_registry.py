"""
Template registry for strongly-typed access to Jinja templates.

Use with TemplateService to avoid stringly-typed paths.
"""

from enum import Enum


class TemplateRegistry(str, Enum):
    # Auth / Account
    AUTH_VERIFY_EMAIL = "email/auth/verify_email.html"
    AUTH_PASSWORD_RESET = "email/auth/password_reset.html"

    # Booking notifications
    BOOKING_CONFIRMATION = "email/booking/confirmation.html"
    BOOKING_CANCELLATION = "email/booking/cancellation.html"
