# backend/gymbook/services/email.py
"""
Email Service

Sends transactional email through Resend, or logs it when the console
provider is configured (development and tests). Message bodies are rendered
from Jinja templates; subjects come from EmailSubject.
"""

import logging
import re
from typing import Any, Dict, Optional

import resend
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import ServiceException
from ..models.booking import Booking, PaymentMethod
from ..models.member import Member
from .base import BaseService
from .email_subjects import EmailSubject
from .template_registry import TemplateRegistry
from .template_service import TemplateService

logger = logging.getLogger(__name__)


def payment_type_label(booking: Booking) -> str:
    """How the member pays, as printed on booking emails."""
    if booking.is_free_session:
        return "Free Session (first class)"
    if booking.payment_method == PaymentMethod.CASH.value:
        return "Pay Cash on Arrival"
    return "Paid by Card"


class EmailService(BaseService):
    """
    Transactional email sender.

    With `email_provider == "resend"` a missing API key is a configuration
    error; the console provider never talks to the network.
    """

    def __init__(
        self,
        db: Optional[Session] = None,
        template_service: Optional[TemplateService] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(db)  # type: ignore[arg-type]
        self.provider = provider or settings.email_provider
        self.from_email = settings.from_email
        self.template_service = template_service or TemplateService(db)

        if self.provider == "resend":
            if not settings.resend_api_key:
                raise ServiceException("Resend API key not configured")
            resend.api_key = settings.resend_api_key

    @staticmethod
    def _html_to_text(html_content: str) -> str:
        text = re.sub(r"<[^>]+>", "", html_content)
        return re.sub(r"\s+", " ", text).strip()

    @BaseService.measure_operation("send_email")
    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send one email.

        Returns:
            The provider response (a synthetic one for the console provider)

        Raises:
            ServiceException: If the provider rejects the message
        """
        if not text_content:
            text_content = self._html_to_text(html_content)

        if self.provider == "console":
            self.logger.info(f"[EMAIL] To: {to_email} | Subject: {subject}\n{text_content}")
            return {"id": "console", "to": to_email}

        email_data = {
            "from": self.from_email,
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "text": text_content,
        }
        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            self.logger.error(f"Failed to send email to {to_email}: {type(e).__name__}: {e}")
            raise ServiceException(f"Email sending failed: {e}")

        self.log_operation("email_sent", to_email=to_email, subject=subject)
        return response

    def send_booking_confirmation(self, booking: Booking) -> Dict[str, Any]:
        member = booking.member
        gym_class = booking.gym_class
        html = self.template_service.render_template(
            TemplateRegistry.BOOKING_CONFIRMATION,
            context={
                "member_name": member.first_name or member.name,
                "booking": booking,
                "gym_class": gym_class,
                "payment_type": payment_type_label(booking),
            },
        )
        return self.send_email(
            to_email=member.email,
            subject=EmailSubject.booking_confirmed(gym_class.title, gym_class.date),
            html_content=html,
        )

    def send_booking_cancellation(self, booking: Booking) -> Dict[str, Any]:
        member = booking.member
        gym_class = booking.gym_class
        html = self.template_service.render_template(
            TemplateRegistry.BOOKING_CANCELLATION,
            context={
                "member_name": member.first_name or member.name,
                "booking": booking,
                "gym_class": gym_class,
                "payment_type": payment_type_label(booking),
            },
        )
        return self.send_email(
            to_email=member.email,
            subject=EmailSubject.booking_cancelled(gym_class.title, gym_class.date),
            html_content=html,
        )

    def send_verification_email(self, member: Member) -> Dict[str, Any]:
        verify_url = (
            f"{settings.frontend_url}/verify-email?token={member.email_verification_token}"
        )
        html = self.template_service.render_template(
            TemplateRegistry.AUTH_VERIFY_EMAIL,
            context={"member_name": member.first_name or member.name, "verify_url": verify_url},
        )
        return self.send_email(
            to_email=member.email,
            subject=EmailSubject.verify_email(),
            html_content=html,
            text_content=f"Verify your email address: {verify_url}",
        )

    def send_password_reset(self, member: Member) -> Dict[str, Any]:
        reset_url = f"{settings.frontend_url}/reset-password?token={member.password_reset_token}"
        html = self.template_service.render_template(
            TemplateRegistry.AUTH_PASSWORD_RESET,
            context={"member_name": member.first_name or member.name, "reset_url": reset_url},
        )
        return self.send_email(
            to_email=member.email,
            subject=EmailSubject.password_reset(),
            html_content=html,
            text_content=f"Reset your password (link expires in 1 hour): {reset_url}",
        )
