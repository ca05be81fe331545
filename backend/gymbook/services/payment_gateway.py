# backend/gymbook/services/payment_gateway.py
"""
Card payment adapter backed by Stripe.

Turns "charge this amount for this booking" into a confirmed PaymentIntent and
normalizes the outcome. Callers only ever see the provider's user-facing
message or a generic fallback, never raw exception text.
"""

from dataclasses import dataclass, field
import logging
from typing import Any, Dict, Optional

import stripe

from ..core.config import settings
from ..core.ulid_helper import generate_ulid

logger = logging.getLogger(__name__)

GENERIC_PAYMENT_ERROR = (
    "Payment could not be processed. Please try again or choose to pay cash at the session."
)
NOT_CONFIGURED_ERROR = "Card payments are not configured. Please choose to pay cash at the session."
INCOMPLETE_PAYMENT_ERROR = (
    "Your card needs additional verification that we can't complete here. "
    "Please try another card or pay cash at the session."
)


@dataclass
class ChargeRequest:
    token: str
    amount_pence: int
    description: str
    currency: str = "gbp"
    customer_id: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class PaymentResult:
    success: bool
    payment_id: Optional[str] = None
    status: Optional[str] = None
    receipt_url: Optional[str] = None
    error_message: Optional[str] = None
    idempotency_key: Optional[str] = None


def environment_for_key(secret_key: str) -> Optional[str]:
    """Stripe environment implied by a key's prefix, or None when absent."""
    if not secret_key:
        return None
    if secret_key.startswith(("sk_live_", "rk_live_")):
        return "live"
    return "test"


class StripePaymentGateway:
    """Charges and refunds single bookings through Stripe PaymentIntents."""

    def __init__(self, secret_key: Optional[str] = None, timeout: Optional[float] = None):
        self.secret_key = (
            secret_key if secret_key is not None else settings.stripe_secret_key.get_secret_value()
        )
        self.timeout = timeout or settings.payment_timeout_seconds
        self.environment = environment_for_key(self.secret_key)
        self.logger = logging.getLogger(self.__class__.__name__)

        if self.is_configured:
            # Bounded network time; a timeout surfaces as an APIConnectionError
            stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)
            stripe.max_network_retries = 1
            self.logger.info("Stripe gateway configured for %s environment", self.environment)
        else:
            self.logger.warning("Stripe secret key not configured - card payments disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def charge(self, request: ChargeRequest) -> PaymentResult:
        """
        Create and confirm a PaymentIntent for the given token.

        A new idempotency key is minted for every call, so a retried submission
        is a separate attempt and a repeated network delivery of the same
        attempt is deduplicated by Stripe.
        """
        if not self.is_configured:
            return PaymentResult(success=False, error_message=NOT_CONFIGURED_ERROR)

        idempotency_key = f"booking-charge-{generate_ulid()}"
        params: Dict[str, Any] = {
            "amount": request.amount_pence,
            "currency": request.currency,
            "payment_method": request.token,
            "confirm": True,
            "description": request.description,
            "metadata": request.metadata,
            "automatic_payment_methods": {"enabled": True, "allow_redirects": "never"},
            "expand": ["latest_charge"],
        }
        if request.customer_id:
            params["customer"] = request.customer_id

        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key, idempotency_key=idempotency_key, **params
            )
        except stripe.CardError as e:
            self.logger.info("Card declined: code=%s", getattr(e, "code", None))
            return PaymentResult(
                success=False,
                error_message=getattr(e, "user_message", None) or GENERIC_PAYMENT_ERROR,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            self.logger.error("Stripe error creating payment: %s", e)
            return PaymentResult(
                success=False,
                error_message=GENERIC_PAYMENT_ERROR,
                idempotency_key=idempotency_key,
            )

        if intent.status != "succeeded":
            self.logger.warning("PaymentIntent %s ended in status %s", intent.id, intent.status)
            self._cancel_quietly(intent.id)
            return PaymentResult(
                success=False,
                payment_id=intent.id,
                status=intent.status,
                error_message=INCOMPLETE_PAYMENT_ERROR,
                idempotency_key=idempotency_key,
            )

        self.logger.info("Payment %s succeeded for %s pence", intent.id, request.amount_pence)
        return PaymentResult(
            success=True,
            payment_id=intent.id,
            status=intent.status,
            receipt_url=self._receipt_url(intent),
            idempotency_key=idempotency_key,
        )

    def refund(self, payment_id: str, reason: str = "requested_by_customer") -> PaymentResult:
        """Refund a captured payment in full."""
        if not self.is_configured:
            return PaymentResult(success=False, error_message=NOT_CONFIGURED_ERROR)

        idempotency_key = f"booking-refund-{payment_id}"
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_id,
                reason=reason,
                api_key=self.secret_key,
                idempotency_key=idempotency_key,
            )
        except stripe.StripeError as e:
            self.logger.error("Stripe error refunding %s: %s", payment_id, e)
            return PaymentResult(success=False, error_message=GENERIC_PAYMENT_ERROR)

        return PaymentResult(
            success=refund.status in ("succeeded", "pending"),
            payment_id=refund.id,
            status=refund.status,
            idempotency_key=idempotency_key,
        )

    def create_customer(self, email: str, name: str) -> Optional[str]:
        """Create a Stripe customer and return its id, or None on failure."""
        if not self.is_configured:
            return None
        try:
            customer = stripe.Customer.create(
                email=email,
                name=name,
                api_key=self.secret_key,
                idempotency_key=f"customer-{generate_ulid()}",
            )
            return customer.id
        except stripe.StripeError as e:
            self.logger.error("Stripe error creating customer for %s: %s", email, e)
            return None

    def _cancel_quietly(self, payment_id: str) -> None:
        try:
            stripe.PaymentIntent.cancel(payment_id, api_key=self.secret_key)
        except stripe.StripeError as e:
            self.logger.warning("Could not cancel incomplete PaymentIntent %s: %s", payment_id, e)

    @staticmethod
    def _receipt_url(intent: Any) -> Optional[str]:
        latest_charge = getattr(intent, "latest_charge", None)
        if latest_charge is not None and not isinstance(latest_charge, str):
            return getattr(latest_charge, "receipt_url", None)
        return None
