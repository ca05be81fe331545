# backend/gymbook/services/booking_service.py
"""
Booking Service

Owns the booking ledger: eligibility checks, the free-session entitlement,
card/cash payment orchestration and the cancellation policy.

Seat accounting is delegated to ClassRepository's conditional UPDATE; the
counter increment, the booking insert and the free-session flag are written
in one transaction so either all three land or none do.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import FREE_SESSION_RESTORE_WINDOW_MINUTES
from ..core.exceptions import (
    AlreadyBookedException,
    BookingLimitException,
    ClassFullException,
    ClassUnavailableException,
    DomainException,
    ForbiddenException,
    FreeSessionUsedException,
    NotFoundException,
    PaymentFailedException,
    PaymentRequiredException,
    RepositoryException,
    ValidationException,
)
from ..core.timezone_utils import class_start, club_now, club_today
from ..models.booking import ACTIVE_BOOKING_INDEX, Booking, BookingStatus, PaymentMethod
from ..models.member import Member
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.booking_repository import BookingRepository
from ..repositories.class_repository import ClassRepository
from ..repositories.member_repository import MemberRepository
from .base import BaseService
from .notification_service import NotificationService
from .payment_gateway import ChargeRequest, PaymentResult, StripePaymentGateway

logger = logging.getLogger(__name__)

FREE_SESSION_MESSAGE = "Your first session is FREE! A confirmation email has been sent."
CARD_PAID_MESSAGE = "Booking confirmed - payment received. A confirmation email has been sent."
CASH_DUE_MESSAGE = (
    "Booking confirmed - £{price} payment due at the session. A confirmation email has been sent."
)


@dataclass
class BookingResult:
    booking: Booking
    is_free_session: bool
    price: str
    payment_reference: Optional[str]
    message: str


@dataclass
class CancellationResult:
    booking: Booking
    free_session_restored: bool
    free_session_forfeited: bool
    refund_eligible: bool
    message: str = "Booking cancelled"


def _is_duplicate_active_booking(error: Optional[BaseException]) -> bool:
    """Whether an IntegrityError came from the one-live-booking-per-class index."""
    if not isinstance(error, IntegrityError):
        return False
    orig = getattr(error, "orig", None)
    diag = getattr(orig, "diag", None)
    if diag is not None and getattr(diag, "constraint_name", None) == ACTIVE_BOOKING_INDEX:
        return True
    text = str(orig)
    # SQLite names the columns rather than the index
    return ACTIVE_BOOKING_INDEX in text or "bookings.member_id, bookings.class_id" in text


def is_within_restore_window(starts_at: datetime, now: datetime) -> bool:
    """True once we are inside the final hour before a class starts (or past it)."""
    return now >= starts_at - timedelta(minutes=FREE_SESSION_RESTORE_WINDOW_MINUTES)


class BookingService(BaseService):
    """
    Service layer for booking operations.

    Card charges happen outside the database transaction; if the seat is lost
    to a concurrent booking after a successful charge, the charge is refunded
    before the caller sees "This class is fully booked".
    """

    def __init__(
        self,
        db: Session,
        payment_gateway: Optional[StripePaymentGateway] = None,
        notification_service: Optional[NotificationService] = None,
        booking_repository: Optional[BookingRepository] = None,
        class_repository: Optional[ClassRepository] = None,
        member_repository: Optional[MemberRepository] = None,
    ):
        super().__init__(db)
        self.payment_gateway = payment_gateway or StripePaymentGateway()
        self.notification_service = notification_service or NotificationService()
        self.repository = booking_repository or BookingRepository(db)
        self.class_repository = class_repository or ClassRepository(db)
        self.member_repository = member_repository or MemberRepository(db)

    # ------------------------------------------------------------------ #
    # Create
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        member: Member,
        class_id: str,
        payment_token: Optional[str] = None,
        pay_with_cash: bool = False,
        today: Optional[date] = None,
    ) -> BookingResult:
        """
        Book one seat in a class for a member.

        Args:
            member: Authenticated member making the booking
            class_id: Class instance to book
            payment_token: Card payment method token, required for paid card bookings
            pay_with_cash: Reserve now and pay at the session instead
            today: Reference date for the upcoming-bookings limit

        Returns:
            BookingResult with the committed booking and a member-facing message

        Raises:
            NotFoundException: Class does not exist
            ClassUnavailableException / ClassFullException: Class cannot take bookings
            AlreadyBookedException: Member already holds a live booking for the class
            FreeSessionUsedException: A concurrent booking claimed the free session first
            BookingLimitException: Member is at the upcoming-bookings cap
            PaymentRequiredException / PaymentFailedException: Card payment problems
        """
        try:
            return self._create_booking(member, class_id, payment_token, pay_with_cash, today)
        except DomainException as e:
            prometheus_metrics.record_booking_rejection(e.code)
            raise

    def _create_booking(
        self,
        member: Member,
        class_id: str,
        payment_token: Optional[str],
        pay_with_cash: bool,
        today: Optional[date],
    ) -> BookingResult:
        self._check_class_bookable(class_id)
        self._check_member_eligible(member, class_id, today or club_today())

        is_free = self._resolve_free_session(member)
        price = Decimal("0.00") if is_free else Decimal(settings.session_price)

        charge: Optional[PaymentResult] = None
        if is_free:
            status = BookingStatus.CONFIRMED.value
            method = PaymentMethod.CARD.value
        elif pay_with_cash:
            status = BookingStatus.PENDING_CASH.value
            method = PaymentMethod.CASH.value
        else:
            charge = self._charge_card(member, class_id, payment_token)
            status = BookingStatus.CONFIRMED.value
            method = PaymentMethod.CARD.value

        try:
            with self.transaction():
                # Conditional writes: a concurrent request cannot claim the
                # same free session or the last seat twice
                if is_free and not self.member_repository.claim_free_session(member.id):
                    raise FreeSessionUsedException()
                if not self.class_repository.try_increment_booked_count(class_id):
                    raise ClassFullException()
                booking = self._insert_booking(
                    member_id=member.id,
                    class_id=class_id,
                    status=status,
                    is_free_session=is_free,
                    price=price,
                    payment_method=method,
                    payment_reference=charge.payment_id if charge else None,
                    receipt_url=charge.receipt_url if charge else None,
                )
        except Exception:
            if charge is not None and charge.payment_id:
                self._refund_lost_seat(charge.payment_id, class_id)
            raise

        kind = "free" if is_free else method
        prometheus_metrics.record_booking(kind)
        self.log_operation(
            "create_booking", booking_id=booking.id, class_id=class_id, member_id=member.id, kind=kind
        )
        self.notification_service.send_booking_confirmation(booking.id)

        if is_free:
            message = FREE_SESSION_MESSAGE
        elif method == PaymentMethod.CASH.value:
            message = CASH_DUE_MESSAGE.format(price=settings.session_price)
        else:
            message = CARD_PAID_MESSAGE

        return BookingResult(
            booking=booking,
            is_free_session=is_free,
            price=f"{price:.2f}",
            payment_reference=booking.payment_reference,
            message=message,
        )

    def _check_class_bookable(self, class_id: str) -> None:
        gym_class = self.class_repository.get_by_id(class_id)
        if gym_class is None:
            raise NotFoundException("Class not found")
        if not gym_class.is_active:
            raise ClassUnavailableException()
        if gym_class.is_full:
            raise ClassFullException()

    def _check_member_eligible(self, member: Member, class_id: str, today: date) -> None:
        if self.repository.get_active_for_member_and_class(member.id, class_id) is not None:
            raise AlreadyBookedException()
        if self.repository.count_future_active(member.id, today) >= settings.max_future_bookings:
            raise BookingLimitException(settings.max_future_bookings)

    def _insert_booking(self, **values: Any) -> Booking:
        """Insert the booking row; the live-booking index rejects a concurrent duplicate."""
        try:
            return self.repository.create(**values)
        except RepositoryException as e:
            if _is_duplicate_active_booking(e.__cause__):
                raise AlreadyBookedException() from e
            raise

    def _resolve_free_session(self, member: Member) -> bool:
        """
        Whether this booking uses the member's free session.

        Members created before the flag existed may have confirmed bookings
        with the flag still unset; those are treated as having used it and
        the flag is persisted.
        """
        if not settings.free_session_enabled or member.has_used_free_session:
            return False
        if self.repository.count_confirmed_for_member(member.id) > 0:
            with self.transaction():
                self.member_repository.set_free_session_used(member.id, True)
            self.logger.info(f"Backfilled free-session flag for member {member.id}")
            return False
        return True

    def _charge_card(
        self, member: Member, class_id: str, payment_token: Optional[str]
    ) -> PaymentResult:
        if not payment_token:
            raise PaymentRequiredException(settings.session_price)

        gym_class = self.class_repository.get_by_id(class_id)
        description = f"{settings.club_name} - {gym_class.title} on {gym_class.date.isoformat()}"
        result = self.payment_gateway.charge(
            ChargeRequest(
                token=payment_token,
                amount_pence=settings.session_price_pence,
                currency=settings.stripe_currency,
                description=description,
                customer_id=member.stripe_customer_id,
                metadata={"member_id": member.id, "class_id": class_id},
            )
        )
        if not result.success:
            raise PaymentFailedException(result.error_message or "Payment failed")
        return result

    def _refund_lost_seat(self, payment_id: str, class_id: str) -> None:
        refund = self.payment_gateway.refund(payment_id)
        if refund.success:
            self.logger.warning(f"Refunded payment {payment_id}: seat in class {class_id} was lost")
        else:
            # Needs manual follow-up in the Stripe dashboard
            self.logger.error(
                f"Refund failed for payment {payment_id} after losing seat in class {class_id}"
            )

    # ------------------------------------------------------------------ #
    # Cancel
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(
        self, booking_id: str, actor: Member, now: Optional[datetime] = None
    ) -> CancellationResult:
        """
        Cancel a booking on behalf of its owner or an admin.

        A free session is handed back only when cancelled more than an hour
        before the class starts; later cancellations forfeit it. Card refunds
        are processed manually, so the result only reports eligibility.
        """
        booking = self.repository.get_with_details(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        if booking.member_id != actor.id and not actor.is_admin:
            raise ForbiddenException("Not authorized")
        if booking.is_cancelled:
            raise ValidationException("Booking is already cancelled")

        gym_class = booking.gym_class
        starts_at = class_start(gym_class.date, gym_class.time)
        late = is_within_restore_window(starts_at, now or club_now())

        restored = False
        forfeited = False
        with self.transaction():
            holds_seat = booking.holds_seat
            booking.cancel()
            if holds_seat:
                self.class_repository.decrement_booked_count(booking.class_id)
            if booking.is_free_session and booking.member_id:
                if late:
                    forfeited = True
                else:
                    self.member_repository.set_free_session_used(booking.member_id, False)
                    restored = True
            self.db.flush()

        refund_eligible = (
            not booking.is_free_session
            and booking.payment_method == PaymentMethod.CARD.value
            and booking.payment_reference is not None
            and not late
        )
        self.log_operation(
            "cancel_booking",
            booking_id=booking_id,
            by_admin=booking.member_id != actor.id,
            restored=restored,
            forfeited=forfeited,
        )
        self.notification_service.send_booking_cancellation(booking_id)
        return CancellationResult(
            booking=booking,
            free_session_restored=restored,
            free_session_forfeited=forfeited,
            refund_eligible=refund_eligible,
        )

    @BaseService.measure_operation("cancel_stale_pending")
    def cancel_stale_pending(
        self, older_than: Optional[timedelta] = None, now: Optional[datetime] = None
    ) -> int:
        """Cancel `pending` bookings made before the cutoff, releasing their seats."""
        window = older_than or timedelta(hours=settings.stale_booking_hours)
        cutoff = (now or datetime.now(timezone.utc)).astimezone(timezone.utc) - window

        stale = self.repository.list_stale_pending(cutoff)
        if not stale:
            return 0
        with self.transaction():
            for booking in stale:
                booking.cancel()
                self.class_repository.decrement_booked_count(booking.class_id)
                self.logger.info(f"Auto-cancelled stale booking {booking.id}")
            self.db.flush()
        return len(stale)

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def list_member_bookings(self, member_id: str) -> List[Booking]:
        return self.repository.list_for_member(member_id)

    def list_all_bookings(self) -> List[Booking]:
        return self.repository.list_all_with_details()

    @BaseService.measure_operation("get_stats")
    def get_stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        """Dashboard counters; the week runs Monday to Sunday."""
        reference = today or club_today()
        week_start = reference - timedelta(days=reference.weekday())
        week_end = week_start + timedelta(days=6)
        return {
            "total_classes": self.class_repository.count(),
            "classes_this_week": self.class_repository.count_between(week_start, week_end),
            "total_bookings": self.repository.count(status=BookingStatus.CONFIRMED.value),
            "total_members": self.member_repository.count(),
        }
