# backend/tests/services/test_booking_creation.py
"""
Tests for BookingService.create_booking.

Covers the free first session, the paid paths (card and cash), the
eligibility gates and the guarantee that failed payments leave nothing
behind.
"""

from unittest.mock import Mock, patch

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from gymbook.core.config import settings
from gymbook.core.exceptions import (
    AlreadyBookedException,
    BookingLimitException,
    ClassFullException,
    ClassUnavailableException,
    FreeSessionUsedException,
    NotFoundException,
    PaymentFailedException,
    PaymentRequiredException,
)
from gymbook.models.booking import Booking, BookingStatus, PaymentMethod
from gymbook.models.member import Member
from gymbook.repositories.member_repository import MemberRepository
from gymbook.services.booking_service import FREE_SESSION_MESSAGE, BookingService
from gymbook.services.notification_service import NotificationService
from gymbook.services.payment_gateway import PaymentResult, StripePaymentGateway
from tests.factories.gym import make_booking, make_class, make_member


@pytest.fixture
def payment_gateway() -> Mock:
    gateway = Mock(spec=StripePaymentGateway)
    gateway.charge.return_value = PaymentResult(
        success=True,
        payment_id="pi_test_123",
        status="succeeded",
        receipt_url="https://pay.stripe.com/receipts/test",
        idempotency_key="booking-charge-test",
    )
    gateway.refund.return_value = PaymentResult(success=True, payment_id="re_test_1")
    return gateway


@pytest.fixture
def notifications() -> Mock:
    return Mock(spec=NotificationService)


@pytest.fixture
def booking_service(db: Session, payment_gateway: Mock, notifications: Mock) -> BookingService:
    return BookingService(db, payment_gateway=payment_gateway, notification_service=notifications)


def _booking_count(db: Session) -> int:
    return db.query(Booking).count()


class TestFreeFirstSession:
    def test_first_booking_is_free_and_confirmed(
        self, db, booking_service, member, gym_class, payment_gateway, notifications
    ):
        result = booking_service.create_booking(member, gym_class.id)

        assert result.is_free_session is True
        assert result.price == "0.00"
        assert result.message == FREE_SESSION_MESSAGE
        assert result.booking.status == BookingStatus.CONFIRMED.value
        assert result.booking.is_free_session is True
        payment_gateway.charge.assert_not_called()
        notifications.send_booking_confirmation.assert_called_once_with(result.booking.id)

        db.refresh(member)
        db.refresh(gym_class)
        assert member.has_used_free_session is True
        assert gym_class.booked_count == 1

    def test_second_booking_must_pay(self, db, booking_service, member):
        first_class = make_class(db, days_ahead=2)
        second_class = make_class(db, days_ahead=4)
        booking_service.create_booking(member, first_class.id)

        with pytest.raises(PaymentRequiredException) as exc_info:
            booking_service.create_booking(member, second_class.id)

        assert exc_info.value.code == "PAYMENT_REQUIRED"
        assert exc_info.value.status_code == 402
        db.refresh(second_class)
        assert second_class.booked_count == 0
        assert _booking_count(db) == 1

    def test_member_who_used_free_session_is_never_free_again(self, db, booking_service):
        veteran = make_member(db, has_used_free_session=True)
        gym_class = make_class(db)

        result = booking_service.create_booking(veteran, gym_class.id, pay_with_cash=True)

        assert result.is_free_session is False
        assert result.price == "5.00"

    def test_existing_confirmed_booking_backfills_the_flag(self, db, booking_service):
        legacy = make_member(db, has_used_free_session=False)
        make_booking(db, legacy, make_class(db, days_ahead=-7))
        gym_class = make_class(db)

        result = booking_service.create_booking(legacy, gym_class.id, pay_with_cash=True)

        assert result.is_free_session is False
        db.refresh(legacy)
        assert legacy.has_used_free_session is True

    def test_free_sessions_can_be_switched_off(self, db, booking_service, member, gym_class):
        with patch.object(settings, "free_session_enabled", False):
            result = booking_service.create_booking(member, gym_class.id, pay_with_cash=True)

        assert result.is_free_session is False
        db.refresh(member)
        assert member.has_used_free_session is False


class TestPaidBookings:
    @pytest.fixture
    def paying_member(self, db):
        return make_member(db, has_used_free_session=True)

    def test_cash_booking_holds_seat_pending_payment(self, db, booking_service, paying_member, gym_class):
        result = booking_service.create_booking(paying_member, gym_class.id, pay_with_cash=True)

        assert result.booking.status == BookingStatus.PENDING_CASH.value
        assert result.booking.payment_method == PaymentMethod.CASH.value
        assert result.payment_reference is None
        assert "£5.00 payment due at the session" in result.message
        db.refresh(gym_class)
        assert gym_class.booked_count == 1

    def test_card_booking_charges_session_price(
        self, db, booking_service, paying_member, gym_class, payment_gateway
    ):
        result = booking_service.create_booking(paying_member, gym_class.id, payment_token="pm_card_visa")

        request = payment_gateway.charge.call_args.args[0]
        assert request.token == "pm_card_visa"
        assert request.amount_pence == 500
        assert request.currency == "gbp"
        assert request.metadata == {"member_id": paying_member.id, "class_id": gym_class.id}
        assert result.booking.status == BookingStatus.CONFIRMED.value
        assert result.payment_reference == "pi_test_123"
        assert result.booking.receipt_url == "https://pay.stripe.com/receipts/test"

    def test_declined_card_leaves_no_booking(
        self, db, booking_service, paying_member, gym_class, payment_gateway, notifications
    ):
        payment_gateway.charge.return_value = PaymentResult(
            success=False, error_message="Your card was declined."
        )

        with pytest.raises(PaymentFailedException) as exc_info:
            booking_service.create_booking(paying_member, gym_class.id, payment_token="pm_card_declined")

        assert exc_info.value.message == "Your card was declined."
        assert _booking_count(db) == 0
        db.refresh(gym_class)
        assert gym_class.booked_count == 0
        notifications.send_booking_confirmation.assert_not_called()

    def test_seat_lost_after_charge_is_refunded(
        self, db, booking_service, paying_member, gym_class, payment_gateway
    ):
        with patch.object(
            booking_service.class_repository, "try_increment_booked_count", return_value=False
        ):
            with pytest.raises(ClassFullException):
                booking_service.create_booking(paying_member, gym_class.id, payment_token="pm_card_visa")

        payment_gateway.refund.assert_called_once_with("pi_test_123")
        assert _booking_count(db) == 0


class TestEligibility:
    def test_unknown_class(self, booking_service, member):
        with pytest.raises(NotFoundException):
            booking_service.create_booking(member, "01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_inactive_class(self, db, booking_service, member):
        gym_class = make_class(db, is_active=False)

        with pytest.raises(ClassUnavailableException):
            booking_service.create_booking(member, gym_class.id)

    def test_full_class_rejected_and_counter_untouched(self, db, booking_service, member):
        gym_class = make_class(db, capacity=1, booked_count=1)

        with pytest.raises(ClassFullException) as exc_info:
            booking_service.create_booking(member, gym_class.id)

        assert exc_info.value.message == "This class is fully booked"
        db.refresh(gym_class)
        assert gym_class.booked_count == 1
        db.refresh(member)
        assert member.has_used_free_session is False

    def test_last_seat_can_be_taken(self, db, booking_service, member):
        gym_class = make_class(db, capacity=2, booked_count=1)

        booking_service.create_booking(member, gym_class.id)

        db.refresh(gym_class)
        assert gym_class.booked_count == gym_class.capacity

    def test_same_class_twice(self, db, booking_service, member, gym_class):
        booking_service.create_booking(member, gym_class.id)

        with pytest.raises(AlreadyBookedException):
            booking_service.create_booking(member, gym_class.id, pay_with_cash=True)

    def test_rebooking_after_cancellation_is_allowed(self, db, booking_service, gym_class):
        regular = make_member(db, has_used_free_session=True)
        make_booking(
            db, regular, gym_class, status=BookingStatus.CANCELLED.value, payment_method="cash"
        )

        result = booking_service.create_booking(regular, gym_class.id, pay_with_cash=True)

        assert result.booking.status == BookingStatus.PENDING_CASH.value

    def test_upcoming_booking_limit(self, db, booking_service):
        regular = make_member(db, has_used_free_session=True)
        for days in (1, 2, 3):
            make_booking(db, regular, make_class(db, days_ahead=days), payment_method="cash",
                         status=BookingStatus.PENDING_CASH.value)

        with pytest.raises(BookingLimitException) as exc_info:
            booking_service.create_booking(regular, make_class(db, days_ahead=5).id, pay_with_cash=True)

        assert exc_info.value.code == "BOOKING_LIMIT"
        assert exc_info.value.status_code == 400

    def test_past_and_cancelled_bookings_do_not_count_towards_limit(self, db, booking_service):
        regular = make_member(db, has_used_free_session=True)
        make_booking(db, regular, make_class(db, days_ahead=-3))
        make_booking(db, regular, make_class(db, days_ahead=1), status=BookingStatus.CANCELLED.value)
        make_booking(db, regular, make_class(db, days_ahead=2))
        make_booking(db, regular, make_class(db, days_ahead=3))

        result = booking_service.create_booking(regular, make_class(db, days_ahead=4).id, pay_with_cash=True)

        assert result.booking.id is not None


class TestConcurrentRequests:
    """Interleavings where another request commits between our checks and our writes."""

    def test_free_session_can_only_be_claimed_once(self, db, member):
        members = MemberRepository(db)

        assert members.claim_free_session(member.id) is True
        assert members.claim_free_session(member.id) is False

    def test_free_session_claimed_by_another_request(self, db, booking_service, member, gym_class):
        def other_request_books_free_session(member_id):
            db.execute(
                update(Member)
                .where(Member.id == member_id)
                .values(has_used_free_session=True)
                .execution_options(synchronize_session=False)
            )
            db.commit()
            return 0

        with patch.object(
            booking_service.repository,
            "count_confirmed_for_member",
            side_effect=other_request_books_free_session,
        ):
            with pytest.raises(FreeSessionUsedException) as exc_info:
                booking_service.create_booking(member, gym_class.id)

        assert exc_info.value.status_code == 409
        assert _booking_count(db) == 0
        db.refresh(gym_class)
        assert gym_class.booked_count == 0

    def test_duplicate_insert_is_rejected_and_card_refunded(
        self, db, booking_service, gym_class, payment_gateway
    ):
        regular = make_member(db, has_used_free_session=True)
        make_booking(
            db, regular, gym_class, status=BookingStatus.PENDING_CASH.value, payment_method="cash"
        )

        # The duplicate check ran before the other booking was committed
        with patch.object(
            booking_service.repository, "get_active_for_member_and_class", return_value=None
        ):
            with pytest.raises(AlreadyBookedException):
                booking_service.create_booking(regular, gym_class.id, payment_token="pm_card_visa")

        payment_gateway.refund.assert_called_once_with("pi_test_123")
        assert _booking_count(db) == 1
        db.refresh(gym_class)
        assert gym_class.booked_count == 1
