"""
Tests for BookingService cancellation: the one-hour free-session window,
refund eligibility, seat release and the stale pending sweep.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session

from gymbook.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from gymbook.core.timezone_utils import class_start
from gymbook.models.booking import BookingStatus, PaymentMethod
from gymbook.models.gym_class import ClassInstance
from gymbook.services.booking_service import BookingService, is_within_restore_window
from gymbook.services.notification_service import NotificationService
from gymbook.services.payment_gateway import StripePaymentGateway
from tests.factories.gym import make_booking, make_class, make_member


@pytest.fixture
def notifications() -> Mock:
    return Mock(spec=NotificationService)


@pytest.fixture
def booking_service(db: Session, notifications: Mock) -> BookingService:
    return BookingService(
        db,
        payment_gateway=Mock(spec=StripePaymentGateway),
        notification_service=notifications,
    )


def _starts(gym_class: ClassInstance) -> datetime:
    return class_start(gym_class.date, gym_class.time)


class TestRestoreWindow:
    def test_boundary_is_inclusive(self):
        starts_at = datetime(2026, 3, 2, 17, 30, tzinfo=timezone.utc)

        assert is_within_restore_window(starts_at, starts_at - timedelta(minutes=60)) is True
        assert is_within_restore_window(starts_at, starts_at - timedelta(minutes=61)) is False
        assert is_within_restore_window(starts_at, starts_at + timedelta(minutes=5)) is True


class TestFreeSessionCancellation:
    @pytest.fixture
    def free_booking(self, db, member, gym_class):
        member.has_used_free_session = True
        db.commit()
        return make_booking(db, member, gym_class, is_free_session=True)

    def test_early_cancellation_restores_free_session(
        self, db, booking_service, member, gym_class, free_booking, notifications
    ):
        result = booking_service.cancel_booking(
            free_booking.id, member, now=_starts(gym_class) - timedelta(hours=2)
        )

        assert result.free_session_restored is True
        assert result.free_session_forfeited is False
        assert result.refund_eligible is False
        assert result.booking.status == BookingStatus.CANCELLED.value
        assert result.booking.cancelled_at is not None
        notifications.send_booking_cancellation.assert_called_once_with(free_booking.id)

        db.refresh(member)
        db.refresh(gym_class)
        assert member.has_used_free_session is False
        assert gym_class.booked_count == 0

    def test_late_cancellation_forfeits_free_session(
        self, db, booking_service, member, gym_class, free_booking
    ):
        result = booking_service.cancel_booking(
            free_booking.id, member, now=_starts(gym_class) - timedelta(minutes=30)
        )

        assert result.free_session_restored is False
        assert result.free_session_forfeited is True
        db.refresh(member)
        db.refresh(gym_class)
        assert member.has_used_free_session is True
        assert gym_class.booked_count == 0

    def test_restored_session_makes_next_booking_free(
        self, db, booking_service, member, gym_class, free_booking
    ):
        booking_service.cancel_booking(
            free_booking.id, member, now=_starts(gym_class) - timedelta(days=1)
        )
        db.refresh(member)

        result = booking_service.create_booking(member, make_class(db, days_ahead=5).id)

        assert result.is_free_session is True


class TestPaidCancellation:
    @pytest.fixture
    def paying_member(self, db):
        return make_member(db, has_used_free_session=True)

    def test_early_card_cancellation_is_refund_eligible(
        self, db, booking_service, paying_member, gym_class
    ):
        booking = make_booking(db, paying_member, gym_class, payment_reference="pi_paid_1")

        result = booking_service.cancel_booking(
            booking.id, paying_member, now=_starts(gym_class) - timedelta(hours=3)
        )

        assert result.refund_eligible is True
        assert result.free_session_restored is False

    def test_late_card_cancellation_is_not_refund_eligible(
        self, db, booking_service, paying_member, gym_class
    ):
        booking = make_booking(db, paying_member, gym_class, payment_reference="pi_paid_2")

        result = booking_service.cancel_booking(
            booking.id, paying_member, now=_starts(gym_class) - timedelta(minutes=10)
        )

        assert result.refund_eligible is False

    def test_cash_booking_releases_seat_without_refund(
        self, db, booking_service, paying_member, gym_class
    ):
        booking = make_booking(
            db,
            paying_member,
            gym_class,
            status=BookingStatus.PENDING_CASH.value,
            payment_method=PaymentMethod.CASH.value,
        )

        result = booking_service.cancel_booking(booking.id, paying_member)

        assert result.refund_eligible is False
        db.refresh(gym_class)
        assert gym_class.booked_count == 0


class TestCancellationPermissions:
    def test_other_member_cannot_cancel(self, db, booking_service, member, gym_class):
        booking = make_booking(db, member, gym_class)
        stranger = make_member(db)

        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(booking.id, stranger)

        db.refresh(gym_class)
        assert gym_class.booked_count == 1

    def test_admin_can_cancel_any_booking(self, db, booking_service, member, admin, gym_class):
        booking = make_booking(db, member, gym_class)

        result = booking_service.cancel_booking(booking.id, admin)

        assert result.booking.status == BookingStatus.CANCELLED.value

    def test_cancelling_twice_is_rejected(self, db, booking_service, member, gym_class):
        booking = make_booking(db, member, gym_class)
        booking_service.cancel_booking(booking.id, member)

        with pytest.raises(ValidationException) as exc_info:
            booking_service.cancel_booking(booking.id, member)

        assert exc_info.value.message == "Booking is already cancelled"
        db.refresh(gym_class)
        assert gym_class.booked_count == 0

    def test_unknown_booking(self, booking_service, member):
        with pytest.raises(NotFoundException):
            booking_service.cancel_booking("01HZZZZZZZZZZZZZZZZZZZZZZZ", member)


class TestStalePendingSweep:
    def test_old_pending_bookings_are_cancelled(self, db, booking_service, member, gym_class):
        now = datetime.now(timezone.utc)
        stale = make_booking(
            db, member, gym_class, status=BookingStatus.PENDING.value,
            booked_at=now - timedelta(hours=25),
        )
        fresh = make_booking(
            db, make_member(db), gym_class, status=BookingStatus.PENDING.value,
            booked_at=now - timedelta(hours=2),
        )
        cash = make_booking(
            db, make_member(db), gym_class, status=BookingStatus.PENDING_CASH.value,
            payment_method=PaymentMethod.CASH.value, booked_at=now - timedelta(days=3),
        )

        cancelled = booking_service.cancel_stale_pending(now=now)

        assert cancelled == 1
        for booking in (stale, fresh, cash):
            db.refresh(booking)
        assert stale.status == BookingStatus.CANCELLED.value
        assert fresh.status == BookingStatus.PENDING.value
        assert cash.status == BookingStatus.PENDING_CASH.value
        db.refresh(gym_class)
        assert gym_class.booked_count == 2

    def test_nothing_to_sweep(self, booking_service):
        assert booking_service.cancel_stale_pending() == 0
