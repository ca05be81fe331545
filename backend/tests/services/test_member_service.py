"""
Tests for MemberService: registration, verification, login, password reset,
profile edits and ledger-preserving deletion.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session

from gymbook.auth import verify_password
from gymbook.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    RateLimitException,
    UnauthorizedException,
    ValidationException,
)
from gymbook.models.booking import Booking, BookingStatus, PaymentMethod
from gymbook.models.member import Member
from gymbook.schemas.member import AdminMemberUpdate, MemberRegister, MemberUpdate
from gymbook.services.member_service import (
    RESET_GENERIC_MESSAGE,
    VERIFICATION_GENERIC_MESSAGE,
    VERIFICATION_SENT_MESSAGE,
    MemberService,
)
from gymbook.services.notification_service import NotificationService
from tests.factories.gym import TEST_PASSWORD, make_booking, make_class, make_member


@pytest.fixture
def notifications() -> Mock:
    return Mock(spec=NotificationService)


@pytest.fixture
def member_service(db: Session, notifications: Mock) -> MemberService:
    return MemberService(db, notification_service=notifications)


def _registration(**overrides) -> MemberRegister:
    data = {
        "name": "Alex Southpaw",
        "email": "Alex@Example.com",
        "phone": "07700 900123",
        "age": 27,
        "emergency_contact_name": "Sam Southpaw",
        "emergency_contact_phone": "07700 900456",
        "password": "SecurePass123",
        "experience_level": "beginner",
        "agree_to_terms": True,
    }
    data.update(overrides)
    return MemberRegister(**data)


class TestRegistration:
    def test_register_creates_unverified_member(self, db, member_service, notifications):
        member = member_service.register(_registration(), client_ip="203.0.113.7")

        assert member.email == "alex@example.com"
        assert member.phone == "07700900123"
        assert member.email_verified is False
        assert member.email_verification_token
        assert member.has_used_free_session is False
        assert member.is_admin is False
        assert verify_password("SecurePass123", member.hashed_password)
        notifications.send_verification_email.assert_called_once_with(member.id)

    def test_duplicate_email_rejected(self, db, member_service, member):
        with pytest.raises(ConflictException) as exc_info:
            member_service.register(_registration(email="JAMIE@example.com"))

        assert exc_info.value.message == "Email already registered"

    def test_duplicate_phone_rejected(self, db, member_service, member):
        with pytest.raises(ConflictException) as exc_info:
            member_service.register(_registration(phone=member.phone))

        assert exc_info.value.code == "PHONE_TAKEN"

    def test_registration_requires_terms(self):
        with pytest.raises(ValueError):
            _registration(agree_to_terms=False)

    def test_registration_rejects_landline(self):
        with pytest.raises(ValueError):
            _registration(phone="01612345678")


class TestVerification:
    def test_verify_email_consumes_token(self, db, member_service):
        member = member_service.register(_registration())
        token = member.email_verification_token

        verified = member_service.verify_email(token)

        assert verified.email_verified is True
        assert verified.email_verification_token is None
        with pytest.raises(ValidationException):
            member_service.verify_email(token)

    def test_unknown_token(self, member_service):
        with pytest.raises(ValidationException) as exc_info:
            member_service.verify_email("not-a-token")

        assert exc_info.value.code == "INVALID_VERIFICATION_TOKEN"

    def test_resend_is_rate_limited_per_minute(self, db, member_service, notifications):
        member = member_service.register(_registration())
        sent_at = datetime.now(timezone.utc)

        with pytest.raises(RateLimitException) as exc_info:
            member_service.resend_verification(member.email, now=sent_at + timedelta(seconds=20))
        assert exc_info.value.details["retry_after"] <= 40

        message = member_service.resend_verification(
            member.email, now=sent_at + timedelta(seconds=61)
        )
        assert message == VERIFICATION_SENT_MESSAGE
        assert notifications.send_verification_email.call_count == 2

    def test_resend_for_unknown_email_is_generic(self, member_service, notifications):
        assert member_service.resend_verification("ghost@example.com") == VERIFICATION_GENERIC_MESSAGE
        notifications.send_verification_email.assert_not_called()

    def test_resend_for_verified_member(self, member_service, member):
        with pytest.raises(ValidationException):
            member_service.resend_verification(member.email)


class TestAuthentication:
    def test_valid_credentials_issue_token(self, member_service, member):
        authenticated, token = member_service.authenticate(member.email, TEST_PASSWORD)

        assert authenticated.id == member.id
        assert token

    def test_wrong_password(self, member_service, member):
        with pytest.raises(UnauthorizedException) as exc_info:
            member_service.authenticate(member.email, "WrongPassword1")

        assert exc_info.value.message == "Invalid email or password"

    def test_unknown_email_gets_same_error(self, member_service):
        with pytest.raises(UnauthorizedException) as exc_info:
            member_service.authenticate("nobody@example.com", TEST_PASSWORD)

        assert exc_info.value.message == "Invalid email or password"

    def test_unverified_member_is_refused(self, db, member_service):
        pending = make_member(db, email_verified=False)

        with pytest.raises(ForbiddenException) as exc_info:
            member_service.authenticate(pending.email, TEST_PASSWORD)

        assert exc_info.value.code == "EMAIL_NOT_VERIFIED"


class TestPasswordReset:
    def test_reset_flow(self, db, member_service, member, notifications):
        assert member_service.request_password_reset(member.email) == RESET_GENERIC_MESSAGE
        db.refresh(member)
        token = member.password_reset_token
        assert token
        notifications.send_password_reset.assert_called_once_with(member.id)

        member_service.reset_password(token, "BrandNewPass99")

        db.refresh(member)
        assert member.password_reset_token is None
        assert verify_password("BrandNewPass99", member.hashed_password)

    def test_unknown_email_gets_generic_answer(self, member_service, notifications):
        assert member_service.request_password_reset("ghost@example.com") == RESET_GENERIC_MESSAGE
        notifications.send_password_reset.assert_not_called()

    def test_repeat_request_within_a_minute_sends_nothing(self, member_service, member, notifications):
        now = datetime.now(timezone.utc)
        member_service.request_password_reset(member.email, now=now)
        member_service.request_password_reset(member.email, now=now + timedelta(seconds=30))

        assert notifications.send_password_reset.call_count == 1

    def test_expired_token_is_cleared(self, db, member_service, member):
        now = datetime.now(timezone.utc)
        member_service.request_password_reset(member.email, now=now)
        db.refresh(member)
        token = member.password_reset_token

        with pytest.raises(ValidationException) as exc_info:
            member_service.reset_password(token, "BrandNewPass99", now=now + timedelta(minutes=61))

        assert exc_info.value.code == "RESET_TOKEN_EXPIRED"
        db.refresh(member)
        assert member.password_reset_token is None
        assert verify_password(TEST_PASSWORD, member.hashed_password)


class TestProfile:
    def test_update_profile(self, db, member_service, member):
        updated = member_service.update_profile(
            member, MemberUpdate(name="Jamie Southpaw", experience_level="advanced")
        )

        assert updated.name == "Jamie Southpaw"
        assert updated.experience_level == "advanced"

    def test_phone_belonging_to_someone_else(self, db, member_service, member):
        other = make_member(db)

        with pytest.raises(ConflictException):
            member_service.update_profile(member, MemberUpdate(phone=other.phone))

    def test_admin_can_toggle_free_session(self, db, member_service, member):
        updated = member_service.admin_update_member(
            member.id, AdminMemberUpdate(has_used_free_session=True)
        )

        assert updated.has_used_free_session is True

    def test_admin_update_with_no_fields(self, member_service, member):
        with pytest.raises(ValidationException):
            member_service.admin_update_member(member.id, AdminMemberUpdate())

    def test_admin_update_unknown_member(self, member_service):
        with pytest.raises(NotFoundException):
            member_service.admin_update_member(
                "01HZZZZZZZZZZZZZZZZZZZZZZZ", AdminMemberUpdate(is_admin=True)
            )


class TestDeletion:
    def test_bookings_survive_as_redacted_ledger_rows(self, db, member_service, member):
        past_class = make_class(db, days_ahead=-7)
        future_class = make_class(db, days_ahead=4)
        attended = make_booking(db, member, past_class, is_free_session=True)
        upcoming = make_booking(
            db,
            member,
            future_class,
            status=BookingStatus.PENDING_CASH.value,
            payment_method=PaymentMethod.CASH.value,
        )
        member_id = member.id

        member_service.delete_member(member_id)

        assert db.get(Member, member_id) is None
        for booking_id in (attended.id, upcoming.id):
            booking = db.get(Booking, booking_id)
            assert booking is not None
            assert booking.member_id is None
            assert booking.member_deleted is True
            assert booking.deleted_member_name == "Deleted Member (J***)"
            assert booking.status == BookingStatus.CANCELLED.value
        db.refresh(future_class)
        db.refresh(past_class)
        assert future_class.booked_count == 0
        assert past_class.booked_count == 0

    def test_delete_own_account_checks_password(self, db, member_service, member):
        with pytest.raises(ValidationException):
            member_service.delete_own_account(member, "not-my-password")

        member_service.delete_own_account(member, TEST_PASSWORD)
        assert db.query(Member).filter(Member.email == "jamie@example.com").first() is None

    def test_admin_cannot_delete_themselves(self, member_service, admin):
        with pytest.raises(ValidationException) as exc_info:
            member_service.admin_delete_member(admin.id, admin)

        assert exc_info.value.code == "SELF_DELETE"

    def test_admin_deletes_member(self, db, member_service, admin, member):
        member_service.admin_delete_member(member.id, admin)

        assert db.query(Member).count() == 1
