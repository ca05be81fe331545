# backend/gymbook/services/member_service.py
"""
Member Service

Registration, email verification, login, password reset, profile edits and
account deletion.

Deleting a member never deletes their bookings: the bookings table is the
club's financial ledger, so rows are cancelled and redacted instead.
"""

from datetime import datetime, timedelta, timezone
import logging
import math
import secrets
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..auth import DUMMY_HASH_FOR_TIMING_ATTACK, create_access_token, get_password_hash, verify_password
from ..core.constants import (
    PASSWORD_RESET_COOLDOWN_SECONDS,
    PASSWORD_RESET_TOKEN_TTL_MINUTES,
    VERIFICATION_RESEND_COOLDOWN_SECONDS,
)
from ..core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
    RateLimitException,
    UnauthorizedException,
    ValidationException,
)
from ..models.member import Member
from ..repositories.booking_repository import BookingRepository
from ..repositories.class_repository import ClassRepository
from ..repositories.member_repository import MemberRepository
from ..schemas.member import AdminMemberUpdate, MemberRegister, MemberUpdate
from .base import BaseService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = (
    "Registration successful! Please check your email to verify your account before logging in."
)
VERIFICATION_GENERIC_MESSAGE = "If this email is registered, a verification link has been sent."
VERIFICATION_SENT_MESSAGE = "Verification email sent! Please check your inbox."
RESET_GENERIC_MESSAGE = "If this email is registered, a password reset link has been sent."
RESET_DONE_MESSAGE = (
    "Password has been reset successfully. You can now log in with your new password."
)
UNVERIFIED_MESSAGE = (
    "Please verify your email before logging in. Check your inbox for the verification link."
)


def _aware(moment: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive values; everything is stored in UTC
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _new_token() -> str:
    return secrets.token_urlsafe(32)


class MemberService(BaseService):
    def __init__(
        self,
        db: Session,
        notification_service: Optional[NotificationService] = None,
        member_repository: Optional[MemberRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        class_repository: Optional[ClassRepository] = None,
    ):
        super().__init__(db)
        self.notification_service = notification_service or NotificationService()
        self.repository = member_repository or MemberRepository(db)
        self.booking_repository = booking_repository or BookingRepository(db)
        self.class_repository = class_repository or ClassRepository(db)

    # ------------------------------------------------------------------ #
    # Registration & verification
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("register")
    def register(self, data: MemberRegister, client_ip: Optional[str] = None) -> Member:
        """
        Create an unverified member and send the verification email.

        Raises:
            ConflictException: Email or phone already belongs to an account
        """
        if self.repository.get_by_email(data.email) is not None:
            raise ConflictException("Email already registered", code="EMAIL_TAKEN")
        if self.repository.get_by_phone(data.phone) is not None:
            raise ConflictException(
                "This phone number is already registered to an account", code="PHONE_TAKEN"
            )

        with self.transaction():
            member = self.repository.create(
                name=data.name,
                email=data.email,
                phone=data.phone,
                age=data.age,
                emergency_contact_name=data.emergency_contact_name,
                emergency_contact_phone=data.emergency_contact_phone,
                experience_level=data.experience_level,
                hashed_password=get_password_hash(data.password),
                email_verified=False,
                email_verification_token=_new_token(),
                verification_sent_at=datetime.now(timezone.utc),
                has_used_free_session=False,
                is_admin=False,
            )

        self.log_operation("register", member_id=member.id, client_ip=client_ip)
        self.notification_service.send_verification_email(member.id)
        return member

    @BaseService.measure_operation("verify_email")
    def verify_email(self, token: str) -> Member:
        member = self.repository.get_by_verification_token(token) if token else None
        if member is None:
            raise ValidationException(
                "Invalid or expired verification link", code="INVALID_VERIFICATION_TOKEN"
            )
        with self.transaction():
            member.email_verified = True
            member.email_verification_token = None
            self.db.flush()
        self.log_operation("verify_email", member_id=member.id)
        return member

    @BaseService.measure_operation("resend_verification")
    def resend_verification(self, email: str, now: Optional[datetime] = None) -> str:
        """
        Issue a fresh verification link, at most once a minute per account.

        Unknown emails get the same answer as known ones.
        """
        member = self.repository.get_by_email(email)
        if member is None:
            return VERIFICATION_GENERIC_MESSAGE
        if member.email_verified:
            raise ValidationException(
                "Email is already verified. You can log in now.", code="ALREADY_VERIFIED"
            )

        current = now or datetime.now(timezone.utc)
        last_sent = _aware(member.verification_sent_at)
        if last_sent is not None:
            elapsed = (current - last_sent).total_seconds()
            if elapsed < VERIFICATION_RESEND_COOLDOWN_SECONDS:
                remaining = math.ceil(VERIFICATION_RESEND_COOLDOWN_SECONDS - elapsed)
                raise RateLimitException(
                    f"Please wait {remaining} seconds before requesting another email.",
                    details={"retry_after": remaining},
                )

        with self.transaction():
            member.email_verification_token = _new_token()
            member.verification_sent_at = current
            self.db.flush()
        self.notification_service.send_verification_email(member.id)
        return VERIFICATION_SENT_MESSAGE

    # ------------------------------------------------------------------ #
    # Login & password reset
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("authenticate")
    def authenticate(self, email: str, password: str) -> Tuple[Member, str]:
        """
        Check credentials and issue an access token.

        Returns:
            (member, access_token)

        Raises:
            UnauthorizedException: Unknown email or wrong password
            ForbiddenException: Email not verified yet
        """
        member = self.repository.get_by_email(email)
        if member is None:
            # Burn the same bcrypt time as a real check
            verify_password(password, DUMMY_HASH_FOR_TIMING_ATTACK)
            raise UnauthorizedException("Invalid email or password", code="INVALID_CREDENTIALS")
        if not verify_password(password, member.hashed_password):
            raise UnauthorizedException("Invalid email or password", code="INVALID_CREDENTIALS")
        if not member.email_verified:
            raise ForbiddenException(UNVERIFIED_MESSAGE, code="EMAIL_NOT_VERIFIED")

        token = create_access_token(data={"sub": member.email})
        self.log_operation("login", member_id=member.id)
        return member, token

    @BaseService.measure_operation("request_password_reset")
    def request_password_reset(self, email: str, now: Optional[datetime] = None) -> str:
        current = now or datetime.now(timezone.utc)
        member = self.repository.get_by_email(email)
        if member is None:
            return RESET_GENERIC_MESSAGE

        last_requested = _aware(member.password_reset_requested_at)
        if (
            last_requested is not None
            and (current - last_requested).total_seconds() < PASSWORD_RESET_COOLDOWN_SECONDS
        ):
            return RESET_GENERIC_MESSAGE

        with self.transaction():
            member.password_reset_token = _new_token()
            member.password_reset_expires = current + timedelta(
                minutes=PASSWORD_RESET_TOKEN_TTL_MINUTES
            )
            member.password_reset_requested_at = current
            self.db.flush()
        self.notification_service.send_password_reset(member.id)
        return RESET_GENERIC_MESSAGE

    @BaseService.measure_operation("reset_password")
    def reset_password(self, token: str, new_password: str, now: Optional[datetime] = None) -> str:
        member = self.repository.get_by_reset_token(token)
        if member is None:
            raise ValidationException(
                "Invalid or expired reset link. Please request a new one.", code="INVALID_RESET_TOKEN"
            )

        expires = _aware(member.password_reset_expires)
        if expires is None or expires < (now or datetime.now(timezone.utc)):
            with self.transaction():
                member.password_reset_token = None
                member.password_reset_expires = None
                self.db.flush()
            raise ValidationException(
                "This reset link has expired. Please request a new one.", code="RESET_TOKEN_EXPIRED"
            )

        with self.transaction():
            member.hashed_password = get_password_hash(new_password)
            member.password_reset_token = None
            member.password_reset_expires = None
            self.db.flush()
        self.log_operation("reset_password", member_id=member.id)
        return RESET_DONE_MESSAGE

    # ------------------------------------------------------------------ #
    # Profile
    # ------------------------------------------------------------------ #

    def get_by_email(self, email: str) -> Optional[Member]:
        return self.repository.get_by_email(email)

    def get_member(self, member_id: str) -> Member:
        member = self.repository.get_by_id(member_id)
        if member is None:
            raise NotFoundException("Member not found")
        return member

    @BaseService.measure_operation("update_profile")
    def update_profile(self, member: Member, data: MemberUpdate) -> Member:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        return self._apply_changes(member, changes)

    def _apply_changes(self, member: Member, changes: Dict[str, Any]) -> Member:
        if not changes:
            return member

        phone = changes.get("phone")
        if phone and phone != member.phone:
            existing = self.repository.get_by_phone(phone)
            if existing is not None and existing.id != member.id:
                raise ConflictException(
                    "This phone number is already registered to an account", code="PHONE_TAKEN"
                )
        email = changes.get("email")
        if email and email != member.email:
            existing = self.repository.get_by_email(email)
            if existing is not None and existing.id != member.id:
                raise ConflictException(
                    "Email already in use by another member", code="EMAIL_TAKEN"
                )

        with self.transaction():
            for key, value in changes.items():
                setattr(member, key, value)
            self.db.flush()
        self.log_operation("update_member", member_id=member.id, fields=sorted(changes))
        return member

    # ------------------------------------------------------------------ #
    # Deletion
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("delete_member")
    def delete_member(self, member_id: str) -> None:
        """
        Delete a member, keeping their bookings as redacted ledger rows.

        Live bookings release their seats; every booking is cancelled and
        detached from the member before the member row is removed.
        """
        member = self.get_member(member_id)
        redacted = member.anonymized_name()
        bookings = self.booking_repository.find_by(member_id=member_id)

        with self.transaction():
            for booking in bookings:
                if booking.holds_seat:
                    self.class_repository.decrement_booked_count(booking.class_id)
                booking.anonymize(redacted)
            self.db.flush()
            self.db.delete(member)
            self.db.flush()

        self.log_operation("delete_member", member_id=member_id, bookings_redacted=len(bookings))

    def delete_own_account(self, member: Member, password: str) -> None:
        if not verify_password(password, member.hashed_password):
            raise ValidationException("Incorrect password", code="INCORRECT_PASSWORD")
        self.delete_member(member.id)

    # ------------------------------------------------------------------ #
    # Admin
    # ------------------------------------------------------------------ #

    def list_members(self) -> List[Member]:
        return self.repository.list_members()

    @BaseService.measure_operation("admin_update_member")
    def admin_update_member(self, member_id: str, data: AdminMemberUpdate) -> Member:
        member = self.get_member(member_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationException("No valid fields to update")
        return self._apply_changes(member, changes)

    def admin_delete_member(self, member_id: str, admin: Member) -> None:
        if member_id == admin.id:
            raise ValidationException(
                "Cannot delete your own account from admin panel", code="SELF_DELETE"
            )
        self.delete_member(member_id)
