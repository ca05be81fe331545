# backend/gymbook/models/member.py
"""
Member model.

A member is a registered club user. The `has_used_free_session` flag is the
single source of truth for whether the member's next booking is free.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, func
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class Member(Base):
    __tablename__ = "members"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Identity
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=False)
    age = Column(Integer, nullable=True)
    emergency_contact_name = Column(String(100), nullable=False)
    emergency_contact_phone = Column(String(20), nullable=False)
    experience_level = Column(String(20), nullable=False, default="beginner")

    # Credentials
    hashed_password = Column(String(255), nullable=False)
    email_verified = Column(Boolean, nullable=False, default=False)
    email_verification_token = Column(String(64), nullable=True, index=True)
    verification_sent_at = Column(DateTime(timezone=True), nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime(timezone=True), nullable=True)
    password_reset_requested_at = Column(DateTime(timezone=True), nullable=True)

    # Role and eligibility
    is_admin = Column(Boolean, nullable=False, default=False)
    has_used_free_session = Column(Boolean, nullable=False, default=False)
    stripe_customer_id = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    bookings = relationship("Booking", back_populates="member", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("age IS NULL OR (age >= 1 AND age <= 100)", name="ck_members_age_range"),
        CheckConstraint(
            "experience_level IN ('beginner', 'intermediate', 'advanced')",
            name="ck_members_experience_level",
        ),
    )

    @property
    def first_name(self) -> str:
        parts = (self.name or "").split()
        return parts[0] if parts else ""

    def anonymized_name(self) -> str:
        """Redacted display name kept on bookings after the member is deleted."""
        initial = self.first_name[:1]
        if initial:
            return f"Deleted Member ({initial}***)"
        return "Deleted Member"

    def __repr__(self) -> str:
        return f"<Member {self.id} {self.email} admin={self.is_admin}>"
