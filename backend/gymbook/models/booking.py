# backend/gymbook/models/booking.py
"""
Booking model.

The bookings table doubles as the club's financial ledger: rows are cancelled
or anonymized, never deleted, except when an admin deletes the class itself.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    func,
    text,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base

ACTIVE_BOOKING_INDEX = "uq_bookings_member_class_active"


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Awaiting payment; swept after 24h
    PENDING_CASH = "pending_cash"  # Seat held, cash due at the session
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH = "cash"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    member_id = Column(
        String(26), ForeignKey("members.id", ondelete="SET NULL"), nullable=True, index=True
    )
    class_id = Column(
        String(26), ForeignKey("gym_classes.id", ondelete="CASCADE"), nullable=False, index=True
    )

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    is_free_session = Column(Boolean, nullable=False, default=False)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("5.00"))
    payment_method = Column(String(10), nullable=False, default=PaymentMethod.CARD.value)
    payment_reference = Column(String(255), nullable=True)
    receipt_url = Column(String(500), nullable=True)

    booked_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Redaction fields filled in when the member is deleted
    member_deleted = Column(Boolean, nullable=False, default=False)
    deleted_member_name = Column(String(100), nullable=True)

    member = relationship("Member", back_populates="bookings")
    gym_class = relationship("ClassInstance", back_populates="bookings")

    __table_args__ = (
        Index("ix_bookings_member_class", "member_id", "class_id"),
        # At most one live booking per member and class
        Index(
            ACTIVE_BOOKING_INDEX,
            "member_id",
            "class_id",
            unique=True,
            postgresql_where=text("status != 'cancelled'"),
            sqlite_where=text("status != 'cancelled'"),
        ),
        CheckConstraint(
            "status IN ('pending', 'pending_cash', 'confirmed', 'cancelled')",
            name="ck_bookings_status",
        ),
        CheckConstraint("payment_method IN ('card', 'cash')", name="ck_bookings_payment_method"),
        CheckConstraint("price >= 0", name="ck_bookings_price_non_negative"),
    )

    @property
    def is_cancelled(self) -> bool:
        return self.status == BookingStatus.CANCELLED.value

    @property
    def holds_seat(self) -> bool:
        return self.status in (
            BookingStatus.PENDING.value,
            BookingStatus.PENDING_CASH.value,
            BookingStatus.CONFIRMED.value,
        )

    def cancel(self) -> None:
        """Mark booking cancelled; counter bookkeeping is the caller's job."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = datetime.now(timezone.utc)

    def anonymize(self, redacted_name: str) -> None:
        self.member_deleted = True
        self.deleted_member_name = redacted_name
        self.member = None
        self.member_id = None
        self.status = BookingStatus.CANCELLED.value
        if self.cancelled_at is None:
            self.cancelled_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        return f"<Booking {self.id} member={self.member_id} class={self.class_id} {self.status}>"
