# backend/gymbook/models/gym_class.py
"""
Class calendar models.

ClassTemplate describes a weekly recurring session; ClassInstance is one dated
occurrence that members book. Instances are materialized from templates on a
rolling window and are never rewritten by regeneration, so admin edits stick.
"""

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


class ClassTemplate(Base):
    __tablename__ = "class_templates"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday, matches date.weekday()
    time = Column(String(5), nullable=False)
    title = Column(String(200), nullable=False)
    class_type = Column(String(50), nullable=False)
    duration = Column(Integer, nullable=False, default=60)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_templates_day_of_week"),
        CheckConstraint("duration > 0", name="ck_templates_duration_positive"),
    )

    def __repr__(self) -> str:
        return f"<ClassTemplate {self.title} dow={self.day_of_week} {self.time}>"


class ClassInstance(Base):
    __tablename__ = "gym_classes"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    class_type = Column(String(50), nullable=False)
    date = Column(Date, nullable=False, index=True)
    time = Column(String(5), nullable=False)
    duration = Column(Integer, nullable=False, default=60)
    capacity = Column(Integer, nullable=False, default=12)
    booked_count = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(10, 2), nullable=False, default=Decimal("5.00"))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    bookings = relationship(
        "Booking",
        back_populates="gym_class",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("date", "time", name="uq_gym_classes_date_time"),
        CheckConstraint("booked_count >= 0", name="ck_gym_classes_booked_count_non_negative"),
        CheckConstraint("capacity > 0", name="ck_gym_classes_capacity_positive"),
    )

    @property
    def spots_left(self) -> int:
        return max((self.capacity or 0) - (self.booked_count or 0), 0)

    @property
    def is_full(self) -> bool:
        return (self.booked_count or 0) >= (self.capacity or 0)

    def __repr__(self) -> str:
        return f"<ClassInstance {self.title} {self.date} {self.time} {self.booked_count}/{self.capacity}>"
