# backend/gymbook/repositories/booking_repository.py
"""
Booking ledger data access.

Read helpers used by the eligibility checks, plus the period queries behind
the finance export.
"""

from datetime import date, datetime
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.constants import ACTIVE_BOOKING_STATUSES
from ..core.exceptions import RepositoryException
from ..models.booking import Booking, BookingStatus
from ..models.gym_class import ClassInstance
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_with_details(self, booking_id: str) -> Optional[Booking]:
        try:
            return (
                self._build_query()
                .options(joinedload(Booking.gym_class), joinedload(Booking.member))
                .filter(Booking.id == booking_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve booking: {str(e)}")

    def get_active_for_member_and_class(self, member_id: str, class_id: str) -> Optional[Booking]:
        """Non-cancelled booking of this member for this class, if any."""
        try:
            return (
                self._build_query()
                .filter(
                    Booking.member_id == member_id,
                    Booking.class_id == class_id,
                    Booking.status != BookingStatus.CANCELLED.value,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking existing booking: {str(e)}")
            raise RepositoryException(f"Failed to check existing booking: {str(e)}")

    def count_future_active(self, member_id: str, today: date) -> int:
        """Non-cancelled bookings for classes dated today or later."""
        try:
            return (
                self._build_query()
                .join(ClassInstance, Booking.class_id == ClassInstance.id)
                .filter(
                    Booking.member_id == member_id,
                    Booking.status != BookingStatus.CANCELLED.value,
                    ClassInstance.date >= today,
                )
                .count()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting future bookings for {member_id}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")

    def count_confirmed_for_member(self, member_id: str) -> int:
        return self.count(member_id=member_id, status=BookingStatus.CONFIRMED.value)

    def list_for_member(self, member_id: str) -> List[Booking]:
        """Member's bookings with class details, newest first."""
        query = (
            self._build_query()
            .options(joinedload(Booking.gym_class))
            .filter(Booking.member_id == member_id)
            .order_by(Booking.booked_at.desc(), Booking.id.desc())
        )
        return self._execute_query(query)

    def list_all_with_details(self) -> List[Booking]:
        query = (
            self._build_query()
            .options(joinedload(Booking.gym_class), joinedload(Booking.member))
            .order_by(Booking.booked_at.desc(), Booking.id.desc())
        )
        return self._execute_query(query)

    def list_between(
        self, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[Booking]:
        """Bookings made in [start, end), oldest first; open bounds when None."""
        query = self._build_query().options(
            joinedload(Booking.gym_class), joinedload(Booking.member)
        )
        if start is not None:
            query = query.filter(Booking.booked_at >= start)
        if end is not None:
            query = query.filter(Booking.booked_at < end)
        query = query.order_by(Booking.booked_at.asc(), Booking.id.asc())
        return self._execute_query(query)

    def list_stale_pending(self, cutoff: datetime) -> List[Booking]:
        query = self._build_query().filter(
            Booking.status == BookingStatus.PENDING.value,
            Booking.booked_at < cutoff,
        )
        return self._execute_query(query)

    def count_active_for_class(self, class_id: str) -> int:
        try:
            return (
                self._build_query()
                .filter(
                    Booking.class_id == class_id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                )
                .count()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting bookings for class {class_id}: {str(e)}")
            raise RepositoryException(f"Failed to count bookings: {str(e)}")
