# backend/gymbook/repositories/class_repository.py
"""
Class calendar repositories.

Seat accounting goes through single conditional UPDATE statements so the
database, not the application, arbitrates the last remaining seat.
"""

from datetime import date
import logging
from typing import List, Optional

from sqlalchemy import case, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.booking import Booking
from ..models.gym_class import ClassInstance, ClassTemplate
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ClassRepository(BaseRepository[ClassInstance]):
    def __init__(self, db: Session):
        super().__init__(db, ClassInstance)

    def get_at(self, class_date: date, class_time: str) -> Optional[ClassInstance]:
        return self.find_one_by(date=class_date, time=class_time)

    def get_upcoming(self, start: date, end: date) -> List[ClassInstance]:
        """Active classes dated within [start, end], ordered by date and time."""
        query = (
            self._build_query()
            .filter(
                ClassInstance.is_active.is_(True),
                ClassInstance.date >= start,
                ClassInstance.date <= end,
            )
            .order_by(ClassInstance.date.asc(), ClassInstance.time.asc())
        )
        return self._execute_query(query)

    def get_all_ordered(self) -> List[ClassInstance]:
        query = self._build_query().order_by(ClassInstance.date.asc(), ClassInstance.time.asc())
        return self._execute_query(query)

    def count_between(self, start: date, end: date) -> int:
        try:
            return (
                self._build_query()
                .filter(ClassInstance.date >= start, ClassInstance.date <= end)
                .count()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting classes: {str(e)}")
            raise RepositoryException(f"Failed to count classes: {str(e)}")

    def try_increment_booked_count(self, class_id: str) -> bool:
        """
        Take one seat if the class is active and not full.

        Returns:
            True if a seat was taken, False if the class is full or inactive
        """
        stmt = (
            update(ClassInstance)
            .where(
                ClassInstance.id == class_id,
                ClassInstance.is_active.is_(True),
                ClassInstance.booked_count < ClassInstance.capacity,
            )
            .values(booked_count=ClassInstance.booked_count + 1)
            .execution_options(synchronize_session="fetch")
        )
        try:
            result = self.db.execute(stmt)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            self.logger.error(f"Error incrementing booked count for {class_id}: {str(e)}")
            raise RepositoryException(f"Failed to reserve seat: {str(e)}")

    def decrement_booked_count(self, class_id: str) -> None:
        """Release one seat, never going below zero."""
        stmt = (
            update(ClassInstance)
            .where(ClassInstance.id == class_id)
            .values(
                booked_count=case(
                    (ClassInstance.booked_count > 0, ClassInstance.booked_count - 1),
                    else_=0,
                )
            )
            .execution_options(synchronize_session="fetch")
        )
        try:
            self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error decrementing booked count for {class_id}: {str(e)}")
            raise RepositoryException(f"Failed to release seat: {str(e)}")

    def delete_with_bookings(self, class_id: str) -> bool:
        """Delete a class after removing its bookings."""
        try:
            self.db.query(Booking).filter(Booking.class_id == class_id).delete(
                synchronize_session=False
            )
            deleted = self.db.query(ClassInstance).filter(ClassInstance.id == class_id).delete(
                synchronize_session=False
            )
            self.db.flush()
            self.db.expire_all()
            return deleted > 0
        except SQLAlchemyError as e:
            self.logger.error(f"Error deleting class {class_id}: {str(e)}")
            self.db.rollback()
            raise RepositoryException(f"Failed to delete class: {str(e)}")


class ClassTemplateRepository(BaseRepository[ClassTemplate]):
    def __init__(self, db: Session):
        super().__init__(db, ClassTemplate)

    def get_active(self) -> List[ClassTemplate]:
        query = (
            self._build_query()
            .filter(ClassTemplate.is_active.is_(True))
            .order_by(ClassTemplate.day_of_week.asc(), ClassTemplate.time.asc())
        )
        return self._execute_query(query)

    def get_all_ordered(self) -> List[ClassTemplate]:
        query = self._build_query().order_by(
            ClassTemplate.day_of_week.asc(), ClassTemplate.time.asc()
        )
        return self._execute_query(query)
