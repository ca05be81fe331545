# backend/gymbook/services/class_calendar_service.py
"""
Class Calendar Service

Materializes dated class instances from weekly templates and serves the
public and admin views of the schedule.

Generation is additive: an instance is only created when nothing exists at
that (date, time), so admin edits and deactivations survive regeneration.
"""

from datetime import date, timedelta
from decimal import Decimal
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import DEFAULT_CLASS_TEMPLATES
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import club_today
from ..models.gym_class import ClassInstance, ClassTemplate
from ..repositories.booking_repository import BookingRepository
from ..repositories.class_repository import ClassRepository, ClassTemplateRepository
from .base import BaseService

logger = logging.getLogger(__name__)


def next_occurrence(template_day: int, today: date, week: int = 0) -> date:
    """
    Date of the template's weekday in the given week offset.

    Days earlier in the week than today roll to next week.
    """
    days_until = template_day - today.weekday()
    if days_until < 0:
        days_until += 7
    return today + timedelta(days=days_until + 7 * week)


class ClassCalendarService(BaseService):
    def __init__(
        self,
        db: Session,
        class_repository: Optional[ClassRepository] = None,
        template_repository: Optional[ClassTemplateRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.class_repository = class_repository or ClassRepository(db)
        self.template_repository = template_repository or ClassTemplateRepository(db)
        self.booking_repository = booking_repository or BookingRepository(db)

    # ------------------------------------------------------------------ #
    # Templates
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("seed_default_templates")
    def seed_default_templates(self) -> int:
        """Insert the club's standard weekly classes when no templates exist."""
        if self.template_repository.count() > 0:
            return 0
        with self.transaction():
            for template in DEFAULT_CLASS_TEMPLATES:
                self.template_repository.create(**template, is_active=True)
        self.log_operation("seed_default_templates", count=len(DEFAULT_CLASS_TEMPLATES))
        return len(DEFAULT_CLASS_TEMPLATES)

    def list_templates(self) -> List[ClassTemplate]:
        return self.template_repository.get_all_ordered()

    def create_template(self, data: Dict[str, Any]) -> ClassTemplate:
        with self.transaction():
            template = self.template_repository.create(**data)
        self.log_operation("create_template", template_id=template.id)
        return template

    def update_template(self, template_id: str, data: Dict[str, Any]) -> ClassTemplate:
        data = {
            key: value for key, value in data.items() if value is not None or key == "description"
        }
        with self.transaction():
            template = self.template_repository.update(template_id, **data)
            if template is None:
                raise NotFoundException("Template not found")
        return template

    def delete_template(self, template_id: str) -> None:
        with self.transaction():
            if not self.template_repository.delete(template_id):
                raise NotFoundException("Template not found")
        self.log_operation("delete_template", template_id=template_id)

    # ------------------------------------------------------------------ #
    # Generation
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("generate_weekly_classes")
    def generate_weekly_classes(
        self, weeks_ahead: Optional[int] = None, today: Optional[date] = None
    ) -> List[ClassInstance]:
        """
        Ensure every active template has an instance in each of the next N weeks.

        Args:
            weeks_ahead: Number of weeks to materialize (defaults to settings)
            today: Reference date (defaults to the club's today)

        Returns:
            Newly created instances
        """
        weeks = settings.class_generation_weeks if weeks_ahead is None else weeks_ahead
        reference = today or club_today()
        templates = self.template_repository.get_active()

        created: List[ClassInstance] = []
        with self.transaction():
            for week in range(weeks):
                for template in templates:
                    class_date = next_occurrence(template.day_of_week, reference, week)
                    if self.class_repository.get_at(class_date, template.time) is not None:
                        continue
                    created.append(
                        self.class_repository.create(
                            title=template.title,
                            description=template.description,
                            class_type=template.class_type,
                            date=class_date,
                            time=template.time,
                            duration=template.duration,
                            capacity=settings.default_class_capacity,
                            price=Decimal(settings.session_price),
                            is_active=True,
                        )
                    )

        if created:
            self.log_operation("generate_weekly_classes", classes_created=len(created), weeks=weeks)
        return created

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def get_upcoming_classes(self, today: Optional[date] = None) -> List[ClassInstance]:
        """Active classes from today through the public window."""
        start = today or club_today()
        end = start + timedelta(days=settings.public_window_days)
        return self.class_repository.get_upcoming(start, end)

    def get_all_classes(self) -> List[ClassInstance]:
        return self.class_repository.get_all_ordered()

    def get_class(self, class_id: str) -> ClassInstance:
        gym_class = self.class_repository.get_by_id(class_id)
        if gym_class is None:
            raise NotFoundException("Class not found")
        return gym_class

    # ------------------------------------------------------------------ #
    # Admin writes
    # ------------------------------------------------------------------ #

    @BaseService.measure_operation("create_class")
    def create_class(self, data: Dict[str, Any]) -> ClassInstance:
        values = {
            "duration": 60,
            "capacity": settings.default_class_capacity,
            "price": Decimal(settings.admin_class_price),
            "is_active": True,
        }
        values.update({key: value for key, value in data.items() if value is not None})
        if self.class_repository.get_at(values["date"], values["time"]) is not None:
            raise ValidationException("A class already exists at this date and time")
        with self.transaction():
            gym_class = self.class_repository.create(**values)
        self.log_operation("create_class", class_id=gym_class.id)
        return gym_class

    @BaseService.measure_operation("update_class")
    def update_class(self, class_id: str, data: Dict[str, Any]) -> ClassInstance:
        gym_class = self.get_class(class_id)
        data = {
            key: value for key, value in data.items() if value is not None or key == "description"
        }
        capacity = data.get("capacity")
        if capacity is not None and capacity < gym_class.booked_count:
            raise ValidationException(
                f"Capacity cannot be lower than the {gym_class.booked_count} seats already booked"
            )
        new_date = data.get("date", gym_class.date)
        new_time = data.get("time", gym_class.time)
        clash = self.class_repository.get_at(new_date, new_time)
        if clash is not None and clash.id != gym_class.id:
            raise ValidationException("A class already exists at this date and time")
        with self.transaction():
            for key, value in data.items():
                setattr(gym_class, key, value)
            self.db.flush()
        self.log_operation("update_class", class_id=class_id, fields=sorted(data))
        return gym_class

    @BaseService.measure_operation("delete_class")
    def delete_class(self, class_id: str) -> None:
        """Delete a class and every booking attached to it."""
        with self.transaction():
            if not self.class_repository.delete_with_bookings(class_id):
                raise NotFoundException("Class not found")
        self.log_operation("delete_class", class_id=class_id)

    def count_classes_between(self, start: date, end: date) -> int:
        return self.class_repository.count_between(start, end)
