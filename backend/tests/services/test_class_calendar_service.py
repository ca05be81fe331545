"""
Tests for ClassCalendarService: weekly generation from templates, the public
window and admin edits of instances and templates.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from gymbook.core.constants import DEFAULT_CLASS_TEMPLATES
from gymbook.core.exceptions import NotFoundException, ValidationException
from gymbook.models.booking import Booking
from gymbook.models.gym_class import ClassInstance
from gymbook.services.class_calendar_service import ClassCalendarService, next_occurrence
from tests.factories.gym import make_booking, make_class

# A Wednesday
WEDNESDAY = date(2026, 3, 4)


@pytest.fixture
def calendar_service(db: Session) -> ClassCalendarService:
    return ClassCalendarService(db)


class TestNextOccurrence:
    def test_same_day_is_this_week(self):
        assert next_occurrence(2, WEDNESDAY) == WEDNESDAY

    def test_later_day_this_week(self):
        assert next_occurrence(5, WEDNESDAY) == date(2026, 3, 7)

    def test_earlier_day_rolls_to_next_week(self):
        assert next_occurrence(0, WEDNESDAY) == date(2026, 3, 9)

    def test_week_offset(self):
        assert next_occurrence(5, WEDNESDAY, week=2) == date(2026, 3, 21)


class TestGeneration:
    def test_seed_only_into_empty_table(self, calendar_service):
        assert calendar_service.seed_default_templates() == len(DEFAULT_CLASS_TEMPLATES)
        assert calendar_service.seed_default_templates() == 0
        assert len(calendar_service.list_templates()) == len(DEFAULT_CLASS_TEMPLATES)

    def test_generates_each_template_for_each_week(self, db, calendar_service):
        calendar_service.seed_default_templates()

        created = calendar_service.generate_weekly_classes(weeks_ahead=2, today=WEDNESDAY)

        assert len(created) == 2 * len(DEFAULT_CLASS_TEMPLATES)
        saturday = next(c for c in created if c.date == date(2026, 3, 7))
        assert saturday.time == "10:00"
        assert saturday.capacity == 12
        assert saturday.booked_count == 0
        assert saturday.price == Decimal("5.00")
        assert all(c.date >= WEDNESDAY for c in created)

    def test_generation_is_additive(self, db, calendar_service):
        calendar_service.seed_default_templates()
        first = calendar_service.generate_weekly_classes(weeks_ahead=1, today=WEDNESDAY)
        edited = first[0]
        edited.title = "Sparring Night"
        edited.is_active = False
        db.commit()

        again = calendar_service.generate_weekly_classes(weeks_ahead=1, today=WEDNESDAY)

        assert again == []
        db.refresh(edited)
        assert edited.title == "Sparring Night"
        assert edited.is_active is False
        assert db.query(ClassInstance).count() == len(DEFAULT_CLASS_TEMPLATES)

    def test_inactive_templates_are_skipped(self, calendar_service):
        calendar_service.create_template(
            {"day_of_week": 4, "time": "19:00", "title": "Fitness", "class_type": "fitness",
             "is_active": False}
        )

        assert calendar_service.generate_weekly_classes(weeks_ahead=4, today=WEDNESDAY) == []


class TestReads:
    def test_upcoming_window(self, db, calendar_service, today):
        make_class(db, days_ahead=-1)
        in_window = make_class(db, days_ahead=0)
        edge = make_class(db, days_ahead=14)
        make_class(db, days_ahead=15)
        make_class(db, days_ahead=3, is_active=False)

        upcoming = calendar_service.get_upcoming_classes(today=today)

        assert [c.id for c in upcoming] == [in_window.id, edge.id]

    def test_upcoming_is_ordered(self, db, calendar_service, today):
        later = make_class(db, days_ahead=2, time="18:00")
        earlier_same_day = make_class(db, days_ahead=2, time="09:00")
        first = make_class(db, days_ahead=1, time="20:00")

        ids = [c.id for c in calendar_service.get_upcoming_classes(today=today)]

        assert ids == [first.id, earlier_same_day.id, later.id]

    def test_unknown_class(self, calendar_service):
        with pytest.raises(NotFoundException):
            calendar_service.get_class("01HZZZZZZZZZZZZZZZZZZZZZZZ")


class TestAdminWrites:
    def test_create_class_uses_defaults(self, calendar_service, today):
        gym_class = calendar_service.create_class(
            {"title": "Pad Work", "class_type": "open", "date": today + timedelta(days=2),
             "time": "12:00", "capacity": None}
        )

        assert gym_class.capacity == 12
        assert gym_class.price == Decimal("15.00")
        assert gym_class.duration == 60
        assert gym_class.is_active is True

    def test_create_class_at_taken_slot(self, db, calendar_service):
        existing = make_class(db)

        with pytest.raises(ValidationException):
            calendar_service.create_class(
                {"title": "Clash", "class_type": "open", "date": existing.date, "time": existing.time}
            )

    def test_move_class_onto_taken_slot(self, db, calendar_service):
        existing = make_class(db)
        moving = make_class(db)

        with pytest.raises(ValidationException) as exc_info:
            calendar_service.update_class(
                moving.id, {"date": existing.date, "time": existing.time}
            )

        assert exc_info.value.message == "A class already exists at this date and time"
        db.refresh(moving)
        assert moving.time != existing.time

    def test_update_keeping_own_slot_is_allowed(self, db, calendar_service, gym_class):
        updated = calendar_service.update_class(
            gym_class.id, {"date": gym_class.date, "time": gym_class.time, "capacity": 16}
        )

        assert updated.capacity == 16

    def test_nulls_do_not_overwrite_required_columns(self, calendar_service, gym_class):
        updated = calendar_service.update_class(gym_class.id, {"title": None, "description": None})

        assert updated.title == "Beginners Class"
        assert updated.description is None

    def test_capacity_cannot_drop_below_bookings(self, db, calendar_service, member):
        gym_class = make_class(db, capacity=4)
        make_booking(db, member, gym_class)
        make_booking(db, None, gym_class)

        with pytest.raises(ValidationException):
            calendar_service.update_class(gym_class.id, {"capacity": 1})

        updated = calendar_service.update_class(gym_class.id, {"capacity": 2, "title": "Full House"})
        assert updated.capacity == 2
        assert updated.title == "Full House"

    def test_delete_class_removes_its_bookings(self, db, calendar_service, member, gym_class):
        make_booking(db, member, gym_class)

        calendar_service.delete_class(gym_class.id)

        assert db.query(ClassInstance).count() == 0
        assert db.query(Booking).count() == 0

    def test_delete_unknown_class(self, calendar_service):
        with pytest.raises(NotFoundException):
            calendar_service.delete_class("01HZZZZZZZZZZZZZZZZZZZZZZZ")

    def test_template_update_and_delete(self, calendar_service):
        template = calendar_service.create_template(
            {"day_of_week": 1, "time": "18:00", "title": "Juniors", "class_type": "junior"}
        )

        updated = calendar_service.update_template(template.id, {"time": "18:30"})
        assert updated.time == "18:30"

        calendar_service.delete_template(template.id)
        assert calendar_service.list_templates() == []
        with pytest.raises(NotFoundException):
            calendar_service.delete_template(template.id)
