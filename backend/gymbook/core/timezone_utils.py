"""
Timezone utilities for the club.

Class dates and times are stored as club-local wall-clock values; these helpers
turn them into aware datetimes in the club timezone.
"""

from datetime import date, datetime, time
from typing import Optional

import pytz

from .config import settings


def get_club_timezone() -> pytz.BaseTzInfo:
    return pytz.timezone(settings.club_timezone)


def club_now() -> datetime:
    """Current datetime in the club's timezone."""
    return datetime.now(get_club_timezone())


def club_today() -> date:
    """'Today' as seen on the club's wall calendar."""
    return club_now().date()


def parse_class_time(value: str) -> time:
    """Parse a 'HH:MM' class time string."""
    return datetime.strptime(value, "%H:%M").time()


def class_start(class_date: date, class_time: str, tz: Optional[pytz.BaseTzInfo] = None) -> datetime:
    """
    Aware start datetime for a class held at a club-local date and time.

    Args:
        class_date: Date of the class
        class_time: 'HH:MM' start time
        tz: Optional override timezone (defaults to the club timezone)

    Returns:
        Localized datetime of the class start
    """
    zone = tz or get_club_timezone()
    naive = datetime.combine(class_date, parse_class_time(class_time))
    return zone.localize(naive)


def to_club_time(moment: datetime) -> datetime:
    """Convert an aware (or UTC-naive) datetime to the club timezone."""
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(get_club_timezone())
