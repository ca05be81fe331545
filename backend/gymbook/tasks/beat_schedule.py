# backend/gymbook/tasks/beat_schedule.py
"""Celery Beat schedule for periodic housekeeping."""

from celery.schedules import crontab

CELERYBEAT_SCHEDULE = {
    # Pending (unpaid) bookings older than the cutoff release their seats
    "cancel-stale-bookings": {
        "task": "gymbook.tasks.bookings.cancel_stale_bookings",
        "schedule": crontab(minute=0),  # Every hour at :00
        "options": {"queue": "maintenance"},
    },
    "purge-abuse-counters": {
        "task": "gymbook.tasks.bookings.purge_abuse_counters",
        "schedule": crontab(minute=5),  # Every hour at :05
        "options": {"queue": "maintenance"},
    },
    # Keep the rolling window populated even on quiet days
    "generate-weekly-classes": {
        "task": "gymbook.tasks.bookings.generate_weekly_classes",
        "schedule": crontab(hour=0, minute=15),  # Daily at 00:15 club time
        "options": {"queue": "maintenance"},
    },
}
