# backend/gymbook/services/notification_service.py
"""
Notification Service

Hands outbound email to Celery. Callers get fire-and-forget semantics: an
enqueue failure (broker down, unknown task) is logged and never reaches the
request that triggered it.
"""

import logging
from typing import Any, Tuple

from ..tasks.enqueue import enqueue_task

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    def _dispatch(self, task_name: str, args: Tuple[Any, ...]) -> bool:
        try:
            enqueue_task(task_name, args=args)
            return True
        except Exception as e:
            self.logger.error(f"Failed to enqueue {task_name} for {args}: {type(e).__name__}: {e}")
            return False

    def send_booking_confirmation(self, booking_id: str) -> bool:
        return self._dispatch("gymbook.tasks.email.send_booking_confirmation", (booking_id,))

    def send_booking_cancellation(self, booking_id: str) -> bool:
        return self._dispatch("gymbook.tasks.email.send_booking_cancellation", (booking_id,))

    def send_verification_email(self, member_id: str) -> bool:
        return self._dispatch("gymbook.tasks.email.send_verification_email", (member_id,))

    def send_password_reset(self, member_id: str) -> bool:
        return self._dispatch("gymbook.tasks.email.send_password_reset", (member_id,))
