"""
Centralized task enqueue helper.

Always use enqueue_task() instead of task.delay() so callers depend on task
names rather than importing task modules.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from .celery_app import celery_app

logger = logging.getLogger(__name__)


def enqueue_task(
    task_name: str,
    args: Optional[Tuple[Any, ...]] = None,
    kwargs: Optional[Dict[str, Any]] = None,
    **options: Any,
) -> Any:
    """
    Enqueue a Celery task by name.

    Args:
        task_name: Fully qualified task name (e.g., "gymbook.tasks.email.send_booking_confirmation")
        args: Positional arguments for the task
        kwargs: Keyword arguments for the task
        **options: Additional Celery apply_async options (countdown, eta, etc.)

    Returns:
        AsyncResult from Celery
    """
    task = celery_app.tasks[task_name]
    return task.apply_async(args=args or (), kwargs=kwargs or {}, **options)
