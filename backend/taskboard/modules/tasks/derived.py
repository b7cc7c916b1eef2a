# taskboard/modules/tasks/derived.py
"""Fields computed from a stored task at read time. Never persisted."""

import math
from datetime import datetime, timedelta
from typing import Optional

from taskboard.core.repository import utc_now
from .models import TaskInDB, ensure_utc

ONE_DAY = timedelta(days=1)


def is_overdue(task: TaskInDB, now: Optional[datetime] = None) -> bool:
    if task.due_date is None or task.completed:
        return False
    now = ensure_utc(now) if now else utc_now()
    return ensure_utc(task.due_date) < now


def days_until_due(task: TaskInDB, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days until the due date, rounded up; negative once past due."""
    if task.due_date is None:
        return None
    now = ensure_utc(now) if now else utc_now()
    return math.ceil((ensure_utc(task.due_date) - now) / ONE_DAY)
