'''
Homework status and progress rules.
'''
from datetime import datetime

from ..common.time_utils import as_utc

MAX_OPEN_PROGRESS = 95
SAME_DAY_PROGRESS = 50


def is_overdue(due_date: datetime, is_completed: bool, now: datetime) -> bool:
    return not is_completed and as_utc(due_date) < as_utc(now)


def completion_percentage(total: int, completed: int) -> int:
    if not total:
        return 0
    return round(completed / total * 100)


def homework_progress(created_at: datetime, due_date: datetime, now: datetime, is_completed: bool) -> int:
    """
    How far along the homework window we are, as a percentage.
    Completed work is 100; open work is capped at 95 and work set
    and due on the same day sits at 50.
    """
    if is_completed:
        return 100
    total_days = (as_utc(due_date).date() - as_utc(created_at).date()).days
    if total_days <= 0:
        return SAME_DAY_PROGRESS
    elapsed_days = max((as_utc(now).date() - as_utc(created_at).date()).days, 0)
    return min(MAX_OPEN_PROGRESS, round(elapsed_days / total_days * 100))
