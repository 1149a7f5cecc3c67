'''
testing homework overdue, completion and progress rules
'''
import pytest
from datetime import datetime, timezone

from tutor_hub_backend.core.homework import is_overdue, completion_percentage, homework_progress

NOW = datetime(2025, 3, 12, 15, 0, tzinfo=timezone.utc)


def test_open_homework_past_its_due_date_is_overdue():
    assert is_overdue(datetime(2025, 3, 11, 9, 0, tzinfo=timezone.utc), False, NOW) is True


def test_completed_homework_is_never_overdue():
    assert is_overdue(datetime(2025, 3, 1, tzinfo=timezone.utc), True, NOW) is False


def test_naive_due_dates_are_read_as_utc():
    assert is_overdue(datetime(2025, 3, 12, 16, 0), False, NOW) is False


@pytest.mark.parametrize("total, completed, expected", [
    (0, 0, 0),
    (4, 1, 25),
    (3, 2, 67),
    (5, 5, 100),
])
def test_completion_percentage(total, completed, expected):
    assert completion_percentage(total, completed) == expected


def test_completed_homework_is_fully_progressed():
    created = datetime(2025, 3, 10, tzinfo=timezone.utc)
    assert homework_progress(created, datetime(2025, 3, 20, tzinfo=timezone.utc), NOW, True) == 100


def test_progress_follows_elapsed_days():
    created = datetime(2025, 3, 10, tzinfo=timezone.utc)
    assert homework_progress(created, datetime(2025, 3, 14, tzinfo=timezone.utc), NOW, False) == 50


def test_open_homework_is_capped_below_done():
    created = datetime(2025, 3, 1, tzinfo=timezone.utc)
    assert homework_progress(created, datetime(2025, 3, 5, tzinfo=timezone.utc), NOW, False) == 95


def test_same_day_homework_sits_halfway():
    created = datetime(2025, 3, 12, 8, 0, tzinfo=timezone.utc)
    assert homework_progress(created, datetime(2025, 3, 12, 20, 0, tzinfo=timezone.utc), NOW, False) == 50
