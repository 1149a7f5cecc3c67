'''
Tests for the availability windows, overlap rule and calendar helpers.
'''
import pytest
from datetime import date, datetime, time, timezone

from tutor_hub_backend.core.scheduling import (
    intervals_overlap, windows_for_day, fits_availability, calendar_range,
    days_between, group_by_day, to_local,
)

MONDAY = date(2025, 3, 10)
SATURDAY = date(2025, 3, 15)


def at(day: date, hour: int, minute: int = 0) -> datetime:
    return datetime.combine(day, time(hour, minute))


class TestOverlap:

    def test_overlapping_intervals(self):
        assert intervals_overlap(at(MONDAY, 10), at(MONDAY, 11), at(MONDAY, 10, 30), at(MONDAY, 11, 30))

    def test_touching_intervals_do_not_overlap(self):
        """A session ending at 11:00 leaves 11:00 free for the next one."""
        assert not intervals_overlap(at(MONDAY, 10), at(MONDAY, 11), at(MONDAY, 11), at(MONDAY, 12))

    def test_contained_interval_overlaps(self):
        assert intervals_overlap(at(MONDAY, 9), at(MONDAY, 13), at(MONDAY, 10), at(MONDAY, 11))


class TestWindows:

    def test_weekday_windows_are_merged(self):
        windows = windows_for_day(["afternoon", "morning"], MONDAY)
        assert windows == [(time(8, 0), time(16, 0))]

    def test_weekend_slots_ignored_on_weekdays(self):
        assert windows_for_day(["weekend_morning"], MONDAY) == []
        assert windows_for_day(["morning"], SATURDAY) == []

    def test_gap_between_windows_is_kept(self):
        windows = windows_for_day(["morning", "evening"], MONDAY)
        assert windows == [(time(8, 0), time(12, 0)), (time(16, 0), time(20, 0))]

    def test_unknown_slots_are_ignored(self):
        assert windows_for_day(["midnight"], MONDAY) == []


class TestFitsAvailability:

    def test_inside_single_window(self):
        assert fits_availability(["morning"], at(MONDAY, 9), at(MONDAY, 10))

    def test_window_boundaries_are_inclusive(self):
        assert fits_availability(["morning"], at(MONDAY, 8), at(MONDAY, 12))

    def test_spanning_merged_windows(self):
        assert fits_availability(["morning", "afternoon"], at(MONDAY, 11), at(MONDAY, 13))

    def test_spanning_a_gap_is_rejected(self):
        assert not fits_availability(["morning", "evening"], at(MONDAY, 11), at(MONDAY, 17))

    def test_outside_windows_is_rejected(self):
        assert not fits_availability(["morning"], at(MONDAY, 7), at(MONDAY, 9))

    def test_weekend_slots(self):
        assert fits_availability(["weekend_afternoon"], at(SATURDAY, 13), at(SATURDAY, 15))
        assert not fits_availability(["afternoon"], at(SATURDAY, 13), at(SATURDAY, 15))

    def test_sessions_crossing_midnight_are_rejected(self):
        assert not fits_availability(["evening"], at(MONDAY, 19), at(date(2025, 3, 11), 1))

    def test_no_slots_means_no_availability(self):
        assert not fits_availability([], at(MONDAY, 9), at(MONDAY, 10))


def test_to_local_converts_to_the_zone():
    value = datetime(2025, 1, 15, 7, 0, tzinfo=timezone.utc)
    local = to_local(value, "Africa/Cairo")
    assert local.hour == 9


def test_to_local_falls_back_to_utc_for_unknown_zone():
    value = datetime(2025, 1, 15, 7, 0, tzinfo=timezone.utc)
    assert to_local(value, "Not/AZone").hour == 7


@pytest.mark.parametrize("view, anchor, expected", [
    ("day", date(2025, 3, 12), (date(2025, 3, 12), date(2025, 3, 12))),
    ("week", date(2025, 3, 12), (date(2025, 3, 10), date(2025, 3, 16))),
    ("week", date(2025, 3, 10), (date(2025, 3, 10), date(2025, 3, 16))),
    ("month", date(2024, 2, 10), (date(2024, 2, 1), date(2024, 2, 29))),
])
def test_calendar_range(view, anchor, expected):
    assert calendar_range(view, anchor) == expected


def test_calendar_range_rejects_unknown_view():
    with pytest.raises(ValueError):
        calendar_range("year", MONDAY)


def test_days_between_is_inclusive():
    days = days_between(date(2025, 3, 10), date(2025, 3, 12))
    assert days == [date(2025, 3, 10), date(2025, 3, 11), date(2025, 3, 12)]


def test_group_by_day_keeps_order():
    items = [at(MONDAY, 9), at(SATURDAY, 10), at(MONDAY, 14)]
    grouped = group_by_day(items, key=lambda value: value.date())
    assert list(grouped) == [MONDAY, SATURDAY]
    assert grouped[MONDAY] == [at(MONDAY, 9), at(MONDAY, 14)]
