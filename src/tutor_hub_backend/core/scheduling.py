'''
Scheduling rules for learning sessions.

A child's availability is a list of slot keys (see AvailabilitySlot). Each key
expands to a window of wall-clock time on either weekdays or weekends. A session
is acceptable when it starts and ends on the same local day and falls entirely
inside the child's windows for that day (adjacent windows count as one).
'''
import calendar
from datetime import date, datetime, time, timedelta
from typing import Callable, Iterable, TypeVar

from ..database.db_enums import AvailabilitySlot
from .date_ranges import zone_for

T = TypeVar("T")

WEEKDAYS = frozenset({0, 1, 2, 3, 4})  # Monday..Friday (date.weekday())
WEEKEND = frozenset({5, 6})

SLOT_WINDOWS: dict[str, tuple[frozenset[int], time, time]] = {
    AvailabilitySlot.MORNING.value: (WEEKDAYS, time(8, 0), time(12, 0)),
    AvailabilitySlot.AFTERNOON.value: (WEEKDAYS, time(12, 0), time(16, 0)),
    AvailabilitySlot.EVENING.value: (WEEKDAYS, time(16, 0), time(20, 0)),
    AvailabilitySlot.WEEKEND_MORNING.value: (WEEKEND, time(8, 0), time(12, 0)),
    AvailabilitySlot.WEEKEND_AFTERNOON.value: (WEEKEND, time(12, 0), time(16, 0)),
}

MAX_SESSION_DURATION = timedelta(hours=4)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: sessions that only touch at a boundary do not overlap."""
    return a_start < b_end and b_start < a_end


def to_local(value: datetime, tz_name: str | None) -> datetime:
    """Converts an aware datetime to the given IANA zone (UTC when unknown)."""
    return value.astimezone(zone_for(tz_name))


def windows_for_day(slots: Iterable[str], day: date) -> list[tuple[time, time]]:
    """
    The child's windows on `day`, sorted and with touching/overlapping
    windows merged (morning + afternoon -> 08:00-16:00).
    """
    windows = sorted(
        (start, end)
        for slot in set(slots)
        if slot in SLOT_WINDOWS
        for days, start, end in [SLOT_WINDOWS[slot]]
        if day.weekday() in days
    )
    merged: list[tuple[time, time]] = []
    for start, end in windows:
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(end, merged[-1][1]))
        else:
            merged.append((start, end))
    return merged


def fits_availability(slots: Iterable[str], start: datetime, end: datetime) -> bool:
    """
    `start` and `end` must already be in the child's local time.
    """
    if end <= start or start.date() != end.date():
        return False
    start_t, end_t = start.time(), end.time()
    return any(
        window_start <= start_t and end_t <= window_end
        for window_start, window_end in windows_for_day(slots, start.date())
    )


def calendar_range(view: str, anchor: date) -> tuple[date, date]:
    """Inclusive first/last day shown by a day, week (Monday first) or month view."""
    if view == "day":
        return anchor, anchor
    if view == "week":
        start = anchor - timedelta(days=anchor.weekday())
        return start, start + timedelta(days=6)
    if view == "month":
        last_day = calendar.monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last_day)
    raise ValueError(f"Unknown calendar view '{view}'.")


def days_between(start: date, end: date) -> list[date]:
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def group_by_day(items: Iterable[T], key: Callable[[T], date]) -> dict[date, list[T]]:
    grouped: dict[date, list[T]] = {}
    for item in items:
        grouped.setdefault(key(item), []).append(item)
    return grouped
