'''
Named date ranges ("today", "last_week", ...) resolved in a user's timezone.
'''
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def zone_for(tz_name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def _month_start(day: date) -> date:
    return day.replace(day=1)


def resolve_date_range(
    name: str,
    today: date,
    date_from: date | None = None,
    date_to: date | None = None,
) -> tuple[date, date]:
    """
    Inclusive first and last calendar day of a named range. Weeks start on Monday.
    """
    if name == "today":
        return today, today
    if name == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if name == "this_week":
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    if name == "next_week":
        start = today - timedelta(days=today.weekday()) + timedelta(days=7)
        return start, start + timedelta(days=6)
    if name == "last_week":
        start = today - timedelta(days=today.weekday() + 7)
        return start, start + timedelta(days=6)
    if name == "this_month":
        next_month = (_month_start(today) + timedelta(days=32)).replace(day=1)
        return _month_start(today), next_month - timedelta(days=1)
    if name == "last_month":
        end = _month_start(today) - timedelta(days=1)
        return _month_start(end), end
    if name == "custom":
        if date_from is None or date_to is None:
            raise ValueError("A custom range needs both dates.")
        return date_from, date_to
    raise ValueError(f"Unknown date range '{name}'.")


def local_day_bounds_utc(first: date, last: date, tz_name: str | None) -> tuple[datetime, datetime]:
    """
    [start, end) in UTC covering the local days `first`..`last` inclusive.
    """
    zone = zone_for(tz_name)
    start = datetime.combine(first, time.min, tzinfo=zone).astimezone(timezone.utc)
    end = datetime.combine(last + timedelta(days=1), time.min, tzinfo=zone).astimezone(timezone.utc)
    return start, end


def local_today(now_utc: datetime, tz_name: str | None) -> date:
    return now_utc.astimezone(zone_for(tz_name)).date()
