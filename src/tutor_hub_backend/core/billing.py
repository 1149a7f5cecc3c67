'''
Billing arithmetic: proration on plan changes and billing period ends.
'''
import calendar
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from ..database.db_enums import PlanInterval

BILLING_CYCLE_DAYS = 30
CENT = Decimal("0.01")


def remaining_days(end_date: datetime, now: datetime) -> int:
    """Whole days left in the current period, never negative."""
    return max((end_date - now).days, 0)


def prorate(current_price: Decimal, new_price: Decimal, days_left: int) -> Decimal:
    """
    Difference between the two daily rates for the rest of the period.
    Positive means the user owes money; negative means a credit.
    """
    daily_difference = (Decimal(new_price) - Decimal(current_price)) / BILLING_CYCLE_DAYS
    return (daily_difference * days_left).quantize(CENT, rounding=ROUND_HALF_UP)


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping to the last day (Jan 31 + 1 -> Feb 28/29)."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def period_end(start: datetime, interval: str) -> datetime:
    if interval == PlanInterval.YEAR.value:
        return add_months(start, 12)
    return add_months(start, 1)


def invoice_due_date(now: datetime, days: int = 7) -> datetime:
    return now + timedelta(days=days)
