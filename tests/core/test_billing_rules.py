'''
testing the billing arithmetic
'''
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from tutor_hub_backend.core.billing import (
    remaining_days, prorate, add_months, period_end, invoice_due_date
)


def utc(year, month, day, hour=0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def test_remaining_days_counts_whole_days():
    assert remaining_days(utc(2025, 3, 31), utc(2025, 3, 16, 12)) == 14


def test_remaining_days_never_negative():
    assert remaining_days(utc(2025, 3, 1), utc(2025, 3, 16)) == 0


def test_prorate_upgrade_owes_the_difference():
    # (60 - 30) / 30 per day for 15 days
    assert prorate(Decimal("30.00"), Decimal("60.00"), 15) == Decimal("15.00")


def test_prorate_downgrade_is_a_credit():
    assert prorate(Decimal("60.00"), Decimal("30.00"), 10) == Decimal("-10.00")


def test_prorate_rounds_to_cents():
    assert prorate(Decimal("10.00"), Decimal("20.00"), 1) == Decimal("0.33")


def test_prorate_nothing_left():
    assert prorate(Decimal("10.00"), Decimal("99.00"), 0) == Decimal("0.00")


@pytest.mark.parametrize("start, months, expected", [
    (utc(2025, 1, 15), 1, utc(2025, 2, 15)),
    (utc(2025, 1, 31), 1, utc(2025, 2, 28)),
    (utc(2024, 1, 31), 1, utc(2024, 2, 29)),
    (utc(2025, 12, 10), 1, utc(2026, 1, 10)),
    (utc(2025, 3, 31), 12, utc(2026, 3, 31)),
])
def test_add_months(start, months, expected):
    assert add_months(start, months) == expected


def test_period_end_by_interval():
    start = utc(2025, 5, 20)
    assert period_end(start, "month") == utc(2025, 6, 20)
    assert period_end(start, "year") == utc(2026, 5, 20)


def test_invoice_due_date_default_is_a_week():
    assert invoice_due_date(utc(2025, 5, 20)) == utc(2025, 5, 27)
