"""Tests for calendar projection of due dates."""
from datetime import date, datetime, timezone

import pytest

from crm_revenue.core.exceptions import UnknownIntervalError
from crm_revenue.services.pricing import IntervalType, add_months, next_due_date, parse_interval


def test_monthly_rolls_past_short_month():
    # No clamping to month end: Jan 31 + 1 month overflows into March
    assert next_due_date(date(2025, 1, 31), 1, "monthly") == date(2025, 3, 3)
    assert next_due_date(date(2024, 1, 31), 1, "monthly") == date(2024, 3, 2)


def test_annual_from_leap_day():
    assert next_due_date(date(2024, 2, 29), 1, "annual") == date(2025, 3, 1)
    assert next_due_date(date(2024, 2, 29), 4, "annual") == date(2028, 2, 29)


def test_quarterly_and_semiannual_cross_year():
    assert next_due_date(date(2025, 11, 15), 1, "quarterly") == date(2026, 2, 15)
    assert next_due_date(date(2025, 9, 1), 2, "semiannual") == date(2026, 9, 1)


def test_weekly_and_custom_days():
    base = date(2025, 3, 10)
    assert next_due_date(base, 3, "weekly") == date(2025, 3, 31)
    assert next_due_date(base, 2, "custom_days", custom_days=10) == date(2025, 3, 30)


def test_custom_days_defaults_to_one_day():
    assert next_due_date(date(2025, 3, 10), 5, IntervalType.CUSTOM_DAYS) == date(2025, 3, 15)


def test_multiplier_zero_returns_base():
    base = datetime(2025, 5, 31, 9, 30, tzinfo=timezone.utc)
    assert next_due_date(base, 0, "monthly") == base


def test_time_and_timezone_preserved():
    base = datetime(2025, 1, 15, 13, 45, tzinfo=timezone.utc)
    due = next_due_date(base, 1, "monthly")
    assert due == datetime(2025, 2, 15, 13, 45, tzinfo=timezone.utc)
    assert due.tzinfo is timezone.utc


def test_add_months_across_many_years():
    assert add_months(date(2025, 12, 1), 1) == date(2026, 1, 1)
    assert add_months(date(2025, 1, 1), 25) == date(2027, 2, 1)


def test_unknown_interval_raises():
    with pytest.raises(UnknownIntervalError) as exc:
        next_due_date(date(2025, 1, 1), 1, "fortnightly")
    assert exc.value.code == "PRC002"
    assert exc.value.details == {"interval_type": "fortnightly"}


def test_parse_interval_accepts_enum_and_string():
    assert parse_interval("quarterly") is IntervalType.QUARTERLY
    assert parse_interval(IntervalType.WEEKLY) is IntervalType.WEEKLY
    with pytest.raises(UnknownIntervalError):
        parse_interval(None)
