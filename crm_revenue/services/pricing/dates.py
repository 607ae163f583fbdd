"""Calendar projection for installment and billing-cycle due dates."""
from __future__ import annotations

import enum
from datetime import date, datetime, timedelta
from typing import TypeVar

from crm_revenue.core.exceptions import UnknownIntervalError

_D = TypeVar("_D", date, datetime)


class IntervalType(str, enum.Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    CUSTOM_DAYS = "custom_days"


_MONTHS_PER_CYCLE = {
    IntervalType.MONTHLY: 1,
    IntervalType.QUARTERLY: 3,
    IntervalType.SEMIANNUAL: 6,
    IntervalType.ANNUAL: 12,
}


def parse_interval(interval_type: str | IntervalType | None) -> IntervalType:
    """Resolve an interval name, raising UnknownIntervalError for anything unsupported."""
    try:
        return IntervalType(interval_type)
    except ValueError:
        raise UnknownIntervalError(interval_type) from None


def add_months(moment: _D, months: int) -> _D:
    """Add calendar months, letting a day past the target month's end roll forward.

    Jan 31 + 1 month lands on Mar 3 (Mar 2 in a leap year) and Feb 29 + 12
    months lands on Mar 1. Day-of-month is never clamped to month end.
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    return moment.replace(year=year, month=month, day=1) + timedelta(days=moment.day - 1)


def next_due_date(
    base: _D,
    multiplier: int,
    interval_type: str | IntervalType,
    custom_days: int | None = None,
) -> _D:
    """Project ``base`` forward by ``multiplier`` whole cycles of the cadence.

    Time-of-day and tzinfo of ``base`` are kept. ``custom_days`` applies to
    the custom_days cadence only and defaults to one day per cycle.
    """
    interval = parse_interval(interval_type)

    if interval is IntervalType.WEEKLY:
        return base + timedelta(days=7 * multiplier)
    if interval is IntervalType.CUSTOM_DAYS:
        return base + timedelta(days=(custom_days or 1) * multiplier)
    return add_months(base, _MONTHS_PER_CYCLE[interval] * multiplier)
