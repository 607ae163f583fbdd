"""Report date range parsing and period bucketing."""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from crm_revenue.core.config import REPORT_GROUPINGS as GROUP_BY_CHOICES
from crm_revenue.core.exceptions import InvalidReportQueryError


def as_utc(moment: datetime | None) -> datetime | None:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _parse_bound(value: str, *, end_of_day: bool) -> datetime:
    text = value.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidReportQueryError(value, "expected ISO-8601") from exc
    # A bare date as the upper bound covers that whole day
    if end_of_day and len(text) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return as_utc(parsed)


def parse_range(
    date_from: str | None = None,
    date_to: str | None = None,
) -> tuple[datetime | None, datetime | None]:
    """Parse optional ISO-8601 ``from``/``to`` strings into UTC bounds.

    Raises:
        InvalidReportQueryError: unparseable value or ``from`` after ``to``.
    """
    start = _parse_bound(date_from, end_of_day=False) if date_from else None
    end = _parse_bound(date_to, end_of_day=True) if date_to else None
    if start and end and start > end:
        raise InvalidReportQueryError(f"{date_from}..{date_to}", "from is after to")
    return start, end


def in_range(moment: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    """Inclusive on both ends; an open bound admits everything on that side."""
    moment = as_utc(moment)
    if moment is None:
        return False
    if start is not None and moment < start:
        return False
    if end is not None and moment > end:
        return False
    return True


def period_key(moment: datetime, group_by: str) -> str:
    """Bucket label: ``YYYY-MM-DD`` for day, the ISO week's Monday for week, ``YYYY-MM`` for month."""
    day: date = as_utc(moment).date()
    if group_by == "day":
        return day.isoformat()
    if group_by == "week":
        return (day - timedelta(days=day.weekday())).isoformat()
    if group_by == "month":
        return f"{day.year:04d}-{day.month:02d}"
    raise InvalidReportQueryError(str(group_by), "groupBy must be day/week/month")


def normalize_group_by(group_by: str | None, default: str = "month") -> str:
    value = (group_by or default).strip().lower()
    if value not in GROUP_BY_CHOICES:
        raise InvalidReportQueryError(str(group_by), "groupBy must be day/week/month")
    return value
