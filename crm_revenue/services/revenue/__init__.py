"""Report-time revenue recognition: classification, proration and aggregation."""
from .aggregator import (
    REVENUE_SOURCES,
    SOURCE_ONE_TIME,
    SOURCE_RECURRING,
    SOURCE_SCHEDULES,
    RevenueAggregator,
    SourceTotals,
    gross_margin_percent,
)
from .classification import OneTime, RecurringBacked, RevenueEvent, ScheduleBacked, classify_revenue
from .proration import prorate
from .rows import InvoiceRow, LeadRow, LineRow, RecurringRow, RevenueSnapshot, ScheduleRow
from .sources import load_revenue_snapshot

__all__ = [
    "REVENUE_SOURCES",
    "SOURCE_ONE_TIME",
    "SOURCE_RECURRING",
    "SOURCE_SCHEDULES",
    "RevenueAggregator",
    "SourceTotals",
    "gross_margin_percent",
    "OneTime",
    "RecurringBacked",
    "RevenueEvent",
    "ScheduleBacked",
    "classify_revenue",
    "prorate",
    "InvoiceRow",
    "LeadRow",
    "LineRow",
    "RecurringRow",
    "RevenueSnapshot",
    "ScheduleRow",
    "load_revenue_snapshot",
]
