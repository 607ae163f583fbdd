"""Read-only row shapes the revenue aggregator works on.

These mirror the persisted invoice, line, schedule and lead rows but carry
no ORM state, so aggregation can run over any row source.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field

SOURCE_ONE_TIME = "one_time_invoices"
SOURCE_SCHEDULES = "payment_schedules"
SOURCE_RECURRING = "recurring_revenue"
REVENUE_SOURCES = (SOURCE_ONE_TIME, SOURCE_SCHEDULES, SOURCE_RECURRING)


@dataclass(frozen=True)
class InvoiceRow:
    id: int
    status: str
    amount_minor: int
    issued_at: dt.datetime | None = None
    paid_at: dt.datetime | None = None
    customer_id: int | None = None


@dataclass(frozen=True)
class LineRow:
    id: int
    invoice_id: int
    total_minor: int
    cogs_minor: int
    tax_minor: int = 0
    quantity: int = 1
    product_id: int | None = None
    product_name: str | None = None
    description: str | None = None
    payment_plan_id: int | None = None
    # Product carries a recurring_interval
    recurring: bool = False


@dataclass(frozen=True)
class ScheduleRow:
    id: int
    invoice_id: int
    invoice_line_id: int | None
    amount_minor: int
    status: str
    due_at: dt.datetime
    paid_at: dt.datetime | None = None


@dataclass(frozen=True)
class RecurringRow:
    id: int
    invoice_line_id: int
    amount_minor: int
    status: str
    billing_at: dt.datetime
    billed_at: dt.datetime | None = None
    invoice_id: int | None = None


@dataclass(frozen=True)
class LeadRow:
    id: int
    status: str
    value_minor: int
    deleted: bool = False


@dataclass(frozen=True)
class RevenueSnapshot:
    """Everything one owner scope needs for a report, unfiltered by date."""
    invoices: tuple[InvoiceRow, ...] = ()
    lines: tuple[LineRow, ...] = ()
    schedules: tuple[ScheduleRow, ...] = ()
    recurring: tuple[RecurringRow, ...] = ()
    leads: tuple[LeadRow, ...] = ()
    degraded_sources: tuple[str, ...] = field(default_factory=tuple)
