"""Single classification pass over a revenue snapshot.

Every revenue event is tagged exactly once as one of:

- ``ScheduleBacked``: an installment row of a payment plan
- ``RecurringBacked``: a billing-cycle row of a recurring product
- ``OneTime``: a paid invoice with no installment row and no recurring
  line, recognized in full

An invoice represented by any schedule or recurring row is never also
emitted as ``OneTime``. This module is the only place that decision is made.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from crm_revenue.models.models import InvoiceStatus
from crm_revenue.services.revenue.rows import (
    SOURCE_SCHEDULES,
    InvoiceRow,
    LineRow,
    RecurringRow,
    RevenueSnapshot,
    ScheduleRow,
)


@dataclass(frozen=True)
class OneTime:
    invoice: InvoiceRow
    lines: tuple[LineRow, ...]


@dataclass(frozen=True)
class ScheduleBacked:
    row: ScheduleRow
    line: LineRow | None


@dataclass(frozen=True)
class RecurringBacked:
    row: RecurringRow
    line: LineRow | None


RevenueEvent = Union[OneTime, ScheduleBacked, RecurringBacked]


def backed_invoice_ids(snapshot: RevenueSnapshot) -> set[int]:
    """Invoices already represented by installment or recurring rows.

    A line of a recurring product always backs its invoice. A payment-plan
    line backs it only while the schedule source is degraded, since its
    installment rows are then missing from the snapshot.
    """
    schedules_missing = SOURCE_SCHEDULES in snapshot.degraded_sources
    line_invoice = {line.id: line.invoice_id for line in snapshot.lines}
    backed = {row.invoice_id for row in snapshot.schedules}
    backed.update(
        line.invoice_id
        for line in snapshot.lines
        if line.recurring or (schedules_missing and line.payment_plan_id is not None)
    )
    for row in snapshot.recurring:
        invoice_id = row.invoice_id if row.invoice_id is not None else line_invoice.get(row.invoice_line_id)
        if invoice_id is not None:
            backed.add(invoice_id)
    return backed


def classify_revenue(snapshot: RevenueSnapshot) -> list[RevenueEvent]:
    lines_by_id = {line.id: line for line in snapshot.lines}
    lines_by_invoice: dict[int, list[LineRow]] = {}
    for line in snapshot.lines:
        lines_by_invoice.setdefault(line.invoice_id, []).append(line)

    events: list[RevenueEvent] = []
    for row in snapshot.schedules:
        line = lines_by_id.get(row.invoice_line_id) if row.invoice_line_id is not None else None
        events.append(ScheduleBacked(row=row, line=line))

    for row in snapshot.recurring:
        events.append(RecurringBacked(row=row, line=lines_by_id.get(row.invoice_line_id)))

    backed = backed_invoice_ids(snapshot)
    for invoice in snapshot.invoices:
        if invoice.status != InvoiceStatus.PAID.value or invoice.id in backed:
            continue
        events.append(OneTime(invoice=invoice, lines=tuple(lines_by_invoice.get(invoice.id, ()))))

    return events
