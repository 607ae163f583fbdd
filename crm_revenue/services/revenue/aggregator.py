"""Realized vs pending revenue aggregation.

Works on a ``RevenueSnapshot`` so it never depends on how rows were
generated or stored. Each classified event lands in exactly one source's
totals; the three source totals are then combined, in any order, into the
report.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from crm_revenue.models.models import (
    CLOSED_LEAD_STATUSES,
    InvoiceStatus,
    PaymentScheduleStatus,
    RecurringScheduleStatus,
)
from crm_revenue.models.schemas import RevenuePeriod, RevenueReport, RevenueSources
from crm_revenue.services.revenue.classification import (
    OneTime,
    RecurringBacked,
    RevenueEvent,
    ScheduleBacked,
    classify_revenue,
)
from crm_revenue.services.revenue.periods import as_utc, in_range, normalize_group_by, period_key
from crm_revenue.services.revenue.proration import apply_share, row_share
from crm_revenue.services.revenue.rows import (
    REVENUE_SOURCES,
    SOURCE_ONE_TIME,
    SOURCE_RECURRING,
    SOURCE_SCHEDULES,
    RevenueSnapshot,
)

logger = logging.getLogger(__name__)

_PENDING_SCHEDULE_STATUSES = frozenset({PaymentScheduleStatus.PENDING.value, PaymentScheduleStatus.OVERDUE.value})


@dataclass
class SourceTotals:
    """Partial result for one revenue source."""
    realized_minor: int = 0
    pending_minor: int = 0
    realized_cogs_minor: int = 0
    realized_tax_minor: int = 0
    pending_tax_minor: int = 0
    series: dict[str, int] = field(default_factory=dict)

    def realize(self, period: str, amount_minor: int, cogs_minor: int, tax_minor: int) -> None:
        self.realized_minor += amount_minor
        self.realized_cogs_minor += cogs_minor
        self.realized_tax_minor += tax_minor
        self.series[period] = self.series.get(period, 0) + amount_minor

    def expect(self, amount_minor: int, tax_minor: int) -> None:
        self.pending_minor += amount_minor
        self.pending_tax_minor += tax_minor

    def __add__(self, other: SourceTotals) -> SourceTotals:
        series = dict(self.series)
        for period, amount in other.series.items():
            series[period] = series.get(period, 0) + amount
        return SourceTotals(
            realized_minor=self.realized_minor + other.realized_minor,
            pending_minor=self.pending_minor + other.pending_minor,
            realized_cogs_minor=self.realized_cogs_minor + other.realized_cogs_minor,
            realized_tax_minor=self.realized_tax_minor + other.realized_tax_minor,
            pending_tax_minor=self.pending_tax_minor + other.pending_tax_minor,
            series=series,
        )


def gross_margin_percent(gross_profit_minor: int, realized_total_minor: int) -> float:
    if realized_total_minor <= 0:
        return 0.0
    return gross_profit_minor * 100 / realized_total_minor


class RevenueAggregator:
    """Builds a revenue report for an optional inclusive [date_from, date_to] window."""

    def __init__(
        self,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        group_by: str = "month",
    ):
        self.date_from = as_utc(date_from)
        self.date_to = as_utc(date_to)
        self.group_by = normalize_group_by(group_by)

    def _within(self, moment: datetime | None) -> bool:
        if self.date_from is None and self.date_to is None:
            return True
        return in_range(moment, self.date_from, self.date_to)

    def totals_by_source(self, snapshot: RevenueSnapshot) -> dict[str, SourceTotals]:
        totals = {source: SourceTotals() for source in REVENUE_SOURCES}
        for event in classify_revenue(snapshot):
            self._accumulate(event, totals)
        return totals

    def aggregate(self, snapshot: RevenueSnapshot) -> RevenueReport:
        by_source = self.totals_by_source(snapshot)
        combined = sum(by_source.values(), SourceTotals())

        realized_total = combined.realized_minor
        gross_profit = max(0, realized_total - combined.realized_cogs_minor)

        report = RevenueReport(
            realized_total_minor=realized_total,
            pending_total_minor=combined.pending_minor,
            draft_total_minor=self._draft_total(snapshot),
            lead_potential_minor=self._lead_potential(snapshot),
            gross_profit_minor=gross_profit,
            gross_margin_percent=gross_margin_percent(gross_profit, realized_total),
            realized_cogs_minor=combined.realized_cogs_minor,
            realized_tax_minor=combined.realized_tax_minor,
            realized_net_revenue_minor=realized_total - combined.realized_tax_minor,
            pending_tax_minor=combined.pending_tax_minor,
            pending_net_revenue_minor=combined.pending_minor - combined.pending_tax_minor,
            degraded_sources=list(snapshot.degraded_sources),
            revenue=self._series(by_source),
        )
        logger.debug(
            "Aggregated revenue realized=%s pending=%s cogs=%s periods=%s",
            report.realized_total_minor,
            report.pending_total_minor,
            report.realized_cogs_minor,
            len(report.revenue),
        )
        return report

    def _accumulate(self, event: RevenueEvent, totals: dict[str, SourceTotals]) -> None:
        if isinstance(event, ScheduleBacked):
            self._add_schedule(event, totals[SOURCE_SCHEDULES])
        elif isinstance(event, RecurringBacked):
            self._add_recurring(event, totals[SOURCE_RECURRING])
        elif isinstance(event, OneTime):
            self._add_one_time(event, totals[SOURCE_ONE_TIME])
        else:
            raise TypeError(f"Unclassified revenue event: {event!r}")

    def _add_schedule(self, event: ScheduleBacked, totals: SourceTotals) -> None:
        row, line = event.row, event.line
        if row.status == PaymentScheduleStatus.PAID.value:
            recognized_at = row.paid_at or row.due_at
            if not self._within(recognized_at):
                return
            share = row_share(row.amount_minor, line, source=SOURCE_SCHEDULES, row_id=row.id)
            totals.realize(
                period_key(recognized_at, self.group_by),
                row.amount_minor,
                apply_share(line.cogs_minor, share) if line else 0,
                apply_share(line.tax_minor, share) if line else 0,
            )
        elif row.status in _PENDING_SCHEDULE_STATUSES and self._within(row.due_at):
            share = row_share(row.amount_minor, line, source=SOURCE_SCHEDULES, row_id=row.id)
            totals.expect(row.amount_minor, apply_share(line.tax_minor, share) if line else 0)

    def _add_recurring(self, event: RecurringBacked, totals: SourceTotals) -> None:
        row, line = event.row, event.line
        if row.status == RecurringScheduleStatus.BILLED.value:
            recognized_at = row.billed_at or row.billing_at
            if not self._within(recognized_at):
                return
            share = row_share(row.amount_minor, line, source=SOURCE_RECURRING, row_id=row.id)
            totals.realize(
                period_key(recognized_at, self.group_by),
                row.amount_minor,
                apply_share(line.cogs_minor, share) if line else 0,
                apply_share(line.tax_minor, share) if line else 0,
            )
        elif row.status == RecurringScheduleStatus.SCHEDULED.value and self._within(row.billing_at):
            share = row_share(row.amount_minor, line, source=SOURCE_RECURRING, row_id=row.id)
            totals.expect(row.amount_minor, apply_share(line.tax_minor, share) if line else 0)

    def _add_one_time(self, event: OneTime, totals: SourceTotals) -> None:
        invoice = event.invoice
        recognized_at = invoice.paid_at or invoice.issued_at
        if recognized_at is None or not self._within(recognized_at):
            return
        # Recognized in full: whole-line COGS and tax, no proration
        totals.realize(
            period_key(recognized_at, self.group_by),
            invoice.amount_minor,
            sum(line.cogs_minor for line in event.lines),
            sum(line.tax_minor for line in event.lines),
        )

    def _draft_total(self, snapshot: RevenueSnapshot) -> int:
        return sum(
            invoice.amount_minor
            for invoice in snapshot.invoices
            if invoice.status == InvoiceStatus.DRAFT.value and self._within(invoice.issued_at)
        )

    @staticmethod
    def _lead_potential(snapshot: RevenueSnapshot) -> int:
        return sum(
            lead.value_minor
            for lead in snapshot.leads
            if not lead.deleted and lead.status not in CLOSED_LEAD_STATUSES
        )

    @staticmethod
    def _series(by_source: dict[str, SourceTotals]) -> list[RevenuePeriod]:
        periods: dict[str, dict[str, int]] = {}
        for source, totals in by_source.items():
            for period, amount in totals.series.items():
                periods.setdefault(period, {})[source] = amount
        return [
            RevenuePeriod(
                period=period,
                total_revenue_minor=sum(amounts.values()),
                sources=RevenueSources(**amounts),
            )
            for period, amounts in sorted(periods.items())
        ]
