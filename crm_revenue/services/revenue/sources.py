"""Owner-scoped row loading for revenue reports.

Each source is read independently. A failed read degrades that source to
an empty list and is recorded on the snapshot; the other sources still
contribute to the report. Retrying is left to the caller.
"""
from __future__ import annotations

import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from crm_revenue import metrics
from crm_revenue.core.exceptions import UpstreamFetchError
from crm_revenue.models import models
from crm_revenue.services.revenue.periods import as_utc
from crm_revenue.services.revenue.rows import (
    SOURCE_ONE_TIME,
    SOURCE_RECURRING,
    SOURCE_SCHEDULES,
    InvoiceRow,
    LeadRow,
    LineRow,
    RecurringRow,
    RevenueSnapshot,
    ScheduleRow,
)

logger = logging.getLogger(__name__)

SOURCE_LEADS = "leads"

_T = TypeVar("_T")


def _fetch(db: Session, source: str, loader: Callable[[], _T], fallback: _T, degraded: list[str]) -> _T:
    try:
        return loader()
    except SQLAlchemyError as exc:
        db.rollback()
        error = UpstreamFetchError(source, str(exc.__class__.__name__))
        logger.exception("%s; continuing without it", error.message, extra={"code": error.code})
        metrics.revenue_source_degraded(source)
        degraded.append(source)
        return fallback


def _invoice_rows(db: Session, owner_id: int, customer_id: int | None) -> tuple[InvoiceRow, ...]:
    q = db.query(models.Invoice).filter(models.Invoice.owner_id == owner_id)
    if customer_id is not None:
        q = q.filter(models.Invoice.customer_id == customer_id)
    return tuple(
        InvoiceRow(
            id=inv.id,
            status=inv.status,
            amount_minor=inv.amount_minor or 0,
            issued_at=as_utc(inv.issued_at),
            paid_at=as_utc(inv.paid_at),
            customer_id=inv.customer_id,
        )
        for inv in q.all()
    )


def _line_rows(db: Session, owner_id: int, customer_id: int | None) -> tuple[LineRow, ...]:
    q = (
        db.query(models.InvoiceLine)
        .options(joinedload(models.InvoiceLine.product))
        .join(models.Invoice, models.InvoiceLine.invoice_id == models.Invoice.id)
        .filter(models.Invoice.owner_id == owner_id)
    )
    if customer_id is not None:
        q = q.filter(models.Invoice.customer_id == customer_id)
    return tuple(
        LineRow(
            id=line.id,
            invoice_id=line.invoice_id,
            total_minor=line.total_minor or 0,
            cogs_minor=line.cogs_minor or 0,
            tax_minor=line.tax_minor or 0,
            quantity=line.quantity or 0,
            product_id=line.product_id,
            product_name=line.product.name if line.product else None,
            description=line.description,
            payment_plan_id=line.payment_plan_id,
            recurring=bool(line.product and line.product.recurring_interval),
        )
        for line in q.all()
    )


def _schedule_rows(db: Session, owner_id: int, customer_id: int | None) -> tuple[ScheduleRow, ...]:
    q = (
        db.query(models.InvoicePaymentSchedule)
        .join(models.Invoice, models.InvoicePaymentSchedule.invoice_id == models.Invoice.id)
        .filter(models.Invoice.owner_id == owner_id)
    )
    if customer_id is not None:
        q = q.filter(models.Invoice.customer_id == customer_id)
    return tuple(
        ScheduleRow(
            id=row.id,
            invoice_id=row.invoice_id,
            invoice_line_id=row.invoice_line_id,
            amount_minor=row.amount_minor or 0,
            status=row.status,
            due_at=as_utc(row.due_at),
            paid_at=as_utc(row.paid_at),
        )
        for row in q.all()
    )


def _recurring_rows(db: Session, owner_id: int, customer_id: int | None) -> tuple[RecurringRow, ...]:
    q = (
        db.query(models.RecurringRevenueSchedule, models.InvoiceLine.invoice_id)
        .join(models.InvoiceLine, models.RecurringRevenueSchedule.invoice_line_id == models.InvoiceLine.id)
        .join(models.Invoice, models.InvoiceLine.invoice_id == models.Invoice.id)
        .filter(models.Invoice.owner_id == owner_id)
    )
    if customer_id is not None:
        q = q.filter(models.Invoice.customer_id == customer_id)
    return tuple(
        RecurringRow(
            id=row.id,
            invoice_line_id=row.invoice_line_id,
            amount_minor=row.amount_minor or 0,
            status=row.status,
            billing_at=as_utc(row.billing_at),
            billed_at=as_utc(row.billed_at),
            invoice_id=invoice_id,
        )
        for row, invoice_id in q.all()
    )


def _lead_rows(db: Session, owner_id: int) -> tuple[LeadRow, ...]:
    leads = db.query(models.Lead).filter(models.Lead.owner_id == owner_id).all()
    return tuple(
        LeadRow(
            id=lead.id,
            status=lead.status,
            value_minor=lead.value_minor or 0,
            deleted=lead.deleted_at is not None,
        )
        for lead in leads
    )


def load_revenue_snapshot(
    db: Session,
    owner_id: int,
    customer_id: int | None = None,
    include_leads: bool = True,
) -> RevenueSnapshot:
    """Read every row one owner's report needs, unfiltered by date.

    Classification must see all installment and recurring rows of an invoice,
    not only those inside the report window, so date filtering happens later
    in the aggregator.
    """
    degraded: list[str] = []

    def _load_invoices():
        return _invoice_rows(db, owner_id, customer_id), _line_rows(db, owner_id, customer_id)

    invoices, lines = _fetch(db, SOURCE_ONE_TIME, _load_invoices, ((), ()), degraded)
    schedules = _fetch(
        db, SOURCE_SCHEDULES, lambda: _schedule_rows(db, owner_id, customer_id), (), degraded
    )
    recurring = _fetch(
        db, SOURCE_RECURRING, lambda: _recurring_rows(db, owner_id, customer_id), (), degraded
    )
    leads = _fetch(db, SOURCE_LEADS, lambda: _lead_rows(db, owner_id), (), degraded) if include_leads else ()

    return RevenueSnapshot(
        invoices=invoices,
        lines=lines,
        schedules=schedules,
        recurring=recurring,
        leads=leads,
        degraded_sources=tuple(degraded),
    )
