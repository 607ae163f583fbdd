"""Invoice creation: pricing, schedule projection and persistence."""
from __future__ import annotations

import datetime as dt
import logging
from typing import Iterable, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session

from crm_revenue import metrics
from crm_revenue.core.config import settings
from crm_revenue.core.exceptions import ValidationFailure
from crm_revenue.models import models
from crm_revenue.models.schemas import (
    InvoiceDraft,
    InvoiceDraftLine,
    LineItemInput,
    PaymentPlanTerms,
    ProductPricing,
)
from crm_revenue.services.pricing import (
    calculate_invoice,
    generate_payment_schedule,
    generate_recurring_schedule,
)

logger = logging.getLogger(__name__)


def build_invoice_draft(
    products: Iterable[ProductPricing],
    plans: Iterable[PaymentPlanTerms],
    line_inputs: Sequence[LineItemInput],
    invoice_date: dt.datetime,
    horizon_months: int | None = None,
    recurring_cycles: int | None = None,
) -> InvoiceDraft:
    """Price every line and project its installment and billing schedules.

    A line naming a payment plan that is not in ``plans`` is priced but gets
    no installment schedule. Any ValidationFailure aborts the whole draft.
    """
    products = list(products)
    products_by_id = {str(p.id): p for p in products}
    plans_by_id = {str(plan.id): plan for plan in plans}
    horizon = settings.RECURRING_HORIZON_MONTHS if horizon_months is None else horizon_months

    calculation = calculate_invoice(products, line_inputs)

    draft_lines: list[InvoiceDraftLine] = []
    for line in calculation.lines:
        product = products_by_id[str(line.product_id)]

        payment_schedule = []
        if line.payment_plan_id is not None:
            plan = plans_by_id.get(str(line.payment_plan_id))
            if plan is None:
                logger.warning(
                    "Payment plan %s not found for product %s; line left without installments",
                    line.payment_plan_id,
                    product.id,
                )
            else:
                payment_schedule = generate_payment_schedule(plan, line.total_minor, invoice_date)

        recurring_schedule = generate_recurring_schedule(
            product,
            line.total_minor,
            invoice_date,
            horizon_months=horizon,
            cycles_count=recurring_cycles,
        )

        draft_lines.append(
            InvoiceDraftLine(
                description=product.name,
                calculation=line,
                payment_schedule=payment_schedule,
                recurring_schedule=recurring_schedule,
            )
        )

    return InvoiceDraft(invoice_date=invoice_date, calculation=calculation, lines=draft_lines)


class InvoicePricingService:
    """Creates priced invoices together with their schedule rows."""

    def __init__(self, db: Session):
        self.db = db

    def _load_products(self, owner_id: int, line_inputs: Sequence[LineItemInput]) -> list[ProductPricing]:
        """Owner's catalog plus shared products (no owner); anything else is not found."""
        ids = {line.product_id for line in line_inputs}
        rows = (
            self.db.query(models.Product)
            .filter(
                models.Product.id.in_(ids),
                or_(models.Product.owner_id == owner_id, models.Product.owner_id.is_(None)),
            )
            .all()
        )
        return [ProductPricing.model_validate(row) for row in rows]

    def _load_plans(self, line_inputs: Sequence[LineItemInput]) -> list[PaymentPlanTerms]:
        ids = {line.payment_plan_id for line in line_inputs if line.payment_plan_id is not None}
        if not ids:
            return []
        rows = self.db.query(models.PaymentPlan).filter(models.PaymentPlan.id.in_(ids)).all()
        return [PaymentPlanTerms.model_validate(row) for row in rows]

    def create_invoice(
        self,
        owner_id: int,
        line_inputs: Sequence[LineItemInput],
        customer_id: int | None = None,
        invoice_date: dt.datetime | None = None,
        status: str = models.InvoiceStatus.DRAFT.value,
        recurring_cycles: int | None = None,
    ) -> models.Invoice:
        """Price, project and persist an invoice in a single transaction.

        Raises:
            ValidationFailure: unknown product or interval; nothing is written.
        """
        invoice_date = invoice_date or dt.datetime.now(dt.timezone.utc)

        try:
            draft = build_invoice_draft(
                self._load_products(owner_id, line_inputs),
                self._load_plans(line_inputs),
                line_inputs,
                invoice_date,
                recurring_cycles=recurring_cycles,
            )
        except ValidationFailure as exc:
            logger.warning("Invoice for owner %s rejected: %s", owner_id, exc.message)
            raise

        invoice = models.Invoice(
            owner_id=owner_id,
            customer_id=customer_id,
            status=status,
            amount_minor=draft.calculation.total_minor,
            issued_at=invoice_date,
        )

        payment_rows = 0
        recurring_rows = 0
        for draft_line in draft.lines:
            calc = draft_line.calculation
            line = models.InvoiceLine(
                product_id=calc.product_id,
                payment_plan_id=calc.payment_plan_id if draft_line.payment_schedule else None,
                description=draft_line.description,
                quantity=calc.quantity,
                unit_price_minor=calc.unit_price_minor,
                subtotal_minor=calc.subtotal_minor,
                discount_minor=calc.discount_minor,
                tax_minor=calc.tax_minor,
                total_minor=calc.total_minor,
                cogs_minor=calc.cogs_minor,
                margin_minor=calc.margin_minor,
            )
            invoice.lines.append(line)

            for entry in draft_line.payment_schedule:
                invoice.payment_schedules.append(
                    models.InvoicePaymentSchedule(
                        invoice_line=line,
                        installment_num=entry.installment_num,
                        due_at=entry.due_at_utc,
                        amount_minor=entry.amount_minor,
                        description=entry.description,
                        status=models.PaymentScheduleStatus.PENDING.value,
                    )
                )
                payment_rows += 1

            for entry in draft_line.recurring_schedule:
                line.recurring_schedules.append(
                    models.RecurringRevenueSchedule(
                        cycle_num=entry.cycle_num,
                        billing_at=entry.billing_at_utc,
                        amount_minor=entry.amount_minor,
                        description=entry.description,
                        status=models.RecurringScheduleStatus.SCHEDULED.value,
                    )
                )
                recurring_rows += 1

        try:
            self.db.add(invoice)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(invoice)

        metrics.invoice_priced()
        metrics.schedule_rows_generated("payment", payment_rows)
        metrics.schedule_rows_generated("recurring", recurring_rows)
        logger.info(
            "Created invoice %s for owner %s: total=%s lines=%s installments=%s cycles=%s",
            invoice.id,
            owner_id,
            invoice.amount_minor,
            len(draft.lines),
            payment_rows,
            recurring_rows,
        )
        return invoice
