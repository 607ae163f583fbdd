"""Installment and recurring billing schedule generation."""
from __future__ import annotations

from datetime import datetime

from crm_revenue.core.exceptions import InvalidPaymentPlanError
from crm_revenue.models.schemas import (
    PaymentPlanTerms,
    PaymentScheduleEntry,
    ProductPricing,
    RecurringScheduleEntry,
)
from crm_revenue.services.pricing.dates import IntervalType, next_due_date, parse_interval

DEFAULT_HORIZON_MONTHS = 12


def generate_payment_schedule(
    plan: PaymentPlanTerms,
    line_total_minor: int,
    invoice_date: datetime,
) -> list[PaymentScheduleEntry]:
    """Split a line total into an optional down payment plus N installments.

    The down payment is clamped into [0, line total]. Installments are the
    floor of an even split and the last one absorbs the remainder, so the
    rows always sum to ``line_total_minor`` exactly.
    """
    if plan.num_installments < 1:
        raise InvalidPaymentPlanError("num_installments must be at least 1", plan_id=plan.id)
    parse_interval(plan.interval_type)

    installments = plan.num_installments
    down_payment = max(0, min(plan.down_payment_minor or 0, line_total_minor))
    remaining = max(0, line_total_minor - down_payment)
    installment_amount = remaining // installments
    last_installment_amount = remaining - installment_amount * (installments - 1)

    schedule: list[PaymentScheduleEntry] = []
    if down_payment > 0:
        schedule.append(
            PaymentScheduleEntry(
                installment_num=0,
                due_at_utc=invoice_date,
                amount_minor=down_payment,
                description="Down payment",
            )
        )

    for i in range(1, installments + 1):
        schedule.append(
            PaymentScheduleEntry(
                installment_num=i,
                due_at_utc=next_due_date(invoice_date, i, plan.interval_type, plan.interval_days),
                amount_minor=last_installment_amount if i == installments else installment_amount,
                description=f"Installment {i} of {installments}",
            )
        )

    return schedule


def max_cycles(interval_type: str | IntervalType, horizon_months: int) -> int:
    """Number of billing cycles that fit in the horizon.

    custom_days has no month equivalent and takes ``horizon_months`` as the
    cycle count unchanged.
    """
    interval = parse_interval(interval_type)
    if interval is IntervalType.WEEKLY:
        return (horizon_months * 30) // 7
    if interval is IntervalType.MONTHLY:
        return horizon_months
    if interval is IntervalType.QUARTERLY:
        return horizon_months // 3
    if interval is IntervalType.SEMIANNUAL:
        return horizon_months // 6
    if interval is IntervalType.ANNUAL:
        return horizon_months // 12
    return horizon_months


def generate_recurring_schedule(
    product: ProductPricing,
    line_total_minor: int,
    start_date: datetime,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
    cycles_count: int | None = None,
) -> list[RecurringScheduleEntry]:
    """Project future billing cycles for a recurring product.

    One-time products (no ``recurring_interval``) yield an empty list. Every
    cycle bills the full, unprorated line total.
    """
    if not product.recurring_interval:
        return []

    interval = parse_interval(product.recurring_interval)
    cycles = cycles_count if cycles_count is not None else max_cycles(interval, horizon_months)

    return [
        RecurringScheduleEntry(
            cycle_num=cycle,
            billing_at_utc=next_due_date(start_date, cycle, interval, product.recurring_interval_days),
            amount_minor=line_total_minor,
            description=f"Cycle {cycle} - {product.name}",
        )
        for cycle in range(1, cycles + 1)
    ]
