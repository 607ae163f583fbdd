"""Tests for the database-backed revenue report and customer insights."""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from crm_revenue.core.exceptions import InvalidReportQueryError
from crm_revenue.models.models import (
    Invoice,
    InvoiceLine,
    InvoicePaymentSchedule,
    Lead,
    PaymentPlan,
    Product,
    RecurringRevenueSchedule,
)
from crm_revenue.services.revenue import sources
from crm_revenue.services.revenue_report_service import build_revenue_report, customer_revenue_insights

OWNER_ID = 1


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def product(db_session):
    product = Product(name="Consulting", price_minor=1000, tax_rate_bp=0, cogs_type="percent", cogs_value=4000)
    db_session.add(product)
    db_session.commit()
    return product


def add_invoice(db_session, *, status, amount, customer_id=None, owner_id=OWNER_ID, issued_at=None, paid_at=None):
    invoice = Invoice(
        owner_id=owner_id,
        customer_id=customer_id,
        status=status,
        amount_minor=amount,
        issued_at=issued_at or utc(2025, 1, 10),
        paid_at=paid_at,
    )
    db_session.add(invoice)
    db_session.flush()
    return invoice


def add_line(db_session, invoice, product=None, *, total, cogs, quantity=1, plan=None):
    line = InvoiceLine(
        invoice_id=invoice.id,
        product_id=product.id if product else None,
        payment_plan_id=plan.id if plan else None,
        description=product.name if product else "Custom work",
        quantity=quantity,
        total_minor=total,
        cogs_minor=cogs,
    )
    db_session.add(line)
    db_session.flush()
    return line


@pytest.fixture
def seeded(db_session, product):
    # One-time paid invoice
    one_time = add_invoice(db_session, status="paid", amount=2000, customer_id=7, paid_at=utc(2025, 1, 20))
    add_line(db_session, one_time, product, total=2000, cogs=800, quantity=2)

    # Installment invoice: one installment paid, one pending
    plan_invoice = add_invoice(db_session, status="paid", amount=1000, customer_id=8, paid_at=utc(2025, 1, 12))
    plan = PaymentPlan(product_id=product.id, num_installments=2, interval_type="monthly")
    db_session.add(plan)
    db_session.flush()
    plan_line = add_line(db_session, plan_invoice, product, total=1000, cogs=400, plan=plan)
    db_session.add_all([
        InvoicePaymentSchedule(
            invoice_id=plan_invoice.id,
            invoice_line_id=plan_line.id,
            installment_num=1,
            due_at=utc(2025, 2, 10),
            amount_minor=500,
            description="Installment 1 of 2",
            status="paid",
            paid_at=utc(2025, 2, 11),
        ),
        InvoicePaymentSchedule(
            invoice_id=plan_invoice.id,
            invoice_line_id=plan_line.id,
            installment_num=2,
            due_at=utc(2025, 3, 10),
            amount_minor=500,
            description="Installment 2 of 2",
            status="pending",
        ),
    ])

    # Recurring line, first cycle billed
    sub_invoice = add_invoice(db_session, status="pending", amount=300, customer_id=8)
    sub_line = add_line(db_session, sub_invoice, total=300, cogs=60)
    db_session.add_all([
        RecurringRevenueSchedule(
            invoice_line_id=sub_line.id,
            cycle_num=1,
            billing_at=utc(2025, 2, 10),
            amount_minor=300,
            description="Cycle 1 - Hosting",
            status="billed",
            billed_at=utc(2025, 2, 10),
        ),
        RecurringRevenueSchedule(
            invoice_line_id=sub_line.id,
            cycle_num=2,
            billing_at=utc(2025, 3, 10),
            amount_minor=300,
            description="Cycle 2 - Hosting",
            status="scheduled",
        ),
    ])

    add_invoice(db_session, status="draft", amount=450)
    db_session.add_all([
        Lead(owner_id=OWNER_ID, status="new", value_minor=5000),
        Lead(owner_id=OWNER_ID, status="converted", value_minor=9000),
        Lead(owner_id=OWNER_ID, status="qualified", value_minor=700, deleted_at=utc(2025, 1, 1)),
    ])

    # Another owner's data never leaks in
    other = add_invoice(db_session, status="paid", amount=99_999, owner_id=2, paid_at=utc(2025, 1, 20))
    add_line(db_session, other, total=99_999, cogs=0)
    db_session.commit()


def test_report_totals(db_session, seeded):
    report = build_revenue_report(db_session, OWNER_ID)

    assert report.realized_total_minor == 2000 + 500 + 300
    assert report.pending_total_minor == 500 + 300
    assert report.draft_total_minor == 450
    assert report.lead_potential_minor == 5000
    assert report.realized_cogs_minor == 800 + 200 + 60
    assert report.gross_profit_minor == 2800 - 1060
    assert report.gross_margin_percent == pytest.approx(1740 * 100 / 2800)
    assert report.degraded_sources == []


def test_report_series_by_month(db_session, seeded):
    report = build_revenue_report(db_session, OWNER_ID, group_by="MONTH")

    assert [p.period for p in report.revenue] == ["2025-01", "2025-02"]
    jan, feb = report.revenue
    assert jan.sources.one_time_invoices == 2000
    assert feb.total_revenue_minor == 800
    assert feb.sources.payment_schedules == 500
    assert feb.sources.recurring_revenue == 300


def test_report_range_excludes_outside_rows(db_session, seeded):
    report = build_revenue_report(db_session, OWNER_ID, date_from="2025-02-01T00:00:00Z", date_to="2025-02-28")

    assert report.realized_total_minor == 800
    assert report.pending_total_minor == 0
    assert report.draft_total_minor == 0


def test_invalid_query_parameters(db_session):
    with pytest.raises(InvalidReportQueryError):
        build_revenue_report(db_session, OWNER_ID, date_from="last tuesday")
    with pytest.raises(InvalidReportQueryError):
        build_revenue_report(db_session, OWNER_ID, group_by="quarter")


def test_failed_source_degrades_to_empty(db_session, seeded, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    monkeypatch.setattr(sources, "_schedule_rows", broken)

    report = build_revenue_report(db_session, OWNER_ID)

    assert report.degraded_sources == ["payment_schedules"]
    # Other sources still contribute
    assert report.realized_total_minor == 2000 + 300
    assert report.pending_total_minor == 300


def test_failed_recurring_source_keeps_other_revenue(db_session, seeded, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("statement timeout"))

    monkeypatch.setattr(sources, "_recurring_rows", broken)

    report = build_revenue_report(db_session, OWNER_ID)

    assert report.degraded_sources == ["recurring_revenue"]
    assert report.realized_total_minor == 2000 + 500
    assert report.pending_total_minor == 500
    assert report.realized_cogs_minor == 800 + 200
    assert [p.sources.recurring_revenue for p in report.revenue] == [0, 0]


def test_failed_invoice_source_drops_line_cogs(db_session, seeded, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection reset"))

    monkeypatch.setattr(sources, "_line_rows", broken)

    report = build_revenue_report(db_session, OWNER_ID)

    assert report.degraded_sources == ["one_time_invoices"]
    # Installment and billing rows still count, but without lines there is no cost to prorate
    assert report.realized_total_minor == 500 + 300
    assert report.pending_total_minor == 500 + 300
    assert report.realized_cogs_minor == 0
    assert report.draft_total_minor == 0
    assert report.lead_potential_minor == 5000


def test_customer_insights(db_session, seeded):
    insights = customer_revenue_insights(db_session, OWNER_ID, customer_id=8)

    assert insights.realized_total_minor == 800
    assert insights.realized_cogs_minor == 260
    assert insights.gross_profit_minor == 540
    names = sorted(p.name for p in insights.products)
    assert names == ["Consulting", "Custom work"]


def test_customer_insights_product_quantities(db_session, seeded, product):
    insights = customer_revenue_insights(db_session, OWNER_ID, customer_id=7)

    assert insights.realized_total_minor == 2000
    assert insights.gross_margin_percent == pytest.approx(60.0)
    assert len(insights.products) == 1
    stat = insights.products[0]
    assert stat.product_id == product.id
    assert stat.quantity == 2
    assert stat.revenue_minor == 2000
