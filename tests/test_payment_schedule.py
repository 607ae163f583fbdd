"""Tests for installment schedule generation."""
from datetime import datetime, timezone

import pytest

from crm_revenue.core.exceptions import InvalidPaymentPlanError, UnknownIntervalError
from crm_revenue.models.schemas import PaymentPlanTerms
from crm_revenue.services.pricing import generate_payment_schedule

INVOICE_DATE = datetime(2025, 1, 31, 10, 0, tzinfo=timezone.utc)


def make_plan(**overrides) -> PaymentPlanTerms:
    fields = {"id": 1, "num_installments": 3, "interval_type": "monthly", "down_payment_minor": 0}
    fields.update(overrides)
    return PaymentPlanTerms(**fields)


def test_even_split_without_down_payment():
    rows = generate_payment_schedule(make_plan(), 9000, INVOICE_DATE)

    assert [r.installment_num for r in rows] == [1, 2, 3]
    assert [r.amount_minor for r in rows] == [3000, 3000, 3000]
    assert [r.description for r in rows] == [
        "Installment 1 of 3",
        "Installment 2 of 3",
        "Installment 3 of 3",
    ]


def test_last_installment_absorbs_remainder():
    rows = generate_payment_schedule(make_plan(), 10000, INVOICE_DATE)

    assert [r.amount_minor for r in rows] == [3333, 3333, 3334]
    assert sum(r.amount_minor for r in rows) == 10000


def test_down_payment_row_due_on_invoice_date():
    rows = generate_payment_schedule(make_plan(num_installments=2, down_payment_minor=1000), 5001, INVOICE_DATE)

    assert rows[0].installment_num == 0
    assert rows[0].description == "Down payment"
    assert rows[0].due_at_utc == INVOICE_DATE
    assert [r.amount_minor for r in rows] == [1000, 2000, 2001]


def test_down_payment_clamped_to_line_total():
    rows = generate_payment_schedule(make_plan(down_payment_minor=8000), 5000, INVOICE_DATE)

    assert rows[0].amount_minor == 5000
    assert [r.amount_minor for r in rows[1:]] == [0, 0, 0]
    assert sum(r.amount_minor for r in rows) == 5000


def test_negative_down_payment_is_ignored():
    rows = generate_payment_schedule(make_plan(down_payment_minor=-500), 600, INVOICE_DATE)
    assert [r.installment_num for r in rows] == [1, 2, 3]
    assert sum(r.amount_minor for r in rows) == 600


@pytest.mark.parametrize("total", [0, 1, 2, 7, 99_999])
def test_rows_always_sum_to_line_total(total):
    plan = make_plan(num_installments=4, down_payment_minor=3)
    rows = generate_payment_schedule(plan, total, INVOICE_DATE)
    assert sum(r.amount_minor for r in rows) == total


def test_due_dates_follow_calendar_rollover():
    rows = generate_payment_schedule(make_plan(num_installments=2), 2000, INVOICE_DATE)
    assert rows[0].due_at_utc == datetime(2025, 3, 3, 10, 0, tzinfo=timezone.utc)
    assert rows[1].due_at_utc == datetime(2025, 3, 31, 10, 0, tzinfo=timezone.utc)


def test_custom_day_interval():
    plan = make_plan(num_installments=2, interval_type="custom_days", interval_days=15)
    rows = generate_payment_schedule(plan, 2000, INVOICE_DATE)
    assert [r.due_at_utc.date().isoformat() for r in rows] == ["2025-02-15", "2025-03-02"]


def test_unknown_interval_produces_nothing():
    with pytest.raises(UnknownIntervalError):
        generate_payment_schedule(make_plan(interval_type="biweekly"), 1000, INVOICE_DATE)


def test_zero_installments_rejected():
    with pytest.raises(InvalidPaymentPlanError) as exc:
        generate_payment_schedule(make_plan(num_installments=0), 1000, INVOICE_DATE)
    assert exc.value.code == "PRC003"
    assert exc.value.details["plan_id"] == 1
