"""Pricing and schedule schemas.

All money fields are integer minor units; rates are integer basis points.
"""
from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AdjustmentType = Literal["percent", "amount"]


class ProductPricing(BaseModel):
    """The subset of a catalog product the calculator reads."""
    model_config = ConfigDict(from_attributes=True)

    id: int | str
    name: str = "Product"
    price_minor: int = Field(ge=0)
    tax_rate_bp: int = Field(default=0, ge=0)
    cogs_type: AdjustmentType | None = None
    cogs_value: int | None = None
    discount_type: AdjustmentType | None = None
    discount_value: int | None = None
    # Validated at generation time so an unknown cadence fails that line only
    recurring_interval: str | None = None
    recurring_interval_days: int | None = None
    currency: str = "USD"


class PaymentPlanTerms(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | str | None = None
    num_installments: int
    interval_type: str
    interval_days: int | None = None
    down_payment_minor: int | None = 0


class LineItemInput(BaseModel):
    product_id: int | str
    quantity: int = Field(ge=1)
    unit_price_override_minor: int | None = Field(default=None, ge=0)
    discount_type: AdjustmentType | None = None
    discount_value: int | None = Field(default=None, ge=0)
    payment_plan_id: int | str | None = None


class CalculatedLineItem(BaseModel):
    product_id: int | str
    quantity: int
    unit_price_minor: int
    subtotal_minor: int
    discount_minor: int
    tax_minor: int
    total_minor: int
    cogs_minor: int
    margin_minor: int  # negative for a loss-making line
    payment_plan_id: int | str | None = None


class InvoiceCalculation(BaseModel):
    lines: list[CalculatedLineItem]
    subtotal_minor: int
    total_discount_minor: int
    total_tax_minor: int
    total_minor: int
    total_cogs_minor: int
    total_margin_minor: int


class PaymentScheduleEntry(BaseModel):
    installment_num: int  # 0 = down payment
    due_at_utc: dt.datetime
    amount_minor: int
    description: str


class RecurringScheduleEntry(BaseModel):
    cycle_num: int
    billing_at_utc: dt.datetime
    amount_minor: int
    description: str


class InvoiceDraftLine(BaseModel):
    description: str
    calculation: CalculatedLineItem
    payment_schedule: list[PaymentScheduleEntry] = []
    recurring_schedule: list[RecurringScheduleEntry] = []


class InvoiceDraft(BaseModel):
    invoice_date: dt.datetime
    calculation: InvoiceCalculation
    lines: list[InvoiceDraftLine]
