from __future__ import annotations

import datetime as dt
import enum

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from crm_revenue.db.base_class import Base


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class InvoiceStatus(str, enum.Enum):
    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentScheduleStatus(str, enum.Enum):
    """Installment row lifecycle. Only PENDING is ever written here."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class RecurringScheduleStatus(str, enum.Enum):
    """Billing-cycle row lifecycle. Only SCHEDULED is ever written here."""
    SCHEDULED = "scheduled"
    BILLED = "billed"
    CANCELLED = "cancelled"


# Leads in these states no longer count toward pipeline potential.
CLOSED_LEAD_STATUSES = frozenset({"converted", "disqualified"})


class Product(Base):
    """Catalog entry. Reference data; edited only by catalog management."""
    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_rate_bp: Mapped[int] = mapped_column(Integer, default=0)
    cogs_type: Mapped[str | None] = mapped_column(String(10), nullable=True)  # percent | amount
    cogs_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    discount_type: Mapped[str | None] = mapped_column(String(10), nullable=True)  # percent | amount
    discount_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    recurring_interval: Mapped[str | None] = mapped_column(String(20), nullable=True)
    recurring_interval_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), default="USD")


class PaymentPlan(Base):
    __tablename__ = "payment_plan"

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int | None] = mapped_column(ForeignKey("product.id"), nullable=True, index=True)
    name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    num_installments: Mapped[int] = mapped_column(Integer, nullable=False)
    interval_type: Mapped[str] = mapped_column(String(20), nullable=False)
    interval_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    down_payment_minor: Mapped[int] = mapped_column(Integer, default=0)


class Invoice(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    customer_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), default=InvoiceStatus.DRAFT.value, index=True)
    amount_minor: Mapped[int] = mapped_column(Integer, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    issued_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    # Set by the payment processor when the invoice is settled
    paid_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    lines: Mapped[list[InvoiceLine]] = relationship(
        "InvoiceLine",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )
    payment_schedules: Mapped[list[InvoicePaymentSchedule]] = relationship(
        "InvoicePaymentSchedule",
        back_populates="invoice",
        cascade="all, delete-orphan",
    )


class InvoiceLine(Base):
    """Frozen pricing snapshot of one line; proration reads these values, never recomputes them."""
    __tablename__ = "invoice_line"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoice.id"), index=True)
    product_id: Mapped[int | None] = mapped_column(ForeignKey("product.id"), nullable=True, index=True)
    payment_plan_id: Mapped[int | None] = mapped_column(ForeignKey("payment_plan.id"), nullable=True)
    description: Mapped[str] = mapped_column(String(200), default="Product")
    quantity: Mapped[int] = mapped_column(Integer, default=1)
    unit_price_minor: Mapped[int] = mapped_column(Integer, default=0)
    subtotal_minor: Mapped[int] = mapped_column(Integer, default=0)
    discount_minor: Mapped[int] = mapped_column(Integer, default=0)
    tax_minor: Mapped[int] = mapped_column(Integer, default=0)
    total_minor: Mapped[int] = mapped_column(Integer, default=0)
    cogs_minor: Mapped[int] = mapped_column(Integer, default=0)
    margin_minor: Mapped[int] = mapped_column(Integer, default=0)  # may be negative

    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="lines")
    product: Mapped[Product | None] = relationship("Product")
    recurring_schedules: Mapped[list[RecurringRevenueSchedule]] = relationship(
        "RecurringRevenueSchedule",
        back_populates="invoice_line",
        cascade="all, delete-orphan",
    )


class InvoicePaymentSchedule(Base):
    __tablename__ = "invoice_payment_schedule"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_id: Mapped[int] = mapped_column(ForeignKey("invoice.id"), index=True)
    invoice_line_id: Mapped[int | None] = mapped_column(ForeignKey("invoice_line.id"), nullable=True, index=True)
    installment_num: Mapped[int] = mapped_column(Integer)  # 0 = down payment
    due_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True)
    amount_minor: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default=PaymentScheduleStatus.PENDING.value, index=True)
    paid_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    invoice: Mapped[Invoice] = relationship("Invoice", back_populates="payment_schedules")
    invoice_line: Mapped[InvoiceLine | None] = relationship("InvoiceLine")


class RecurringRevenueSchedule(Base):
    __tablename__ = "recurring_revenue_schedule"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_line_id: Mapped[int] = mapped_column(ForeignKey("invoice_line.id"), index=True)
    cycle_num: Mapped[int] = mapped_column(Integer)
    billing_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), index=True)
    amount_minor: Mapped[int] = mapped_column(Integer)
    description: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(20), default=RecurringScheduleStatus.SCHEDULED.value, index=True)
    billed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    invoice_line: Mapped[InvoiceLine] = relationship("InvoiceLine", back_populates="recurring_schedules")


class Lead(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(String(30), default="new")
    value_minor: Mapped[int] = mapped_column(Integer, default=0)
    deleted_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
