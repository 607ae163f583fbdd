"""Revenue report schemas."""
from __future__ import annotations

from pydantic import BaseModel


class RevenueSources(BaseModel):
    """Realized revenue in one period, split by where it was recognized."""
    one_time_invoices: int = 0
    payment_schedules: int = 0
    recurring_revenue: int = 0


class RevenuePeriod(BaseModel):
    period: str  # "2025-10", "2025-10-06" (week start) or "2025-10-09"
    total_revenue_minor: int
    sources: RevenueSources


class RevenueReport(BaseModel):
    realized_total_minor: int
    pending_total_minor: int
    draft_total_minor: int  # informational, not revenue
    lead_potential_minor: int  # pipeline estimate, not revenue
    gross_profit_minor: int
    gross_margin_percent: float
    realized_cogs_minor: int = 0
    realized_tax_minor: int = 0
    realized_net_revenue_minor: int = 0
    pending_tax_minor: int = 0
    pending_net_revenue_minor: int = 0
    # Sources that could not be read and contributed nothing
    degraded_sources: list[str] = []
    revenue: list[RevenuePeriod] = []


class ProductRevenueStat(BaseModel):
    product_id: int | str | None = None
    name: str
    quantity: int
    revenue_minor: int


class CustomerInsights(BaseModel):
    customer_id: int
    realized_total_minor: int
    realized_cogs_minor: int
    gross_profit_minor: int
    gross_margin_percent: float
    products: list[ProductRevenueStat]
    degraded_sources: list[str] = []
