"""Pydantic schemas for pricing inputs/outputs and revenue reports.

Sub-modules:
- pricing: Line items, invoice calculations, schedule entries
- revenue: Revenue report and customer insight payloads
"""
# Pricing schemas
from .pricing import (
    ProductPricing,
    PaymentPlanTerms,
    LineItemInput,
    CalculatedLineItem,
    InvoiceCalculation,
    PaymentScheduleEntry,
    RecurringScheduleEntry,
    InvoiceDraftLine,
    InvoiceDraft,
)

# Revenue schemas
from .revenue import (
    RevenueSources,
    RevenuePeriod,
    RevenueReport,
    ProductRevenueStat,
    CustomerInsights,
)

__all__ = [
    "ProductPricing",
    "PaymentPlanTerms",
    "LineItemInput",
    "CalculatedLineItem",
    "InvoiceCalculation",
    "PaymentScheduleEntry",
    "RecurringScheduleEntry",
    "InvoiceDraftLine",
    "InvoiceDraft",
    "RevenueSources",
    "RevenuePeriod",
    "RevenueReport",
    "ProductRevenueStat",
    "CustomerInsights",
]
