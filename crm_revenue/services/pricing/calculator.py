"""Line-item and invoice pricing.

Pure computation in integer minor units with floor division at every step;
no floating-point value ever reaches a monetary field.
"""
from __future__ import annotations

import logging
from typing import Iterable, Sequence

from crm_revenue.core.exceptions import ProductNotFoundError
from crm_revenue.models.schemas import (
    CalculatedLineItem,
    InvoiceCalculation,
    LineItemInput,
    ProductPricing,
)

logger = logging.getLogger(__name__)

BASIS_POINTS = 10_000


def apply_basis_points(amount_minor: int, rate_bp: int) -> int:
    """floor(amount * rate / 10000)."""
    return (amount_minor * rate_bp) // BASIS_POINTS


def _discount(subtotal: int, discount_type: str | None, discount_value: int) -> int:
    if discount_type == "percent":
        return apply_basis_points(subtotal, discount_value)
    # Flat amount, deliberately not scaled by quantity
    return discount_value


def calculate_line_item(
    product: ProductPricing,
    quantity: int,
    unit_price_override: int | None = None,
    discount_type: str | None = None,
    discount_value: int | None = None,
) -> CalculatedLineItem:
    """Price one line.

    A line-level ``discount_value`` greater than zero wins over the product's
    own discount. COGS is taken from the pre-discount subtotal and, for the
    amount type, scales with quantity. Margin is not clamped: a negative
    margin marks a loss-making line.
    """
    unit_price = product.price_minor if unit_price_override is None else unit_price_override
    subtotal = unit_price * quantity

    discount = 0
    if discount_value and discount_value > 0:
        discount = _discount(subtotal, discount_type, discount_value)
    elif product.discount_type and product.discount_value:
        discount = _discount(subtotal, product.discount_type, product.discount_value)

    after_discount = subtotal - discount

    tax = apply_basis_points(after_discount, product.tax_rate_bp)
    total = after_discount + tax

    cogs = 0
    if product.cogs_type and product.cogs_value:
        if product.cogs_type == "percent":
            cogs = apply_basis_points(subtotal, product.cogs_value)
        else:
            cogs = product.cogs_value * quantity

    return CalculatedLineItem(
        product_id=product.id,
        quantity=quantity,
        unit_price_minor=unit_price,
        subtotal_minor=subtotal,
        discount_minor=discount,
        tax_minor=tax,
        total_minor=total,
        cogs_minor=cogs,
        margin_minor=total - cogs,
    )


def calculate_invoice(
    products: Iterable[ProductPricing],
    line_inputs: Sequence[LineItemInput],
) -> InvoiceCalculation:
    """Price every line of an invoice and sum the totals.

    Raises:
        ProductNotFoundError: a line references an unknown product; nothing
            is returned for any line of the invoice.
    """
    by_id = {str(product.id): product for product in products}
    lines: list[CalculatedLineItem] = []

    for line_input in line_inputs:
        product = by_id.get(str(line_input.product_id))
        if product is None:
            logger.warning("Invoice pricing aborted: product %s not found", line_input.product_id)
            raise ProductNotFoundError(line_input.product_id)

        calculated = calculate_line_item(
            product,
            line_input.quantity,
            line_input.unit_price_override_minor,
            line_input.discount_type,
            line_input.discount_value,
        )
        calculated.payment_plan_id = line_input.payment_plan_id
        lines.append(calculated)

    return InvoiceCalculation(
        lines=lines,
        subtotal_minor=sum(line.subtotal_minor for line in lines),
        total_discount_minor=sum(line.discount_minor for line in lines),
        total_tax_minor=sum(line.tax_minor for line in lines),
        total_minor=sum(line.total_minor for line in lines),
        total_cogs_minor=sum(line.cogs_minor for line in lines),
        total_margin_minor=sum(line.margin_minor for line in lines),
    )
