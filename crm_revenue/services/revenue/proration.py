"""COGS and tax attribution for partial payments.

A schedule row pays ``amount / line.total`` of its line, so it carries the
same share of the line's frozen COGS and tax. The share saturates at 1 so a
line's cost is never attributed more than once, even for duplicate or
overpaid rows.
"""
from __future__ import annotations

import logging
import math
from fractions import Fraction

from crm_revenue import metrics
from crm_revenue.services.revenue.rows import LineRow

logger = logging.getLogger(__name__)

_ZERO = Fraction(0)
_ONE = Fraction(1)


def clamp_ratio(amount_minor: int, line_total_minor: int) -> Fraction:
    """amount / total clamped into [0, 1]; zero when the total is zero."""
    if not line_total_minor:
        return _ZERO
    return min(_ONE, max(_ZERO, Fraction(amount_minor, line_total_minor)))


def apply_share(value_minor: int, share: Fraction) -> int:
    """Round value * share to the nearest minor unit, halves rounding up."""
    return math.floor(value_minor * share + Fraction(1, 2))


def prorate(value_minor: int, amount_minor: int, line_total_minor: int) -> int:
    """round(value * clamp(amount / total, 0, 1))."""
    return apply_share(value_minor, clamp_ratio(amount_minor, line_total_minor))


def row_share(amount_minor: int, line: LineRow | None, *, source: str, row_id: object = None) -> Fraction:
    """Share of ``line`` paid by one row, reporting overpaid rows as a data-quality signal."""
    if line is None or not line.total_minor:
        return _ZERO
    if amount_minor > line.total_minor:
        logger.warning(
            "Row %s amount %s exceeds line %s total %s; share clamped to 1",
            row_id,
            amount_minor,
            line.id,
            line.total_minor,
            extra={"source": source},
        )
        metrics.proration_clamped(source)
    return clamp_ratio(amount_minor, line.total_minor)
