"""Invoice-time pricing: line calculation, due dates and schedule generation."""
from .calculator import apply_basis_points, calculate_invoice, calculate_line_item
from .dates import IntervalType, add_months, next_due_date, parse_interval
from .schedules import (
    DEFAULT_HORIZON_MONTHS,
    generate_payment_schedule,
    generate_recurring_schedule,
    max_cycles,
)

__all__ = [
    "apply_basis_points",
    "calculate_invoice",
    "calculate_line_item",
    "IntervalType",
    "add_months",
    "next_due_date",
    "parse_interval",
    "DEFAULT_HORIZON_MONTHS",
    "generate_payment_schedule",
    "generate_recurring_schedule",
    "max_cycles",
]
