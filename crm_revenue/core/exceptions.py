"""Exception hierarchy for the pricing and revenue engine.

Error codes follow pattern: [CATEGORY][NUMBER]
- PRC: Pricing / schedule generation errors (001-099)
- RPT: Revenue reporting errors (100-199)

Validation failures are fatal for the invoice or line being processed and
are never retried. Reporting errors describe degraded sources; the report
itself is still produced from whatever sources succeeded.
"""

from __future__ import annotations

from typing import Any


class CrmRevenueException(Exception):
    """Base exception for all pricing and revenue errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a readable message and metadata.

        Args:
            message: Human-readable error message
            code: Unique error code (e.g., "PRC001")
            status_code: HTTP status code a caller may map this to
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# PRICING ERRORS (PRC001-099)
# ============================================================================

class ValidationFailure(CrmRevenueException):
    """Fatal input problem; aborts the invoice or line being processed."""
    pass


class ProductNotFoundError(ValidationFailure):
    """A line item references a product that is not in the catalog."""

    def __init__(self, product_id: str | int | None = None):
        message = "Product not found" if product_id is None else f"Product not found: {product_id}"
        super().__init__(
            message=message,
            code="PRC001",
            status_code=404,
            details={"product_id": product_id} if product_id is not None else {},
        )


class UnknownIntervalError(ValidationFailure):
    """Interval type is not one of the supported cadences."""

    def __init__(self, interval_type: object):
        super().__init__(
            message=f"Unknown interval type: {interval_type}",
            code="PRC002",
            status_code=400,
            details={"interval_type": str(interval_type)},
        )


class InvalidPaymentPlanError(ValidationFailure):
    """Payment plan cannot produce a schedule (e.g. zero installments)."""

    def __init__(self, reason: str, plan_id: str | int | None = None):
        super().__init__(
            message=f"Invalid payment plan: {reason}",
            code="PRC003",
            status_code=400,
            details={"plan_id": plan_id, "reason": reason},
        )


# ============================================================================
# REPORTING ERRORS (RPT100-199)
# ============================================================================

class ReportError(CrmRevenueException):
    """Base class for revenue reporting errors."""
    pass


class InvalidReportQueryError(ReportError):
    """Report date range or bucketing hint is invalid."""

    def __init__(self, value: str, reason: str | None = None):
        message = f"Invalid report parameter: {value}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(
            message=message,
            code="RPT100",
            status_code=400,
            details={"value": value, "reason": reason},
        )


class UpstreamFetchError(ReportError):
    """One revenue source could not be read; its series degrades to empty."""

    def __init__(self, source: str, reason: str | None = None):
        message = f"Revenue source '{source}' unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            code="RPT101",
            status_code=503,
            details={"source": source, "reason": reason},
        )
