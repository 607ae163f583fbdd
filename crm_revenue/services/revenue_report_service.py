"""Revenue report and customer insight entry points."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from crm_revenue import metrics
from crm_revenue.core.config import settings
from crm_revenue.models.schemas import CustomerInsights, ProductRevenueStat, RevenueReport
from crm_revenue.services.revenue import RevenueAggregator, load_revenue_snapshot
from crm_revenue.services.revenue.periods import normalize_group_by, parse_range
from crm_revenue.services.revenue.rows import LineRow

logger = logging.getLogger(__name__)


def build_revenue_report(
    db: Session,
    owner_id: int,
    date_from: str | None = None,
    date_to: str | None = None,
    group_by: str | None = None,
) -> RevenueReport:
    """Realized/pending revenue KPIs and a period series for one owner.

    ``date_from``/``date_to`` are optional ISO-8601 strings; ``group_by`` is
    one of day/week/month and defaults to REPORT_DEFAULT_GROUP_BY.

    Raises:
        InvalidReportQueryError: unparseable range or unknown ``group_by``.
    """
    bucket = normalize_group_by(group_by, default=settings.REPORT_DEFAULT_GROUP_BY)
    start, end = parse_range(date_from, date_to)

    timer = metrics.ReportTimer()
    snapshot = load_revenue_snapshot(db, owner_id)
    report = RevenueAggregator(start, end, bucket).aggregate(snapshot)
    duration = timer.stop()

    if report.degraded_sources:
        logger.warning(
            "Revenue report for owner %s built with degraded sources: %s",
            owner_id,
            ", ".join(report.degraded_sources),
        )
    logger.info(
        "Built revenue report owner=%s group_by=%s realized=%s pending=%s in %.3fs",
        owner_id,
        bucket,
        report.realized_total_minor,
        report.pending_total_minor,
        duration,
    )
    return report


def _product_stats(lines: tuple[LineRow, ...]) -> list[ProductRevenueStat]:
    stats: dict[str, ProductRevenueStat] = {}
    for line in lines:
        key = str(line.product_id) if line.product_id is not None else (line.description or "unknown")
        stat = stats.get(key)
        if stat is None:
            stat = stats[key] = ProductRevenueStat(
                product_id=line.product_id,
                name=line.product_name or line.description or "Product",
                quantity=0,
                revenue_minor=0,
            )
        stat.quantity += line.quantity
        stat.revenue_minor += line.total_minor
    return list(stats.values())


def customer_revenue_insights(db: Session, owner_id: int, customer_id: int) -> CustomerInsights:
    """All-time realized revenue and profit for one customer, with per-product totals."""
    snapshot = load_revenue_snapshot(db, owner_id, customer_id=customer_id, include_leads=False)
    report = RevenueAggregator().aggregate(snapshot)

    return CustomerInsights(
        customer_id=customer_id,
        realized_total_minor=report.realized_total_minor,
        realized_cogs_minor=report.realized_cogs_minor,
        gross_profit_minor=report.gross_profit_minor,
        gross_margin_percent=report.gross_margin_percent,
        products=_product_stats(snapshot.lines),
        degraded_sources=report.degraded_sources,
    )
