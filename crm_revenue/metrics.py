"""Metrics facade.

Service code should ONLY call the semantic helpers here so the Prometheus
backend can change without touching pricing or reporting code.

Metrics:
- invoices_priced_total                Invoices whose lines were priced
- schedule_rows_generated_total        Schedule rows built, by kind (payment|recurring)
- proration_clamped_total              Rows whose amount exceeded their line total
- revenue_source_degraded_total        Report sources that fell back to empty, by source
- revenue_report_build_seconds         Wall time to build a revenue report
"""

from __future__ import annotations

import logging
import time

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_INVOICES_PRICED = Counter("invoices_priced_total", "Invoices whose lines were priced")
_SCHEDULE_ROWS = Counter(
    "schedule_rows_generated_total", "Schedule rows generated at invoice creation", ["kind"]
)
_PRORATION_CLAMPED = Counter(
    "proration_clamped_total", "Schedule rows whose amount exceeded the recorded line total", ["source"]
)
_SOURCE_DEGRADED = Counter(
    "revenue_source_degraded_total", "Revenue report sources degraded to an empty series", ["source"]
)
_REPORT_LATENCY = Histogram(
    "revenue_report_build_seconds",
    "Time spent building a revenue report",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)


def invoice_priced():
    _INVOICES_PRICED.inc()
    logger.debug("metric invoices_priced_total += 1")


def schedule_rows_generated(kind: str, count: int):
    if count <= 0:
        return
    _SCHEDULE_ROWS.labels(kind=kind).inc(count)
    logger.debug("metric schedule_rows_generated_total[kind=%s] += %s", kind, count)


def proration_clamped(source: str):
    _PRORATION_CLAMPED.labels(source=source).inc()


def revenue_source_degraded(source: str):
    _SOURCE_DEGRADED.labels(source=source).inc()


class ReportTimer:
    def __init__(self):
        self.start = time.perf_counter()

    def stop(self) -> float:
        dur = time.perf_counter() - self.start
        _REPORT_LATENCY.observe(dur)
        return dur


__all__ = [
    "invoice_priced",
    "schedule_rows_generated",
    "proration_clamped",
    "revenue_source_degraded",
    "ReportTimer",
]
