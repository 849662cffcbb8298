"""Prometheus metrics for settlement outcomes and upstream service health"""

from prometheus_client import Counter, Histogram

# Settlement metrics
settlement_counter = Counter(
    "recurring_bills_settlement_total",
    "Settlement requests by action and outcome",
    ["action", "outcome"],  # mark_paid | unmark_paid; settled | partial | skipped | failed | rejected | cancelled
)

compensation_failure_counter = Counter(
    "recurring_bills_compensation_failures_total",
    "Dependent loan/savings actions that failed after a successful settlement",
    ["step"],
)

primary_latency_histogram = Histogram(
    "recurring_bills_primary_latency_seconds",
    "Bill service mark/unmark response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0],
)

# Upstream API metrics
upstream_failures_counter = Counter(
    "recurring_bills_upstream_failures_total",
    "Failed calls to the finance API",
    ["service"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_settlement(action: str, outcome: str, failed_steps: list[str] | None = None) -> None:
    """Record settlement metrics for monitoring compensation drift"""
    settlement_counter.labels(action=action, outcome=outcome).inc()
    for step in failed_steps or []:
        compensation_failure_counter.labels(step=step).inc()
