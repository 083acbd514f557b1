"""Prometheus metrics for monitoring sync health and remote performance"""

from prometheus_client import Counter, Histogram

# Sync metrics
sync_run_counter = Counter(
    "finance_sync_runs_total",
    "Composite sync runs",
    ["strategy", "outcome"],  # outcome: success | failure | rejected
)

records_reconciled_counter = Counter(
    "finance_records_reconciled_total",
    "Local records changed by sync",
    ["kind", "action"],  # action: inserted | updated | deleted | failed
)

budget_duplicates_removed_counter = Counter(
    "finance_budget_duplicates_removed_total",
    "Duplicate budgets removed by cleanup",
)

# Remote API metrics
remote_call_latency_histogram = Histogram(
    "finance_remote_call_seconds",
    "Remote backend response time",
    ["operation"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

remote_failure_counter = Counter(
    "finance_remote_failures_total",
    "Failed remote backend calls",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_sync_run(strategy: str, success: bool) -> None:
    """Count one composite sync run by outcome"""
    sync_run_counter.labels(strategy=strategy, outcome="success" if success else "failure").inc()
