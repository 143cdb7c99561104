"""Monitoring utilities leveraging Prometheus client."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

http_requests_total = Counter(
    "expatvault_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_latency_seconds = Histogram(
    "expatvault_http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
)

export_entries_total = Counter(
    "expatvault_export_entries_total",
    "Documents processed by bulk export, by outcome",
    ["outcome"],
)

reminders_materialized_total = Counter(
    "expatvault_reminders_materialized_total",
    "Reminder ladder entries persisted or failed",
    ["outcome"],
)


def observe_request(method: str, path: str, status: int, duration_seconds: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_latency_seconds.labels(method=method, path=path).observe(duration_seconds)


def record_export_entry(outcome: str) -> None:
    export_entries_total.labels(outcome=outcome).inc()


def record_reminders(created: int, errors: int) -> None:
    if created:
        reminders_materialized_total.labels(outcome="created").inc(created)
    if errors:
        reminders_materialized_total.labels(outcome="failed").inc(errors)
