"""Prometheus metrics for monitoring."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# HTTP Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

http_requests_in_progress = Gauge(
    "http_requests_in_progress",
    "Number of HTTP requests in progress",
    ["method", "endpoint"],
)

# Store metrics
store_fetch_duration_seconds = Histogram(
    "store_fetch_duration_seconds",
    "Duration of one dataset read from the backing store",
    ["dataset"],  # dataset: stock, visits, sales
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

store_fetch_errors_total = Counter(
    "store_fetch_errors_total",
    "Failed dataset reads (unreachable store, rejected query, timeout)",
    ["dataset"],
)

# Business metrics
decisions_computed_total = Counter(
    "decisions_computed_total",
    "Total decision computations",
    ["mode"],  # mode: decisions, debug, debug_item
)

decision_items_total = Gauge(
    "decision_items_total",
    "Number of items in the last computed decision list",
)

records_skipped_total = Counter(
    "records_skipped_total",
    "Input records excluded from aggregation",
    ["dataset", "reason"],  # reason: missing_id, out_of_window, no_quantity
)

# System metrics
app_uptime_seconds = Gauge(
    "app_uptime_seconds",
    "Application uptime in seconds",
)

app_info = Gauge(
    "app_info",
    "Application info",
    ["version", "environment"],
)
