"""Prometheus metrics definitions."""

from prometheus_client import Counter, Gauge, Histogram

# Resilient fetch metrics
FETCH_ATTEMPTS = Counter(
    "fleet_fetch_attempts_total",
    "Total number of fetch attempts",
    ["accessor", "outcome"],
)

CACHE_LOOKUPS = Counter(
    "fleet_cache_lookups_total",
    "Total number of cache lookups",
    ["accessor", "result"],
)

FETCH_LATENCY = Histogram(
    "fleet_fetch_latency_seconds",
    "Latency of successful fetches including retries",
    ["accessor"],
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Aggregation metrics
AGGREGATION_PASSES = Counter(
    "fleet_aggregation_passes_total",
    "Total number of aggregation passes",
    ["status"],
)

AGGREGATION_LATENCY = Histogram(
    "fleet_aggregation_latency_seconds",
    "Aggregation pass latency in seconds",
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0),
)

SOURCE_FAILURES = Counter(
    "fleet_source_failures_total",
    "Source adapter failures per pass",
    ["source", "reason"],
)

# Alert metrics
ACTIVE_ALERTS = Gauge(
    "fleet_active_alerts",
    "Number of alerts in the latest snapshot",
    ["category", "priority"],
)
