"""Prometheus metric inventory for progress-service.

Every metric the service exports is declared here; the modules that own
the behaviour import the metric and increment it at the point of action.

HTTP metrics are fed by MetricsMiddleware.  The progress metrics answer
the operational questions a dashboard owner actually asks:

  - Are learners' completions being recorded, or silently rejected?
      progress_writes_total{result="recorded|duplicate|rejected|excluded"}
  - Is the store holding payloads we can no longer read?
      progress_payload_decode_failures_total
  - How often are dashboards recomputed vs served from cache?
      dashboard_computations_total{scope} / cache_operations_total{operation}
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Dashboards fetch a whole course in one query, so the upper buckets
    # matter more here than for single-record reads.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Progress metrics
# ---------------------------------------------------------------------------

PROGRESS_WRITES = Counter(
    "progress_writes_total",
    "Completion write attempts by outcome",
    ["result"],  # recorded|duplicate|rejected|excluded
)

PAYLOAD_DECODE_FAILURES = Counter(
    "progress_payload_decode_failures_total",
    "Stored progress payloads skipped because they could not be decoded",
)

DASHBOARD_COMPUTATIONS = Counter(
    "dashboard_computations_total",
    "Completion computations run against a freshly loaded progress collection",
    ["scope"],  # course|module
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Cache get operations by result",
    ["operation"],  # "hit" or "miss"
)
