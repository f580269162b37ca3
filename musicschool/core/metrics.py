"""Prometheus metric inventory.

Every metric the service exports is declared here; the modules that own
the behaviour import the metric and increment it where the event happens.

HTTP metrics are fed by MetricsMiddleware.  The contract metrics answer the
operational questions the completion logic raises in production:

  - Are contracts completing, and by which path (lesson tracking vs. an
    administrator closing them by hand)?
  - Are completion notifications being created, deduplicated, or lost?
  - How often do lesson editors collide on the same contract lock?
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics
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
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Contract lifecycle metrics
# ---------------------------------------------------------------------------

CONTRACT_TRANSITIONS = Counter(
    "contract_transitions_total",
    "Contracts moved from active to completed",
    ["trigger"],  # lesson_update, batch_update, contract_save, manual
)

CONTRACT_NOTIFICATIONS = Counter(
    "contract_notifications_total",
    "Contract fulfilled notification attempts by outcome",
    ["result"],  # "created", "duplicate" or "failed"
)

CONTRACT_LOCK_BUSY = Counter(
    "contract_lock_busy_total",
    "Operations rejected because the per-contract lock was held too long",
)

LESSON_UPDATES = Counter(
    "lesson_updates_total",
    "Lesson update attempts by outcome",
    ["result"],  # "success", "batch_failure" or the error code
)

CACHE_OPERATIONS = Counter(
    "cache_operations_total",
    "Progress cache operations",
    ["operation"],  # hit, miss, set, delete
)
