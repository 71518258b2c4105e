"""Prometheus metric definitions for memory dashboard self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram, Info

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

REQUEST_DURATION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
SCAN_POINTS_BUCKETS = (10, 100, 500, 1_000, 5_000, 10_000, 50_000, 100_000)

# ---------------------------------------------------------------------------
# Request-level metrics
# ---------------------------------------------------------------------------

REQUEST_DURATION = Histogram(
    "memory_dashboard_request_duration_seconds",
    "End-to-end request duration in seconds",
    labelnames=["endpoint"],
    buckets=REQUEST_DURATION_BUCKETS,
)

REQUESTS_TOTAL = Counter(
    "memory_dashboard_requests_total",
    "Total number of requests",
    labelnames=["endpoint", "status"],
)

REQUESTS_IN_PROGRESS = Gauge(
    "memory_dashboard_requests_in_progress",
    "Number of requests currently being processed",
    labelnames=["endpoint"],
)

# ---------------------------------------------------------------------------
# Qdrant scan metrics
# ---------------------------------------------------------------------------

SCAN_POINTS = Histogram(
    "memory_dashboard_scan_points",
    "Number of points read by a full collection scroll",
    buckets=SCAN_POINTS_BUCKETS,
)

# ---------------------------------------------------------------------------
# Health / info metrics
# ---------------------------------------------------------------------------

QDRANT_HEALTHY = Gauge(
    "memory_dashboard_qdrant_healthy",
    "Whether the Qdrant collection is reachable (1=healthy, 0=unhealthy)",
)

APP_INFO = Info(
    "memory_dashboard",
    "Memory dashboard build information",
)
