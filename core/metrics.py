"""
Core metrics collection for FastCheckout using Prometheus
"""
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, Info, generate_latest

from core.config import get_settings

# Create a global registry for the application
REGISTRY = CollectorRegistry()

# Application info
app_info = Info("fastcheckout_app", "FastCheckout application information", registry=REGISTRY)

# Request metrics
request_count = Counter(
    "fastcheckout_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=REGISTRY,
)

request_duration = Histogram(
    "fastcheckout_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

# Payment metrics
payments_total = Counter(
    "fastcheckout_payments_total",
    "Payment operations by processor and outcome",
    ["processor", "operation", "outcome"],
    registry=REGISTRY,
)

# Pipeline metrics
rate_limit_rejections = Counter(
    "fastcheckout_rate_limit_rejections_total",
    "Requests rejected by the rate limiter",
    registry=REGISTRY,
)

plugin_hook_failures = Counter(
    "fastcheckout_plugin_hook_failures_total",
    "Plugin hook invocations that raised or timed out",
    ["plugin", "hook"],
    registry=REGISTRY,
)

notification_failures = Counter(
    "fastcheckout_core_notification_failures_total",
    "Best-effort Core API notifications that failed",
    ["kind"],
    registry=REGISTRY,
)


class MetricsCollector:
    """Thin facade over the module-level collectors"""

    def __init__(self):
        settings = get_settings()
        app_info.info({"version": settings.app_version, "environment": settings.environment})

    def track_request(self, method: str, endpoint: str, status: int, duration: float) -> None:
        request_count.labels(method=method, endpoint=endpoint, status=str(status)).inc()
        request_duration.labels(method=method, endpoint=endpoint).observe(duration)

    def track_payment(self, processor: str, operation: str, outcome: str) -> None:
        payments_total.labels(processor=processor, operation=operation, outcome=outcome).inc()

    def track_rate_limited(self) -> None:
        rate_limit_rejections.inc()

    def track_plugin_failure(self, plugin: str, hook: str) -> None:
        plugin_hook_failures.labels(plugin=plugin, hook=hook).inc()

    def track_notification_failure(self, kind: str) -> None:
        notification_failures.labels(kind=kind).inc()


def get_metrics_response():
    """Return the exposition payload and its content type"""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


metrics = MetricsCollector()
