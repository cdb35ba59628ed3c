"""Prometheus metrics for the handler, service, repository and cache layers.

All collectors live on a registry owned by the Metrics bundle; nothing is
registered on the process-wide default registry.
"""

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Histogram, generate_latest

STATUS_SUCCESS = "success"
STATUS_ERROR = "error"
STATUS_NOT_FOUND = "not_found"
STATUS_CANCELLED = "cancelled"


class HandlerMetrics:
    """HTTP request metrics, labeled by method, route template and outcome."""

    def __init__(self, registry: CollectorRegistry):
        self.request_count = Counter(
            "handler_requests_total",
            "Total number of HTTP requests handled by the handler layer.",
            ["method", "endpoint", "status"],
            registry=registry,
        )
        self.request_duration = Histogram(
            "handler_request_duration_seconds",
            "Histogram of response latency for handler in seconds.",
            ["method", "endpoint", "status"],
            registry=registry,
        )

    def observe(self, method: str, endpoint: str, status: str, duration: float) -> None:
        self.request_count.labels(method, endpoint, status).inc()
        self.request_duration.labels(method, endpoint, status).observe(duration)


class OperationMetrics:
    """Count and latency for the named operations of one layer."""

    def __init__(
        self,
        registry: CollectorRegistry,
        *,
        count_name: str,
        duration_name: str,
        label: str,
        noun: str,
    ):
        self.count = Counter(
            count_name,
            f"Total number of {noun} executed.",
            [label, "status"],
            registry=registry,
        )
        self.duration = Histogram(
            duration_name,
            f"Histogram of {noun} execution duration in seconds.",
            [label, "status"],
            registry=registry,
        )

    def observe(self, operation: str, status: str, duration: float) -> None:
        self.count.labels(operation, status).inc()
        self.duration.labels(operation, status).observe(duration)


class CacheMetrics:
    """Cache call outcomes (hit, miss, invalid, ok, error)."""

    def __init__(self, registry: CollectorRegistry):
        self.operations = Counter(
            "cache_operations_total",
            "Total number of cache operations by result.",
            ["operation", "result"],
            registry=registry,
        )

    def record(self, operation: str, result: str) -> None:
        self.operations.labels(operation, result).inc()


class Metrics:
    """Every collector the service exposes, bound to one registry."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or CollectorRegistry()
        self.handler = HandlerMetrics(self.registry)
        self.service = OperationMetrics(
            self.registry,
            count_name="service_methods_total",
            duration_name="service_method_duration_seconds",
            label="method",
            noun="service methods",
        )
        self.repository = OperationMetrics(
            self.registry,
            count_name="repository_queries_total",
            duration_name="repository_query_duration_seconds",
            label="query",
            noun="database queries",
        )
        self.cache = CacheMetrics(self.registry)

    def render(self) -> tuple[bytes, str]:
        """Prometheus text exposition of the registry and its content type."""
        return generate_latest(self.registry), CONTENT_TYPE_LATEST
