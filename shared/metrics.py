"""
Shared metrics configuration for the Relay Access Layer.
"""

from typing import Dict, Any, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, Info, generate_latest


class MetricsCollector:
    """Centralized metrics collector for services.

    Each collector owns its registry so several services (or test apps) can
    live in one process without colliding on metric names.
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

        # Service info
        self._metrics["service_info"] = Info(
            "service_info",
            "Service information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "http_requests_total",
            "Total HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            ["method", "endpoint"],
            registry=self.registry
        )

        # Health check metrics
        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        # Error metrics
        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        if self.service_name == "gateway":
            self._setup_gateway_metrics()
        else:
            self._setup_domain_metrics()

    def _setup_gateway_metrics(self):
        """Set up gateway-specific metrics."""
        self._metrics["relay_requests_total"] = Counter(
            "relay_requests_total",
            "Total relayed requests by outcome",
            ["domain", "operation", "outcome"],
            registry=self.registry
        )

        self._metrics["relay_duration_seconds"] = Histogram(
            "relay_duration_seconds",
            "Relay duration in seconds",
            ["domain", "operation"],
            registry=self.registry
        )

        self._metrics["signing_failures_total"] = Counter(
            "signing_failures_total",
            "Outbound requests that could not be signed",
            ["domain"],
            registry=self.registry
        )

    def _setup_domain_metrics(self):
        """Set up internal domain service metrics."""
        self._metrics["authorization_decisions_total"] = Counter(
            "authorization_decisions_total",
            "Total authorization decisions",
            ["decision"],
            registry=self.registry
        )

        self._metrics["network_refusals_total"] = Counter(
            "network_refusals_total",
            "Connections refused by the private network boundary",
            registry=self.registry
        )

        self._metrics["domain_operations_total"] = Counter(
            "domain_operations_total",
            "Total domain operations by outcome",
            ["operation", "outcome"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def render(self) -> bytes:
        """Render the registry in Prometheus exposition format."""
        return generate_latest(self.registry)

    def record_http_request(self, method: str, endpoint: str, status_code: int, duration: float):
        """Record HTTP request metrics."""
        self._metrics["http_requests_total"].labels(
            method=method,
            endpoint=endpoint,
            status_code=str(status_code)
        ).inc()

        self._metrics["http_request_duration_seconds"].labels(
            method=method,
            endpoint=endpoint
        ).observe(duration)

    def record_health_check(self, status: str):
        """Record health check metrics."""
        self._metrics["health_check_total"].labels(status=status).inc()

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def record_relay(self, domain: str, operation: str, outcome: str, duration: float):
        """Record the outcome of one relayed request."""
        self._metrics["relay_requests_total"].labels(
            domain=domain, operation=operation, outcome=outcome
        ).inc()
        self._metrics["relay_duration_seconds"].labels(
            domain=domain, operation=operation
        ).observe(duration)

    def record_signing_failure(self, domain: str):
        """Record an outbound request that could not be signed."""
        self._metrics["signing_failures_total"].labels(domain=domain).inc()

    def record_authorization(self, decision: str):
        """Record an allow/deny decision."""
        self._metrics["authorization_decisions_total"].labels(decision=decision).inc()

    def record_network_refusal(self):
        """Record a connection refused by the network boundary."""
        self._metrics["network_refusals_total"].inc()

    def record_domain_operation(self, operation: str, outcome: str):
        """Record a create/get outcome."""
        self._metrics["domain_operations_total"].labels(operation=operation, outcome=outcome).inc()


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
