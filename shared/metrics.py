"""
Shared metrics configuration for the CRPT document gateway.
"""

from typing import Dict, Any, Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)


class MetricsCollector:
    """Centralized metrics collector for a service."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up common metrics for the service."""

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

        self._metrics["health_check_total"] = Counter(
            "health_check_total",
            "Total health check requests",
            ["status"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

        self._setup_gate_metrics()
        self._setup_submission_metrics()

    def _setup_gate_metrics(self):
        """Set up admission gate metrics."""
        self._metrics["gate_permits_acquired_total"] = Counter(
            "gate_permits_acquired_total",
            "Total permits handed out by the admission gate",
            ["gate"],
            registry=self.registry
        )

        self._metrics["gate_waits_total"] = Counter(
            "gate_waits_total",
            "Total acquire calls that had to wait for a reset",
            ["gate"],
            registry=self.registry
        )

        self._metrics["gate_resets_total"] = Counter(
            "gate_resets_total",
            "Total permit pool resets",
            ["gate"],
            registry=self.registry
        )

        self._metrics["gate_available_permits"] = Gauge(
            "gate_available_permits",
            "Permits currently available in the admission window",
            ["gate"],
            registry=self.registry
        )

    def _setup_submission_metrics(self):
        """Set up document submission metrics."""
        self._metrics["document_submissions_total"] = Counter(
            "document_submissions_total",
            "Total document submissions by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["document_submission_duration_seconds"] = Histogram(
            "document_submission_duration_seconds",
            "Time spent on the remote call for a submission",
            registry=self.registry
        )

    def export(self) -> bytes:
        """Render the registry in Prometheus text format."""
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

    def record_submission(self, outcome: str, duration: Optional[float] = None):
        """Record the outcome of a document submission."""
        self._metrics["document_submissions_total"].labels(outcome=outcome).inc()
        if duration is not None:
            self._metrics["document_submission_duration_seconds"].observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        """Set a gauge metric value."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).set(value)

    def sample(self, metric_name: str, **labels) -> Optional[float]:
        """Read back the current value of a sample from the registry."""
        return self.registry.get_sample_value(metric_name, labels or None)


def get_metrics_collector(service_name: str, registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
