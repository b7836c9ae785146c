"""Prometheus metrics.

One collector per process, each with its own CollectorRegistry so tests
can build isolated instances. Every series carries service and
environment labels.

Series:
- http_request_duration_seconds / http_requests_total /
  http_requests_failed_total: recorded by MetricsMiddleware
- sequencer_queue_depth: anchors waiting behind the one in flight
- anchor_outcomes_total{outcome}: anchored, already_anchored, forbidden,
  busy, rejected, transient, storage_failed, partial
- ledger_submission_attempts_total{result}: confirmed, transient, rejected
"""

import os
import threading
import time
from typing import Any

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from certanchor.application.ports.anchor_metrics import AnchorMetricsProtocol

METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

BASE_LABELS = ("service", "environment")
HTTP_LABELS = (*BASE_LABELS, "method", "endpoint")

# Ledger confirmations take seconds to minutes, so the top buckets are wide
DEFAULT_HISTOGRAM_BUCKETS = (
    0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0
)

_collector_lock = threading.Lock()


class MetricsCollector(AnchorMetricsProtocol):
    """Owns every series the service exports.

    The anchoring services see it only through AnchorMetricsProtocol
    (queue depth, anchor outcomes, submission attempts); the HTTP and
    uptime series are fed by the API layer.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")
        self._service_name = os.environ.get("SERVICE_NAME", "certanchor-api")
        self.startup_times: dict[str, float] = {}

        self.uptime_seconds = self._gauge("uptime_seconds", "Seconds since service start")
        self.service_starts_total = self._counter(
            "service_starts_total", "Service starts and restarts"
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "HTTP request duration in seconds",
            labelnames=HTTP_LABELS,
            buckets=DEFAULT_HISTOGRAM_BUCKETS,
            registry=self._registry,
        )
        self.http_requests_total = self._counter(
            "http_requests_total", "HTTP requests", *HTTP_LABELS[2:], "status"
        )
        self.http_requests_failed_total = self._counter(
            "http_requests_failed_total",
            "HTTP responses with status 4xx or 5xx",
            *HTTP_LABELS[2:],
            "status",
            "error_type",
        )
        self.sequencer_queue_depth = self._gauge(
            "sequencer_queue_depth", "Anchors waiting behind the one in flight"
        )
        self.anchor_outcomes_total = self._counter(
            "anchor_outcomes_total", "Anchor requests by outcome", "outcome"
        )
        self.ledger_submission_attempts_total = self._counter(
            "ledger_submission_attempts_total",
            "Ledger submission attempts by result",
            "result",
        )

    def _counter(self, name: str, documentation: str, *extra_labels: str) -> Counter:
        return Counter(
            name,
            documentation,
            labelnames=(*BASE_LABELS, *extra_labels),
            registry=self._registry,
        )

    def _gauge(self, name: str, documentation: str) -> Gauge:
        return Gauge(name, documentation, labelnames=BASE_LABELS, registry=self._registry)

    def _series(self, metric: Any, service: str | None = None, **labels: str) -> Any:
        return metric.labels(
            service=service or self._service_name,
            environment=self._environment,
            **labels,
        )

    # HTTP, fed by MetricsMiddleware

    def observe_request_duration(self, method: str, endpoint: str, duration: float) -> None:
        self._series(
            self.http_request_duration_seconds, method=method, endpoint=endpoint
        ).observe(duration)

    def increment_requests(self, method: str, endpoint: str, status: str) -> None:
        self._series(
            self.http_requests_total, method=method, endpoint=endpoint, status=status
        ).inc()

    def increment_failed_requests(
        self, method: str, endpoint: str, status: str, error_type: str = "http_error"
    ) -> None:
        self._series(
            self.http_requests_failed_total,
            method=method,
            endpoint=endpoint,
            status=status,
            error_type=error_type,
        ).inc()

    # Anchoring, fed through AnchorMetricsProtocol

    def set_queue_depth(self, depth: int) -> None:
        self._series(self.sequencer_queue_depth).set(depth)

    def record_anchor_outcome(self, outcome: str) -> None:
        self._series(self.anchor_outcomes_total, outcome=outcome).inc()

    def record_submission_attempt(self, result: str) -> None:
        self._series(self.ledger_submission_attempts_total, result=result).inc()

    # Lifecycle

    def record_startup(self, service: str) -> None:
        self.startup_times[service] = time.time()
        self._series(self.service_starts_total, service=service).inc()

    def get_uptime_seconds(self, service: str) -> float:
        started = self.startup_times.get(service)
        return 0.0 if started is None else time.time() - started

    def update_uptime_gauges(self) -> None:
        for service in self.startup_times:
            self._series(self.uptime_seconds, service=service).set(
                self.get_uptime_seconds(service)
            )

    def get_registry(self) -> CollectorRegistry:
        return self._registry


_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector, created on first use."""
    global _metrics_collector
    if _metrics_collector is None:
        with _collector_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def generate_metrics() -> bytes:
    """Render the process-wide collector in exposition format."""
    collector = get_metrics_collector()
    collector.update_uptime_gauges()
    return generate_latest(collector.get_registry())


def reset_metrics_collector() -> None:
    """Drop the process-wide collector (testing cleanup)."""
    global _metrics_collector
    with _collector_lock:
        _metrics_collector = None
