"""Metrics wiring: one collector per process and the exporter serving it."""

from __future__ import annotations

from prometheus_client import generate_latest

from certanchor.infrastructure.monitoring.metrics import (
    METRICS_CONTENT_TYPE,
    MetricsCollector,
    get_metrics_collector as get_infra_metrics_collector,
)


class PrometheusMetricsExporter:
    """Renders one collector's registry for the /v1/metrics route."""

    content_type = METRICS_CONTENT_TYPE

    def __init__(self, collector: MetricsCollector) -> None:
        self._collector = collector

    def generate_metrics(self) -> bytes:
        # Uptime is a gauge computed at scrape time
        self._collector.update_uptime_gauges()
        return generate_latest(self._collector.get_registry())


_metrics_collector: MetricsCollector | None = None
_metrics_exporter: PrometheusMetricsExporter | None = None


def get_metrics_collector() -> MetricsCollector:
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = get_infra_metrics_collector()
    return _metrics_collector


def get_metrics_exporter() -> PrometheusMetricsExporter:
    global _metrics_exporter
    if _metrics_exporter is None:
        _metrics_exporter = PrometheusMetricsExporter(get_metrics_collector())
    return _metrics_exporter


def reset_metrics() -> None:
    """Forget the wired collector and exporter (testing cleanup)."""
    global _metrics_collector, _metrics_exporter
    _metrics_collector = None
    _metrics_exporter = None
