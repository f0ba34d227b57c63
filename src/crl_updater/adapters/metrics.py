"""
Prometheus metrics — per-job and process-wide outcome counters.

Implements the MetricsSink port with prometheus_client counters registered in
a private CollectorRegistry (never the global default registry, so tests and
multiple sinks do not collide).

Exposed series (prometheus_client appends `_total` to counters):
  crl_updater_job_success_total{job, file}
  crl_updater_job_error_total{job, file}
  crl_updater_success_total
  crl_updater_error_total
"""

from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest

LABELS = ("job", "file")


class PrometheusMetricsSink:
    """Counters for CRL update attempts; safe for concurrent increments."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self._success = Counter(
            "crl_updater_job_success",
            "Number of successful CRL update attempts per job.",
            LABELS,
            registry=self.registry,
        )
        self._error = Counter(
            "crl_updater_job_error",
            "Number of unsuccessful CRL update attempts per job.",
            LABELS,
            registry=self.registry,
        )
        self._success_total = Counter(
            "crl_updater_success",
            "Number of successful CRL update attempts.",
            registry=self.registry,
        )
        self._error_total = Counter(
            "crl_updater_error",
            "Number of unsuccessful CRL update attempts.",
            registry=self.registry,
        )

    def record_success(self, job_label: str, file_label: str) -> None:
        self._success_total.inc()
        self._success.labels(job=job_label, file=file_label).inc()

    def record_error(self, job_label: str, file_label: str) -> None:
        self._error_total.inc()
        self._error.labels(job=job_label, file=file_label).inc()

    def exposition(self) -> bytes:
        """Prometheus text format of every counter in the registry."""
        return generate_latest(self.registry)
