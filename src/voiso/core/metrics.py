"""
Prometheus Metrics for voiso.

Metrics Exposed:
    voiso_generations_total{status}               - Generation attempts by outcome
    voiso_quota_rejections_total                  - Requests refused at quota
    voiso_provider_request_duration_seconds       - Speech provider latency
    voiso_provider_errors_total                   - Non-2xx or failed provider calls
    voiso_audio_bytes_total                       - Audio bytes stored
    voiso_bookkeeping_failures_total{kind}        - Swallowed history/counter failures

Usage:
    from voiso.core.metrics import metrics

    metrics.record_generation("success", audio_bytes=48213)
    metrics.observe_provider(1.8, ok=True)

    content, content_type = metrics.get_metrics_response()

The collector uses its own CollectorRegistry, so building several apps in
one process (as the test-suite does) never registers a metric twice.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class VoisoMetrics:
    """
    Metric collection for the generation pipeline.

    Statuses recorded by record_generation():
        success, invalid, quota_exceeded, forbidden, not_found,
        provider_error, storage_error, error
    """

    def __init__(self) -> None:
        self._registry = CollectorRegistry()

        self._generations_total = Counter(
            "voiso_generations_total",
            "Generation attempts by outcome",
            ["status"],
            registry=self._registry,
        )
        self._quota_rejections = Counter(
            "voiso_quota_rejections_total",
            "Generation requests rejected by the daily quota",
            registry=self._registry,
        )
        self._provider_duration = Histogram(
            "voiso_provider_request_duration_seconds",
            "Speech provider request duration in seconds",
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0, 60.0),
            registry=self._registry,
        )
        self._provider_errors = Counter(
            "voiso_provider_errors_total",
            "Speech provider calls that failed or returned non-2xx",
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "voiso_audio_bytes_total",
            "Total generated audio bytes stored",
            registry=self._registry,
        )
        self._bookkeeping_failures = Counter(
            "voiso_bookkeeping_failures_total",
            "Non-fatal history or counter write failures",
            ["kind"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_generation(self, status: str, audio_bytes: int = 0) -> None:
        """
        Record the outcome of one generation attempt.

        Args:
            status: Outcome label (see class docstring).
            audio_bytes: Stored audio size, counted only when positive.
        """
        self._generations_total.labels(status=status).inc()
        if status == "quota_exceeded":
            self._quota_rejections.inc()
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def observe_provider(self, duration: float, ok: bool) -> None:
        """Record one provider call's latency and whether it succeeded."""
        self._provider_duration.observe(duration)
        if not ok:
            self._provider_errors.inc()

    def record_bookkeeping_failure(self, kind: str) -> None:
        """kind is "history" or "counter"."""
        self._bookkeeping_failures.labels(kind=kind).inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global metrics instance: from voiso.core.metrics import metrics
metrics = VoisoMetrics()
