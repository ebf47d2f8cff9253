"""Tests for Prometheus metrics."""
from __future__ import annotations

from conftest import USER_A


def sample(name, labels=None):
    from voiso.core.metrics import metrics

    value = metrics.registry.get_sample_value(name, labels or {})
    return value or 0.0


class TestMetricsModule:
    """VoisoMetrics recording."""

    def test_metrics_instance_exists(self):
        from voiso.core.metrics import VoisoMetrics, metrics

        assert isinstance(metrics, VoisoMetrics)

    def test_record_generation(self):
        before = sample("voiso_generations_total", {"status": "success"})
        bytes_before = sample("voiso_audio_bytes_total")

        from voiso.core.metrics import metrics
        metrics.record_generation("success", audio_bytes=100)

        assert sample("voiso_generations_total", {"status": "success"}) == before + 1
        assert sample("voiso_audio_bytes_total") == bytes_before + 100

    def test_quota_rejection_counted(self):
        from voiso.core.metrics import metrics

        before = sample("voiso_quota_rejections_total")
        metrics.record_generation("quota_exceeded")
        assert sample("voiso_quota_rejections_total") == before + 1

    def test_provider_observation(self):
        from voiso.core.metrics import metrics

        errors_before = sample("voiso_provider_errors_total")
        count_before = sample("voiso_provider_request_duration_seconds_count")
        metrics.observe_provider(0.3, ok=True)
        metrics.observe_provider(1.2, ok=False)

        assert sample("voiso_provider_request_duration_seconds_count") == count_before + 2
        assert sample("voiso_provider_errors_total") == errors_before + 1

    def test_separate_instances_do_not_collide(self):
        from voiso.core.metrics import VoisoMetrics

        VoisoMetrics()
        VoisoMetrics()

    def test_exposition_format(self):
        from voiso.core.metrics import metrics

        content, content_type = metrics.get_metrics_response()
        assert content_type.startswith("text/plain")
        assert b"voiso_generations_total" in content


class TestPipelineMetrics:
    """The generation pipeline records outcomes."""

    def test_not_found_recorded(self, services):
        import pytest
        from voiso.services.errors import NotFound

        before = sample("voiso_generations_total", {"status": "not_found"})
        with pytest.raises(NotFound):
            services.generation.generate(USER_A, {"voice_id": "3f2b8c1e-9d4a-4e7b-8c6d-1a2b3c4d5e6f", "text": "Hi"})
        assert sample("voiso_generations_total", {"status": "not_found"}) == before + 1

    def test_history_failure_recorded(self, services, make_voice, monkeypatch):
        voice = make_voice()
        before = sample("voiso_bookkeeping_failures_total", {"kind": "history"})

        def boom(**kwargs):
            raise RuntimeError("db down")

        monkeypatch.setattr(services.repository, "insert_generation", boom)
        services.generation.generate(USER_A, {"voice_id": voice.id, "text": "Hi"})
        assert sample("voiso_bookkeeping_failures_total", {"kind": "history"}) == before + 1
