"""
Unit tests for the FastAPI application — metrics, health, jobs and trigger routes.

Uses FastAPI's TestClient with a mocked scheduler and runners whose pipeline
is a plain function.
"""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from railway import ErrorCode, NoOpExecutionContext, Result

from crl_updater.adapters.metrics import PrometheusMetricsSink
from crl_updater.asgi import create_app
from crl_updater.domain.models import JobSpec, Outcome
from crl_updater.runner import JobRunner
from tests.conftest import CRL_URL, make_spec


def _runner(spec: JobSpec, pipeline_fn, metrics: PrometheusMetricsSink) -> JobRunner:
    return JobRunner(spec, pipeline_fn, metrics, context=NoOpExecutionContext())


@pytest.fixture()
def metrics() -> PrometheusMetricsSink:
    return PrometheusMetricsSink()


@pytest.fixture()
def scheduler() -> MagicMock:
    mock = MagicMock()
    mock.running = True
    return mock


def _client(runners: list[JobRunner], scheduler: MagicMock, metrics: PrometheusMetricsSink) -> TestClient:
    """TestClient without running the lifespan (no real scheduler start)."""
    return TestClient(create_app(runners, scheduler, metrics), raise_server_exceptions=False)


# ─────────────────────── GET /metrics ───────────────────────


class TestMetricsEndpoint:
    def test_exposes_counters(self, scheduler: MagicMock, metrics: PrometheusMetricsSink) -> None:
        """
        GIVEN one recorded success
        WHEN GET /metrics is called
        THEN the Prometheus text exposition contains the per-job and total counters.
        """
        metrics.record_success("1", "/etc/ssl/crl/root.crl")

        response = _client([], scheduler, metrics).get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'crl_updater_job_success_total{job="1",file="/etc/ssl/crl/root.crl"} 1.0' in response.text
        assert "crl_updater_success_total 1.0" in response.text
        assert "crl_updater_error_total 0.0" in response.text


# ─────────────────────── GET /health ───────────────────────


class TestHealthEndpoint:
    def test_healthy_while_scheduler_runs(self, scheduler: MagicMock, metrics: PrometheusMetricsSink) -> None:
        response = _client([], scheduler, metrics).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_unhealthy_when_scheduler_stopped(self, scheduler: MagicMock, metrics: PrometheusMetricsSink) -> None:
        scheduler.running = False

        response = _client([], scheduler, metrics).get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


# ─────────────────────── GET /jobs ───────────────────────


class TestJobsEndpoint:
    def test_lists_registered_jobs(
        self, tmp_path: Path, scheduler: MagicMock, metrics: PrometheusMetricsSink
    ) -> None:
        spec = make_spec(tmp_path / "root.crl", job_id=3, schedule="@daily", force=True)
        runner = _runner(spec, lambda s: Result.success(Outcome.UPDATED), metrics)

        response = _client([runner], scheduler, metrics).get("/jobs")

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": 3,
                "url": CRL_URL,
                "dest": str(tmp_path / "root.crl"),
                "schedule": "@daily",
                "force": True,
                "running": False,
            }
        ]


# ─────────────────────── POST /jobs/{id}/trigger ───────────────────────


class TestTriggerEndpoint:
    def test_unknown_job_is_404(self, scheduler: MagicMock, metrics: PrometheusMetricsSink) -> None:
        response = _client([], scheduler, metrics).post("/jobs/9/trigger")

        assert response.status_code == 404
        assert response.json()["status"] == "not_found"

    def test_success_returns_outcome(
        self, spec: JobSpec, scheduler: MagicMock, metrics: PrometheusMetricsSink
    ) -> None:
        """
        GIVEN a job whose run succeeds with UPDATED
        WHEN POST /jobs/1/trigger is called
        THEN it returns 200 with outcome "updated" and one success is recorded.
        """
        runner = _runner(spec, lambda s: Result.success(Outcome.UPDATED), metrics)

        response = _client([runner], scheduler, metrics).post("/jobs/1/trigger")

        assert response.status_code == 200
        assert response.json() == {"status": "success", "id": 1, "outcome": "updated"}
        assert metrics.registry.get_sample_value("crl_updater_success_total") == 1

    def test_failure_returns_500_with_error_kind(
        self, spec: JobSpec, scheduler: MagicMock, metrics: PrometheusMetricsSink
    ) -> None:
        runner = _runner(
            spec,
            lambda s: Result.failure(ErrorCode.FORMAT_ERROR, "source is not a DER or PEM encoded CRL"),
            metrics,
        )

        response = _client([runner], scheduler, metrics).post("/jobs/1/trigger")

        assert response.status_code == 500
        body = response.json()
        assert body["status"] == "failed"
        assert body["error_code"] == "FORMAT_ERROR"
        assert "not a DER or PEM" in body["message"]
        assert metrics.registry.get_sample_value("crl_updater_error_total") == 1

    def test_running_job_is_409(
        self, spec: JobSpec, scheduler: MagicMock, metrics: PrometheusMetricsSink
    ) -> None:
        """
        GIVEN the job is already running (scheduled tick in progress)
        WHEN POST /jobs/1/trigger is called
        THEN it returns 409 and records no metric.
        """
        started = threading.Event()
        release = threading.Event()

        def slow(s: JobSpec) -> Result[Outcome]:
            started.set()
            release.wait(timeout=5)
            return Result.success(Outcome.UNCHANGED)

        runner = _runner(spec, slow, metrics)
        worker = threading.Thread(target=runner.run)
        worker.start()
        assert started.wait(timeout=5)
        try:
            response = _client([runner], scheduler, metrics).post("/jobs/1/trigger")
        finally:
            release.set()
            worker.join(timeout=5)

        assert response.status_code == 409
        assert response.json()["status"] == "busy"
        assert metrics.registry.get_sample_value("crl_updater_success_total") == 1


# ─────────────────────── Lifespan ───────────────────────


class TestLifespan:
    def test_scheduler_started_and_stopped(self, scheduler: MagicMock, metrics: PrometheusMetricsSink) -> None:
        with TestClient(create_app([], scheduler, metrics)) as client:
            scheduler.start.assert_called_once()
            assert client.get("/health").status_code == 200

        scheduler.shutdown.assert_called_once_with(wait=True)
