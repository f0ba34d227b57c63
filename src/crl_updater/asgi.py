"""
FastAPI application — metrics endpoint plus operational routes.

Uvicorn serves this app in the main thread; the APScheduler
BackgroundScheduler runs the jobs on its own thread pool and is started and
stopped by the app lifespan.

Routes:
  GET  /metrics                Prometheus text exposition
  GET  /health                 200 while the scheduler runs, 503 otherwise
  GET  /jobs                   registered jobs
  POST /jobs/{job_id}/trigger  run one job now
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import structlog
from apscheduler.schedulers.base import BaseScheduler
from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response

from crl_updater import __version__
from crl_updater.adapters.metrics import PrometheusMetricsSink
from crl_updater.runner import JobRunner

log = structlog.get_logger()


def create_app(
    runners: Sequence[JobRunner],
    scheduler: BaseScheduler,
    metrics: PrometheusMetricsSink,
) -> FastAPI:
    """Build the ASGI app around already-wired runners, scheduler and metrics."""
    by_id = {runner.spec.job_id: runner for runner in runners}

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        Startup: start the scheduler (startup runs become due immediately).
        Shutdown: stop it and wait for in-flight runs to finish.
        """
        scheduler.start()
        log.info("asgi.scheduler_started", jobs=len(by_id))

        yield

        log.info("asgi.shutdown", reason="server stop")
        try:
            scheduler.shutdown(wait=True)
        except Exception as e:
            log.warning("asgi.scheduler_shutdown_error", error=str(e))
        log.info("asgi.shutdown_complete")

    app = FastAPI(
        title="crl-updater",
        description="Keeps local CRL files in sync with their HTTP sources",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/metrics")
    async def prometheus_metrics() -> Response:
        return Response(content=metrics.exposition(), media_type=metrics.content_type)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness — the service is healthy while the scheduler is running."""
        if not scheduler.running:
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "reason": "scheduler not running"},
            )
        return JSONResponse(
            status_code=200,
            content={"status": "healthy", "scheduler_running": True, "jobs": len(by_id)},
        )

    @app.get("/jobs")
    async def jobs() -> list[dict[str, Any]]:
        return [
            {
                "id": runner.spec.job_id,
                "url": runner.spec.url,
                "dest": str(runner.spec.destination),
                "schedule": runner.spec.schedule,
                "force": runner.spec.force,
                "running": runner.running,
            }
            for runner in by_id.values()
        ]

    @app.post("/jobs/{job_id}/trigger")
    async def trigger(job_id: int) -> JSONResponse:
        """
        Run one job immediately, outside its schedule.

        Returns 200 with the outcome, 404 for an unknown job, 409 when the
        job is already running, 500 with the error kind when the run failed.
        The run itself happens in a worker thread to keep the event loop free.
        """
        runner = by_id.get(job_id)
        if runner is None:
            return JSONResponse(
                status_code=404,
                content={"status": "not_found", "id": job_id},
            )

        log.info("trigger.manual_start", id=job_id, source="REST")
        result = await asyncio.to_thread(runner.run)

        if result is None:
            return JSONResponse(
                status_code=409,
                content={"status": "busy", "id": job_id, "reason": "job is already running"},
            )

        if result.is_success():
            return JSONResponse(
                status_code=200,
                content={"status": "success", "id": job_id, "outcome": result.value().value},
            )

        failure = result.error()
        return JSONResponse(
            status_code=500,
            content={
                "status": "failed",
                "id": job_id,
                "error_code": failure.code.value,
                "message": failure.describe(),
            },
        )

    return app
