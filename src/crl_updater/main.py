"""
Application entry point — wires dependencies and serves metrics.

Composition root: loads settings and the job file, prepares the jobs,
creates concrete adapters, wraps each job in a JobRunner, and hands the
runners to the scheduler and the ASGI app.

This is the ONLY place where concrete adapter classes are instantiated.
Everything else depends on Protocol interfaces.

Fatal (exit 1): invalid settings, unreadable or invalid job file, metrics
listener that cannot bind. Everything after startup is per-job and never
stops the process.
"""

from __future__ import annotations

import logging
import sys
from functools import partial

import structlog
import uvicorn

from crl_updater import __version__
from crl_updater.adapters.filesystem import AtomicReplacer, DigestChangeDetector, TemporaryArtifact
from crl_updater.adapters.http_fetcher import HttpCrlFetcher
from crl_updater.adapters.metrics import PrometheusMetricsSink
from crl_updater.adapters.ownership import select_ownership_strategy
from crl_updater.asgi import create_app
from crl_updater.config import AppSettings, load_jobs_file
from crl_updater.domain.models import JobSpec
from crl_updater.domain.ports import MetricsSink, OwnershipStrategy
from crl_updater.pipeline import run_job
from crl_updater.preparer import prepare_jobs
from crl_updater.runner import JobRunner
from crl_updater.scheduler import create_scheduler


def configure_structlog(log_level: str = "INFO", log_format: str = "console") -> None:
    """
    Configure structlog for structured logging.

    "console": colored, human-readable output (development, journald).
    "json":    one JSON object per line (log shippers).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    renderer = (
        structlog.processors.JSONRenderer()
        if log_format == "json"
        else structlog.dev.ConsoleRenderer()
    )
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # railway's execution context and uvicorn log through the stdlib
    logging.basicConfig(level=level, stream=sys.stdout, format="%(levelname)s %(name)s %(message)s")


def build_runners(
    specs: list[JobSpec],
    metrics: MetricsSink,
    ownership: OwnershipStrategy,
) -> list[JobRunner]:
    """Wrap every prepared job in a runner sharing one set of adapters."""
    pipeline_fn = partial(
        run_job,
        fetcher=HttpCrlFetcher(),
        detector=DigestChangeDetector(),
        replacer=AtomicReplacer(ownership),
        open_artifact=TemporaryArtifact.create,
    )
    return [JobRunner(spec, pipeline_fn, metrics) for spec in specs]


def main() -> None:
    """Load configuration, schedule the jobs, and serve /metrics until stopped."""
    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    configure_structlog(settings.log_level, settings.log_format)
    log = structlog.get_logger()

    log.info(
        "app.starting",
        version=__version__,
        config=str(settings.config_path),
        metrics=f"{settings.metrics_host}:{settings.metrics_port}",
        run_on_startup=settings.run_on_startup,
    )

    jobs_file = load_jobs_file(settings.config_path)
    if jobs_file.is_failure():
        log.error("app.fatal", error=str(jobs_file.error()))
        sys.exit(1)

    ownership = select_ownership_strategy()
    specs = prepare_jobs(jobs_file.value().jobs, ownership)
    if not specs:
        log.warning("app.no_jobs", config=str(settings.config_path))

    metrics = PrometheusMetricsSink()
    runners = build_runners(specs, metrics, ownership)
    scheduler = create_scheduler(runners, run_on_startup=settings.run_on_startup)
    app = create_app(runners, scheduler, metrics)

    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.metrics_host,
            port=settings.metrics_port,
            log_level=settings.log_level.lower(),
        )
    )

    log.info("app.serving", host=settings.metrics_host, port=settings.metrics_port, jobs=len(runners))

    try:
        server.run()
    except KeyboardInterrupt:
        log.info("app.shutdown", reason="signal received")
    except SystemExit:
        log.error("app.fatal", error="metrics listener failed to start")
        raise

    if not server.started:
        log.error("app.fatal", error="metrics listener failed to start")
        sys.exit(1)

    log.info("app.shutdown", reason="server stopped")


if __name__ == "__main__":
    main()
