"""
Scheduler — periodic execution of every prepared CRL update job.

Infrastructure layer — uses APScheduler (3.x) BackgroundScheduler so jobs
run on a thread pool while Uvicorn serves the metrics endpoint in the main
thread. Each job gets its own trigger from its schedule expression.

Overlap policy: one instance per job (max_instances=1) with missed ticks
coalesced, backed by the runner's own lock for manual triggers.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import structlog
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from crl_updater.runner import JobRunner
from crl_updater.schedule import build_trigger

DEFAULT_MAX_WORKERS = 10

log = structlog.get_logger()


def create_scheduler(
    runners: Sequence[JobRunner],
    run_on_startup: bool = True,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> BackgroundScheduler:
    """
    Create a BackgroundScheduler with one job per runner.

    Args:
        runners: Prepared jobs; their schedules were validated by the preparer.
        run_on_startup: If True, every job's first run is due immediately
                        once the scheduler starts.
        max_workers: Size of the thread pool shared by all jobs.

    Returns:
        A configured BackgroundScheduler (call .start() to begin).
    """
    scheduler = BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(max(max_workers, 1))},
    )

    for runner in runners:
        spec = runner.spec
        options = {}
        if run_on_startup:
            options["next_run_time"] = datetime.now(scheduler.timezone)
        scheduler.add_job(
            runner.run,
            trigger=build_trigger(spec.schedule, scheduler.timezone),
            id=f"crl_update_{spec.job_id}",
            name=f"CRL update {spec.job_id} ({spec.destination})",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
            **options,
        )
        log.debug("scheduler.job_added", id=spec.job_id, schedule=spec.schedule)

    return scheduler
