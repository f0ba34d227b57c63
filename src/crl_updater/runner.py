"""
JobRunner — executes a prepared job once per tick and reports the outcome.

The runner is the only stateful piece of a job: a non-blocking lock that
keeps two runs of the same job from overlapping (a scheduled tick and a
manual trigger, or a slow tick and the next one). A run that finds the lock
taken is skipped and logged; it records no metric because nothing ran.

Every run that does execute ends with exactly one record_success (UPDATED
or UNCHANGED) or record_error call.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

import structlog
from railway import ExecutionContext, FailureDescription, LoggingExecutionContext
from railway.result import Result

from crl_updater.domain.models import JobSpec, Outcome
from crl_updater.domain.ports import MetricsSink

log = structlog.get_logger()


class JobRunner:
    """Runs one JobSpec through the pipeline inside an execution context."""

    def __init__(
        self,
        spec: JobSpec,
        pipeline_fn: Callable[[JobSpec], Result[Outcome]],
        metrics: MetricsSink,
        context: ExecutionContext | None = None,
    ) -> None:
        self.spec = spec
        self._pipeline_fn = pipeline_fn
        self._metrics = metrics
        self._ctx = context or LoggingExecutionContext(operation=f"crl_update[{spec.job_id}]")
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run(self) -> Result[Outcome] | None:
        """
        Execute the job now.

        Returns the run's Result, or None when a previous run of the same
        job is still in progress and this one was skipped.
        """
        if not self._lock.acquire(blocking=False):
            log.warning("job.skipped", **self._fields(), reason="previous run still in progress")
            return None
        try:
            result = self._ctx.execute(lambda: self._pipeline_fn(self.spec))
        finally:
            self._lock.release()

        result.either(on_success=self._succeeded, on_failure=self._failed)
        return result

    def _succeeded(self, outcome: Outcome) -> None:
        self._metrics.record_success(self.spec.label, self.spec.file_label)
        if outcome is Outcome.UPDATED:
            log.info("job.updated", **self._fields())
        else:
            log.debug("job.unchanged", **self._fields())

    def _failed(self, failure: FailureDescription) -> None:
        self._metrics.record_error(self.spec.label, self.spec.file_label)
        log.error(
            "job.failed",
            **self._fields(),
            error_code=failure.code.value,
            error=failure.describe(),
        )

    def _fields(self) -> dict[str, object]:
        return {"id": self.spec.job_id, "dest": str(self.spec.destination), "url": self.spec.url}
