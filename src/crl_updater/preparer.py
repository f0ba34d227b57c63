"""
Preparer — turn a raw JobDescriptor into an immutable JobSpec, once.

Runs at registration time. Hard errors (missing url/dest, unknown owner or
group) are PREPARATION_ERROR and drop the job; everything else falls back to
a sane default:

  mode      0644           when unset, zero, unparsable or out of range
  schedule  @hourly        when it does not parse
  timeout   1m             when it does not parse or is not positive
  limit     10 MiB         when unset or not positive
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

from crl_updater.config import JobDescriptor
from crl_updater.domain.models import (
    DEFAULT_FILE_MODE,
    DEFAULT_SCHEDULE,
    DEFAULT_SIZE_LIMIT,
    DEFAULT_TIMEOUT_SECONDS,
    JobSpec,
)
from crl_updater.domain.ports import OwnershipStrategy
from crl_updater.durations import parse_duration
from crl_updater.schedule import is_valid_schedule

MAX_FILE_MODE = 0o7777

log = structlog.get_logger()


def prepare_job(
    descriptor: JobDescriptor,
    job_id: int,
    ownership: OwnershipStrategy,
) -> Result[JobSpec]:
    """
    Validate and default a descriptor.

    Returns Result[JobSpec] on success, or Result.failure(PREPARATION_ERROR)
    when the job cannot run at all.
    """
    return (
        Result.success(descriptor)
        .ensure(
            lambda d: bool(d.url.strip()) and bool(d.dest.strip()),
            ErrorCode.PREPARATION_ERROR,
            "empty 'url' and/or 'dest' parameters",
        )
        .flat_map(lambda d: ownership.resolve_ids(d.owner, d.group))
        .map(
            lambda ids: JobSpec(
                job_id=job_id,
                url=descriptor.url.strip(),
                destination=Path(descriptor.dest.strip()).expanduser().absolute(),
                schedule=_schedule_or_default(descriptor),
                mode=_mode_or_default(descriptor),
                uid=ids[0],
                gid=ids[1],
                force=descriptor.force,
                size_limit=_limit_or_default(descriptor),
                timeout=_timeout_or_default(descriptor),
            )
        )
    )


def _schedule_or_default(descriptor: JobDescriptor) -> str:
    if is_valid_schedule(descriptor.schedule):
        return descriptor.schedule.strip()
    log.warning(
        "job.default_schedule",
        dest=descriptor.dest,
        schedule=descriptor.schedule,
        default=DEFAULT_SCHEDULE,
    )
    return DEFAULT_SCHEDULE


def _mode_or_default(descriptor: JobDescriptor) -> int:
    mode = descriptor.mode
    if isinstance(mode, str):
        try:
            mode = int(mode.strip(), 8)
        except ValueError:
            mode = None
    if mode is None or mode <= 0 or mode > MAX_FILE_MODE:
        if descriptor.mode not in (None, 0):
            log.warning("job.default_mode", dest=descriptor.dest, mode=descriptor.mode)
        return DEFAULT_FILE_MODE
    return mode


def _timeout_or_default(descriptor: JobDescriptor) -> float:
    try:
        seconds = parse_duration(descriptor.timeout)
    except ValueError:
        seconds = 0.0
    if seconds <= 0:
        if descriptor.timeout:
            log.warning("job.default_timeout", dest=descriptor.dest, timeout=descriptor.timeout)
        return DEFAULT_TIMEOUT_SECONDS
    return seconds


def _limit_or_default(descriptor: JobDescriptor) -> int:
    if descriptor.limit <= 0:
        return DEFAULT_SIZE_LIMIT
    return descriptor.limit


def prepare_jobs(
    descriptors: Iterable[JobDescriptor],
    ownership: OwnershipStrategy,
) -> list[JobSpec]:
    """
    Prepare every descriptor, dropping the ones that fail.

    Ids are assigned sequentially from 1 to the jobs that survive, in file
    order. Dropped jobs are logged and never scheduled.
    """
    specs: list[JobSpec] = []
    for position, descriptor in enumerate(descriptors, start=1):
        result = prepare_job(descriptor, len(specs) + 1, ownership)
        if result.is_failure():
            log.error(
                "job.dropped",
                entry=position,
                dest=descriptor.dest,
                url=descriptor.url,
                failure=str(result.error()),
            )
            continue
        spec = result.value()
        log.info(
            "job.registered",
            id=spec.job_id,
            dest=str(spec.destination),
            url=spec.url,
            schedule=spec.schedule,
            force=spec.force,
        )
        specs.append(spec)
    return specs
