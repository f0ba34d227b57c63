"""
Pipeline — one CRL update run as a railway.

Domain layer — no I/O of its own. The fetcher, detector, replacer and the
temporary artifact factory are injected (ports), so every stage can be
replaced in tests.

  open artifact beside the destination
    → fetch(spec, artifact)            stream + sniff + size bound
      → detect(spec, payload)          UPDATED | UNCHANGED
        → replace(spec, artifact)      only when UPDATED

Each stage returns Result[T]; the first failure short-circuits the rest.
The artifact is removed when the run ends unless it became the destination.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractContextManager
from pathlib import Path
from typing import TypeAlias

from railway import ErrorCode
from railway.result import Result

from crl_updater.domain.models import FetchedPayload, JobSpec, Outcome
from crl_updater.domain.ports import Artifact, ArtifactReplacer, ChangeDetector, CrlFetcher

ArtifactFactory: TypeAlias = Callable[[Path], AbstractContextManager[Artifact]]


def run_job(
    spec: JobSpec,
    *,
    fetcher: CrlFetcher,
    detector: ChangeDetector,
    replacer: ArtifactReplacer,
    open_artifact: ArtifactFactory,
) -> Result[Outcome]:
    """
    Execute a single update of spec.destination from spec.url.

    Returns Result[Outcome] (UPDATED or UNCHANGED), or the failure of the
    first stage that failed. A temporary file that cannot be created is
    REPLACE_ERROR.
    """
    return Result.from_computation(
        lambda: open_artifact(spec.destination),
        ErrorCode.REPLACE_ERROR,
        "failed to create a temporary file",
    ).flat_map(
        lambda artifact: _run_in(artifact, spec, fetcher, detector, replacer)
    )


def _run_in(
    managed: AbstractContextManager[Artifact],
    spec: JobSpec,
    fetcher: CrlFetcher,
    detector: ChangeDetector,
    replacer: ArtifactReplacer,
) -> Result[Outcome]:
    with managed as artifact:
        return (
            fetcher.fetch(spec, artifact)
            .flat_map(lambda payload: _detect(detector, spec, payload))
            .flat_map(lambda outcome: _publish_if_updated(replacer, spec, artifact, outcome))
        )


def _detect(detector: ChangeDetector, spec: JobSpec, payload: FetchedPayload) -> Result[Outcome]:
    return detector.detect(spec, payload)


def _publish_if_updated(
    replacer: ArtifactReplacer,
    spec: JobSpec,
    artifact: Artifact,
    outcome: Outcome,
) -> Result[Outcome]:
    if outcome is Outcome.UNCHANGED:
        return Result.success(outcome)
    return replacer.replace(spec, artifact)
