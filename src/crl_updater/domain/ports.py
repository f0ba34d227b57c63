"""
Ports — Protocol-based interfaces for infrastructure adapters.

These define WHAT a CRL update run needs without specifying HOW it's done.
Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) so adapters satisfy the contract
simply by implementing the methods — no inheritance.

Run flow:
  1. CrlFetcher           → stream + sniff + bound the download into the artifact
  2. ChangeDetector       → compare the candidate digest with the destination
  3. ArtifactReplacer     → chown/chmod + atomic rename (only when UPDATED)
  4. MetricsSink          → exactly one success or error per run
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from railway.result import Result

from crl_updater.domain.models import FetchedPayload, JobSpec, Outcome
from crl_updater.domain.sinks import ByteSink


@runtime_checkable
class CrlFetcher(Protocol):
    """
    Port: download a CRL into a sink.

    Fails with NETWORK_ERROR, FORMAT_ERROR or SIZE_LIMIT_EXCEEDED. On failure
    the caller discards whatever reached the sink.
    """

    def fetch(self, spec: JobSpec, sink: ByteSink) -> Result[FetchedPayload]: ...


@runtime_checkable
class ChangeDetector(Protocol):
    """Port: decide UPDATED vs UNCHANGED for a freshly fetched candidate."""

    def detect(self, spec: JobSpec, payload: FetchedPayload) -> Result[Outcome]: ...


@runtime_checkable
class Artifact(Protocol):
    """A same-directory temporary file that may be published onto the destination."""

    @property
    def path(self) -> Path: ...

    def write(self, chunk: bytes, /) -> int: ...

    def seal(self) -> Path: ...

    def publish(self, destination: Path) -> Path: ...


@runtime_checkable
class ArtifactReplacer(Protocol):
    """
    Port: atomically publish the artifact onto the job's destination.

    On failure the destination keeps its previous content.
    """

    def replace(self, spec: JobSpec, artifact: Artifact) -> Result[Outcome]: ...


@runtime_checkable
class OwnershipStrategy(Protocol):
    """
    Port: platform ownership/permission semantics, chosen once at startup.

    resolve_ids runs at preparation time; apply_ownership and apply_mode run
    on the temporary artifact just before it is published.
    """

    def resolve_ids(self, owner: str, group: str) -> Result[tuple[int | None, int | None]]: ...

    def apply_ownership(self, path: Path, uid: int | None, gid: int | None) -> Result[Path]: ...

    def apply_mode(self, path: Path, mode: int) -> Result[Path]: ...


@runtime_checkable
class MetricsSink(Protocol):
    """
    Port: outcome counters.

    Each call increments the labelled per-job counter and the process-wide
    total. Implementations must tolerate concurrent calls from parallel jobs.
    """

    def record_success(self, job_label: str, file_label: str) -> None: ...

    def record_error(self, job_label: str, file_label: str) -> None: ...
