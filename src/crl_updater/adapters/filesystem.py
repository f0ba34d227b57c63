"""
Filesystem adapter — temporary artifact, change detection and atomic replacement.

Adapter layer — implements the Artifact, ChangeDetector and ArtifactReplacer
ports on top of the local filesystem.

Publication pattern (same idea as a transactional replace):
  1. Write the download into a hidden temporary file NEXT TO the destination
  2. Hash the existing destination and compare digests
  3. Flush + fsync, chown/chmod the temporary file
  4. os.replace() it onto the destination (atomic within one filesystem)
  5. Always remove the temporary file when the run ends, whatever happened

Readers of the destination only ever see the previous or the new content.
Local file I/O has no timeout; a stalled filesystem stalls the run.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
from pathlib import Path
from types import TracebackType
from typing import BinaryIO

import structlog
from railway import ErrorCode, ResultFailures
from railway.result import Result

from crl_updater.domain.models import FetchedPayload, JobSpec, Outcome
from crl_updater.domain.ports import Artifact, OwnershipStrategy

log = structlog.get_logger()


class TemporaryArtifact:
    """
    Hidden temporary file in the destination's directory.

    Use as a context manager: leaving the block removes the file unless it
    was published onto the destination.
    """

    def __init__(self, path: Path, handle: BinaryIO) -> None:
        self._path = path
        self._handle = handle
        self._published = False

    @classmethod
    def create(cls, destination: Path) -> TemporaryArtifact:
        """Create the temporary file beside destination (same filesystem)."""
        fd, name = tempfile.mkstemp(
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
        )
        try:
            handle = os.fdopen(fd, "wb")
        except OSError:
            os.close(fd)
            os.unlink(name)
            raise
        return cls(Path(name), handle)

    @property
    def path(self) -> Path:
        return self._path

    def write(self, chunk: bytes, /) -> int:
        return self._handle.write(chunk)

    def seal(self) -> Path:
        """Flush and fsync the content, then close the file. Idempotent."""
        if not self._handle.closed:
            self._handle.flush()
            os.fsync(self._handle.fileno())
            self._handle.close()
        return self._path

    def publish(self, destination: Path) -> Path:
        """Atomically rename the sealed file onto destination."""
        self.seal()
        os.replace(self._path, destination)
        self._published = True
        return destination

    def discard(self) -> None:
        """Close and delete the temporary file if it was not published."""
        if not self._handle.closed:
            self._handle.close()
        if not self._published:
            self._path.unlink(missing_ok=True)

    def __enter__(self) -> TemporaryArtifact:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.discard()


class DigestChangeDetector:
    """
    Decide UPDATED vs UNCHANGED by hashing the current destination.

    Implements the ChangeDetector port.
    """

    def detect(self, spec: JobSpec, payload: FetchedPayload) -> Result[Outcome]:
        """
        Compare payload.digest with the SHA-256 of spec.destination.

        Forced jobs, and destinations that cannot be opened, are UPDATED
        without further work. A read failure mid-scan is COMPARISON_ERROR.
        """
        if spec.force or payload.digest is None:
            return Result.success(Outcome.UPDATED)

        try:
            handle = spec.destination.open("rb")
        except OSError as e:
            log.debug("compare.destination_unavailable", dest=str(spec.destination), reason=str(e))
            return Result.success(Outcome.UPDATED)

        with handle:
            try:
                current = hashlib.file_digest(handle, "sha256").digest()
            except OSError as e:
                return ResultFailures.comparison_error("failed to compare CRL files", e)

        return Result.success(Outcome.UNCHANGED if current == payload.digest else Outcome.UPDATED)


class AtomicReplacer:
    """
    Publish a temporary artifact onto the destination.

    Implements the ArtifactReplacer port. Ownership and mode are applied to
    the temporary file BEFORE the rename, so the destination never exists with
    the wrong owner or permissions.
    """

    def __init__(self, ownership: OwnershipStrategy) -> None:
        self._ownership = ownership

    def replace(self, spec: JobSpec, artifact: Artifact) -> Result[Outcome]:
        """
        Seal, chown, chmod and rename the artifact.

        Returns Result[Outcome.UPDATED], or REPLACE_ERROR with the previous
        destination content untouched.
        """
        return (
            Result.from_computation(
                artifact.seal,
                ErrorCode.REPLACE_ERROR,
                "failed to flush temporary file",
            )
            .flat_map(lambda path: self._ownership.apply_ownership(path, spec.uid, spec.gid))
            .flat_map(lambda path: self._ownership.apply_mode(path, spec.mode))
            .flat_map(
                lambda _: Result.from_computation(
                    lambda: artifact.publish(spec.destination),
                    ErrorCode.REPLACE_ERROR,
                    "failed to replace existing CRL file",
                )
            )
            .map(lambda _: Outcome.UPDATED)
        )
