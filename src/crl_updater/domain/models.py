"""
Domain models — immutable values describing a CRL update job and its run.

JobSpec is built once per configured job by the preparer and then shared,
read-only, by every scheduled invocation. Everything a single run produces
(FetchedPayload, Outcome) lives and dies inside that run.

All models are frozen dataclasses (immutable).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from pathlib import Path
from typing import TypeAlias

X509_CRL_PEM_HEADER = b"-----BEGIN X509 CRL-----"
"""Textual (PEM) CRL header; exactly the length of the sniffed prefix."""

CRL_HEAD_SIZE = len(X509_CRL_PEM_HEADER)

DER_SEQUENCE_TAG = 0x30
DER_LONG_LENGTH_MARKERS = frozenset({0x82, 0x83})
"""Length octets announcing a two- or three-byte length field."""

DEFAULT_FILE_MODE = 0o644
DEFAULT_SCHEDULE = "@hourly"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_SIZE_LIMIT = 10_485_760

Digest: TypeAlias = bytes


@unique
class Outcome(Enum):
    """Successful end states of a run. Both count as success for metrics."""

    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class JobSpec:
    """
    A prepared, validated CRL update job.

    `uid`/`gid` are None on platforms without POSIX ownership; the ownership
    strategy chosen at startup knows how to treat them.
    """

    job_id: int
    url: str
    destination: Path
    schedule: str = DEFAULT_SCHEDULE
    mode: int = DEFAULT_FILE_MODE
    uid: int | None = None
    gid: int | None = None
    force: bool = False
    size_limit: int = DEFAULT_SIZE_LIMIT
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def label(self) -> str:
        """Metric/log label for the job column."""
        return str(self.job_id)

    @property
    def file_label(self) -> str:
        return str(self.destination)

    @property
    def directory(self) -> Path:
        """Directory that holds both the destination and its temporary artifact."""
        return self.destination.parent


@dataclass(frozen=True, slots=True)
class FetchedPayload:
    """What a download left behind in the temporary artifact."""

    bytes_written: int
    digest: Digest | None = None
    """SHA-256 of the body; None when the job is forced (no digest work)."""


def is_crl_prefix(head: bytes) -> bool:
    """
    Check if the first bytes of a body look like a PEM or DER encoded CRL.

    PEM: the 24 bytes equal the literal header. DER: a SEQUENCE tag followed by
    a long-form length of two or three octets. Fewer than CRL_HEAD_SIZE
    bytes is never a CRL.
    """
    if len(head) < CRL_HEAD_SIZE:
        return False
    if head == X509_CRL_PEM_HEADER:
        return True
    return (
        head[0] == DER_SEQUENCE_TAG
        and head[1] in DER_LONG_LENGTH_MARKERS
    )
