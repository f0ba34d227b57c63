"""
Failure description — structured error information for the failure track.

Every failed CRL update run ends with exactly one FailureDescription: an
ErrorCode naming the stage that broke, a human-readable message, and the
underlying exception (if any) that caused it.

Enum + frozen dataclass gives us __eq__, __hash__ and __repr__ for free, and
Enum members are singleton-comparable with `is`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from typing import Optional


@unique
class ErrorCode(Enum):
    """
    Error kinds for the failure track.

    One kind per pipeline stage, so operators can tell an unreachable source
    apart from a bad payload or a local filesystem problem:
    - Registration: PREPARATION
    - Download: NETWORK, FORMAT, SIZE_LIMIT_EXCEEDED
    - Publication: COMPARISON, REPLACE
    - Process: CONFIGURATION, TECHNICAL
    """

    PREPARATION_ERROR = "PREPARATION_ERROR"
    """Job descriptor is unusable: missing url/dest, unknown owner or group."""

    NETWORK_ERROR = "NETWORK_ERROR"
    """Connect/transport failure, timeout or non-2xx response while fetching."""

    FORMAT_ERROR = "FORMAT_ERROR"
    """Payload prefix is neither a PEM header nor a DER SEQUENCE tag."""

    SIZE_LIMIT_EXCEEDED = "SIZE_LIMIT_EXCEEDED"
    """Payload grew past the configured size limit."""

    COMPARISON_ERROR = "COMPARISON_ERROR"
    """Reading the existing destination failed mid-scan."""

    REPLACE_ERROR = "REPLACE_ERROR"
    """Temporary artifact write, chown/chmod or atomic rename failed."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Job file unreadable or invalid."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected exception escaped a stage."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional cause, and timestamp.

    >>> desc = FailureDescription(ErrorCode.FORMAT_ERROR, "source is not a DER or PEM encoded CRL")
    >>> desc.code
    <ErrorCode.FORMAT_ERROR: 'FORMAT_ERROR'>
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def describe(self) -> str:
        """Message followed by the underlying cause, when there is one."""
        if self.exception is None:
            return self.message
        return f"{self.message}: {self.exception}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.describe()}"
