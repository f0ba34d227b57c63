"""
Byte sinks — where downloaded chunks go.

The download writes every chunk exactly once into a single sink. When the
job needs change detection, that sink is a TeeSink forwarding each chunk to
both the temporary artifact and a DigestSink, so persisting and hashing
happen in the same pass without buffering the body.
"""

from __future__ import annotations

import hashlib
from typing import Protocol, runtime_checkable

from crl_updater.domain.models import Digest


@runtime_checkable
class ByteSink(Protocol):
    """Anything that accepts chunks of bytes."""

    def write(self, chunk: bytes, /) -> int: ...


class DigestSink:
    """Accumulates a SHA-256 digest of everything written to it."""

    def __init__(self) -> None:
        self._hash = hashlib.sha256()

    def write(self, chunk: bytes, /) -> int:
        self._hash.update(chunk)
        return len(chunk)

    def digest(self) -> Digest:
        return self._hash.digest()


class TeeSink:
    """Fans each chunk out to every wrapped sink, in order."""

    def __init__(self, *sinks: ByteSink) -> None:
        if not sinks:
            raise ValueError("TeeSink needs at least one sink")
        self._sinks = sinks

    def write(self, chunk: bytes, /) -> int:
        for sink in self._sinks:
            sink.write(chunk)
        return len(chunk)
