"""
HTTP adapter — bounded, streamed CRL download via httpx.

Adapter layer — implements the CrlFetcher port using httpx for sync HTTP calls.

Download flow:
  1. Fresh client per attempt, keep-alive disabled (no idle connection is held
     between ticks of a low-frequency job)
  2. Non-forced jobs: read the first 24 bytes and sniff PEM/DER
  3. Stream head + remainder into the sink (tee'd into a SHA-256 digest unless
     forced), failing as soon as the running total passes the size limit

A single attempt per tick, no retries. All HTTP errors are captured into
Result failures — no exceptions leak to the pipeline.
"""

from __future__ import annotations

import itertools
import time
from collections.abc import Callable, Iterable, Iterator

import httpx
import structlog
from railway import ResultFailures
from railway.result import Result

from crl_updater.domain.models import CRL_HEAD_SIZE, FetchedPayload, JobSpec, is_crl_prefix
from crl_updater.domain.sinks import ByteSink, DigestSink, TeeSink

DEFAULT_CHUNK_SIZE = 32 * 1024

log = structlog.get_logger()


class HttpCrlFetcher:
    """
    Download CRL files via HTTP GET into a sink.

    Implements the CrlFetcher port. Memory use is bounded by the chunk size,
    independent of the payload size.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._chunk_size = chunk_size
        self._clock = clock

    def fetch(self, spec: JobSpec, sink: ByteSink) -> Result[FetchedPayload]:
        """
        Stream spec.url into sink.

        Returns Result[FetchedPayload] on success, or a failure with
        NETWORK_ERROR, FORMAT_ERROR, SIZE_LIMIT_EXCEEDED, or REPLACE_ERROR
        when the sink itself cannot be written.
        """
        try:
            return self._do_fetch(spec, sink)
        except httpx.TimeoutException as e:
            return ResultFailures.network_error("http request timed out", e)
        except httpx.HTTPStatusError as e:
            return ResultFailures.network_error(
                f"http request failed with status {e.response.status_code}", e
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return ResultFailures.network_error("http request failed", e)
        except OSError as e:
            return ResultFailures.replace_error("failed to write temporary file", e)

    def _do_fetch(self, spec: JobSpec, sink: ByteSink) -> Result[FetchedPayload]:
        started = self._clock()
        with _open_client(spec.timeout) as client:
            with client.stream("GET", spec.url, headers={"Connection": "close"}) as response:
                response.raise_for_status()
                chunks = _within(
                    self._clock,
                    spec.timeout,
                    self._clock() - started,
                    response.iter_bytes(self._chunk_size),
                )

                if spec.force:
                    return _copy_bounded(chunks, sink, spec.size_limit).map(
                        lambda written: FetchedPayload(bytes_written=written)
                    )

                head, rest = _read_head(chunks)
                if not is_crl_prefix(head):
                    return ResultFailures.format_error("source is not a DER or PEM encoded CRL")

                digest = DigestSink()
                body = itertools.chain((head, rest), chunks)
                return _copy_bounded(body, TeeSink(sink, digest), spec.size_limit).map(
                    lambda written: FetchedPayload(bytes_written=written, digest=digest.digest())
                ).peek(
                    lambda payload: log.debug(
                        "fetch.complete", url=spec.url, size_bytes=payload.bytes_written
                    )
                )


def _open_client(timeout: float) -> httpx.Client:
    return httpx.Client(
        timeout=timeout,
        follow_redirects=True,
        limits=httpx.Limits(max_keepalive_connections=0),
    )


def _within(
    clock: Callable[[], float],
    timeout: float,
    waited: float,
    chunks: Iterable[bytes],
) -> Iterator[bytes]:
    """
    Yield chunks while the time spent waiting on the network stays within timeout.

    waited is the time already spent connecting and reading headers. Time the
    consumer spends between chunks, writing them out, is not counted.
    """
    iterator = iter(chunks)
    while True:
        before = clock()
        chunk = next(iterator, None)
        waited += clock() - before
        if waited > timeout:
            raise httpx.ReadTimeout(f"download did not finish within {timeout}s")
        if chunk is None:
            return
        yield chunk


def _read_head(chunks: Iterator[bytes]) -> tuple[bytes, bytes]:
    """
    Pull chunks until at least CRL_HEAD_SIZE bytes arrived.

    Returns (head, rest): head is at most CRL_HEAD_SIZE bytes, rest is the
    remainder of the last chunk pulled. A short body yields a short head.
    """
    buffer = bytearray()
    for chunk in chunks:
        buffer.extend(chunk)
        if len(buffer) >= CRL_HEAD_SIZE:
            break
    return bytes(buffer[:CRL_HEAD_SIZE]), bytes(buffer[CRL_HEAD_SIZE:])


def _copy_bounded(chunks: Iterable[bytes], sink: ByteSink, limit: int) -> Result[int]:
    """Copy chunks into sink, failing once the running total exceeds limit."""
    written = 0
    for chunk in chunks:
        if not chunk:
            continue
        if written + len(chunk) > limit:
            return ResultFailures.size_limit_exceeded(limit)
        sink.write(chunk)
        written += len(chunk)
    return Result.success(written)
