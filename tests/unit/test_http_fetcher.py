"""
Unit tests for the HTTP fetcher — streamed, sniffed and bounded downloads.

Uses respx to mock httpx HTTP calls (never makes real HTTP requests) and an
in-memory BytesIO as the sink.

Test categories:
  - Success: PEM/DER body → Result.success(FetchedPayload) with digest
  - Format: anything else → FORMAT_ERROR, nothing written
  - Size: running total past the limit → SIZE_LIMIT_EXCEEDED
  - Force: no sniff, no digest, limit still applies
  - Network: status, transport errors and timeouts → NETWORK_ERROR (never raises)
"""

from __future__ import annotations

import hashlib
import io
import itertools
from pathlib import Path

import httpx
import pytest
import respx
from railway import ErrorCode, ResultAssertions

from crl_updater.adapters.http_fetcher import HttpCrlFetcher
from crl_updater.domain.models import JobSpec
from tests.conftest import CRL_URL, DER_CRL, GARBAGE, PEM_CRL, make_spec


@pytest.fixture()
def fetcher() -> HttpCrlFetcher:
    return HttpCrlFetcher(chunk_size=16)


@pytest.fixture()
def sink() -> io.BytesIO:
    return io.BytesIO()


# ─────────────────────── Success ───────────────────────


class TestFetchSuccess:
    @respx.mock
    @pytest.mark.parametrize("body", [PEM_CRL, DER_CRL], ids=["pem", "der"])
    def test_body_lands_in_sink_with_digest(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec, body: bytes
    ) -> None:
        """
        GIVEN the source serves a PEM or DER CRL
        WHEN fetch streams it in 16-byte chunks
        THEN the sink holds the exact body and the payload carries its SHA-256.
        """
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=body))

        payload = ResultAssertions.assert_success(fetcher.fetch(spec, sink))

        assert sink.getvalue() == body
        assert payload.bytes_written == len(body)
        assert payload.digest == hashlib.sha256(body).digest()

    @respx.mock
    def test_sends_connection_close(self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec) -> None:
        route = respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=PEM_CRL))

        fetcher.fetch(spec, sink)

        assert route.call_count == 1
        assert route.calls.last.request.headers["Connection"] == "close"

    @respx.mock
    def test_follows_redirects(self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec) -> None:
        respx.get(CRL_URL).mock(
            return_value=httpx.Response(302, headers={"Location": "http://mirror.example.com/root.crl"})
        )
        respx.get("http://mirror.example.com/root.crl").mock(
            return_value=httpx.Response(200, content=DER_CRL)
        )

        ResultAssertions.assert_success(fetcher.fetch(spec, sink))

        assert sink.getvalue() == DER_CRL

    @respx.mock
    def test_body_of_exactly_the_limit_is_accepted(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, destination: Path
    ) -> None:
        spec = make_spec(destination, size_limit=len(DER_CRL))
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=DER_CRL))

        payload = ResultAssertions.assert_success(fetcher.fetch(spec, sink))

        assert payload.bytes_written == len(DER_CRL)


# ─────────────────────── Format ───────────────────────


class TestFetchFormat:
    @respx.mock
    def test_garbage_is_rejected_before_writing(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec
    ) -> None:
        """
        GIVEN the source serves a body that is neither PEM nor DER
        WHEN fetch sniffs the first 24 bytes
        THEN it fails with FORMAT_ERROR and the sink stays empty.
        """
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=GARBAGE))

        result = fetcher.fetch(spec, sink)

        ResultAssertions.assert_failure(result, ErrorCode.FORMAT_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "not a DER or PEM encoded CRL")
        assert sink.getvalue() == b""

    @respx.mock
    @pytest.mark.parametrize("body", [b"", b"\x30\x82\x01"], ids=["empty", "short"])
    def test_body_shorter_than_head_is_rejected(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec, body: bytes
    ) -> None:
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=body))

        ResultAssertions.assert_failure(fetcher.fetch(spec, sink), ErrorCode.FORMAT_ERROR)


# ─────────────────────── Size ───────────────────────


class TestFetchSizeLimit:
    @respx.mock
    def test_oversized_body_fails(self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec) -> None:
        """
        GIVEN a valid PEM prefix followed by more bytes than the 1024-byte limit
        WHEN fetch streams it
        THEN it fails with SIZE_LIMIT_EXCEEDED without writing past the limit.
        """
        body = PEM_CRL + b"A" * 2048
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=body))

        result = fetcher.fetch(spec, sink)

        ResultAssertions.assert_failure(result, ErrorCode.SIZE_LIMIT_EXCEEDED)
        assert result.error().message == "input stream too large (limit 1024 bytes)"
        assert len(sink.getvalue()) <= 1024

    @respx.mock
    def test_limit_applies_in_force_mode(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, destination: Path
    ) -> None:
        spec = make_spec(destination, force=True, size_limit=100)
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=GARBAGE * 10))

        ResultAssertions.assert_failure(fetcher.fetch(spec, sink), ErrorCode.SIZE_LIMIT_EXCEEDED)


# ─────────────────────── Force ───────────────────────


class TestFetchForce:
    @respx.mock
    def test_force_skips_sniff_and_digest(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, destination: Path
    ) -> None:
        """
        GIVEN a forced job and a body that would fail the sniff
        WHEN fetch runs
        THEN the body is copied as-is and no digest is computed.
        """
        spec = make_spec(destination, force=True)
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=GARBAGE))

        payload = ResultAssertions.assert_success(fetcher.fetch(spec, sink))

        assert sink.getvalue() == GARBAGE
        assert payload.digest is None
        assert payload.bytes_written == len(GARBAGE)


# ─────────────────────── Network ───────────────────────


class TestFetchNetworkErrors:
    @respx.mock
    @pytest.mark.parametrize("status", [404, 500, 503])
    def test_non_2xx_status(
        self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec, status: int
    ) -> None:
        respx.get(CRL_URL).mock(return_value=httpx.Response(status, content=PEM_CRL))

        result = fetcher.fetch(spec, sink)

        ResultAssertions.assert_failure(result, ErrorCode.NETWORK_ERROR)
        ResultAssertions.assert_failure_message_contains(result, f"status {status}")
        assert sink.getvalue() == b""

    @respx.mock
    def test_connection_refused(self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec) -> None:
        respx.get(CRL_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        result = fetcher.fetch(spec, sink)

        ResultAssertions.assert_failure(result, ErrorCode.NETWORK_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "http request failed")

    @respx.mock
    def test_timeout(self, fetcher: HttpCrlFetcher, sink: io.BytesIO, spec: JobSpec) -> None:
        respx.get(CRL_URL).mock(side_effect=httpx.ConnectTimeout("timed out"))

        result = fetcher.fetch(spec, sink)

        ResultAssertions.assert_failure(result, ErrorCode.NETWORK_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "timed out")

    @respx.mock
    def test_overall_deadline_bounds_a_slow_body(self, sink: io.BytesIO, spec: JobSpec) -> None:
        """
        GIVEN a clock that advances 100s between reads and a 5s job timeout
        WHEN the body is still streaming after the deadline
        THEN fetch fails with NETWORK_ERROR instead of waiting for the rest.
        """
        clock = itertools.count(0.0, 100.0).__next__
        fetcher = HttpCrlFetcher(chunk_size=16, clock=clock)
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=PEM_CRL))

        result = fetcher.fetch(spec, sink)

        ResultAssertions.assert_failure(result, ErrorCode.NETWORK_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "timed out")

    @respx.mock
    def test_slow_sink_does_not_count_against_timeout(self, spec: JobSpec) -> None:
        """
        GIVEN instant network reads and a sink that takes 100s per write
        WHEN the body is streamed under a 5s job timeout
        THEN the download succeeds, since only network waits are timed.
        """
        now = [0.0]

        class SlowDisk(io.BytesIO):
            def write(self, chunk: bytes, /) -> int:
                now[0] += 100.0
                return super().write(chunk)

        sink = SlowDisk()
        fetcher = HttpCrlFetcher(chunk_size=16, clock=lambda: now[0])
        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=PEM_CRL))

        ResultAssertions.assert_success(fetcher.fetch(spec, sink))

        assert sink.getvalue() == PEM_CRL
        assert now[0] > spec.timeout


class TestSinkErrors:
    @respx.mock
    def test_sink_write_failure_is_replace_error(self, fetcher: HttpCrlFetcher, spec: JobSpec) -> None:
        class FullDisk:
            def write(self, chunk: bytes, /) -> int:
                raise OSError(28, "No space left on device")

        respx.get(CRL_URL).mock(return_value=httpx.Response(200, content=PEM_CRL))

        result = fetcher.fetch(spec, FullDisk())

        ResultAssertions.assert_failure(result, ErrorCode.REPLACE_ERROR)
