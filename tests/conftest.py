"""
Shared test fixtures and helpers for the crl-updater test suite.

Provides synthetic CRL bodies (PEM and DER shaped) and a JobSpec factory
pointing at a pytest tmp_path destination.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from crl_updater.domain.models import X509_CRL_PEM_HEADER, JobSpec

CRL_URL = "http://crl.example.com/root.crl"

PEM_CRL = (
    X509_CRL_PEM_HEADER
    + b"\nMIIBpzCBkAIBATANBgkqhkiG9w0BAQsFADAUMRIwEAYDVQQDDAlUZXN0IFJvb3QX\n"
    + b"-----END X509 CRL-----\n"
)
"""Body whose first 24 bytes are the PEM header; contents past it are not parsed."""

DER_CRL = b"\x30\x82\x01\xa7" + bytes(range(256)) + bytes(167)
"""SEQUENCE with a two-octet length: passes the DER sniff."""

GARBAGE = b"GARBAGE" + b"x" * 40


def make_spec(destination: Path, **overrides: object) -> JobSpec:
    """JobSpec for CRL_URL with small test-friendly defaults."""
    fields: dict[str, object] = {
        "job_id": 1,
        "url": CRL_URL,
        "destination": destination,
        "size_limit": 1024,
        "timeout": 5.0,
    }
    fields.update(overrides)
    return JobSpec(**fields)  # type: ignore[arg-type]


@pytest.fixture()
def destination(tmp_path: Path) -> Path:
    """Destination path inside an isolated temporary directory (not created)."""
    return tmp_path / "root.crl"


@pytest.fixture()
def spec(destination: Path) -> JobSpec:
    return make_spec(destination)
