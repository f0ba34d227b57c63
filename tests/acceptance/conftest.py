"""
Acceptance test fixtures — a fully wired job against a mocked HTTP source.

Each scenario gets a fresh metrics registry and a job runner built with the
same composition as production (build_runners), writing into tmp_path.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from crl_updater.adapters.metrics import PrometheusMetricsSink
from crl_updater.adapters.ownership import NullOwnership
from crl_updater.main import build_runners
from crl_updater.runner import JobRunner
from tests.conftest import make_spec


@pytest.fixture()
def metrics() -> PrometheusMetricsSink:
    return PrometheusMetricsSink()


@pytest.fixture()
def job_runner(destination: Path, metrics: PrometheusMetricsSink) -> Callable[..., JobRunner]:
    """Factory: JobRunner for destination with spec overrides (force, size_limit, ...)."""

    def _build(**overrides: object) -> JobRunner:
        [runner] = build_runners([make_spec(destination, **overrides)], metrics, NullOwnership())
        return runner

    return _build
