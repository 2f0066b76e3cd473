"""Shared fixtures."""

import pytest

from qcopt.circuit import Circuit
from qcopt.config import DEFAULT_PROVIDER_ENV, reset_settings


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Every test starts from the built-in settings."""
    monkeypatch.delenv(DEFAULT_PROVIDER_ENV, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def bell() -> Circuit:
    return Circuit.from_gates(2, [("h", [0]), ("cx", [0, 1])], measure_all=True, name="bell")
