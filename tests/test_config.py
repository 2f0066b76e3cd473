"""Tests for package settings."""

import pytest

from qcopt.config import (
    DEFAULT_PASSES,
    DEFAULT_PROVIDER_ENV,
    configure,
    get_settings,
    reset_settings,
)
from qcopt.exceptions import ConfigurationError


class TestSettings:
    def test_defaults(self):
        settings = get_settings()
        assert settings.default_provider == "generic"
        assert settings.max_simulation_qubits == 16
        assert settings.default_passes == DEFAULT_PASSES

    def test_configure_and_reset(self):
        configure(default_provider="ibm-condor", max_simulation_qubits=4)
        assert get_settings().default_provider == "ibm-condor"
        assert get_settings().max_simulation_qubits == 4
        reset_settings()
        assert get_settings().default_provider == "generic"

    def test_unknown_provider_rejected(self):
        with pytest.raises(ConfigurationError, match="Unknown provider"):
            configure(default_provider="acme")

    def test_unknown_pass_rejected(self):
        with pytest.raises(ConfigurationError, match="teleportation"):
            configure(default_passes=["gate_cancellation", "teleportation"])

    def test_simulation_limit_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            configure(max_simulation_qubits=0)

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv(DEFAULT_PROVIDER_ENV, "google-willow")
        assert get_settings().default_provider == "google-willow"

    def test_explicit_value_beats_environment(self, monkeypatch):
        monkeypatch.setenv(DEFAULT_PROVIDER_ENV, "google-willow")
        configure(default_provider="amazon-braket")
        assert get_settings().default_provider == "amazon-braket"

    def test_bad_environment_value(self, monkeypatch):
        monkeypatch.setenv(DEFAULT_PROVIDER_ENV, "acme")
        with pytest.raises(ConfigurationError):
            get_settings()
