"""Package-wide settings.

Settings live in module state and are changed with :func:`configure`.
The default provider profile can also be chosen with the
``QCOPT_DEFAULT_PROVIDER`` environment variable; an explicit
``configure(default_provider=...)`` call takes precedence.

Example:
    >>> import qcopt
    >>> qcopt.configure(default_provider="ibm-condor", max_simulation_qubits=12)
    >>> qcopt.get_settings().default_provider
    'ibm-condor'
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_ENV = "QCOPT_DEFAULT_PROVIDER"
FALLBACK_PROVIDER = "generic"
DEFAULT_PASSES = (
    "gate_cancellation",
    "gate_merging",
    "transpilation",
    "gate_cancellation",
)


@dataclass(frozen=True)
class Settings:
    """Snapshot of the active configuration."""

    default_provider: str
    max_simulation_qubits: int
    default_passes: tuple[str, ...]


# Module-level state
_default_provider: str | None = None
_max_simulation_qubits: int = 16
_default_passes: tuple[str, ...] = DEFAULT_PASSES


def _check_provider(provider_id: str) -> None:
    from .providers import PROVIDERS

    if provider_id not in PROVIDERS:
        raise ConfigurationError(
            f"Unknown provider '{provider_id}'. Known providers: {sorted(PROVIDERS)}"
        )


def _check_passes(passes) -> tuple[str, ...]:
    from .optimizer import PASSES

    passes = tuple(passes)
    unknown = [p for p in passes if p not in PASSES]
    if unknown:
        raise ConfigurationError(
            f"Unknown optimization pass(es) {unknown}. Known passes: {sorted(PASSES)}"
        )
    return passes


def configure(
    default_provider: str | None = None,
    max_simulation_qubits: int | None = None,
    default_passes: list[str] | tuple[str, ...] | None = None,
) -> None:
    """Update package settings.

    Args:
        default_provider: Profile returned for unrecognized provider ids.
                          Can also be set via QCOPT_DEFAULT_PROVIDER.
        max_simulation_qubits: Largest circuit the statevector simulator
                               will accept.
        default_passes: Pass pipeline used when ``optimize`` is called
                        without explicit passes.

    Raises:
        ConfigurationError: If a provider or pass name is unknown.
    """
    global _default_provider, _max_simulation_qubits, _default_passes

    if default_provider is not None:
        _check_provider(default_provider)
        _default_provider = default_provider
    if max_simulation_qubits is not None:
        if max_simulation_qubits < 1:
            raise ConfigurationError(
                f"max_simulation_qubits must be >= 1, got {max_simulation_qubits}"
            )
        _max_simulation_qubits = max_simulation_qubits
    if default_passes is not None:
        _default_passes = _check_passes(default_passes)


def get_settings() -> Settings:
    """Return the active settings."""
    provider = _default_provider
    if provider is None:
        env = os.environ.get(DEFAULT_PROVIDER_ENV)
        if env:
            _check_provider(env)
            provider = env
        else:
            provider = FALLBACK_PROVIDER
    return Settings(
        default_provider=provider,
        max_simulation_qubits=_max_simulation_qubits,
        default_passes=_default_passes,
    )


def reset_settings() -> None:
    """Restore the built-in defaults."""
    global _default_provider, _max_simulation_qubits, _default_passes

    _default_provider = None
    _max_simulation_qubits = 16
    _default_passes = DEFAULT_PASSES
    logger.debug("Settings reset to defaults")
