"""Error hierarchy for qcopt."""

from __future__ import annotations


class QcoptError(Exception):
    """Base exception for all qcopt errors."""


class ParseError(QcoptError):
    """OpenQASM source is malformed or uses unsupported constructs."""

    def __init__(self, message: str, line: int | None = None) -> None:
        self.message = message
        self.line = line
        if line is not None:
            super().__init__(f"line {line}: {message}")
        else:
            super().__init__(message)


class UnsupportedGateError(QcoptError):
    """A gate is unknown or has no decomposition into the target gate set."""

    def __init__(self, gate: str, detail: str = "") -> None:
        self.gate = gate
        self.detail = detail
        msg = f"Unsupported gate '{gate}'"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class ValidationError(QcoptError):
    """Template parameters violate their declared constraints."""

    def __init__(self, errors: list) -> None:
        self.errors = list(errors)
        joined = "; ".join(str(e) for e in self.errors)
        super().__init__(f"Invalid parameters: {joined}")


class ConfigurationError(QcoptError):
    """Unknown pass, template or provider requested where no fallback exists."""


class CircuitError(QcoptError, ValueError):
    """A gate or circuit violates its structural invariants."""
