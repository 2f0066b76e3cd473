"""Gate vocabulary, signatures and unitary matrices.

Every gate mnemonic the package understands is listed in ``GATE_SPECS``
together with its qubit and parameter arity.  Matrices are little-endian
in the gate's own qubit order: the first qubit listed on a gate is the
least significant bit of the matrix index.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from .exceptions import UnsupportedGateError


@dataclass(frozen=True)
class GateSpec:
    """Signature of one gate type."""

    name: str
    num_qubits: int
    num_params: int = 0
    inverse: str | None = None  # name of the parameter-free inverse gate
    symmetric: bool = False  # qubit order does not matter

    @property
    def self_inverse(self) -> bool:
        return self.inverse == self.name


_SPECS = [
    # Single-qubit, fixed
    GateSpec("id", 1, inverse="id"),
    GateSpec("h", 1, inverse="h"),
    GateSpec("x", 1, inverse="x"),
    GateSpec("y", 1, inverse="y"),
    GateSpec("z", 1, inverse="z"),
    GateSpec("s", 1, inverse="sdg"),
    GateSpec("sdg", 1, inverse="s"),
    GateSpec("t", 1, inverse="tdg"),
    GateSpec("tdg", 1, inverse="t"),
    GateSpec("sx", 1, inverse="sxdg"),
    GateSpec("sxdg", 1, inverse="sx"),
    GateSpec("reset", 1),
    # Single-qubit, parametric
    GateSpec("rx", 1, 1),
    GateSpec("ry", 1, 1),
    GateSpec("rz", 1, 1),
    GateSpec("u1", 1, 1),
    GateSpec("p", 1, 1),
    GateSpec("u2", 1, 2),
    GateSpec("u3", 1, 3),
    # Two-qubit
    GateSpec("cx", 2, inverse="cx"),
    GateSpec("cy", 2, inverse="cy"),
    GateSpec("cz", 2, inverse="cz", symmetric=True),
    GateSpec("ch", 2, inverse="ch"),
    GateSpec("swap", 2, inverse="swap", symmetric=True),
    GateSpec("crx", 2, 1),
    GateSpec("cry", 2, 1),
    GateSpec("crz", 2, 1),
    GateSpec("cp", 2, 1, symmetric=True),
    GateSpec("cu1", 2, 1, symmetric=True),
    GateSpec("rzz", 2, 1, symmetric=True),
    # Three-qubit
    GateSpec("ccx", 3, inverse="ccx"),
    GateSpec("cswap", 3, inverse="cswap"),
]

GATE_SPECS: dict[str, GateSpec] = {spec.name: spec for spec in _SPECS}

#: Single-qubit rotations that gate merging may compose.
ROTATION_GATES = frozenset({"rx", "ry", "rz", "u1", "p", "u2", "u3"})

#: Operations that are not unitary and are accepted by every backend.
NON_UNITARY_GATES = frozenset({"reset"})


def gate_spec(name: str) -> GateSpec:
    """Look up the signature of *name*.

    Raises:
        UnsupportedGateError: If *name* is not part of the gate vocabulary.
    """
    try:
        return GATE_SPECS[name]
    except KeyError:
        raise UnsupportedGateError(name, "not in the gate vocabulary") from None


# ---------------------------------------------------------------------------
# Matrices
# ---------------------------------------------------------------------------

_SQ2 = 1.0 / math.sqrt(2.0)


def rx_matrix(theta: float) -> np.ndarray:
    c, s = math.cos(theta / 2), math.sin(theta / 2)
    return np.array([[c, -1j * s], [-1j * s, c]], dtype=complex)


def ry_matrix(theta: float) -> np.ndarray:
    c, s = math.cos(theta / 2), math.sin(theta / 2)
    return np.array([[c, -s], [s, c]], dtype=complex)


def rz_matrix(theta: float) -> np.ndarray:
    return np.diag([np.exp(-0.5j * theta), np.exp(0.5j * theta)])


def phase_matrix(lam: float) -> np.ndarray:
    return np.diag([1.0, np.exp(1j * lam)])


def u3_matrix(theta: float, phi: float, lam: float) -> np.ndarray:
    """Generic single-qubit rotation ``Rz(phi) Ry(theta) Rz(lam)`` up to phase."""
    c, s = math.cos(theta / 2), math.sin(theta / 2)
    return np.array(
        [
            [c, -np.exp(1j * lam) * s],
            [np.exp(1j * phi) * s, np.exp(1j * (phi + lam)) * c],
        ],
        dtype=complex,
    )


def _controlled(u: np.ndarray) -> np.ndarray:
    m = np.eye(4, dtype=complex)
    m[np.ix_([1, 3], [1, 3])] = u
    return m


def _permutation(dim: int, a: int, b: int) -> np.ndarray:
    m = np.eye(dim, dtype=complex)
    m[[a, b]] = m[[b, a]]
    return m


_FIXED = {
    "id": np.eye(2, dtype=complex),
    "h": np.array([[_SQ2, _SQ2], [_SQ2, -_SQ2]], dtype=complex),
    "x": np.array([[0, 1], [1, 0]], dtype=complex),
    "y": np.array([[0, -1j], [1j, 0]], dtype=complex),
    "z": np.diag([1.0, -1.0]).astype(complex),
    "s": np.diag([1.0, 1j]),
    "sdg": np.diag([1.0, -1j]),
    "t": phase_matrix(math.pi / 4),
    "tdg": phase_matrix(-math.pi / 4),
    "sx": 0.5 * np.array([[1 + 1j, 1 - 1j], [1 - 1j, 1 + 1j]], dtype=complex),
    "sxdg": 0.5 * np.array([[1 - 1j, 1 + 1j], [1 + 1j, 1 - 1j]], dtype=complex),
}
_FIXED.update(
    {
        "cx": _permutation(4, 1, 3),
        "cy": _controlled(_FIXED["y"]),
        "cz": np.diag([1.0, 1.0, 1.0, -1.0]).astype(complex),
        "ch": _controlled(_FIXED["h"]),
        "swap": _permutation(4, 1, 2),
        "ccx": _permutation(8, 3, 7),
        "cswap": _permutation(8, 3, 5),
    }
)


def _rzz(theta: float) -> np.ndarray:
    a, b = np.exp(-0.5j * theta), np.exp(0.5j * theta)
    return np.diag([a, b, b, a])


_PARAMETRIC = {
    "rx": lambda p: rx_matrix(p[0]),
    "ry": lambda p: ry_matrix(p[0]),
    "rz": lambda p: rz_matrix(p[0]),
    "u1": lambda p: phase_matrix(p[0]),
    "p": lambda p: phase_matrix(p[0]),
    "u2": lambda p: u3_matrix(math.pi / 2, p[0], p[1]),
    "u3": lambda p: u3_matrix(p[0], p[1], p[2]),
    "crx": lambda p: _controlled(rx_matrix(p[0])),
    "cry": lambda p: _controlled(ry_matrix(p[0])),
    "crz": lambda p: _controlled(rz_matrix(p[0])),
    "cp": lambda p: _controlled(phase_matrix(p[0])),
    "cu1": lambda p: _controlled(phase_matrix(p[0])),
    "rzz": lambda p: _rzz(p[0]),
}


def gate_matrix(name: str, params=()) -> np.ndarray:
    """Unitary matrix of gate *name* with the given *params*."""
    spec = gate_spec(name)
    if name in NON_UNITARY_GATES:
        raise UnsupportedGateError(name, "operation has no unitary matrix")
    if len(params) != spec.num_params:
        raise ValueError(
            f"Gate '{name}' takes {spec.num_params} parameter(s), got {len(params)}"
        )
    if name in _FIXED:
        return _FIXED[name].copy()
    return _PARAMETRIC[name](tuple(float(v) for v in params))


# ---------------------------------------------------------------------------
# Decomposition helpers
# ---------------------------------------------------------------------------


def wrap_angle(angle: float) -> float:
    """Map *angle* into ``[-pi, pi)``."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


def zyz_angles(u: np.ndarray, atol: float = 1e-12) -> tuple[float, float, float]:
    """Decompose a 2x2 unitary into ``u3`` angles ``(theta, phi, lam)``.

    The result satisfies ``u == exp(i*alpha) * u3_matrix(theta, phi, lam)``
    for some global phase ``alpha``.
    """
    a, c = abs(u[0, 0]), abs(u[1, 0])
    theta = 2.0 * math.atan2(c, a)
    if a > atol and c > atol:
        ref = np.angle(u[0, 0])
        phi = np.angle(u[1, 0]) - ref
        lam = np.angle(-u[0, 1]) - ref
    elif c <= atol:
        phi = 0.0
        lam = np.angle(u[1, 1]) - np.angle(u[0, 0])
    else:
        lam = 0.0
        phi = np.angle(u[1, 0]) - np.angle(-u[0, 1])
    return theta, wrap_angle(float(phi)), wrap_angle(float(lam))


def equal_up_to_phase(a: np.ndarray, b: np.ndarray, atol: float = 1e-9) -> bool:
    """True when unitaries *a* and *b* differ only by a global phase."""
    overlap = abs(np.trace(a.conj().T @ b)) / a.shape[0]
    return bool(abs(overlap - 1.0) < atol)


def is_identity(u: np.ndarray, atol: float = 1e-9) -> bool:
    return equal_up_to_phase(u, np.eye(u.shape[0], dtype=complex), atol)
