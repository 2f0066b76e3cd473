"""Dense statevector simulation for small circuits.

Qubit ``k`` is bit ``k`` of a basis-state index (little-endian), and
classical bitstrings are written ``c[m-1] ... c[0]`` so the leftmost
character is the highest classical bit.
"""

from __future__ import annotations

import numpy as np

from .circuit import Circuit
from .config import get_settings
from .exceptions import UnsupportedGateError
from .gates import gate_matrix


def _check_size(circuit: Circuit) -> None:
    limit = get_settings().max_simulation_qubits
    if circuit.num_qubits > limit:
        raise ValueError(
            f"Cannot simulate {circuit.num_qubits} qubits; the limit is {limit} "
            f"(see qcopt.configure(max_simulation_qubits=...))"
        )


def _apply(tensor: np.ndarray, matrix: np.ndarray, qubits, n: int) -> np.ndarray:
    """Apply a k-qubit *matrix* to *tensor* shaped ``(2,)*n + batch``."""
    k = len(qubits)
    gate = matrix.reshape((2,) * (2 * k))
    # Matrix axes run from the last listed qubit to the first; state axes
    # run from qubit n-1 down to qubit 0.
    state_axes = [n - 1 - q for q in reversed(qubits)]
    out = np.tensordot(gate, tensor, axes=(list(range(k, 2 * k)), state_axes))
    return np.moveaxis(out, list(range(k)), state_axes)


def _evolve(circuit: Circuit, tensor: np.ndarray) -> np.ndarray:
    n = circuit.num_qubits
    touched: set[int] = set()
    for gate in circuit.gates:
        if gate.name == "reset":
            if gate.qubits[0] in touched:
                raise UnsupportedGateError(
                    "reset", "mid-circuit reset cannot be simulated on a pure state"
                )
            continue
        tensor = _apply(tensor, gate_matrix(gate.name, gate.params), gate.qubits, n)
        touched.update(gate.qubits)
    return tensor


def simulate_statevector(circuit: Circuit) -> np.ndarray:
    """Final state of *circuit* applied to ``|0...0>``."""
    _check_size(circuit)
    n = circuit.num_qubits
    state = np.zeros(2**n, dtype=complex)
    state[0] = 1.0
    return _evolve(circuit, state.reshape((2,) * n)).reshape(2**n)


def circuit_unitary(circuit: Circuit) -> np.ndarray:
    """Unitary matrix implemented by the gates of *circuit*."""
    _check_size(circuit)
    n = circuit.num_qubits
    dim = 2**n
    identity = np.eye(dim, dtype=complex).reshape((2,) * n + (dim,))
    return _evolve(circuit, identity).reshape(dim, dim)


def measurement_probabilities(circuit: Circuit) -> np.ndarray:
    """Probability of each classical register value.

    A circuit without measurements is read out as if every qubit ``k``
    were measured into classical bit ``k``.
    """
    probs = np.abs(simulate_statevector(circuit)) ** 2
    n = circuit.num_qubits
    if circuit.measurements:
        measurements, m = circuit.measurements, circuit.num_clbits
    else:
        measurements, m = tuple((q, q) for q in range(n)), n

    indices = np.arange(2**n)
    values = np.zeros(2**n, dtype=np.int64)
    for qubit, clbit in measurements:
        bit = (indices >> qubit) & 1
        values = (values & ~(1 << clbit)) | (bit << clbit)
    return np.bincount(values, weights=probs, minlength=2**m)


def measurement_distribution(circuit: Circuit, atol: float = 1e-12) -> dict[str, float]:
    """Non-negligible outcome probabilities keyed by classical bitstring."""
    probs = measurement_probabilities(circuit)
    width = max(int(probs.size).bit_length() - 1, 1)
    return {
        format(i, f"0{width}b"): float(p)
        for i, p in enumerate(probs)
        if p > atol
    }
