"""Circuit intermediate representation.

A :class:`Circuit` is an immutable value: a qubit count, an ordered tuple
of :class:`Gate` records, and the terminal measurements mapping qubits to
classical bits.  Gate signatures are checked when a gate is constructed,
so a circuit can never hold a ``cx`` with one qubit or an ``rx`` without
an angle.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field, replace
from numbers import Integral
from typing import Any, Iterable

from .exceptions import CircuitError
from .gates import gate_spec


def _qubit_index(gate: str, q: Any) -> int:
    if isinstance(q, bool) or not isinstance(q, Integral):
        raise CircuitError(f"Gate '{gate}' has a non-integer qubit index {q!r}")
    return int(q)


@dataclass(frozen=True)
class Gate:
    """A single gate application."""

    name: str
    qubits: tuple[int, ...]
    params: tuple[float, ...] = ()

    def __post_init__(self) -> None:
        spec = gate_spec(self.name)
        qubits = tuple(_qubit_index(self.name, q) for q in self.qubits)
        params = tuple(float(p) for p in self.params)
        if not all(math.isfinite(p) for p in params):
            raise CircuitError(f"Gate '{self.name}' has a non-finite parameter: {params}")
        if len(qubits) != spec.num_qubits:
            raise CircuitError(
                f"Gate '{self.name}' acts on {spec.num_qubits} qubit(s), "
                f"got {len(qubits)}"
            )
        if len(params) != spec.num_params:
            raise CircuitError(
                f"Gate '{self.name}' takes {spec.num_params} parameter(s), "
                f"got {len(params)}"
            )
        if any(q < 0 for q in qubits):
            raise CircuitError(f"Gate '{self.name}' has a negative qubit index")
        if len(set(qubits)) != len(qubits):
            raise CircuitError(f"Gate '{self.name}' repeats a qubit: {qubits}")
        object.__setattr__(self, "qubits", qubits)
        object.__setattr__(self, "params", params)

    @property
    def num_qubits(self) -> int:
        return len(self.qubits)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.name, "qubits": list(self.qubits)}
        if self.params:
            d["params"] = list(self.params)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Gate:
        return cls(data["type"], data["qubits"], data.get("params") or ())

    def __str__(self) -> str:
        args = ",".join(f"q[{q}]" for q in self.qubits)
        if self.params:
            return f"{self.name}({', '.join(repr(p) for p in self.params)}) {args}"
        return f"{self.name} {args}"


@dataclass(frozen=True)
class Circuit:
    """Quantum circuit over ``num_qubits`` qubits.

    Attributes:
        num_qubits: Size of the quantum register (at least 1).
        gates: Gates in program order.
        num_clbits: Size of the classical register.
        measurements: ``(qubit, clbit)`` pairs, applied after all gates.
        name: Display name; ignored by equality.
        metadata: Free-form annotations; ignored by equality.
    """

    num_qubits: int
    gates: tuple[Gate, ...] = ()
    num_clbits: int = 0
    measurements: tuple[tuple[int, int], ...] = ()
    name: str = field(default="circuit", compare=False)
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if self.num_qubits < 1:
            raise CircuitError(f"num_qubits must be >= 1, got {self.num_qubits}")
        if self.num_clbits < 0:
            raise CircuitError(f"num_clbits must be >= 0, got {self.num_clbits}")
        gates = tuple(self.gates)
        for gate in gates:
            if not isinstance(gate, Gate):
                raise CircuitError(f"Expected Gate, got {type(gate).__name__}")
            if max(gate.qubits) >= self.num_qubits:
                raise CircuitError(
                    f"Gate '{gate}' uses qubit {max(gate.qubits)} but the circuit "
                    f"has {self.num_qubits} qubit(s)"
                )
        measurements = tuple((int(q), int(c)) for q, c in self.measurements)
        for qubit, clbit in measurements:
            if not 0 <= qubit < self.num_qubits:
                raise CircuitError(f"Measurement of qubit {qubit} is out of range")
            if not 0 <= clbit < self.num_clbits:
                raise CircuitError(f"Measurement into clbit {clbit} is out of range")
        object.__setattr__(self, "gates", gates)
        object.__setattr__(self, "measurements", measurements)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_gates(
        cls,
        num_qubits: int,
        gates: Iterable[Gate | tuple],
        *,
        measure_all: bool = False,
        name: str = "circuit",
    ) -> Circuit:
        """Build a circuit from gates or ``(name, qubits[, params])`` tuples.

        Example:
            >>> Circuit.from_gates(2, [("h", [0]), ("cx", [0, 1])], measure_all=True)
        """
        built = tuple(g if isinstance(g, Gate) else Gate(*g) for g in gates)
        if measure_all:
            return cls(
                num_qubits,
                built,
                num_clbits=num_qubits,
                measurements=tuple((q, q) for q in range(num_qubits)),
                name=name,
            )
        return cls(num_qubits, built, name=name)

    def with_gates(self, gates: Iterable[Gate]) -> Circuit:
        """Copy of this circuit with a different gate list."""
        return replace(self, gates=tuple(gates), metadata=dict(self.metadata))

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------

    @property
    def gate_count(self) -> int:
        return len(self.gates)

    @property
    def depth(self) -> int:
        """Length of the longest per-qubit gate timeline."""
        level = [0] * self.num_qubits
        for gate in self.gates:
            layer = max(level[q] for q in gate.qubits) + 1
            for q in gate.qubits:
                level[q] = layer
        return max(level)

    def layers(self) -> list[list[Gate]]:
        """ASAP layering: each layer holds gates on disjoint qubits."""
        level = [0] * self.num_qubits
        layers: list[list[Gate]] = []
        for gate in self.gates:
            layer = max(level[q] for q in gate.qubits)
            for q in gate.qubits:
                level[q] = layer + 1
            if layer == len(layers):
                layers.append([])
            layers[layer].append(gate)
        return layers

    def count_ops(self) -> dict[str, int]:
        return dict(Counter(g.name for g in self.gates))

    @property
    def two_qubit_gate_count(self) -> int:
        return sum(1 for g in self.gates if g.num_qubits == 2)

    @property
    def multi_qubit_gate_count(self) -> int:
        return sum(1 for g in self.gates if g.num_qubits > 1)

    @property
    def used_qubits(self) -> set[int]:
        used = {q for g in self.gates for q in g.qubits}
        used.update(q for q, _ in self.measurements)
        return used

    @property
    def measured_qubits(self) -> list[int]:
        return sorted({q for q, _ in self.measurements})

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable representation."""
        return {
            "name": self.name,
            "qubits": self.num_qubits,
            "clbits": self.num_clbits,
            "gates": [g.to_dict() for g in self.gates],
            "measurements": [list(m) for m in self.measurements],
            "depth": self.depth,
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Circuit:
        return cls(
            num_qubits=data["qubits"],
            gates=tuple(Gate.from_dict(g) for g in data.get("gates", [])),
            num_clbits=data.get("clbits", 0),
            measurements=tuple(tuple(m) for m in data.get("measurements", [])),
            name=data.get("name", "circuit"),
            metadata=dict(data.get("metadata", {})),
        )

    def to_qasm(self) -> str:
        """Emit OpenQASM 2.0 source for this circuit."""
        from .qasm import circuit_to_qasm

        return circuit_to_qasm(self)

    def __repr__(self) -> str:
        return (
            f"Circuit({self.name!r}, num_qubits={self.num_qubits}, "
            f"gates={self.gate_count}, depth={self.depth})"
        )

