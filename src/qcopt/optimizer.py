"""Circuit optimization passes.

Three rewrite passes operate on per-qubit gate timelines:

  1. Gate cancellation  -- adjacent inverse pairs on the same qubits vanish
  2. Rotation merging   -- runs of single-qubit rotations compose into one
  3. Transpilation      -- non-native gates are rewritten into the
                           provider's native gate set

Every pass is a pure ``Circuit -> Circuit`` function.  :func:`optimize`
runs a pipeline of passes against a provider profile and reports the
impact of each step.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence

import numpy as np

from .circuit import Circuit, Gate
from .config import get_settings
from .exceptions import ConfigurationError, UnsupportedGateError
from .gates import (
    ROTATION_GATES,
    gate_matrix,
    gate_spec,
    is_identity,
    wrap_angle,
    zyz_angles,
)
from .noise import NoiseModeler
from .providers import ProviderConstraints, ProviderLike, get_provider_constraints

logger = logging.getLogger(__name__)

_PI = math.pi
_HALF_PI = math.pi / 2
_ANGLE_ATOL = 1e-10


# ---------------------------------------------------------------------------
# Gate cancellation
# ---------------------------------------------------------------------------


def _cancels(first: Gate, second: Gate) -> bool:
    spec = gate_spec(first.name)
    if spec.inverse != second.name or first.params or second.params:
        return False
    if spec.symmetric:
        return set(first.qubits) == set(second.qubits)
    return first.qubits == second.qubits


def cancel_gates(circuit: Circuit) -> Circuit:
    """Remove adjacent inverse gate pairs.

    Two gates are adjacent when no other gate touches any of their qubits
    in between; gates on unrelated qubits may sit between them in the
    flat gate list.  Cancellation cascades, so ``x h h x`` disappears
    entirely, and the result admits no further cancellation.
    """
    kept: list[Gate | None] = []
    timelines: list[list[int]] = [[] for _ in range(circuit.num_qubits)]

    for gate in circuit.gates:
        if gate.name == "id":
            continue
        tops = {timelines[q][-1] if timelines[q] else None for q in gate.qubits}
        if len(tops) == 1:
            (j,) = tops
            if j is not None and _cancels(kept[j], gate):
                kept[j] = None
                for q in gate.qubits:
                    timelines[q].pop()
                continue
        kept.append(gate)
        for q in gate.qubits:
            timelines[q].append(len(kept) - 1)

    return circuit.with_gates(g for g in kept if g is not None)


# ---------------------------------------------------------------------------
# Rotation merging
# ---------------------------------------------------------------------------

_DIAGONAL = frozenset({"rz", "u1", "p"})


def _nonzero(angle: float) -> bool:
    return abs(wrap_angle(angle)) > _ANGLE_ATOL


def _merge_candidates(run: list[Gate], unitary: np.ndarray) -> list[list[Gate]]:
    q = run[0].qubits
    names = {g.name for g in run}
    total = sum(g.params[0] for g in run if g.params and len(g.params) == 1)

    if names <= _DIAGONAL:
        name = names.pop() if len(names) == 1 else "rz"
        return [[Gate(name, q, (wrap_angle(total),))]]
    if names in ({"rx"}, {"ry"}):
        return [[Gate(names.pop(), q, (wrap_angle(total),))]]

    theta, phi, lam = zyz_angles(unitary)
    candidates = [[Gate("u3", q, (theta, phi, lam))]]
    if abs(theta) <= _ANGLE_ATOL:
        candidates.append([Gate("rz", q, (wrap_angle(phi + lam),))])
    zyz = [Gate("rz", q, (lam,))] if _nonzero(lam) else []
    if _nonzero(theta):
        zyz.append(Gate("ry", q, (theta,)))
    if _nonzero(phi):
        zyz.append(Gate("rz", q, (phi,)))
    candidates.append(zyz)
    return candidates


def _merge_run(run: list[Gate], native_gates: frozenset[str] | None) -> list[Gate] | None:
    """Shorter equivalent of *run*, or ``None`` if none is available."""
    unitary = np.eye(2, dtype=complex)
    for gate in run:
        unitary = gate_matrix(gate.name, gate.params) @ unitary
    if is_identity(unitary):
        return []

    present = {g.name for g in run}
    for candidate in _merge_candidates(run, unitary):
        allowed = all(
            native_gates is None or g.name in native_gates or g.name in present
            for g in candidate
        )
        if allowed and len(candidate) < len(run):
            return candidate
    return None


def merge_rotations(
    circuit: Circuit, native_gates: Iterable[str] | None = None
) -> Circuit:
    """Compose runs of single-qubit rotations on each qubit.

    Runs sharing one axis collapse into a single rotation about that axis
    with the summed angle.  Mixed runs become ``u3``, or ``rz ry rz`` when
    *native_gates* excludes ``u3``.  Runs whose product is the identity
    (up to global phase) are removed.  A run is only rewritten when the
    result is shorter.
    """
    native = frozenset(native_gates) if native_gates is not None else None
    out: list[Gate | None] = []
    runs: list[list[int]] = [[] for _ in range(circuit.num_qubits)]

    def flush(qubit: int) -> None:
        positions = runs[qubit]
        if positions:
            replacement = _merge_run([out[i] for i in positions], native)
            if replacement is not None:
                for k, i in enumerate(positions):
                    out[i] = replacement[k] if k < len(replacement) else None
            runs[qubit] = []

    for gate in circuit.gates:
        if gate.name in ROTATION_GATES:
            runs[gate.qubits[0]].append(len(out))
        else:
            for q in gate.qubits:
                flush(q)
        out.append(gate)

    for q in range(circuit.num_qubits):
        flush(q)

    return circuit.with_gates(g for g in out if g is not None)


# ---------------------------------------------------------------------------
# Transpilation
# ---------------------------------------------------------------------------

# Each rule maps (qubits, params) to alternative gate sequences, in order of
# preference.  Every sequence equals the original gate up to global phase.
_Rule = Callable[[tuple, tuple], list[list[tuple]]]


def _ccx(a: int, b: int, c: int) -> list[tuple]:
    return [
        ("h", (c,)),
        ("cx", (b, c)), ("tdg", (c,)),
        ("cx", (a, c)), ("t", (c,)),
        ("cx", (b, c)), ("tdg", (c,)),
        ("cx", (a, c)), ("t", (b,)), ("t", (c,)), ("h", (c,)),
        ("cx", (a, b)), ("t", (a,)), ("tdg", (b,)),
        ("cx", (a, b)),
    ]


def _controlled_phase(q: tuple, p: tuple) -> list[list[tuple]]:
    a, b = q
    half = p[0] / 2
    return [[
        ("rz", (a,), (half,)),
        ("cx", (a, b)),
        ("rz", (b,), (-half,)),
        ("cx", (a, b)),
        ("rz", (b,), (half,)),
    ]]


DECOMPOSITIONS: dict[str, _Rule] = {
    "id": lambda q, p: [[]],
    "h": lambda q, p: [
        [("rz", q, (_HALF_PI,)), ("sx", q), ("rz", q, (_HALF_PI,))],
        [("ry", q, (_HALF_PI,)), ("x", q)],
        [("u2", q, (0.0, _PI))],
    ],
    "x": lambda q, p: [[("rx", q, (_PI,))], [("sx", q), ("sx", q)]],
    "y": lambda q, p: [[("ry", q, (_PI,))], [("z", q), ("x", q)]],
    "z": lambda q, p: [[("rz", q, (_PI,))], [("s", q), ("s", q)]],
    "s": lambda q, p: [[("rz", q, (_HALF_PI,))], [("u1", q, (_HALF_PI,))]],
    "sdg": lambda q, p: [[("rz", q, (-_HALF_PI,))], [("u1", q, (-_HALF_PI,))]],
    "t": lambda q, p: [[("rz", q, (_PI / 4,))], [("u1", q, (_PI / 4,))]],
    "tdg": lambda q, p: [[("rz", q, (-_PI / 4,))], [("u1", q, (-_PI / 4,))]],
    "sx": lambda q, p: [[("rx", q, (_HALF_PI,))], [("h", q), ("s", q), ("h", q)]],
    "sxdg": lambda q, p: [
        [("rz", q, (_PI,)), ("sx", q), ("rz", q, (_PI,))],
        [("rx", q, (-_HALF_PI,))],
    ],
    "rx": lambda q, p: [
        [("h", q), ("rz", q, p), ("h", q)],
        [("s", q), ("ry", q, p), ("sdg", q)],
        [("u3", q, (p[0], -_HALF_PI, _HALF_PI))],
    ],
    "ry": lambda q, p: [
        [("sx", q), ("rz", q, p), ("sxdg", q)],
        [("sdg", q), ("rx", q, p), ("s", q)],
        [("u3", q, (p[0], 0.0, 0.0))],
    ],
    "rz": lambda q, p: [[("h", q), ("rx", q, p), ("h", q)], [("u1", q, p)]],
    "u1": lambda q, p: [[("rz", q, p)], [("p", q, p)]],
    "p": lambda q, p: [[("rz", q, p)], [("u1", q, p)]],
    "u2": lambda q, p: [[("rz", q, (p[1],)), ("ry", q, (_HALF_PI,)), ("rz", q, (p[0],))]],
    "u3": lambda q, p: [[("rz", q, (p[2],)), ("ry", q, (p[0],)), ("rz", q, (p[1],))]],
    "cx": lambda q, p: [[("h", q[1:]), ("cz", q), ("h", q[1:])]],
    "cz": lambda q, p: [[("h", q[1:]), ("cx", q), ("h", q[1:])]],
    "cy": lambda q, p: [[("sdg", q[1:]), ("cx", q), ("s", q[1:])]],
    "ch": lambda q, p: [[("ry", q[1:], (_PI / 4,)), ("cx", q), ("ry", q[1:], (-_PI / 4,))]],
    "swap": lambda q, p: [[("cx", q), ("cx", q[::-1]), ("cx", q)]],
    "crz": lambda q, p: [[
        ("rz", q[1:], (p[0] / 2,)), ("cx", q), ("rz", q[1:], (-p[0] / 2,)), ("cx", q),
    ]],
    "cry": lambda q, p: [[
        ("ry", q[1:], (p[0] / 2,)), ("cx", q), ("ry", q[1:], (-p[0] / 2,)), ("cx", q),
    ]],
    "crx": lambda q, p: [[
        ("s", q[1:]),
        ("ry", q[1:], (p[0] / 2,)), ("cx", q), ("ry", q[1:], (-p[0] / 2,)), ("cx", q),
        ("sdg", q[1:]),
    ]],
    "cp": _controlled_phase,
    "cu1": _controlled_phase,
    "rzz": lambda q, p: [[("cx", q), ("rz", q[1:], p), ("cx", q)]],
    "ccx": lambda q, p: [_ccx(*q)],
    "cswap": lambda q, p: [[("cx", (q[2], q[1])), ("ccx", q), ("cx", (q[2], q[1]))]],
}


def decompose_gate(gate: Gate, native_gates: frozenset[str]) -> list[Gate]:
    """Rewrite *gate* into *native_gates*.

    Raises:
        UnsupportedGateError: If no sequence of decomposition rules reaches
            the native gate set.
    """
    result = _decompose(gate, native_gates, frozenset())
    if result is None:
        raise UnsupportedGateError(
            gate.name, f"no decomposition into native gates {sorted(native_gates)}"
        )
    return result


def _decompose(gate: Gate, native: frozenset[str], visiting: frozenset[str]):
    if gate.name in native or gate.name == "reset":
        return [gate]
    rule = DECOMPOSITIONS.get(gate.name)
    if rule is None or gate.name in visiting:
        return None
    visiting = visiting | {gate.name}
    for alternative in rule(gate.qubits, gate.params):
        out: list[Gate] = []
        for step in alternative:
            expanded = _decompose(Gate(*step), native, visiting)
            if expanded is None:
                break
            out.extend(expanded)
        else:
            return out
    return None


def transpile(
    circuit: Circuit,
    provider: ProviderLike = None,
    *,
    native_gates: Iterable[str] | None = None,
) -> Circuit:
    """Rewrite every non-native gate into the provider's native gate set."""
    if native_gates is None:
        native = get_provider_constraints(provider).native_gates
    else:
        native = frozenset(native_gates)
    gates: list[Gate] = []
    for gate in circuit.gates:
        gates.extend(decompose_gate(gate, native))
    return circuit.with_gates(gates)


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

PassFunction = Callable[[Circuit, ProviderConstraints], Circuit]

PASSES: dict[str, PassFunction] = {
    "gate_cancellation": lambda circuit, constraints: cancel_gates(circuit),
    "gate_merging": lambda circuit, constraints: merge_rotations(
        circuit, constraints.native_gates
    ),
    "transpilation": lambda circuit, constraints: transpile(circuit, constraints),
}


def list_passes() -> list[str]:
    return list(PASSES)


def _percent_reduction(before: float, after: float) -> float:
    if before == 0:
        return 0.0
    return (before - after) / before * 100.0


@dataclass
class Impact:
    """Change between two circuits, in percent of the first.

    Positive reductions and savings mean the second circuit is smaller or
    cheaper; positive ``fidelity_improvement`` means it is more reliable.
    """

    gate_reduction: float
    depth_reduction: float
    fidelity_improvement: float
    cost_savings: float

    def to_dict(self) -> dict[str, float]:
        return {
            "gate_reduction": self.gate_reduction,
            "depth_reduction": self.depth_reduction,
            "fidelity_improvement": self.fidelity_improvement,
            "cost_savings": self.cost_savings,
        }


@dataclass
class PassReport:
    """One executed pass and its impact relative to its input."""

    name: str
    gates_before: int
    gates_after: int
    depth_before: int
    depth_after: int
    impact: Impact

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "gates_before": self.gates_before,
            "gates_after": self.gates_after,
            "depth_before": self.depth_before,
            "depth_after": self.depth_after,
            "impact": self.impact.to_dict(),
        }


@dataclass
class OptimizationResult:
    """Outcome of an optimization pipeline."""

    original_circuit: Circuit
    optimized_circuit: Circuit
    provider: str
    passes: list[str]
    impact: Impact
    steps: list[PassReport] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "original_circuit": self.original_circuit.to_dict(),
            "optimized_circuit": self.optimized_circuit.to_dict(),
            "provider": self.provider,
            "passes": list(self.passes),
            "impact": self.impact.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
        }

    def __repr__(self) -> str:
        return (
            f"OptimizationResult(provider={self.provider!r}, "
            f"gates={self.original_circuit.gate_count}->{self.optimized_circuit.gate_count}, "
            f"depth={self.original_circuit.depth}->{self.optimized_circuit.depth})"
        )


class CircuitOptimizer:
    """Run a pipeline of optimization passes against a provider profile.

    Args:
        provider: Provider id or profile.  Unknown ids resolve to the
                  default profile.
        passes: Pass names in execution order.  Defaults to the configured
                pipeline restricted to the provider's supported passes.
        noise_model: Modeler used to score fidelity changes.

    Raises:
        ConfigurationError: If any pass name is unknown.

    Example:
        >>> optimizer = CircuitOptimizer("ibm-condor")
        >>> result = optimizer.run(circuit)
        >>> result.impact.gate_reduction
    """

    def __init__(
        self,
        provider: ProviderLike = None,
        passes: Sequence[str] | None = None,
        noise_model: NoiseModeler | None = None,
    ) -> None:
        self.constraints = get_provider_constraints(provider)
        if passes is None:
            passes = [
                p for p in get_settings().default_passes
                if p in self.constraints.supported_passes
            ]
        unknown = [p for p in passes if p not in PASSES]
        if unknown:
            raise ConfigurationError(
                f"Unknown optimization pass(es) {unknown}. Known passes: {list_passes()}"
            )
        self.passes = list(passes)
        self.noise_model = noise_model or NoiseModeler()

    def impact(self, before: Circuit, after: Circuit) -> Impact:
        """Impact of replacing *before* with *after* on this provider."""
        f_before = self.noise_model.estimate_fidelity(before, self.constraints).overall_fidelity
        f_after = self.noise_model.estimate_fidelity(after, self.constraints).overall_fidelity
        c_before = self.noise_model.estimate_cost(before, self.constraints).per_shot
        c_after = self.noise_model.estimate_cost(after, self.constraints).per_shot
        return Impact(
            gate_reduction=_percent_reduction(before.gate_count, after.gate_count),
            depth_reduction=_percent_reduction(before.depth, after.depth),
            fidelity_improvement=(f_after - f_before) / f_before * 100.0,
            cost_savings=_percent_reduction(c_before, c_after),
        )

    def run(self, circuit: Circuit) -> OptimizationResult:
        steps: list[PassReport] = []
        current = circuit
        for name in self.passes:
            rewritten = PASSES[name](current, self.constraints)
            steps.append(
                PassReport(
                    name=name,
                    gates_before=current.gate_count,
                    gates_after=rewritten.gate_count,
                    depth_before=current.depth,
                    depth_after=rewritten.depth,
                    impact=self.impact(current, rewritten),
                )
            )
            logger.debug(
                "%s on %s: %d -> %d gates, depth %d -> %d",
                name,
                self.constraints.id,
                current.gate_count,
                rewritten.gate_count,
                current.depth,
                rewritten.depth,
            )
            current = rewritten

        return OptimizationResult(
            original_circuit=circuit,
            optimized_circuit=current,
            provider=self.constraints.id,
            passes=list(self.passes),
            impact=self.impact(circuit, current),
            steps=steps,
        )


def optimize(
    circuit: Circuit,
    provider: ProviderLike = None,
    passes: Sequence[str] | None = None,
) -> OptimizationResult:
    """Optimize *circuit* for *provider*; see :class:`CircuitOptimizer`."""
    return CircuitOptimizer(provider, passes).run(circuit)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

_PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}


@dataclass
class Recommendation:
    """A pass worth running, found by dry-running it on the circuit."""

    pass_name: str
    priority: str  # high | medium | low
    reason: str
    expected_gate_reduction: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "pass_name": self.pass_name,
            "priority": self.priority,
            "reason": self.reason,
            "expected_gate_reduction": self.expected_gate_reduction,
        }


def recommend_optimizations(
    circuit: Circuit, provider: ProviderLike = None
) -> list[Recommendation]:
    """Rank the provider's passes by what they would achieve on *circuit*."""
    constraints = get_provider_constraints(provider)
    recommendations: list[Recommendation] = []

    non_native = sorted({g.name for g in circuit.gates if not constraints.is_native(g.name)})
    if non_native and "transpilation" in constraints.supported_passes:
        transpiled = transpile(circuit, constraints)
        recommendations.append(
            Recommendation(
                pass_name="transpilation",
                priority="high",
                reason=f"{constraints.id} cannot execute {', '.join(non_native)} natively",
                expected_gate_reduction=_percent_reduction(
                    circuit.gate_count, transpiled.gate_count
                ),
            )
        )

    for name, label in (
        ("gate_cancellation", "adjacent inverse gate pairs"),
        ("gate_merging", "mergeable rotation runs"),
    ):
        if name not in constraints.supported_passes:
            continue
        rewritten = PASSES[name](circuit, constraints)
        removed = circuit.gate_count - rewritten.gate_count
        if removed <= 0:
            continue
        reduction = _percent_reduction(circuit.gate_count, rewritten.gate_count)
        recommendations.append(
            Recommendation(
                pass_name=name,
                priority="high" if reduction >= 10.0 else "medium",
                reason=f"removes {removed} gate(s) from {label}",
                expected_gate_reduction=reduction,
            )
        )

    recommendations.sort(
        key=lambda r: (_PRIORITY_ORDER[r.priority], -r.expected_gate_reduction)
    )
    return recommendations
