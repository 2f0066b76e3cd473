"""Noise and fidelity modeling.

Fidelity is modeled multiplicatively, so every gate, every microsecond of
runtime and every measurement can only lower it:

    F = prod_g (1 - e_g)                 gate errors
        * (1 - crosstalk) ** G           crosstalk per gate
        * exp(-n * runtime / T2)         decoherence over the critical path
        * (1 - readout) ** M             readout errors

The product is evaluated in log space and clamped to the smallest
positive float, which keeps the estimate inside ``(0, 1]`` for circuits
of any size.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np

from .circuit import Circuit
from .providers import (
    PROVIDERS,
    ProviderConstraints,
    ProviderLike,
    connectivity_violations,
    get_provider_constraints,
)
from .simulator import measurement_probabilities

logger = logging.getLogger(__name__)

_TINY = float(np.finfo(float).tiny)
_US = 1e-6  # seconds per microsecond


# ---------------------------------------------------------------------------
# Result records
# ---------------------------------------------------------------------------


@dataclass
class FidelityEstimate:
    """Estimated success probability of a circuit on one provider.

    Each ``*_error`` component is ``1 - factor`` for its factor in the
    product; ``total_error`` is ``1 - overall_fidelity``.
    """

    provider: str
    overall_fidelity: float
    total_error: float
    gate_error: float
    decoherence_error: float
    crosstalk_error: float
    readout_error: float
    runtime: float  # microseconds
    gate_fidelities: dict[str, float] = field(default_factory=dict)
    qubit_fidelities: dict[int, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "overall_fidelity": self.overall_fidelity,
            "total_error": self.total_error,
            "gate_error": self.gate_error,
            "decoherence_error": self.decoherence_error,
            "crosstalk_error": self.crosstalk_error,
            "readout_error": self.readout_error,
            "runtime": self.runtime,
            "gate_fidelities": dict(self.gate_fidelities),
            "qubit_fidelities": {str(q): f for q, f in self.qubit_fidelities.items()},
        }


@dataclass
class CircuitAnalysis:
    """Structural and provider-dependent metrics of a circuit."""

    provider: str
    gate_count: int
    depth: int
    qubit_count: int
    single_qubit_gate_count: int
    two_qubit_gate_count: int
    measurement_count: int
    estimated_runtime: float  # microseconds, critical path
    critical_path_length: int
    parallelizable_gates: int
    error_probability: float
    non_native_gates: list[str] = field(default_factory=list)
    connectivity_violations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "gate_count": self.gate_count,
            "depth": self.depth,
            "qubit_count": self.qubit_count,
            "single_qubit_gate_count": self.single_qubit_gate_count,
            "two_qubit_gate_count": self.two_qubit_gate_count,
            "measurement_count": self.measurement_count,
            "estimated_runtime": self.estimated_runtime,
            "critical_path_length": self.critical_path_length,
            "parallelizable_gates": self.parallelizable_gates,
            "error_probability": self.error_probability,
            "non_native_gates": list(self.non_native_gates),
            "connectivity_violations": self.connectivity_violations,
        }


@dataclass
class CostEstimate:
    """Execution cost in provider credits."""

    provider: str
    shots: int
    setup: float
    per_shot: float
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "shots": self.shots,
            "setup": self.setup,
            "per_shot": self.per_shot,
            "total": self.total,
        }


@dataclass(frozen=True)
class Condition:
    """An applicability condition evaluated against a circuit analysis."""

    description: str
    predicate: Callable[[CircuitAnalysis, ProviderConstraints], bool]

    def holds(self, analysis: CircuitAnalysis, constraints: ProviderConstraints) -> bool:
        return bool(self.predicate(analysis, constraints))


@dataclass
class MitigationStrategy:
    """An error mitigation technique that applies to a specific circuit."""

    technique: str
    description: str
    fidelity_improvement: float
    overhead_multiplier: float
    additional_gates: int
    implementation_complexity: str  # low | medium | high
    applicable_conditions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "technique": self.technique,
            "description": self.description,
            "fidelity_improvement": self.fidelity_improvement,
            "overhead_multiplier": self.overhead_multiplier,
            "additional_gates": self.additional_gates,
            "implementation_complexity": self.implementation_complexity,
            "applicable_conditions": list(self.applicable_conditions),
        }


@dataclass
class ProviderSuggestion:
    """One provider ranked by :meth:`NoiseModeler.suggest_best_provider`."""

    provider: str
    fidelity: float
    runtime: float
    cost: float
    suitability: str  # excellent | good | fair | poor

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider": self.provider,
            "fidelity": self.fidelity,
            "runtime": self.runtime,
            "cost": self.cost,
            "suitability": self.suitability,
        }


# ---------------------------------------------------------------------------
# Mitigation catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _StrategyDefinition:
    technique: str
    description: str
    fidelity_improvement: float
    overhead_multiplier: float
    additional_gates: Callable[[CircuitAnalysis], int]
    complexity: str
    conditions: tuple[Condition, ...]
    providers: frozenset[str] | None = None  # None: every provider


def _fits_several_providers(a: CircuitAnalysis, c: ProviderConstraints) -> bool:
    return sum(1 for p in PROVIDERS.values() if p.max_qubits >= a.qubit_count) >= 2


MITIGATION_CATALOG: tuple[_StrategyDefinition, ...] = (
    # Google Willow
    _StrategyDefinition(
        "logical_qubit_error_correction",
        "Run on error-corrected logical qubits",
        0.15, 1.3, lambda a: a.gate_count // 10, "low",
        (
            Condition("provider offers logical qubits",
                      lambda a, c: c.error_correction_level == "logical"),
            Condition("circuit uses at most 100 qubits", lambda a, c: a.qubit_count <= 100),
        ),
        frozenset({"google-willow"}),
    ),
    _StrategyDefinition(
        "surface_code_optimization",
        "Tune surface code distance to the two-qubit gate load",
        0.12, 1.5, lambda a: a.two_qubit_gate_count // 5, "medium",
        (
            Condition("provider offers logical qubits",
                      lambda a, c: c.error_correction_level == "logical"),
            Condition("more than 20 two-qubit gates", lambda a, c: a.two_qubit_gate_count > 20),
        ),
        frozenset({"google-willow"}),
    ),
    _StrategyDefinition(
        "flag_qubit_optimization",
        "Detect hook errors in deep circuits with flag qubits",
        0.08, 1.2, lambda a: a.depth // 5, "medium",
        (
            Condition("provider offers logical qubits",
                      lambda a, c: c.error_correction_level == "logical"),
            Condition("circuit depth greater than 50", lambda a, c: a.depth > 50),
        ),
        frozenset({"google-willow"}),
    ),
    _StrategyDefinition(
        "universal_gate_optimization",
        "Recompile non-native gates with calibrated universal gates",
        0.10, 1.1, lambda a: int(a.gate_count * 0.15), "low",
        (Condition("circuit contains non-native gates", lambda a, c: bool(a.non_native_gates)),),
        frozenset({"google-willow"}),
    ),
    # IBM Condor
    _StrategyDefinition(
        "advanced_error_suppression",
        "Pulse-level error suppression on characterized hardware",
        0.10, 1.8, lambda a: int(a.gate_count * 0.3), "high",
        (
            Condition("provider offers advanced error correction",
                      lambda a, c: c.error_correction_level == "advanced"),
        ),
        frozenset({"ibm-condor"}),
    ),
    _StrategyDefinition(
        "ibm_measurement_error_mitigation",
        "Invert the readout calibration matrix",
        0.06, 1.3, lambda a: a.qubit_count * 3, "medium",
        (Condition("circuit depth greater than 30", lambda a, c: a.depth > 30),),
        frozenset({"ibm-condor"}),
    ),
    _StrategyDefinition(
        "ibm_dynamical_decoupling",
        "Calibrated decoupling pulses during idle periods",
        0.07, 1.4, lambda a: a.depth // 8, "high",
        (Condition("circuit depth greater than 40", lambda a, c: a.depth > 40),),
        frozenset({"ibm-condor"}),
    ),
    _StrategyDefinition(
        "transpilation_error_mitigation",
        "Choose a layout that avoids SWAP insertion on sparse coupling",
        0.05, 1.6, lambda a: int(a.gate_count * 0.25), "medium",
        (
            Condition("provider has custom sparse connectivity",
                      lambda a, c: c.topology == "custom"),
            Condition("two-qubit gates act on uncoupled qubits",
                      lambda a, c: a.connectivity_violations > 0),
        ),
        frozenset({"ibm-condor"}),
    ),
    # Amazon Braket
    _StrategyDefinition(
        "multi_provider_noise_cancellation",
        "Average results across providers with independent noise",
        0.12, 2.5, lambda a: int(a.gate_count * 0.4), "high",
        (Condition("circuit fits on at least two providers", _fits_several_providers),),
        frozenset({"amazon-braket"}),
    ),
    _StrategyDefinition(
        "richardson_extrapolation_multi_scale",
        "Extrapolate to zero noise from several noise scales",
        0.09, 2.2, lambda a: a.gate_count * 3, "medium",
        (Condition("error probability above 8%", lambda a, c: a.error_probability > 0.08),),
        frozenset({"amazon-braket"}),
    ),
    _StrategyDefinition(
        "cost_optimized_error_mitigation",
        "Spend mitigation shots where they reduce error most per credit",
        0.04, 1.2, lambda a: int(a.gate_count * 0.15), "low",
        (
            Condition("circuit depth greater than 25", lambda a, c: a.depth > 25),
            Condition("provider bills execution time",
                      lambda a, c: c.execution_cost_per_second > 0),
        ),
        frozenset({"amazon-braket"}),
    ),
    _StrategyDefinition(
        "provider_aware_gate_selection",
        "Pick the best-calibrated gate among equivalent choices",
        0.06, 1.1, lambda a: int(a.gate_count * 0.1), "low",
        (Condition("provider has grid connectivity", lambda a, c: c.topology == "grid"),),
        frozenset({"amazon-braket"}),
    ),
    # Every provider
    _StrategyDefinition(
        "zero_noise_extrapolation",
        "Fold gates to amplify noise and extrapolate to zero",
        0.05, 3.0, lambda a: a.gate_count * 2, "medium",
        (Condition("error probability above 10%", lambda a, c: a.error_probability > 0.1),),
    ),
    _StrategyDefinition(
        "probabilistic_error_cancellation",
        "Sample quasi-probability corrections for two-qubit gates",
        0.03, 2.0, lambda a: a.two_qubit_gate_count, "high",
        (Condition("more than 10 two-qubit gates", lambda a, c: a.two_qubit_gate_count > 10),),
    ),
    _StrategyDefinition(
        "dynamical_decoupling",
        "Insert decoupling sequences into idle windows",
        0.02, 1.2, lambda a: a.depth // 10, "low",
        (Condition("circuit depth greater than 20", lambda a, c: a.depth > 20),),
    ),
    _StrategyDefinition(
        "error_mitigation_readout",
        "Correct measurement bias with calibration data",
        0.01, 1.1, lambda a: a.qubit_count, "low",
        (Condition("circuit measures at least one qubit",
                   lambda a, c: a.measurement_count > 0),),
    ),
)


# ---------------------------------------------------------------------------
# Modeler
# ---------------------------------------------------------------------------


def _critical_path(circuit: Circuit, constraints: ProviderConstraints) -> float:
    """Duration of the longest gate timeline, in microseconds."""
    finish = [0.0] * circuit.num_qubits
    for gate in circuit.gates:
        start = max(finish[q] for q in gate.qubits)
        end = start + constraints.gate_time(gate.name, gate.num_qubits)
        for q in gate.qubits:
            finish[q] = end
    runtime = max(finish)
    if circuit.measurements:
        runtime += constraints.measurement_time
    return runtime


class NoiseModeler:
    """Estimate fidelity, cost and mitigation options under provider noise.

    Args:
        seed: Seed for the sampling generator.
        rng: Explicit generator; takes precedence over *seed*.

    Example:
        >>> modeler = NoiseModeler(seed=7)
        >>> modeler.estimate_fidelity(circuit, "ibm-condor").overall_fidelity
        >>> modeler.sample_counts(circuit, "ibm-condor", shots=1000)
    """

    def __init__(self, seed: int | None = None, rng: np.random.Generator | None = None) -> None:
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    # ------------------------------------------------------------------
    # Fidelity
    # ------------------------------------------------------------------

    def estimate_fidelity(self, circuit: Circuit, provider: ProviderLike = None) -> FidelityEstimate:
        constraints = get_provider_constraints(provider)

        log_gates = 0.0
        gate_fidelities: dict[str, float] = {}
        qubit_log = [0.0] * circuit.num_qubits
        for gate in circuit.gates:
            fidelity = 1.0 - constraints.gate_error(gate.name, gate.num_qubits)
            log_f = math.log(fidelity)
            log_gates += log_f
            gate_fidelities[gate.name] = gate_fidelities.get(gate.name, 1.0) * fidelity
            for q in gate.qubits:
                qubit_log[q] += log_f

        runtime = _critical_path(circuit, constraints)
        log_crosstalk = circuit.gate_count * math.log1p(-constraints.crosstalk)
        log_decoherence = -circuit.num_qubits * runtime / constraints.t2
        log_readout = len(circuit.measurements) * math.log1p(-constraints.readout_error)

        log_total = log_gates + log_crosstalk + log_decoherence + log_readout
        overall = min(1.0, max(math.exp(log_total), _TINY))
        per_qubit_decay = -runtime / constraints.t2

        return FidelityEstimate(
            provider=constraints.id,
            overall_fidelity=overall,
            total_error=1.0 - overall,
            gate_error=-math.expm1(log_gates),
            decoherence_error=-math.expm1(log_decoherence),
            crosstalk_error=-math.expm1(log_crosstalk),
            readout_error=-math.expm1(log_readout),
            runtime=runtime,
            gate_fidelities=gate_fidelities,
            qubit_fidelities={
                q: math.exp(qubit_log[q] + per_qubit_decay) for q in range(circuit.num_qubits)
            },
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def analyze_circuit(self, circuit: Circuit, provider: ProviderLike = None) -> CircuitAnalysis:
        constraints = get_provider_constraints(provider)
        fidelity = self.estimate_fidelity(circuit, constraints)
        layers = circuit.layers()
        multi = circuit.multi_qubit_gate_count
        return CircuitAnalysis(
            provider=constraints.id,
            gate_count=circuit.gate_count,
            depth=circuit.depth,
            qubit_count=circuit.num_qubits,
            single_qubit_gate_count=circuit.gate_count - multi,
            two_qubit_gate_count=multi,
            measurement_count=len(circuit.measurements),
            estimated_runtime=fidelity.runtime,
            critical_path_length=len(layers),
            parallelizable_gates=sum(len(layer) for layer in layers if len(layer) > 1),
            error_probability=fidelity.total_error,
            non_native_gates=sorted(
                {g.name for g in circuit.gates if not constraints.is_native(g.name)}
            ),
            connectivity_violations=len(connectivity_violations(circuit, constraints)),
        )

    def get_error_mitigation_strategies(
        self, circuit: Circuit, provider: ProviderLike = None
    ) -> list[MitigationStrategy]:
        """Strategies whose applicability conditions all hold for *circuit*.

        Returned strategies are ordered by expected fidelity improvement.
        """
        constraints = get_provider_constraints(provider)
        analysis = self.analyze_circuit(circuit, constraints)

        strategies: list[MitigationStrategy] = []
        for definition in MITIGATION_CATALOG:
            if definition.providers is not None and constraints.id not in definition.providers:
                continue
            if not all(c.holds(analysis, constraints) for c in definition.conditions):
                continue
            strategies.append(
                MitigationStrategy(
                    technique=definition.technique,
                    description=definition.description,
                    fidelity_improvement=definition.fidelity_improvement,
                    overhead_multiplier=definition.overhead_multiplier,
                    additional_gates=int(definition.additional_gates(analysis)),
                    implementation_complexity=definition.complexity,
                    applicable_conditions=[c.description for c in definition.conditions],
                )
            )

        strategies.sort(key=lambda s: s.fidelity_improvement, reverse=True)
        logger.debug(
            "%d mitigation strategies apply on %s", len(strategies), constraints.id
        )
        return strategies

    # ------------------------------------------------------------------
    # Cost and provider selection
    # ------------------------------------------------------------------

    def estimate_cost(
        self, circuit: Circuit, provider: ProviderLike = None, shots: int = 1000
    ) -> CostEstimate:
        if shots < 1:
            raise ValueError(f"shots must be >= 1, got {shots}")
        constraints = get_provider_constraints(provider)
        gates = sum(constraints.gate_cost(g.name, g.num_qubits) for g in circuit.gates)
        readout = constraints.measurement_cost * len(circuit.measurements)
        execution = _critical_path(circuit, constraints) * _US * constraints.execution_cost_per_second
        per_shot = (gates + readout + execution) * constraints.cost_multiplier
        setup = constraints.setup_cost * constraints.cost_multiplier
        return CostEstimate(
            provider=constraints.id,
            shots=shots,
            setup=setup,
            per_shot=per_shot,
            total=setup + per_shot * shots,
        )

    def suggest_best_provider(
        self, circuit: Circuit, shots: int = 1000
    ) -> list[ProviderSuggestion]:
        """Rank registered providers that can hold *circuit*.

        Providers are ordered by fidelity, highest first, then by cost.
        """
        suggestions: list[ProviderSuggestion] = []
        for constraints in PROVIDERS.values():
            if circuit.num_qubits > constraints.max_qubits:
                logger.debug(
                    "Skipping %s: %d qubits needed, %d available",
                    constraints.id, circuit.num_qubits, constraints.max_qubits,
                )
                continue
            fidelity = self.estimate_fidelity(circuit, constraints)
            value = fidelity.overall_fidelity
            if value > 0.9:
                suitability = "excellent"
            elif value >= 0.8:
                suitability = "good"
            elif value >= 0.7:
                suitability = "fair"
            else:
                suitability = "poor"
            suggestions.append(
                ProviderSuggestion(
                    provider=constraints.id,
                    fidelity=value,
                    runtime=fidelity.runtime,
                    cost=self.estimate_cost(circuit, constraints, shots).total,
                    suitability=suitability,
                )
            )
        suggestions.sort(key=lambda s: (-s.fidelity, s.cost))
        return suggestions

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    def noisy_distribution(self, circuit: Circuit, provider: ProviderLike = None) -> np.ndarray:
        """Ideal outcome distribution mixed with uniform noise of weight ``1 - F``."""
        ideal = measurement_probabilities(circuit)
        fidelity = self.estimate_fidelity(circuit, provider).overall_fidelity
        return fidelity * ideal + (1.0 - fidelity) / ideal.size

    def sample_counts(
        self, circuit: Circuit, provider: ProviderLike = None, shots: int = 1024
    ) -> dict[str, int]:
        """Sample measurement counts from :meth:`noisy_distribution`."""
        if shots < 1:
            raise ValueError(f"shots must be >= 1, got {shots}")
        probs = self.noisy_distribution(circuit, provider)
        samples = self._rng.multinomial(shots, probs / probs.sum())
        width = max(probs.size.bit_length() - 1, 1)
        return {
            format(i, f"0{width}b"): int(k) for i, k in enumerate(samples) if k > 0
        }


# ---------------------------------------------------------------------------
# Module-level convenience
# ---------------------------------------------------------------------------


def estimate_fidelity(circuit: Circuit, provider: ProviderLike = None) -> FidelityEstimate:
    return NoiseModeler().estimate_fidelity(circuit, provider)


def analyze_circuit(circuit: Circuit, provider: ProviderLike = None) -> CircuitAnalysis:
    return NoiseModeler().analyze_circuit(circuit, provider)


def get_error_mitigation_strategies(
    circuit: Circuit, provider: ProviderLike = None
) -> list[MitigationStrategy]:
    return NoiseModeler().get_error_mitigation_strategies(circuit, provider)


def suggest_best_provider(circuit: Circuit, shots: int = 1000) -> list[ProviderSuggestion]:
    return NoiseModeler().suggest_best_provider(circuit, shots)


def estimate_cost(
    circuit: Circuit, provider: ProviderLike = None, shots: int = 1000
) -> CostEstimate:
    return NoiseModeler().estimate_cost(circuit, provider, shots)
