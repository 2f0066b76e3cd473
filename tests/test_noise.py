"""Tests for fidelity estimation, mitigation strategies and sampling."""

import numpy as np
import pytest

from qcopt.circuit import Circuit, Gate
from qcopt.noise import (
    MITIGATION_CATALOG,
    NoiseModeler,
    analyze_circuit,
    estimate_cost,
    estimate_fidelity,
    get_error_mitigation_strategies,
    suggest_best_provider,
)
from qcopt.providers import PROVIDERS

DEEP = Circuit.from_gates(2, [("cx", [0, 1])] * 30, measure_all=True)


# ===================================================================
# Fidelity
# ===================================================================


class TestFidelity:
    @pytest.mark.parametrize("provider", list(PROVIDERS))
    def test_bounded(self, provider, bell):
        f = estimate_fidelity(bell, provider).overall_fidelity
        assert 0.0 < f <= 1.0

    def test_empty_circuit_is_perfect(self):
        assert estimate_fidelity(Circuit(2), "generic").overall_fidelity == 1.0

    def test_huge_circuit_stays_positive(self):
        c = Circuit.from_gates(2, [("cx", [0, 1])] * 100_000)
        f = estimate_fidelity(c, "generic").overall_fidelity
        assert f > 0.0
        assert f == np.finfo(float).tiny

    @pytest.mark.parametrize("provider", list(PROVIDERS))
    @pytest.mark.parametrize(
        "extra",
        [Gate("x", (0,)), Gate("rz", (1,), (0.1,)), Gate("cx", (0, 1)), Gate("ccx", (0, 1, 2))],
    )
    def test_adding_gates_never_helps(self, provider, extra):
        base = Circuit.from_gates(3, [("h", [0]), ("cx", [0, 1]), ("t", [2])])
        longer = base.with_gates(base.gates + (extra,))
        before = estimate_fidelity(base, provider).overall_fidelity
        after = estimate_fidelity(longer, provider).overall_fidelity
        assert after <= before

    def test_deeper_is_worse(self):
        shallow = Circuit.from_gates(2, [("x", [0]), ("x", [1])])
        deep = Circuit.from_gates(2, [("x", [0]), ("x", [0])])
        assert shallow.gate_count == deep.gate_count
        assert (
            estimate_fidelity(deep, "generic").overall_fidelity
            <= estimate_fidelity(shallow, "generic").overall_fidelity
        )

    def test_components(self, bell):
        est = estimate_fidelity(bell, "ibm-condor")
        assert est.provider == "ibm-condor"
        assert est.total_error == pytest.approx(1.0 - est.overall_fidelity)
        product = (
            (1 - est.gate_error)
            * (1 - est.crosstalk_error)
            * (1 - est.decoherence_error)
            * (1 - est.readout_error)
        )
        assert product == pytest.approx(est.overall_fidelity)
        assert set(est.gate_fidelities) == {"h", "cx"}
        assert set(est.qubit_fidelities) == {0, 1}
        assert est.runtime > 0

    def test_unknown_provider_uses_default(self, bell):
        assert estimate_fidelity(bell, "quantum-toaster").provider == "generic"

    def test_to_dict_keys_are_strings(self, bell):
        d = estimate_fidelity(bell).to_dict()
        assert list(d["qubit_fidelities"]) == ["0", "1"]


# ===================================================================
# Analysis and mitigation
# ===================================================================


class TestAnalysis:
    def test_bell_on_generic(self, bell):
        a = analyze_circuit(bell, "generic")
        assert a.gate_count == 2
        assert a.depth == 2
        assert a.two_qubit_gate_count == 1
        assert a.single_qubit_gate_count == 1
        assert a.measurement_count == 2
        assert a.non_native_gates == ["h"]
        assert a.parallelizable_gates == 0
        assert a.critical_path_length == 2

    def test_parallel_gates_counted(self):
        c = Circuit.from_gates(3, [("x", [0]), ("x", [1]), ("x", [2]), ("cx", [0, 1])])
        assert analyze_circuit(c, "generic").parallelizable_gates == 3

    def test_connectivity_violations(self):
        c = Circuit.from_gates(3, [("cx", [0, 2])])
        assert analyze_circuit(c, "generic").connectivity_violations == 1
        assert analyze_circuit(c, "google-willow").connectivity_violations == 0


class TestMitigation:
    def test_small_circuit_only_readout(self, bell):
        strategies = get_error_mitigation_strategies(bell, "generic")
        assert [s.technique for s in strategies] == ["error_mitigation_readout"]
        assert strategies[0].applicable_conditions == ["circuit measures at least one qubit"]

    def test_no_measurement_no_readout_mitigation(self):
        c = Circuit.from_gates(2, [("h", [0]), ("cx", [0, 1])])
        assert get_error_mitigation_strategies(c, "generic") == []

    def test_deep_circuit(self):
        techniques = [s.technique for s in get_error_mitigation_strategies(DEEP, "generic")]
        assert techniques == [
            "zero_noise_extrapolation",
            "probabilistic_error_cancellation",
            "dynamical_decoupling",
            "error_mitigation_readout",
        ]

    @pytest.mark.parametrize("provider", list(PROVIDERS))
    def test_every_condition_holds(self, provider):
        modeler = NoiseModeler()
        analysis = modeler.analyze_circuit(DEEP, provider)
        constraints = PROVIDERS[provider]
        by_name = {d.technique: d for d in MITIGATION_CATALOG}
        for strategy in modeler.get_error_mitigation_strategies(DEEP, provider):
            definition = by_name[strategy.technique]
            assert definition.providers is None or provider in definition.providers
            assert all(c.holds(analysis, constraints) for c in definition.conditions)

    @pytest.mark.parametrize("provider", list(PROVIDERS))
    def test_sorted_by_improvement(self, provider):
        strategies = get_error_mitigation_strategies(DEEP, provider)
        improvements = [s.fidelity_improvement for s in strategies]
        assert improvements == sorted(improvements, reverse=True)

    def test_provider_specific_strategies(self, bell):
        willow = {s.technique for s in get_error_mitigation_strategies(bell, "google-willow")}
        generic = {s.technique for s in get_error_mitigation_strategies(bell, "generic")}
        assert "logical_qubit_error_correction" in willow
        assert "logical_qubit_error_correction" not in generic


# ===================================================================
# Cost and provider choice
# ===================================================================


class TestCost:
    def test_total(self, bell):
        cost = estimate_cost(bell, "amazon-braket", shots=500)
        assert cost.shots == 500
        assert cost.total == pytest.approx(cost.setup + 500 * cost.per_shot)
        assert cost.per_shot > 0

    def test_more_gates_cost_more(self, bell):
        longer = bell.with_gates(bell.gates + (Gate("cx", (0, 1)),))
        assert estimate_cost(longer, "ibm-condor").total > estimate_cost(bell, "ibm-condor").total

    def test_shots_must_be_positive(self, bell):
        with pytest.raises(ValueError, match="shots"):
            estimate_cost(bell, "generic", shots=0)


class TestSuggestProvider:
    def test_ranked_by_fidelity(self, bell):
        suggestions = suggest_best_provider(bell)
        assert len(suggestions) == len(PROVIDERS)
        fidelities = [s.fidelity for s in suggestions]
        assert fidelities == sorted(fidelities, reverse=True)

    def test_suitability_labels(self, bell):
        for s in suggest_best_provider(bell):
            if s.fidelity > 0.9:
                assert s.suitability == "excellent"
            elif s.fidelity >= 0.8:
                assert s.suitability == "good"
            elif s.fidelity >= 0.7:
                assert s.suitability == "fair"
            else:
                assert s.suitability == "poor"

    def test_skips_providers_that_are_too_small(self):
        c = Circuit.from_gates(200, [("x", [199])])
        providers = {s.provider for s in suggest_best_provider(c)}
        assert providers == {"google-willow", "ibm-condor", "amazon-braket"}


# ===================================================================
# Sampling
# ===================================================================


class TestSampling:
    def test_seeded_counts_are_reproducible(self, bell):
        a = NoiseModeler(seed=11).sample_counts(bell, "generic", shots=2000)
        b = NoiseModeler(seed=11).sample_counts(bell, "generic", shots=2000)
        assert a == b
        assert sum(a.values()) == 2000

    def test_bell_counts_concentrate(self, bell):
        counts = NoiseModeler(seed=3).sample_counts(bell, "google-willow", shots=4000)
        correlated = counts.get("00", 0) + counts.get("11", 0)
        assert correlated > 3600

    def test_injected_generator(self, bell):
        rng = np.random.default_rng(5)
        counts = NoiseModeler(rng=rng).sample_counts(bell, shots=10)
        assert sum(counts.values()) == 10

    def test_noisy_distribution_normalized(self, bell):
        probs = NoiseModeler().noisy_distribution(bell, "generic")
        assert probs.sum() == pytest.approx(1.0)
        assert np.all(probs > 0)

    def test_zero_shots_rejected(self, bell):
        with pytest.raises(ValueError):
            NoiseModeler().sample_counts(bell, shots=0)
