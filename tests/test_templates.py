"""Tests for the algorithm template library."""

import json
import math

import pytest

from qcopt.exceptions import ConfigurationError, ValidationError
from qcopt.qasm import parse_qasm
from qcopt.simulator import measurement_distribution
from qcopt.templates import (
    BUILTIN_TEMPLATES,
    AlgorithmTemplate,
    TemplateLibrary,
    TemplateParameter,
    compare_templates,
    export_template,
    generate_circuit,
    get_template,
    list_templates,
    maxcut_graph,
    search_templates,
    shor_register_sizes,
    validate_parameters,
)

FIXED_PARAMS = {
    "bell_state": {"variant": "psi_minus"},
    "ghz_state": {"num_qubits": 5},
    "vqe_standard": {"molecule": "LiH", "ansatz": "HardwareEfficient", "layers": 2, "seed": 4},
    "qaoa_maxcut": {"graph_type": "random", "graph_size": 6, "p_layers": 2, "seed": 9},
    "qpe_standard": {"precision_bits": 4, "phase": 0.3125},
    "qml_classifier": {"num_features": 3, "data_encoding": "dense_angle"},
    "qec_surface": {"code_distance": 2, "logical_state": "plus"},
    "crypto_shor": {"number_to_factor": 15, "base": 2, "qft_implementation": "approximate"},
}


# ===================================================================
# Validation
# ===================================================================


class TestValidation:
    def test_negative_layers(self):
        result = validate_parameters("vqe_standard", {"layers": -5})
        assert result.valid is False
        assert "layers" in result.fields()
        assert "Parameter 'layers' must be at least 1" in result.messages

    def test_collects_every_error(self):
        result = validate_parameters(
            "vqe_standard",
            {"molecule": "XeF6", "layers": 20, "shots": 5, "colour": "blue"},
        )
        assert not result.valid
        assert result.fields() == {"molecule", "layers", "shots", "colour"}
        assert "Unknown parameter 'colour'" in result.messages
        assert any(m.startswith("Parameter 'molecule' must be one of: H2, LiH") for m in result.messages)

    def test_missing_required_without_default(self):
        result = validate_parameters("vqe_standard", {})
        assert result.messages == ["Required parameter 'molecule' is missing"]

    def test_default_satisfies_required(self):
        assert validate_parameters("ghz_state", {}).valid

    def test_integer_type(self):
        assert validate_parameters("ghz_state", {"num_qubits": 4.0}).valid
        for bad in (2.5, True, "3"):
            result = validate_parameters("ghz_state", {"num_qubits": bad})
            assert result.messages == ["Parameter 'num_qubits' must be an integer"]

    def test_range_skipped_after_type_error(self):
        result = validate_parameters("qpe_standard", {"phase": "half"})
        assert result.messages == ["Parameter 'phase' must be a number"]

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), -float("inf")])
    def test_non_finite_numbers_rejected(self, value):
        assert validate_parameters("qpe_standard", {"phase": value}).messages == [
            "Parameter 'phase' must be a number"
        ]
        assert validate_parameters("ghz_state", {"num_qubits": value}).messages == [
            "Parameter 'num_qubits' must be an integer"
        ]

    def test_non_finite_array_element_rejected(self):
        params = {"graph_type": "cycle", "graph_size": 3, "p_layers": 1, "gamma": [float("nan")]}
        assert validate_parameters("qaoa_maxcut", params).fields() == {"gamma"}
        with pytest.raises(ValidationError, match="gamma"):
            generate_circuit("qaoa_maxcut", params)

    def test_upper_bound(self):
        result = validate_parameters("qpe_standard", {"phase": 1.5})
        assert result.messages == ["Parameter 'phase' must be at most 1.0"]

    def test_boolean_and_array(self):
        assert validate_parameters("bell_state", {"measure": 1}).fields() == {"measure"}
        result = validate_parameters("qml_classifier", {"features": [0.1, "x"]})
        assert result.fields() == {"features"}
        result = validate_parameters("qml_classifier", {"features": [0.1, 10.0]})
        assert result.messages == [f"Parameter 'features' must be at most {2 * math.pi}"]

    def test_unknown_template(self):
        result = validate_parameters("shor", {})
        assert not result.valid
        assert result.fields() == {"template"}

    def test_to_dict(self):
        d = validate_parameters("vqe_standard", {"layers": -5}).to_dict()
        assert json.loads(json.dumps(d))["valid"] is False
        assert {"field": "layers", "message": "Parameter 'layers' must be at least 1"} in d["errors"]


# ===================================================================
# Generation
# ===================================================================


class TestGeneration:
    def test_unknown_template(self):
        with pytest.raises(ConfigurationError, match="shor"):
            generate_circuit("shor", {})

    def test_invalid_parameters_raise(self):
        with pytest.raises(ValidationError) as exc:
            generate_circuit("vqe_standard", {"layers": -5})
        assert {e.field for e in exc.value.errors} == {"molecule", "layers"}

    @pytest.mark.parametrize("template_id", sorted(FIXED_PARAMS))
    def test_qasm_round_trip(self, template_id):
        circuit = generate_circuit(template_id, FIXED_PARAMS[template_id])
        assert parse_qasm(circuit.to_qasm()) == circuit

    @pytest.mark.parametrize("template_id", sorted(FIXED_PARAMS))
    def test_deterministic(self, template_id):
        params = FIXED_PARAMS[template_id]
        assert generate_circuit(template_id, params) == generate_circuit(template_id, params)

    def test_every_builtin_has_fixed_params(self):
        assert {t.id for t in BUILTIN_TEMPLATES} == set(FIXED_PARAMS)


class TestBellAndGhz:
    @pytest.mark.parametrize(
        "variant,outcomes",
        [
            ("phi_plus", {"00", "11"}),
            ("phi_minus", {"00", "11"}),
            ("psi_plus", {"01", "10"}),
            ("psi_minus", {"01", "10"}),
        ],
    )
    def test_variants(self, variant, outcomes):
        circuit = generate_circuit("bell_state", {"variant": variant})
        dist = measurement_distribution(circuit)
        assert set(dist) == outcomes
        assert all(p == pytest.approx(0.5) for p in dist.values())

    def test_unmeasured_bell(self):
        circuit = generate_circuit("bell_state", {"measure": False})
        assert circuit.measurements == ()

    def test_ghz(self):
        circuit = generate_circuit("ghz_state", {"num_qubits": 4})
        assert circuit.count_ops() == {"h": 1, "cx": 3}
        assert measurement_distribution(circuit) == pytest.approx({"0000": 0.5, "1111": 0.5})


class TestVqe:
    def test_h2_uccsd(self):
        circuit = generate_circuit("vqe_standard", {"molecule": "H2", "layers": 2})
        assert circuit.num_qubits == 2
        assert circuit.gates[0].name == "x"  # Hartree-Fock reference
        ops = circuit.count_ops()
        assert ops["ry"] == 4
        assert ops["cx"] == 4
        assert circuit.metadata["shots"] == 8192

    def test_molecule_sets_width(self):
        circuit = generate_circuit("vqe_standard", {"molecule": "CH4", "layers": 1, "ansatz": "RY"})
        assert circuit.num_qubits == 8
        assert len(circuit.measurements) == 8

    def test_zero_initial_state(self):
        circuit = generate_circuit(
            "vqe_standard", {"molecule": "H2", "initial_state": "Zero", "ansatz": "RY"}
        )
        assert "x" not in circuit.count_ops()

    def test_seed_changes_angles(self):
        a = generate_circuit("vqe_standard", {"molecule": "H2", "seed": 1})
        b = generate_circuit("vqe_standard", {"molecule": "H2", "seed": 2})
        assert a != b
        assert a.count_ops() == b.count_ops()


class TestQaoa:
    def test_cycle_structure(self):
        circuit = generate_circuit(
            "qaoa_maxcut", {"graph_type": "cycle", "graph_size": 4, "p_layers": 1}
        )
        assert circuit.count_ops() == {"h": 4, "cx": 8, "rz": 4, "rx": 4}
        assert circuit.metadata["edges"] == [[0, 1], [1, 2], [2, 3], [3, 0]]

    def test_explicit_angles(self):
        circuit = generate_circuit(
            "qaoa_maxcut",
            {"graph_type": "star", "graph_size": 3, "p_layers": 1, "gamma": [0.5], "beta": [0.3]},
        )
        rx = [g for g in circuit.gates if g.name == "rx"]
        assert rx[0].params == (0.6,)
        rz = [g for g in circuit.gates if g.name == "rz"]
        assert rz[0].params == (1.0,)

    def test_angle_length_mismatch(self):
        with pytest.raises(ValidationError, match="length p_layers=2"):
            generate_circuit(
                "qaoa_maxcut",
                {"graph_type": "cycle", "graph_size": 3, "p_layers": 2, "gamma": [0.5]},
            )

    def test_trotterized_schedule(self):
        circuit = generate_circuit(
            "qaoa_maxcut", {"graph_type": "complete", "graph_size": 3, "p_layers": 3}
        )
        gamma, beta = circuit.metadata["gamma"], circuit.metadata["beta"]
        assert gamma == sorted(gamma)
        assert beta == sorted(beta, reverse=True)

    def test_graphs(self):
        assert len(maxcut_graph("complete", 5)) == 10
        assert maxcut_graph("star", 4) == [(0, 1), (0, 2), (0, 3)]
        with pytest.raises(ValueError):
            maxcut_graph("torus", 4)


class TestQpe:
    def test_quarter_phase(self):
        circuit = generate_circuit("qpe_standard", {"precision_bits": 3, "phase": 0.25})
        assert circuit.num_qubits == 4
        assert measurement_distribution(circuit) == pytest.approx({"010": 1.0})

    def test_exact_binary_fraction(self):
        circuit = generate_circuit("qpe_standard", {"precision_bits": 4, "phase": 0.3125})
        dist = measurement_distribution(circuit)
        assert dist["0101"] == pytest.approx(1.0)

    def test_approximation_drops_small_rotations(self):
        full = generate_circuit("qpe_standard", {"precision_bits": 4})
        approx = generate_circuit("qpe_standard", {"precision_bits": 4, "approximation_degree": 2})
        assert approx.count_ops()["cp"] < full.count_ops()["cp"]


class TestQml:
    def test_layout(self):
        circuit = generate_circuit("qml_classifier", {"num_features": 3, "num_layers": 1})
        assert circuit.num_qubits == 4
        assert circuit.measurements == ((0, 0),)
        assert "rz" not in circuit.count_ops()

    def test_dense_encoding(self):
        circuit = generate_circuit(
            "qml_classifier", {"num_features": 2, "data_encoding": "dense_angle"}
        )
        assert circuit.count_ops()["rz"] == 2

    def test_features_must_match_count(self):
        with pytest.raises(ValidationError, match="must have 2 values"):
            generate_circuit("qml_classifier", {"num_features": 2, "features": [0.1]})


class TestSurfaceCode:
    def test_distance_three(self):
        circuit = generate_circuit("qec_surface", {"code_distance": 3})
        assert circuit.num_qubits == 21
        assert len(circuit.measurements) == 21
        assert circuit.metadata["code_distance"] == 3

    def test_syndromes_only(self):
        circuit = generate_circuit("qec_surface", {"code_distance": 3, "measure_data": False})
        assert len(circuit.measurements) == 12
        assert {q for q, _ in circuit.measurements} == set(range(9, 21))

    def test_zero_state_has_trivial_z_syndrome(self):
        circuit = generate_circuit("qec_surface", {"code_distance": 2, "measure_data": False})
        # Z-checks come first and read clbits 0 and 1
        for outcome in measurement_distribution(circuit):
            assert outcome[-2:] == "00"


class TestShor:
    def test_register_sizes(self):
        assert shor_register_sizes(15) == (8, 4, 2)
        assert shor_register_sizes(21) == (9, 5, 3)

    def test_layout(self):
        circuit = generate_circuit("crypto_shor", {})
        assert circuit.num_qubits == 14
        assert circuit.measurements == tuple((k, k) for k in range(8))
        assert circuit.metadata["number_to_factor"] == 15
        assert circuit.metadata["base"] == 7

    def test_period_four_peaks(self):
        # 7 has order 4 modulo 15: readout is s * 256 / 4
        circuit = generate_circuit("crypto_shor", {"number_to_factor": 15, "base": 7})
        assert measurement_distribution(circuit) == pytest.approx(
            {"00000000": 0.25, "01000000": 0.25, "10000000": 0.25, "11000000": 0.25}
        )

    def test_order_two_base(self):
        # 4 * 4 = 16 = 1 (mod 15)
        circuit = generate_circuit("crypto_shor", {"number_to_factor": 15, "base": 4})
        assert measurement_distribution(circuit) == pytest.approx(
            {"00000000": 0.5, "10000000": 0.5}
        )

    def test_approximate_qft_is_shorter(self):
        full = generate_circuit("crypto_shor", {"qft_implementation": "standard"})
        approx = generate_circuit("crypto_shor", {"qft_implementation": "approximate"})
        assert approx.count_ops()["cp"] < full.count_ops()["cp"]

    @pytest.mark.parametrize("number", [13, 16])
    def test_number_must_be_odd_composite(self, number):
        with pytest.raises(ValidationError) as exc:
            generate_circuit("crypto_shor", {"number_to_factor": number, "base": 2})
        assert [e.field for e in exc.value.errors] == ["number_to_factor"]

    @pytest.mark.parametrize("base", [3, 15, 20])
    def test_base_must_be_coprime_and_smaller(self, base):
        with pytest.raises(ValidationError) as exc:
            generate_circuit("crypto_shor", {"number_to_factor": 15, "base": base})
        assert [e.field for e in exc.value.errors] == ["base"]


# ===================================================================
# Catalog
# ===================================================================


class TestCatalog:
    def test_get_template(self):
        t = get_template("qaoa_maxcut")
        assert t.category == "optimization"
        assert t.difficulty == "advanced"
        assert t.parameter("p_layers").maximum == 10

    def test_filters(self):
        assert [t.id for t in list_templates(category="variational")] == ["vqe_standard"]
        assert {t.id for t in list_templates(difficulty="beginner")} == {"bell_state", "ghz_state"}
        two = {t.id for t in list_templates(qubits=2)}
        assert "bell_state" in two
        assert "qaoa_maxcut" not in two

    def test_search(self):
        assert {t.id for t in search_templates("entangle")} == {"bell_state", "ghz_state"}
        assert [t.id for t in search_templates("QFT")] == ["qpe_standard", "crypto_shor"]

    def test_to_dict(self):
        d = json.loads(json.dumps(get_template("vqe_standard").to_dict()))
        names = [p["name"] for p in d["parameters"]]
        assert names[:3] == ["molecule", "ansatz", "layers"]
        assert d["qubits"] == {"min": 2, "max": 20}

    def test_unknown_parameter_type(self):
        with pytest.raises(ValueError, match="complex"):
            TemplateParameter("z", "complex")

    def test_custom_library(self):
        from qcopt.circuit import Circuit

        template = AlgorithmTemplate(
            id="single_x",
            name="X",
            description="Flip one qubit",
            category="fundamental",
            difficulty="beginner",
            min_qubits=1,
            max_qubits=1,
            parameters=(),
            builder=lambda params: Circuit.from_gates(1, [("x", [0])]),
        )
        library = TemplateLibrary((template,))
        assert library.generate_circuit("single_x").count_ops() == {"x": 1}
        with pytest.raises(ConfigurationError, match="already registered"):
            library.register(template)

    def test_performance_prediction(self):
        prediction = TemplateLibrary().performance_prediction(
            "ghz_state", {"num_qubits": 4}, "ibm-condor"
        )
        assert prediction.provider == "ibm-condor"
        assert prediction.qubits == 4
        assert 0.0 < prediction.fidelity <= 1.0
        assert prediction.cost > 0


# ===================================================================
# Export, import and comparison
# ===================================================================


class TestExportImport:
    @pytest.mark.parametrize("template", BUILTIN_TEMPLATES, ids=lambda t: t.id)
    def test_declaration_survives_json(self, template):
        data = json.loads(export_template(template.id))
        assert AlgorithmTemplate.from_dict(data, template.builder) == template

    def test_import_replaces_and_keeps_builder(self):
        library = TemplateLibrary()
        data = json.loads(library.export_template("ghz_state"))
        data["name"] = "Cat State"
        imported = library.import_template(json.dumps(data))
        assert library.get_template("ghz_state").name == "Cat State"
        assert imported.builder is get_template("ghz_state").builder
        assert library.generate_circuit("ghz_state", {"num_qubits": 3}).num_qubits == 3
        assert get_template("ghz_state").name == "GHZ State"

    def test_import_new_template_needs_builder(self):
        from qcopt.circuit import Circuit

        library = TemplateLibrary()
        data = json.loads(library.export_template("bell_state"))
        data["id"] = "bell_copy"
        with pytest.raises(ConfigurationError, match="builder"):
            library.import_template(json.dumps(data))
        library.import_template(
            json.dumps(data), builder=lambda params: Circuit.from_gates(2, [("h", [0])])
        )
        assert library.generate_circuit("bell_copy").count_ops() == {"h": 1}

    @pytest.mark.parametrize("text", ["not json", "[]", '{"name": "x"}', '{"id": "ghz_state"}'])
    def test_malformed_json(self, text):
        with pytest.raises(ConfigurationError):
            TemplateLibrary().import_template(text)


class TestProviderAdaptation:
    def test_ghz_on_generic(self):
        adaptation = TemplateLibrary().provider_adaptation("ghz_state", "generic")
        assert adaptation.provider == "generic"
        assert adaptation.topology == "linear"
        assert adaptation.gate_set == ["cx", "rz", "sx", "x"]
        assert adaptation.non_native_gates == ["h"]
        assert adaptation.optimization_passes[0] == "transpilation"
        assert "error_mitigation_readout" in adaptation.error_mitigation

    def test_unknown_provider_falls_back(self):
        adaptation = TemplateLibrary().provider_adaptation("bell_state", "nope")
        assert adaptation.provider == "generic"
        assert json.loads(json.dumps(adaptation.to_dict()))["template_id"] == "bell_state"


class TestCompare:
    def test_distributions(self):
        comparison = compare_templates(["bell_state", "ghz_state"])
        assert comparison.difficulty_distribution == {
            "beginner": 2,
            "intermediate": 0,
            "advanced": 0,
        }
        assert comparison.category_distribution == {"fundamental": 2}
        assert comparison.recommendations == []
        assert 0.0 < comparison.average_fidelity <= 1.0

    def test_large_template_recommendation(self):
        comparison = compare_templates(
            ["qec_surface", "qpe_standard"], params={"qpe_standard": {"precision_bits": 3}}
        )
        assert comparison.average_qubits == round((21 + 4) / 2)
        assert (
            "Consider error mitigation strategies for large qubit counts"
            in comparison.recommendations
        )
        assert comparison.to_dict()["templates"] == ["qec_surface", "qpe_standard"]

    def test_empty_and_unknown(self):
        with pytest.raises(ValueError):
            compare_templates([])
        with pytest.raises(ConfigurationError):
            compare_templates(["bell_state", "shor"])
