"""qcopt: quantum circuit optimization and noise modeling.

Parse or generate circuits, optimize them against a hardware provider's
constraints and estimate how they will fare on that provider's noise.

Example
-------
>>> import qcopt
>>> circuit = qcopt.parse_qasm('''
... OPENQASM 2.0;
... include "qelib1.inc";
... qreg q[2];
... h q[0];
... cx q[0],q[1];
... ''')
>>> result = qcopt.optimize(circuit, "ibm-condor")
>>> qcopt.estimate_fidelity(result.optimized_circuit, "ibm-condor").overall_fidelity
>>> vqe = qcopt.generate_circuit("vqe_standard", {"molecule": "H2", "layers": 2})
"""

from .circuit import Circuit, Gate
from .config import Settings, configure, get_settings, reset_settings
from .exceptions import (
    CircuitError,
    ConfigurationError,
    ParseError,
    QcoptError,
    UnsupportedGateError,
    ValidationError,
)
from .gates import GATE_SPECS, GateSpec, gate_matrix, gate_spec
from .noise import (
    CircuitAnalysis,
    CostEstimate,
    FidelityEstimate,
    MitigationStrategy,
    NoiseModeler,
    ProviderSuggestion,
    analyze_circuit,
    estimate_cost,
    estimate_fidelity,
    get_error_mitigation_strategies,
    suggest_best_provider,
)
from .optimizer import (
    CircuitOptimizer,
    Impact,
    OptimizationResult,
    PassReport,
    Recommendation,
    cancel_gates,
    list_passes,
    merge_rotations,
    optimize,
    recommend_optimizations,
    transpile,
)
from .providers import (
    ProviderConstraints,
    check_constraints,
    coupling_map,
    get_provider_constraints,
    list_providers,
)
from .qasm import circuit_to_qasm, parse_qasm
from .simulator import (
    circuit_unitary,
    measurement_distribution,
    measurement_probabilities,
    simulate_statevector,
)
from .templates import (
    AlgorithmTemplate,
    ParameterError,
    PerformancePrediction,
    ProviderAdaptation,
    TemplateComparison,
    TemplateLibrary,
    TemplateParameter,
    ValidationResult,
    compare_templates,
    export_template,
    generate_circuit,
    get_template,
    list_templates,
    search_templates,
    validate_parameters,
)

__version__ = "0.3.0"

__all__ = [
    # Circuits
    "Circuit",
    "Gate",
    "GateSpec",
    "GATE_SPECS",
    "gate_spec",
    "gate_matrix",
    # QASM
    "parse_qasm",
    "circuit_to_qasm",
    # Providers
    "ProviderConstraints",
    "get_provider_constraints",
    "list_providers",
    "coupling_map",
    "check_constraints",
    # Optimizer
    "CircuitOptimizer",
    "optimize",
    "cancel_gates",
    "merge_rotations",
    "transpile",
    "list_passes",
    "recommend_optimizations",
    "OptimizationResult",
    "PassReport",
    "Impact",
    "Recommendation",
    # Noise
    "NoiseModeler",
    "estimate_fidelity",
    "analyze_circuit",
    "get_error_mitigation_strategies",
    "suggest_best_provider",
    "estimate_cost",
    "FidelityEstimate",
    "CircuitAnalysis",
    "CostEstimate",
    "MitigationStrategy",
    "ProviderSuggestion",
    # Simulation
    "simulate_statevector",
    "circuit_unitary",
    "measurement_probabilities",
    "measurement_distribution",
    # Templates
    "TemplateLibrary",
    "AlgorithmTemplate",
    "TemplateParameter",
    "ParameterError",
    "ValidationResult",
    "PerformancePrediction",
    "ProviderAdaptation",
    "TemplateComparison",
    "generate_circuit",
    "validate_parameters",
    "get_template",
    "list_templates",
    "search_templates",
    "compare_templates",
    "export_template",
    # Configuration
    "configure",
    "get_settings",
    "reset_settings",
    "Settings",
    # Exceptions
    "QcoptError",
    "ParseError",
    "UnsupportedGateError",
    "ValidationError",
    "ConfigurationError",
    "CircuitError",
]
