"""Algorithm template library.

Each :class:`AlgorithmTemplate` declares typed parameters and a builder
that turns a complete parameter map into a :class:`Circuit`.  Parameter
maps are validated against the declarations first, and every violation
is reported at once.

Random choices (random graphs, initial angles) draw from
``numpy.random.default_rng(seed)`` with the template's ``seed``
parameter, so a fixed parameter map always yields the same circuit.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Callable, Mapping

import numpy as np

from .circuit import Circuit, Gate
from .exceptions import ConfigurationError, ValidationError
from .gates import wrap_angle
from .noise import NoiseModeler
from .optimizer import recommend_optimizations
from .providers import ProviderLike, get_provider_constraints

logger = logging.getLogger(__name__)

PARAMETER_TYPES = ("number", "integer", "boolean", "string", "select", "array")


# ---------------------------------------------------------------------------
# Parameter declarations and validation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParameterError:
    """One violated parameter constraint."""

    field: str
    message: str

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass
class ValidationResult:
    """Outcome of :meth:`TemplateLibrary.validate_parameters`."""

    valid: bool
    errors: list[ParameterError] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.errors]

    def fields(self) -> set[str]:
        return {e.field for e in self.errors}

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def _is_integer(value: Any) -> bool:
    return _is_number(value) and float(value).is_integer()


@dataclass(frozen=True)
class TemplateParameter:
    """Declaration of one template parameter.

    A required parameter with a ``default`` is satisfied when omitted.
    ``minimum`` and ``maximum`` bound numbers and integers, and bound
    every element of an ``array``.
    """

    name: str
    type: str
    description: str = ""
    required: bool = False
    default: Any = None
    minimum: float | None = None
    maximum: float | None = None
    options: tuple = ()

    def __post_init__(self) -> None:
        if self.type not in PARAMETER_TYPES:
            raise ValueError(f"Unknown parameter type '{self.type}' for '{self.name}'")

    def check(self, value: Any) -> list[ParameterError]:
        """All constraint violations of *value*."""
        name = self.name

        def error(message: str) -> ParameterError:
            return ParameterError(name, f"Parameter '{name}' {message}")

        if self.type == "number" and not _is_number(value):
            return [error("must be a number")]
        if self.type == "integer" and not _is_integer(value):
            return [error("must be an integer")]
        if self.type == "boolean" and not isinstance(value, bool):
            return [error("must be a boolean")]
        if self.type == "string" and not isinstance(value, str):
            return [error("must be a string")]
        if self.type == "select":
            if value not in self.options:
                return [error(f"must be one of: {', '.join(map(str, self.options))}")]
            return []
        if self.type == "array":
            if not isinstance(value, (list, tuple)) or not all(_is_number(v) for v in value):
                return [error("must be a list of numbers")]
            values = list(value)
        elif self.type in ("number", "integer"):
            values = [value]
        else:
            return []

        errors = []
        if self.minimum is not None and any(v < self.minimum for v in values):
            errors.append(error(f"must be at least {self.minimum}"))
        if self.maximum is not None and any(v > self.maximum for v in values):
            errors.append(error(f"must be at most {self.maximum}"))
        return errors

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "description": self.description,
            "required": self.required,
        }
        if self.default is not None:
            d["default"] = self.default
        if self.minimum is not None:
            d["min"] = self.minimum
        if self.maximum is not None:
            d["max"] = self.maximum
        if self.options:
            d["options"] = list(self.options)
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TemplateParameter:
        return cls(
            name=data["name"],
            type=data["type"],
            description=data.get("description", ""),
            required=bool(data.get("required", False)),
            default=data.get("default"),
            minimum=data.get("min"),
            maximum=data.get("max"),
            options=tuple(data.get("options", ())),
        )


@dataclass(frozen=True)
class AlgorithmTemplate:
    """A parameterized circuit generator."""

    id: str
    name: str
    description: str
    category: str
    difficulty: str  # beginner | intermediate | advanced
    min_qubits: int
    max_qubits: int
    parameters: tuple[TemplateParameter, ...]
    builder: Callable[[dict[str, Any]], Circuit] = field(compare=False, repr=False)
    tags: tuple[str, ...] = ()

    def parameter(self, name: str) -> TemplateParameter | None:
        for p in self.parameters:
            if p.name == name:
                return p
        return None

    def defaults(self) -> dict[str, Any]:
        return {p.name: p.default for p in self.parameters if p.default is not None}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "difficulty": self.difficulty,
            "qubits": {"min": self.min_qubits, "max": self.max_qubits},
            "parameters": [p.to_dict() for p in self.parameters],
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], builder: Callable[[dict[str, Any]], Circuit]
    ) -> AlgorithmTemplate:
        """Inverse of :meth:`to_dict`; the builder is not serialized."""
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            category=data["category"],
            difficulty=data["difficulty"],
            min_qubits=int(data["qubits"]["min"]),
            max_qubits=int(data["qubits"]["max"]),
            parameters=tuple(TemplateParameter.from_dict(p) for p in data.get("parameters", ())),
            builder=builder,
            tags=tuple(data.get("tags", ())),
        )


@dataclass
class PerformancePrediction:
    """Expected behaviour of a generated circuit on one provider."""

    template_id: str
    provider: str
    qubits: int
    gate_count: int
    depth: int
    fidelity: float
    runtime: float  # microseconds
    cost: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "provider": self.provider,
            "qubits": self.qubits,
            "gate_count": self.gate_count,
            "depth": self.depth,
            "fidelity": self.fidelity,
            "runtime": self.runtime,
            "cost": self.cost,
        }


@dataclass
class ProviderAdaptation:
    """How a template's circuit should be compiled for one provider."""

    template_id: str
    provider: str
    topology: str
    gate_set: list[str]
    non_native_gates: list[str]
    optimization_passes: list[str]
    error_mitigation: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_id": self.template_id,
            "provider": self.provider,
            "topology": self.topology,
            "gate_set": list(self.gate_set),
            "non_native_gates": list(self.non_native_gates),
            "optimization_passes": list(self.optimization_passes),
            "error_mitigation": list(self.error_mitigation),
        }


@dataclass
class TemplateComparison:
    """Aggregate metrics over the default circuits of several templates."""

    templates: list[AlgorithmTemplate]
    average_qubits: int
    average_depth: int
    average_fidelity: float
    difficulty_distribution: dict[str, int]
    category_distribution: dict[str, int]
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "templates": [t.id for t in self.templates],
            "average_qubits": self.average_qubits,
            "average_depth": self.average_depth,
            "average_fidelity": self.average_fidelity,
            "difficulty_distribution": dict(self.difficulty_distribution),
            "category_distribution": dict(self.category_distribution),
            "recommendations": list(self.recommendations),
        }


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _measured(num_qubits: int, gates: list[Gate], name: str, qubits=None, **metadata) -> Circuit:
    """Circuit measuring *qubits* (all by default) into consecutive clbits."""
    qubits = list(range(num_qubits)) if qubits is None else list(qubits)
    return Circuit(
        num_qubits=num_qubits,
        gates=tuple(gates),
        num_clbits=len(qubits),
        measurements=tuple((q, c) for c, q in enumerate(qubits)),
        name=name,
        metadata=metadata,
    )


def _build_bell(params: dict[str, Any]) -> Circuit:
    variant = params["variant"]
    gates: list[Gate] = []
    if variant.startswith("psi"):
        gates.append(Gate("x", (1,)))
    gates += [Gate("h", (0,)), Gate("cx", (0, 1))]
    if variant.endswith("minus"):
        gates.append(Gate("z", (0,)))
    if not params["measure"]:
        return Circuit(2, tuple(gates), name=f"bell_{variant}")
    return _measured(2, gates, f"bell_{variant}", variant=variant)


def _build_ghz(params: dict[str, Any]) -> Circuit:
    n = int(params["num_qubits"])
    gates = [Gate("h", (0,))] + [Gate("cx", (i, i + 1)) for i in range(n - 1)]
    if not params["measure"]:
        return Circuit(n, tuple(gates), name=f"ghz_{n}")
    return _measured(n, gates, f"ghz_{n}")


MOLECULE_QUBITS = {"H2": 2, "LiH": 4, "BeH2": 6, "H2O": 4, "NH3": 6, "CH4": 8}


def _entangler(n: int, ring: bool) -> list[Gate]:
    gates = [Gate("cx", (i, i + 1)) for i in range(n - 1)]
    if ring and n > 2:
        gates.append(Gate("cx", (n - 1, 0)))
    return gates


def _build_vqe(params: dict[str, Any]) -> Circuit:
    molecule, ansatz = params["molecule"], params["ansatz"]
    layers = int(params["layers"])
    n = MOLECULE_QUBITS[molecule]
    rng = np.random.default_rng(int(params["seed"]))

    def angle() -> float:
        return float(rng.uniform(-math.pi, math.pi))

    gates: list[Gate] = []

    # Initial state: Hartree-Fock fills the lower half of the orbitals
    if params["initial_state"] == "Hartree-Fock":
        gates += [Gate("x", (i,)) for i in range(n // 2)]
    elif params["initial_state"] == "Random":
        gates += [Gate("ry", (i,), (angle(),)) for i in range(n)]

    for _ in range(layers):
        gates += [Gate("ry", (i,), (angle(),)) for i in range(n)]
        if ansatz == "UCCSD":
            for i in range(n - 1):
                gates += [
                    Gate("cx", (i, i + 1)),
                    Gate("rz", (i + 1,), (angle(),)),
                    Gate("cx", (i, i + 1)),
                ]
            continue
        if ansatz in ("HardwareEfficient", "RYRZ"):
            gates += [Gate("rz", (i,), (angle(),)) for i in range(n)]
        gates += _entangler(n, ring=ansatz == "HardwareEfficient")

    return _measured(
        n,
        gates,
        f"vqe_{molecule}_{ansatz}",
        molecule=molecule,
        ansatz=ansatz,
        optimizer=params["optimizer"],
        shots=int(params["shots"]),
    )


def _trotterized_params(p: int) -> tuple[list[float], list[float]]:
    """Trotterized adiabatic schedule for QAOA angles."""
    dt = 1.0 / (p + 1)
    gamma = [i * dt * math.pi / 2.0 * dt for i in range(1, p + 1)]
    beta = [(1.0 - i * dt) * math.pi / 2.0 * dt for i in range(1, p + 1)]
    return gamma, beta


def maxcut_graph(
    graph_type: str, size: int, edge_probability: float = 0.3, rng: np.random.Generator | None = None
) -> list[tuple[int, int]]:
    """Edge list of a Max-Cut instance on *size* nodes."""
    if graph_type == "complete":
        return [(i, j) for i in range(size) for j in range(i + 1, size)]
    if graph_type == "cycle":
        return [(i, (i + 1) % size) for i in range(size)]
    if graph_type == "star":
        return [(0, j) for j in range(1, size)]
    if graph_type == "random":
        rng = rng if rng is not None else np.random.default_rng()
        return [
            (i, j)
            for i in range(size)
            for j in range(i + 1, size)
            if rng.random() < edge_probability
        ]
    raise ValueError(f"Unknown graph type '{graph_type}'")


def _build_qaoa(params: dict[str, Any]) -> Circuit:
    n, p = int(params["graph_size"]), int(params["p_layers"])
    rng = np.random.default_rng(int(params["seed"]))
    edges = maxcut_graph(params["graph_type"], n, params["edge_probability"], rng)

    if params["initialization"] == "random":
        gamma = list(rng.uniform(0.0, math.pi, p))
        beta = list(rng.uniform(0.0, math.pi / 2, p))
    else:
        gamma, beta = _trotterized_params(p)

    errors = []
    for label, given in (("gamma", params.get("gamma")), ("beta", params.get("beta"))):
        if given is None:
            continue
        if len(given) != p:
            errors.append(
                ParameterError(label, f"Parameter '{label}' must have length p_layers={p}")
            )
        elif label == "gamma":
            gamma = list(given)
        else:
            beta = list(given)
    if errors:
        raise ValidationError(errors)

    gates = [Gate("h", (i,)) for i in range(n)]
    for layer in range(p):
        # Cost unitary: exp(-i gamma Z_i Z_j) per edge
        for i, j in edges:
            gates += [
                Gate("cx", (i, j)),
                Gate("rz", (j,), (2.0 * gamma[layer],)),
                Gate("cx", (i, j)),
            ]
        # Mixer unitary: RX(2*beta) on all qubits
        gates += [Gate("rx", (i,), (2.0 * beta[layer],)) for i in range(n)]

    return _measured(
        n,
        gates,
        f"qaoa_maxcut_{params['graph_type']}_{n}",
        edges=[list(e) for e in edges],
        gamma=[float(g) for g in gamma],
        beta=[float(b) for b in beta],
    )


def _inverse_qft(t: int, degree: int = 0) -> list[Gate]:
    """Inverse QFT on qubits ``0..t-1``, dropping the *degree* smallest rotations."""
    gates = [Gate("swap", (k, t - k - 1)) for k in range(t // 2)]
    for j in range(t):
        for m in range(j):
            if j - m < t - degree:
                gates.append(Gate("cp", (m, j), (-math.pi / 2 ** (j - m),)))
        gates.append(Gate("h", (j,)))
    return gates


def _build_qpe(params: dict[str, Any]) -> Circuit:
    t = int(params["precision_bits"])
    phase = float(params["phase"])
    target = t

    # Eigenstate |1> of the phase gate P(2 pi phase)
    gates = [Gate("x", (target,))]
    gates += [Gate("h", (k,)) for k in range(t)]
    for k in range(t):
        gates.append(Gate("cp", (k, target), (wrap_angle(2.0 * math.pi * phase * 2**k),)))
    gates += _inverse_qft(t, int(params["approximation_degree"]))

    return _measured(t + 1, gates, f"qpe_{t}", qubits=range(t), phase=phase)


def _mcx(controls: list[int], target: int, ancillas: list[int]) -> list[Gate]:
    """Multi-controlled X as a Toffoli V-chain over clean ancillas."""
    if len(controls) == 1:
        return [Gate("cx", (controls[0], target))]
    if len(controls) == 2:
        return [Gate("ccx", (controls[0], controls[1], target))]
    compute = [Gate("ccx", (controls[0], controls[1], ancillas[0]))]
    for i in range(2, len(controls) - 1):
        compute.append(Gate("ccx", (controls[i], ancillas[i - 2], ancillas[i - 1])))
    last = ancillas[len(controls) - 3]
    return compute + [Gate("ccx", (controls[-1], last, target))] + compute[::-1]


def _controlled_transposition(
    control: int, u: int, v: int, work: list[int], ancillas: list[int]
) -> list[Gate]:
    """Swap basis states |u> and |v> of the work register when *control* is set."""
    diff = u ^ v
    p = (diff & -diff).bit_length() - 1
    others = [q for q in range(len(work)) if q != p]

    # CNOTs from bit p leave u and v differing in bit p only
    spread = [Gate("cx", (work[p], work[b])) for b in others if (diff >> b) & 1]
    pattern = u ^ (diff & ~(1 << p)) if (u >> p) & 1 else u
    flips = [Gate("x", (work[q],)) for q in others if not (pattern >> q) & 1]
    controls = [control] + [work[q] for q in others]
    return spread + flips + _mcx(controls, work[p], ancillas) + flips + spread[::-1]


def _controlled_modmul(
    control: int, multiplier: int, modulus: int, work: list[int], ancillas: list[int]
) -> list[Gate]:
    """Controlled |y> -> |multiplier * y mod modulus> for y < modulus."""
    gates: list[Gate] = []
    seen: set[int] = set()
    for start in range(modulus):
        if start in seen:
            continue
        cycle = [start]
        y = multiplier * start % modulus
        while y != start:
            cycle.append(y)
            y = multiplier * y % modulus
        seen.update(cycle)
        for other in cycle[1:]:
            gates += _controlled_transposition(control, start, other, work, ancillas)
    return gates


def _is_prime(n: int) -> bool:
    return n > 1 and all(n % k for k in range(2, math.isqrt(n) + 1))


def shor_register_sizes(modulus: int) -> tuple[int, int, int]:
    """Counting, work and ancilla qubit counts for factoring *modulus*."""
    work = modulus.bit_length()
    return (modulus * modulus - 1).bit_length(), work, max(work - 2, 0)


def _build_shor(params: dict[str, Any]) -> Circuit:
    n, a = int(params["number_to_factor"]), int(params["base"])
    errors = []
    if n % 2 == 0 or _is_prime(n):
        errors.append(
            ParameterError(
                "number_to_factor", "Parameter 'number_to_factor' must be an odd composite"
            )
        )
    elif a >= n or math.gcd(a, n) != 1:
        errors.append(
            ParameterError("base", f"Parameter 'base' must be below and coprime to {n}")
        )
    if errors:
        raise ValidationError(errors)

    t, w, m = shor_register_sizes(n)
    work = list(range(t, t + w))
    ancillas = list(range(t + w, t + w + m))

    gates = [Gate("h", (k,)) for k in range(t)]
    gates.append(Gate("x", (work[0],)))
    for k in range(t):
        multiplier = pow(a, 2**k, n)
        if multiplier != 1:
            gates += _controlled_modmul(k, multiplier, n, work, ancillas)
    degree = max(t - 4, 0) if params["qft_implementation"] == "approximate" else 0
    gates += _inverse_qft(t, degree)

    return _measured(
        t + w + m,
        gates,
        f"shor_{n}_{a}",
        qubits=range(t),
        number_to_factor=n,
        base=a,
        classical_postprocessing=params["classical_postprocessing"],
    )


def _build_qml(params: dict[str, Any]) -> Circuit:
    f, layers = int(params["num_features"]), int(params["num_layers"])
    features = params.get("features")
    if features is None:
        features = list(np.linspace(0.0, math.pi, f))
    elif len(features) != f:
        raise ValidationError(
            [ParameterError("features", f"Parameter 'features' must have {f} values")]
        )
    rng = np.random.default_rng(int(params["seed"]))
    n = f + 1  # qubit 0 is the readout qubit

    gates: list[Gate] = []
    for i, x in enumerate(features, start=1):
        gates.append(Gate("ry", (i,), (float(x),)))
        if params["data_encoding"] == "dense_angle":
            gates.append(Gate("rz", (i,), (float(x),)))

    for _ in range(layers):
        gates += [Gate("ry", (q,), (float(rng.uniform(-math.pi, math.pi)),)) for q in range(n)]
        gates += [Gate("cx", (q, q + 1)) for q in range(1, n - 1)]
        gates.append(Gate("cx", (n - 1, 0)))

    return _measured(
        n,
        gates,
        f"qml_classifier_{f}",
        qubits=[0],
        regularization=float(params["regularization"]),
    )


def _build_surface(params: dict[str, Any]) -> Circuit:
    d = int(params["code_distance"])
    data = [r * d + c for r in range(d) for c in range(d)]
    z_checks = [(r * d + c, r * d + c + 1) for r in range(d) for c in range(d - 1)]
    x_checks = [(r * d + c, (r + 1) * d + c) for r in range(d - 1) for c in range(d)]
    n = len(data) + len(z_checks) + len(x_checks)

    gates: list[Gate] = []
    if params["logical_state"] == "plus":
        gates += [Gate("h", (q,)) for q in data]

    ancilla = len(data)
    ancillas = []
    for a, b in z_checks:
        gates += [Gate("cx", (a, ancilla)), Gate("cx", (b, ancilla))]
        ancillas.append(ancilla)
        ancilla += 1
    for a, b in x_checks:
        gates += [
            Gate("h", (ancilla,)),
            Gate("cx", (ancilla, a)),
            Gate("cx", (ancilla, b)),
            Gate("h", (ancilla,)),
        ]
        ancillas.append(ancilla)
        ancilla += 1

    readout = ancillas + (data if params["measure_data"] else [])
    return _measured(
        n,
        gates,
        f"surface_code_d{d}",
        qubits=readout,
        code_distance=d,
        error_model=params["error_model"],
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_SEED = TemplateParameter(
    "seed", "integer", "Seed for random choices", default=0, minimum=0
)

BUILTIN_TEMPLATES: tuple[AlgorithmTemplate, ...] = (
    AlgorithmTemplate(
        id="bell_state",
        name="Bell State",
        description="Maximally entangled two-qubit state",
        category="fundamental",
        difficulty="beginner",
        min_qubits=2,
        max_qubits=2,
        parameters=(
            TemplateParameter(
                "variant", "select", "Which Bell state to prepare", default="phi_plus",
                options=("phi_plus", "phi_minus", "psi_plus", "psi_minus"),
            ),
            TemplateParameter("measure", "boolean", "Measure both qubits", default=True),
        ),
        builder=_build_bell,
        tags=("entanglement",),
    ),
    AlgorithmTemplate(
        id="ghz_state",
        name="GHZ State",
        description="Multi-qubit entangled cat state",
        category="fundamental",
        difficulty="beginner",
        min_qubits=2,
        max_qubits=32,
        parameters=(
            TemplateParameter(
                "num_qubits", "integer", "Number of entangled qubits",
                required=True, default=3, minimum=2, maximum=32,
            ),
            TemplateParameter("measure", "boolean", "Measure every qubit", default=True),
        ),
        builder=_build_ghz,
        tags=("entanglement",),
    ),
    AlgorithmTemplate(
        id="vqe_standard",
        name="Variational Quantum Eigensolver",
        description="Ground-state energy estimation with a parameterized ansatz",
        category="variational",
        difficulty="intermediate",
        min_qubits=2,
        max_qubits=20,
        parameters=(
            TemplateParameter(
                "molecule", "select", "Target molecule", required=True,
                options=tuple(MOLECULE_QUBITS),
            ),
            TemplateParameter(
                "ansatz", "select", "Variational ansatz", required=True, default="UCCSD",
                options=("UCCSD", "HardwareEfficient", "RY", "RYRZ"),
            ),
            TemplateParameter(
                "layers", "integer", "Ansatz repetitions", required=True,
                default=3, minimum=1, maximum=10,
            ),
            TemplateParameter(
                "initial_state", "select", "Reference state", default="Hartree-Fock",
                options=("Hartree-Fock", "Zero", "Random"),
            ),
            TemplateParameter(
                "optimizer", "select", "Classical optimizer", default="COBYLA",
                options=("COBYLA", "SPSA", "L-BFGS-B", "Adam", "Nelder-Mead"),
            ),
            TemplateParameter(
                "shots", "integer", "Shots per energy evaluation",
                default=8192, minimum=100, maximum=100000,
            ),
            _SEED,
        ),
        builder=_build_vqe,
        tags=("chemistry", "ground state", "hybrid"),
    ),
    AlgorithmTemplate(
        id="qaoa_maxcut",
        name="Quantum Approximate Optimization Algorithm - Max Cut",
        description="Alternating cost and mixer layers for the Max-Cut problem",
        category="optimization",
        difficulty="advanced",
        min_qubits=3,
        max_qubits=50,
        parameters=(
            TemplateParameter(
                "graph_type", "select", "Problem graph family", required=True,
                default="random", options=("complete", "cycle", "star", "random"),
            ),
            TemplateParameter(
                "graph_size", "integer", "Number of graph nodes", required=True,
                default=6, minimum=3, maximum=50,
            ),
            TemplateParameter(
                "p_layers", "integer", "QAOA depth p", required=True,
                default=2, minimum=1, maximum=10,
            ),
            TemplateParameter(
                "edge_probability", "number", "Edge probability for random graphs",
                default=0.3, minimum=0.0, maximum=1.0,
            ),
            TemplateParameter(
                "initialization", "select", "Angle initialization", default="trotterized",
                options=("trotterized", "random"),
            ),
            TemplateParameter("gamma", "array", "Explicit cost angles, one per layer"),
            TemplateParameter("beta", "array", "Explicit mixer angles, one per layer"),
            _SEED,
        ),
        builder=_build_qaoa,
        tags=("max-cut", "combinatorial", "hybrid"),
    ),
    AlgorithmTemplate(
        id="qpe_standard",
        name="Quantum Phase Estimation",
        description="Estimate the eigenphase of a phase gate with an inverse QFT",
        category="chemistry",
        difficulty="advanced",
        min_qubits=2,
        max_qubits=13,
        parameters=(
            TemplateParameter(
                "precision_bits", "integer", "Counting qubits", required=True,
                default=4, minimum=1, maximum=12,
            ),
            TemplateParameter(
                "phase", "number", "Eigenphase to estimate, in turns",
                default=0.25, minimum=0.0, maximum=1.0,
            ),
            TemplateParameter(
                "approximation_degree", "integer",
                "Smallest controlled rotations dropped from the inverse QFT",
                default=0, minimum=0, maximum=11,
            ),
        ),
        builder=_build_qpe,
        tags=("qft", "eigenvalue"),
    ),
    AlgorithmTemplate(
        id="qml_classifier",
        name="Variational Quantum Classifier",
        description="Angle-encoded features followed by a trainable entangling ansatz",
        category="machine_learning",
        difficulty="intermediate",
        min_qubits=2,
        max_qubits=9,
        parameters=(
            TemplateParameter(
                "num_features", "integer", "Input feature count", required=True,
                default=4, minimum=1, maximum=8,
            ),
            TemplateParameter(
                "num_layers", "integer", "Ansatz repetitions", required=True,
                default=2, minimum=1, maximum=10,
            ),
            TemplateParameter(
                "data_encoding", "select", "Feature map", default="angle",
                options=("angle", "dense_angle"),
            ),
            TemplateParameter(
                "features", "array", "Feature values, one per feature",
                minimum=-2 * math.pi, maximum=2 * math.pi,
            ),
            TemplateParameter(
                "regularization", "number", "L2 regularization strength",
                default=0.01, minimum=0.0, maximum=1.0,
            ),
            _SEED,
        ),
        builder=_build_qml,
        tags=("classification", "hybrid"),
    ),
    AlgorithmTemplate(
        id="qec_surface",
        name="Surface Code Syndrome Extraction",
        description="One round of two-body stabilizer checks on a distance-d lattice",
        category="error_correction",
        difficulty="advanced",
        min_qubits=8,
        max_qubits=65,
        parameters=(
            TemplateParameter(
                "code_distance", "integer", "Lattice side length", required=True,
                default=3, minimum=2, maximum=5,
            ),
            TemplateParameter(
                "logical_state", "select", "Prepared logical state", default="zero",
                options=("zero", "plus"),
            ),
            TemplateParameter(
                "error_model", "select", "Assumed physical error model",
                default="depolarizing", options=("depolarizing", "bit_flip", "phase_flip"),
            ),
            TemplateParameter("measure_data", "boolean", "Read out data qubits", default=True),
        ),
        builder=_build_surface,
        tags=("stabilizer", "fault tolerance"),
    ),
    AlgorithmTemplate(
        id="crypto_shor",
        name="Shor's Factoring Algorithm",
        description="Period finding of modular exponentiation for integer factorization",
        category="cryptography",
        difficulty="advanced",
        min_qubits=13,
        max_qubits=30,
        parameters=(
            TemplateParameter(
                "number_to_factor", "integer", "Odd composite to factor", required=True,
                default=15, minimum=9, maximum=255,
            ),
            TemplateParameter(
                "base", "integer", "Base of the modular exponentiation, coprime to the number",
                required=True, default=7, minimum=2, maximum=254,
            ),
            TemplateParameter(
                "qft_implementation", "select", "Inverse QFT on the counting register",
                default="standard", options=("standard", "approximate"),
            ),
            TemplateParameter(
                "classical_postprocessing", "select", "Period recovery from the readout",
                default="continued_fractions", options=("continued_fractions", "brute_force"),
            ),
        ),
        builder=_build_shor,
        tags=("factoring", "rsa", "period finding", "qft"),
    ),
)


# ---------------------------------------------------------------------------
# Library
# ---------------------------------------------------------------------------


class TemplateLibrary:
    """Registry of algorithm templates.

    Example:
        >>> library = TemplateLibrary()
        >>> library.validate_parameters("vqe_standard", {"layers": -5}).valid
        False
        >>> circuit = library.generate_circuit("bell_state", {})
    """

    def __init__(self, templates: tuple[AlgorithmTemplate, ...] = BUILTIN_TEMPLATES) -> None:
        self._templates: dict[str, AlgorithmTemplate] = {}
        for template in templates:
            self.register(template)

    def register(self, template: AlgorithmTemplate) -> None:
        if template.id in self._templates:
            raise ConfigurationError(f"Template '{template.id}' is already registered")
        self._templates[template.id] = template

    def get_template(self, template_id: str) -> AlgorithmTemplate:
        try:
            return self._templates[template_id]
        except KeyError:
            raise ConfigurationError(
                f"Unknown template '{template_id}'. Known templates: {sorted(self._templates)}"
            ) from None

    def list_templates(
        self,
        category: str | None = None,
        difficulty: str | None = None,
        qubits: int | None = None,
    ) -> list[AlgorithmTemplate]:
        return [
            t
            for t in self._templates.values()
            if (category is None or t.category == category)
            and (difficulty is None or t.difficulty == difficulty)
            and (qubits is None or t.min_qubits <= qubits <= t.max_qubits)
        ]

    def search_templates(self, query: str) -> list[AlgorithmTemplate]:
        """Templates whose name, description, category or tags mention *query*."""
        q = query.lower()
        return [
            t
            for t in self._templates.values()
            if q in t.name.lower()
            or q in t.description.lower()
            or q in t.category.lower()
            or any(q in tag for tag in t.tags)
        ]

    def validate_parameters(
        self, template_id: str, params: Mapping[str, Any]
    ) -> ValidationResult:
        """Check *params* against the template's declarations.

        Every violation is reported, not only the first one.
        """
        template = self._templates.get(template_id)
        if template is None:
            return ValidationResult(
                False, [ParameterError("template", f"Template '{template_id}' not found")]
            )

        errors: list[ParameterError] = []
        declared = {p.name for p in template.parameters}
        for name in params:
            if name not in declared:
                errors.append(ParameterError(name, f"Unknown parameter '{name}'"))

        for param in template.parameters:
            value = params.get(param.name)
            if value is None:
                if param.required and param.default is None:
                    errors.append(
                        ParameterError(
                            param.name, f"Required parameter '{param.name}' is missing"
                        )
                    )
                continue
            errors.extend(param.check(value))

        return ValidationResult(not errors, errors)

    def resolve_parameters(
        self, template_id: str, params: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Validated parameter map with defaults filled in.

        Raises:
            ConfigurationError: If the template is unknown.
            ValidationError: If any parameter violates its declaration.
        """
        template = self.get_template(template_id)
        result = self.validate_parameters(template_id, params)
        if not result.valid:
            raise ValidationError(result.errors)
        resolved = template.defaults()
        resolved.update({k: v for k, v in params.items() if v is not None})
        return resolved

    def generate_circuit(self, template_id: str, params: Mapping[str, Any] | None = None) -> Circuit:
        """Build the circuit of *template_id* for *params*."""
        template = self.get_template(template_id)
        resolved = self.resolve_parameters(template_id, params or {})
        circuit = template.builder(resolved)
        logger.debug(
            "Generated %s: %d qubits, %d gates", template_id, circuit.num_qubits, circuit.gate_count
        )
        return circuit

    def performance_prediction(
        self,
        template_id: str,
        params: Mapping[str, Any] | None = None,
        provider: ProviderLike = None,
        shots: int = 1000,
    ) -> PerformancePrediction:
        """Generate the circuit and score it on *provider*."""
        circuit = self.generate_circuit(template_id, params)
        modeler = NoiseModeler()
        fidelity = modeler.estimate_fidelity(circuit, provider)
        return PerformancePrediction(
            template_id=template_id,
            provider=fidelity.provider,
            qubits=circuit.num_qubits,
            gate_count=circuit.gate_count,
            depth=circuit.depth,
            fidelity=fidelity.overall_fidelity,
            runtime=fidelity.runtime,
            cost=modeler.estimate_cost(circuit, provider, shots).total,
        )

    def provider_adaptation(
        self,
        template_id: str,
        provider: ProviderLike = None,
        params: Mapping[str, Any] | None = None,
    ) -> ProviderAdaptation:
        """Passes and mitigation techniques suited to *template_id* on *provider*."""
        circuit = self.generate_circuit(template_id, params)
        constraints = get_provider_constraints(provider)
        modeler = NoiseModeler()
        analysis = modeler.analyze_circuit(circuit, constraints)
        return ProviderAdaptation(
            template_id=template_id,
            provider=constraints.id,
            topology=constraints.topology,
            gate_set=sorted(constraints.native_gates),
            non_native_gates=list(analysis.non_native_gates),
            optimization_passes=[
                r.pass_name for r in recommend_optimizations(circuit, constraints)
            ],
            error_mitigation=[
                s.technique
                for s in modeler.get_error_mitigation_strategies(circuit, constraints)
            ],
        )

    def compare_templates(
        self,
        template_ids: list[str],
        params: Mapping[str, Mapping[str, Any]] | None = None,
        provider: ProviderLike = None,
    ) -> TemplateComparison:
        """Compare the circuits generated for *template_ids*.

        ``params`` maps a template id to its parameter map; templates
        without an entry use their defaults.
        """
        if not template_ids:
            raise ValueError("compare_templates needs at least one template id")
        params = params or {}
        templates = [self.get_template(t) for t in template_ids]
        predictions = [
            self.performance_prediction(t.id, params.get(t.id), provider) for t in templates
        ]

        count = len(templates)
        difficulty = {"beginner": 0, "intermediate": 0, "advanced": 0}
        category: dict[str, int] = {}
        for t in templates:
            difficulty[t.difficulty] = difficulty.get(t.difficulty, 0) + 1
            category[t.category] = category.get(t.category, 0) + 1

        recommendations = []
        if any(p.qubits > 20 for p in predictions):
            recommendations.append("Consider error mitigation strategies for large qubit counts")
        if any(p.depth > 100 for p in predictions):
            recommendations.append(
                "Deep circuits may benefit from error correction or hybrid approaches"
            )
        if category.get("variational", 0) > 1:
            recommendations.append(
                "Multiple variational algorithms can share classical optimization infrastructure"
            )

        return TemplateComparison(
            templates=templates,
            average_qubits=round(sum(p.qubits for p in predictions) / count),
            average_depth=round(sum(p.depth for p in predictions) / count),
            average_fidelity=sum(p.fidelity for p in predictions) / count,
            difficulty_distribution=difficulty,
            category_distribution=category,
            recommendations=recommendations,
        )

    def export_template(self, template_id: str) -> str:
        """JSON form of a template's declaration."""
        return json.dumps(self.get_template(template_id).to_dict(), indent=2)

    def import_template(
        self, text: str, builder: Callable[[dict[str, Any]], Circuit] | None = None
    ) -> AlgorithmTemplate:
        """Register a template from :meth:`export_template` output.

        Without a *builder* the template must replace a registered one,
        whose builder it keeps.  An existing template with the same id is
        replaced.

        Raises:
            ConfigurationError: If *text* is not a template declaration or
                no builder is available.
        """
        try:
            data = json.loads(text)
            template_id = data["id"]
        except (ValueError, TypeError, KeyError) as exc:
            raise ConfigurationError(f"Invalid template JSON: {exc}") from exc

        if builder is None:
            existing = self._templates.get(template_id)
            if existing is None:
                raise ConfigurationError(
                    f"Template '{template_id}' has no circuit builder; pass builder="
                )
            builder = existing.builder
        try:
            template = AlgorithmTemplate.from_dict(data, builder)
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid template '{template_id}': {exc}") from exc

        self._templates[template.id] = template
        logger.debug("Imported template %s", template.id)
        return template


_default_library = TemplateLibrary()


def get_template(template_id: str) -> AlgorithmTemplate:
    return _default_library.get_template(template_id)


def list_templates(
    category: str | None = None, difficulty: str | None = None, qubits: int | None = None
) -> list[AlgorithmTemplate]:
    return _default_library.list_templates(category, difficulty, qubits)


def search_templates(query: str) -> list[AlgorithmTemplate]:
    return _default_library.search_templates(query)


def validate_parameters(template_id: str, params: Mapping[str, Any]) -> ValidationResult:
    return _default_library.validate_parameters(template_id, params)


def generate_circuit(template_id: str, params: Mapping[str, Any] | None = None) -> Circuit:
    return _default_library.generate_circuit(template_id, params)


def export_template(template_id: str) -> str:
    return _default_library.export_template(template_id)


def compare_templates(
    template_ids: list[str],
    params: Mapping[str, Mapping[str, Any]] | None = None,
    provider: ProviderLike = None,
) -> TemplateComparison:
    return _default_library.compare_templates(template_ids, params, provider)
