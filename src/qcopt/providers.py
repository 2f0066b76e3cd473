"""Provider constraint profiles.

Static reference data describing each supported hardware provider: size
limits, native gate set, gate timings and error rates, coherence times,
connectivity and pricing.  Times are in microseconds.

Looking up an unrecognized provider id never fails: it returns the
configured default profile (``generic`` unless changed with
:func:`qcopt.configure`) and logs a warning.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Union

from .circuit import Circuit
from .config import get_settings
from .gates import NON_UNITARY_GATES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConstraints:
    """Immutable description of one provider's hardware.

    Per-arity defaults (``*_by_arity``) are indexed by qubit count minus
    one and apply to gates missing from the per-gate tables.
    """

    id: str
    name: str
    max_qubits: int
    max_depth: int
    max_gate_count: int
    noise_level: str  # low | medium | high
    native_gates: frozenset[str]
    topology: str  # full | linear | grid | custom
    error_correction_level: str  # none | basic | advanced | logical
    t1: float
    t2: float
    readout_error: float
    crosstalk: float
    gate_times: Mapping[str, float] = field(default_factory=dict, compare=False)
    gate_times_by_arity: tuple[float, float, float] = (0.02, 0.2, 0.6)
    gate_errors: Mapping[str, float] = field(default_factory=dict, compare=False)
    gate_errors_by_arity: tuple[float, float, float] = (0.001, 0.01, 0.03)
    gate_costs: Mapping[str, float] = field(default_factory=dict, compare=False)
    gate_costs_by_arity: tuple[float, float, float] = (0.002, 0.02, 0.05)
    measurement_time: float = 0.1
    reset_time: float = 0.02
    measurement_cost: float = 0.01
    execution_cost_per_second: float = 0.1
    setup_cost: float = 1.0
    cost_multiplier: float = 1.0
    supported_passes: tuple[str, ...] = (
        "gate_cancellation",
        "gate_merging",
        "transpilation",
    )
    grid_shape: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        for name in ("gate_times", "gate_errors", "gate_costs"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    def is_native(self, gate: str) -> bool:
        return gate in self.native_gates or gate in NON_UNITARY_GATES

    def gate_time(self, gate: str, num_qubits: int = 1) -> float:
        if gate == "reset":
            return self.reset_time
        return self.gate_times.get(gate, self.gate_times_by_arity[num_qubits - 1])

    def gate_error(self, gate: str, num_qubits: int = 1) -> float:
        return self.gate_errors.get(gate, self.gate_errors_by_arity[num_qubits - 1])

    def gate_cost(self, gate: str, num_qubits: int = 1) -> float:
        return self.gate_costs.get(gate, self.gate_costs_by_arity[num_qubits - 1])

    @property
    def average_gate_time(self) -> float:
        """Mean single-qubit gate time across the native gate set."""
        times = [self.gate_time(g) for g in sorted(self.native_gates) if g in _ONE_QUBIT]
        return sum(times) / len(times) if times else self.gate_times_by_arity[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "max_qubits": self.max_qubits,
            "max_depth": self.max_depth,
            "max_gate_count": self.max_gate_count,
            "noise_level": self.noise_level,
            "native_gates": sorted(self.native_gates),
            "topology": self.topology,
            "error_correction_level": self.error_correction_level,
            "average_gate_time": self.average_gate_time,
            "t1": self.t1,
            "t2": self.t2,
            "readout_error": self.readout_error,
            "crosstalk": self.crosstalk,
            "supported_passes": list(self.supported_passes),
        }


_ONE_QUBIT = frozenset(
    {"id", "h", "x", "y", "z", "s", "sdg", "t", "tdg", "sx", "sxdg",
     "rx", "ry", "rz", "u1", "p", "u2", "u3"}
)

ProviderLike = Union[str, ProviderConstraints, None]


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

GOOGLE_WILLOW = ProviderConstraints(
    id="google-willow",
    name="Google Willow",
    max_qubits=1024,
    max_depth=10000,
    max_gate_count=100000,
    noise_level="low",
    native_gates=frozenset({"h", "x", "y", "z", "cx", "ccx", "rz", "rx", "ry", "cz", "swap"}),
    topology="full",
    error_correction_level="logical",
    t1=1000.0,
    t2=500.0,
    readout_error=0.005,
    crosstalk=0.0005,
    gate_times={
        "h": 0.02, "x": 0.02, "y": 0.02, "z": 0.02,
        "rz": 0.01, "rx": 0.02, "ry": 0.02,
        "cx": 0.15, "cz": 0.15, "swap": 0.30, "ccx": 0.45,
    },
    gate_times_by_arity=(0.02, 0.15, 0.45),
    gate_errors={
        "h": 0.0001, "x": 0.0001, "y": 0.0001, "z": 0.0001,
        "rz": 0.00005, "rx": 0.0001, "ry": 0.0001,
        "cx": 0.002, "cz": 0.002, "swap": 0.006, "ccx": 0.015,
    },
    gate_errors_by_arity=(0.0001, 0.002, 0.015),
    gate_costs={
        "h": 0.001, "x": 0.001, "y": 0.001, "z": 0.001,
        "rz": 0.0005, "rx": 0.001, "ry": 0.001,
        "cx": 0.01, "cz": 0.01, "swap": 0.02, "ccx": 0.03,
    },
    gate_costs_by_arity=(0.001, 0.01, 0.03),
    measurement_time=0.05,
    reset_time=0.01,
    measurement_cost=0.005,
    execution_cost_per_second=0.1,
    setup_cost=1.0,
    cost_multiplier=1.5,
    supported_passes=("gate_cancellation", "gate_merging", "transpilation"),
)

IBM_CONDOR = ProviderConstraints(
    id="ibm-condor",
    name="IBM Condor",
    max_qubits=433,
    max_depth=5000,
    max_gate_count=50000,
    noise_level="medium",
    native_gates=frozenset(
        {"h", "x", "y", "z", "cx", "rz", "rx", "ry", "sx", "sdg", "cz", "swap"}
    ),
    topology="custom",
    error_correction_level="advanced",
    t1=150.0,
    t2=80.0,
    readout_error=0.01,
    crosstalk=0.002,
    gate_times={
        "h": 0.03, "x": 0.03, "y": 0.03, "z": 0.03,
        "rz": 0.02, "rx": 0.03, "ry": 0.03, "sx": 0.025, "sdg": 0.025,
        "cx": 0.25, "cz": 0.30, "swap": 0.50, "ccx": 0.75,
    },
    gate_times_by_arity=(0.03, 0.25, 0.75),
    gate_errors={
        "h": 0.0002, "x": 0.0002, "y": 0.0002, "z": 0.0002,
        "rz": 0.0001, "rx": 0.0002, "ry": 0.0002, "sx": 0.0003, "sdg": 0.0003,
        "cx": 0.003, "cz": 0.003, "swap": 0.009, "ccx": 0.018,
    },
    gate_errors_by_arity=(0.0002, 0.003, 0.018),
    gate_costs={
        "h": 0.002, "x": 0.002, "y": 0.002, "z": 0.002,
        "rz": 0.001, "rx": 0.002, "ry": 0.002, "sx": 0.0015, "sdg": 0.0015,
        "cx": 0.015, "cz": 0.018, "swap": 0.025,
    },
    gate_costs_by_arity=(0.002, 0.015, 0.045),
    measurement_time=0.08,
    reset_time=0.02,
    measurement_cost=0.008,
    execution_cost_per_second=0.08,
    setup_cost=0.5,
    cost_multiplier=1.2,
    supported_passes=("gate_cancellation", "gate_merging", "transpilation"),
)

AMAZON_BRAKET = ProviderConstraints(
    id="amazon-braket",
    name="Amazon Braket",
    max_qubits=256,
    max_depth=3000,
    max_gate_count=30000,
    noise_level="medium",
    native_gates=frozenset({"h", "x", "y", "z", "cx", "rz", "rx", "ry", "cz", "swap"}),
    topology="grid",
    error_correction_level="basic",
    t1=200.0,
    t2=100.0,
    readout_error=0.01,
    crosstalk=0.0015,
    gate_times={
        "h": 0.025, "x": 0.025, "y": 0.025, "z": 0.025,
        "rz": 0.015, "rx": 0.025, "ry": 0.025,
        "cx": 0.20, "cz": 0.25, "swap": 0.40, "ccx": 0.60,
    },
    gate_times_by_arity=(0.025, 0.20, 0.60),
    gate_errors={
        "h": 0.0003, "x": 0.0003, "y": 0.0003, "z": 0.0003,
        "rz": 0.00015, "rx": 0.0003, "ry": 0.0003,
        "cx": 0.0035, "cz": 0.0035, "swap": 0.0105, "ccx": 0.02,
    },
    gate_errors_by_arity=(0.0003, 0.0035, 0.02),
    gate_costs={
        "h": 0.0015, "x": 0.0015, "y": 0.0015, "z": 0.0015,
        "rz": 0.0008, "rx": 0.0015, "ry": 0.0015,
        "cx": 0.012, "cz": 0.015, "swap": 0.020,
    },
    gate_costs_by_arity=(0.0015, 0.012, 0.036),
    measurement_time=0.10,
    reset_time=0.025,
    measurement_cost=0.006,
    execution_cost_per_second=0.05,
    setup_cost=0.3,
    cost_multiplier=1.0,
    supported_passes=("gate_cancellation", "gate_merging", "transpilation"),
    grid_shape=(16, 16),
)

# Conservative NISQ-class profile over the universal {rz, sx, x, cx} basis.
# Returned for any provider id that is not registered.
GENERIC = ProviderConstraints(
    id="generic",
    name="Generic NISQ device",
    max_qubits=127,
    max_depth=1000,
    max_gate_count=10000,
    noise_level="high",
    native_gates=frozenset({"rz", "sx", "x", "cx"}),
    topology="linear",
    error_correction_level="none",
    t1=100.0,
    t2=50.0,
    readout_error=0.02,
    crosstalk=0.002,
    gate_times={"rz": 0.0, "sx": 0.035, "x": 0.035, "cx": 0.3},
    gate_times_by_arity=(0.035, 0.3, 0.9),
    gate_errors={"rz": 0.0, "sx": 0.0005, "x": 0.0005, "cx": 0.01},
    gate_errors_by_arity=(0.0005, 0.01, 0.03),
    gate_costs={"rz": 0.0, "sx": 0.002, "x": 0.002, "cx": 0.02},
    gate_costs_by_arity=(0.002, 0.02, 0.06),
    measurement_time=0.5,
    reset_time=0.5,
    measurement_cost=0.01,
    execution_cost_per_second=0.1,
    setup_cost=0.5,
    cost_multiplier=1.0,
)

PROVIDERS: dict[str, ProviderConstraints] = {
    p.id: p for p in (GOOGLE_WILLOW, IBM_CONDOR, AMAZON_BRAKET, GENERIC)
}


def list_providers() -> list[str]:
    """Registered provider ids, in registration order."""
    return list(PROVIDERS)


def get_provider_constraints(provider: ProviderLike = None) -> ProviderConstraints:
    """Resolve *provider* to its constraint profile.

    Args:
        provider: A provider id, a :class:`ProviderConstraints` instance
                  (returned unchanged), or ``None`` for the default.

    Returns:
        The registered profile, or the default profile when the id is
        not recognized.
    """
    if isinstance(provider, ProviderConstraints):
        return provider
    default_id = get_settings().default_provider
    if provider is None:
        return PROVIDERS[default_id]
    try:
        return PROVIDERS[provider]
    except KeyError:
        logger.warning(
            "Unknown provider '%s'; using default profile '%s'", provider, default_id
        )
        return PROVIDERS[default_id]


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


def coupling_map(
    provider: ProviderLike = None, num_qubits: int | None = None
) -> list[tuple[int, int]]:
    """Undirected coupling edges ``(a, b)`` with ``a < b``.

    Only edges between the first ``num_qubits`` physical qubits are
    generated (all of them when ``num_qubits`` is ``None``).
    """
    constraints = get_provider_constraints(provider)
    n = constraints.max_qubits if num_qubits is None else min(num_qubits, constraints.max_qubits)

    if constraints.topology == "full":
        return [(i, j) for i in range(n) for j in range(i + 1, n)]
    if constraints.topology == "linear":
        return [(i, i + 1) for i in range(n - 1)]
    if constraints.topology == "grid":
        rows, cols = constraints.grid_shape or (1, constraints.max_qubits)
        edges = []
        for r in range(rows):
            for c in range(cols):
                current = r * cols + c
                if c < cols - 1:
                    edges.append((current, current + 1))
                if r < rows - 1:
                    edges.append((current, current + cols))
        return [(a, b) for a, b in edges if b < n]

    # Sparse fixed-frequency pattern
    edges = []
    for i in range(n):
        if i % 7 == 0 and i + 1 < n:
            edges.append((i, i + 1))
        if i % 5 == 0 and i + 2 < n:
            edges.append((i, i + 2))
    return edges


def connectivity_violations(circuit: Circuit, provider: ProviderLike = None) -> list:
    """Two-qubit gates whose qubits are not coupled under the trivial layout."""
    constraints = get_provider_constraints(provider)
    if constraints.topology == "full":
        return []
    edges = set(coupling_map(constraints, circuit.num_qubits))
    return [
        g
        for g in circuit.gates
        if g.num_qubits == 2 and tuple(sorted(g.qubits)) not in edges
    ]


def check_constraints(circuit: Circuit, provider: ProviderLike = None) -> list[str]:
    """Human-readable list of ways *circuit* exceeds the provider's limits."""
    constraints = get_provider_constraints(provider)
    problems: list[str] = []

    if circuit.num_qubits > constraints.max_qubits:
        problems.append(
            f"circuit uses {circuit.num_qubits} qubits; "
            f"{constraints.id} supports {constraints.max_qubits}"
        )
    if circuit.depth > constraints.max_depth:
        problems.append(
            f"circuit depth {circuit.depth} exceeds maximum {constraints.max_depth}"
        )
    if circuit.gate_count > constraints.max_gate_count:
        problems.append(
            f"gate count {circuit.gate_count} exceeds maximum {constraints.max_gate_count}"
        )
    non_native = sorted({g.name for g in circuit.gates if not constraints.is_native(g.name)})
    if non_native:
        problems.append(f"non-native gates require transpilation: {', '.join(non_native)}")
    return problems
