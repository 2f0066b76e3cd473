"""Tests for the gate vocabulary and matrices."""

import math

import numpy as np
import pytest

from qcopt.exceptions import UnsupportedGateError
from qcopt.gates import (
    GATE_SPECS,
    equal_up_to_phase,
    gate_matrix,
    gate_spec,
    is_identity,
    u3_matrix,
    wrap_angle,
    zyz_angles,
)


# ===================================================================
# Signatures
# ===================================================================


class TestGateSpecs:
    def test_vocabulary_arity(self):
        assert gate_spec("h").num_qubits == 1
        assert gate_spec("cx").num_qubits == 2
        assert gate_spec("ccx").num_qubits == 3
        assert gate_spec("u3").num_params == 3
        assert gate_spec("crz").num_params == 1

    def test_inverses(self):
        assert gate_spec("s").inverse == "sdg"
        assert gate_spec("tdg").inverse == "t"
        assert gate_spec("x").self_inverse
        assert not gate_spec("s").self_inverse
        assert gate_spec("rx").inverse is None

    def test_unknown_gate_raises(self):
        with pytest.raises(UnsupportedGateError, match="foo"):
            gate_spec("foo")

    def test_measure_is_not_a_gate(self):
        assert "measure" not in GATE_SPECS


# ===================================================================
# Matrices
# ===================================================================


class TestGateMatrix:
    @pytest.mark.parametrize(
        "name", [n for n, s in GATE_SPECS.items() if n != "reset"]
    )
    def test_every_matrix_is_unitary(self, name):
        spec = GATE_SPECS[name]
        u = gate_matrix(name, [0.3 * (i + 1) for i in range(spec.num_params)])
        dim = 2**spec.num_qubits
        assert u.shape == (dim, dim)
        np.testing.assert_allclose(u.conj().T @ u, np.eye(dim), atol=1e-12)

    def test_cx_is_little_endian(self):
        # Control is the first listed qubit, i.e. bit 0 of the index.
        u = gate_matrix("cx")
        assert u[3, 1] == 1  # |c=1,t=0> -> |c=1,t=1>
        assert u[1, 3] == 1
        assert u[0, 0] == 1 and u[2, 2] == 1

    def test_reset_has_no_matrix(self):
        with pytest.raises(UnsupportedGateError):
            gate_matrix("reset")

    def test_wrong_parameter_count(self):
        with pytest.raises(ValueError, match="takes 1 parameter"):
            gate_matrix("rx", [])

    def test_sx_squared_is_x(self):
        sx = gate_matrix("sx")
        np.testing.assert_allclose(sx @ sx, gate_matrix("x"), atol=1e-12)

    def test_u3_matches_named_gates(self):
        assert equal_up_to_phase(u3_matrix(math.pi / 2, 0.0, math.pi), gate_matrix("h"))
        assert equal_up_to_phase(u3_matrix(math.pi, 0.0, math.pi), gate_matrix("x"))


# ===================================================================
# Helpers
# ===================================================================


class TestAngles:
    def test_wrap_angle_range(self):
        for angle in (-7.0, -math.pi, 0.0, math.pi, 3 * math.pi, 10.0):
            wrapped = wrap_angle(angle)
            assert -math.pi <= wrapped < math.pi
            assert math.isclose(math.cos(wrapped), math.cos(angle), abs_tol=1e-12)

    @pytest.mark.parametrize(
        "u",
        [
            gate_matrix("h"),
            gate_matrix("x"),
            gate_matrix("s"),
            gate_matrix("ry", [0.4]) @ gate_matrix("rz", [1.1]),
            gate_matrix("rx", [2.5]),
        ],
    )
    def test_zyz_reconstructs_matrix(self, u):
        theta, phi, lam = zyz_angles(u)
        assert equal_up_to_phase(u3_matrix(theta, phi, lam), u)

    def test_is_identity_ignores_global_phase(self):
        assert is_identity(np.exp(0.7j) * np.eye(2))
        assert not is_identity(gate_matrix("z"))
