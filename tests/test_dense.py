import numpy as np
import pytest

from qterms.core.config import DenseOptions
from qterms.core.dense import (
    boson_annihilator,
    spin_operator_from_dense,
    to_dense_matrix,
    to_dense_superoperator,
)
from qterms.core.errors import ModeCountExceeded, UnresolvedSymbol
from qterms.core.systems import (
    BosonOperator,
    FermionOperator,
    MixedOperator,
    PlusMinusOperator,
    SpinHamiltonian,
    SpinNoiseOperator,
    SpinOpenSystem,
    SpinOperator,
)

X = np.array([[0, 1], [1, 0]], dtype=complex)
Y = np.array([[0, -1j], [1j, 0]], dtype=complex)
Z = np.diag([1, -1]).astype(complex)
I2 = np.eye(2, dtype=complex)


class TestDenseMatrix:
    def test_single_pauli(self):
        op = SpinOperator(None, {"0X": 1})
        np.testing.assert_allclose(to_dense_matrix(op), X)

    def test_kron_order(self):
        op = SpinOperator(None, {"0Z1X": 2})
        np.testing.assert_allclose(op.to_dense_matrix(), 2 * np.kron(Z, X))

    def test_padding_to_capacity(self):
        op = SpinOperator(2, {"0Y": 1})
        np.testing.assert_allclose(to_dense_matrix(op), np.kron(Y, I2))
        np.testing.assert_allclose(to_dense_matrix(op, 3), np.kron(np.kron(Y, I2), I2))

    def test_dimension_too_small(self):
        op = SpinOperator(None, {"2X": 1})
        with pytest.raises(ModeCountExceeded):
            to_dense_matrix(op, 2)

    def test_symbols_must_be_bound(self):
        h = SpinHamiltonian(None, {"0Z": "w"})
        with pytest.raises(UnresolvedSymbol):
            to_dense_matrix(h)
        np.testing.assert_allclose(to_dense_matrix(h.substitute({"w": 3})), 3 * Z)

    def test_plus_minus(self):
        op = PlusMinusOperator(None, {"0+": 1})
        np.testing.assert_allclose(to_dense_matrix(op), (X + 1j * Y) / 2)

    def test_boson_number_operator(self):
        op = BosonOperator(None, {"c0a0": 1})
        mat = to_dense_matrix(op, options=DenseOptions(boson_cutoff=3))
        np.testing.assert_allclose(mat, np.diag([0, 1, 2]))

    def test_boson_annihilator(self):
        a = boson_annihilator(3)
        np.testing.assert_allclose(a @ np.array([0, 0, 1]), [0, np.sqrt(2), 0])

    def test_fermion_anticommutation(self):
        def mat(key):
            return to_dense_matrix(FermionOperator(2, {key: 1}))

        a0, a1, c0, c1 = mat("a0"), mat("a1"), mat("c0"), mat("c1")
        np.testing.assert_allclose(a0 @ c0 + c0 @ a0, np.eye(4))
        np.testing.assert_allclose(a0 @ c1 + c1 @ a0, np.zeros((4, 4)))
        np.testing.assert_allclose(a1 @ a0 + a0 @ a1, np.zeros((4, 4)))

    def test_fermion_product_matches_algebra(self):
        a0 = FermionOperator(2, {"a0": 1})
        c1 = FermionOperator(2, {"c1": 1})
        np.testing.assert_allclose(
            to_dense_matrix(a0 * c1), to_dense_matrix(a0) @ to_dense_matrix(c1))

    def test_mixed(self):
        op = MixedOperator(None, {"S0X:Bc0a0:": 1})
        mat = to_dense_matrix(op, options=DenseOptions(boson_cutoff=2))
        np.testing.assert_allclose(mat, np.kron(X, np.diag([0, 1])))

    def test_noise_has_no_matrix(self):
        with pytest.raises(TypeError):
            to_dense_matrix(SpinNoiseOperator(None, {("0X", "0X"): 1}))

    def test_empty_operator(self):
        np.testing.assert_allclose(to_dense_matrix(SpinOperator()), np.zeros((1, 1)))


class TestPauliDecomposition:
    def test_round_trip(self):
        mat = 0.5 * np.kron(X, Z) + 2j * np.kron(I2, Y)
        op = spin_operator_from_dense(mat)
        assert op.number_modes == 2
        assert op.get("0X1Z") == 0.5
        assert op.get("1Y") == 2j
        assert len(op) == 2
        np.testing.assert_allclose(to_dense_matrix(op), mat)

    def test_bad_shape(self):
        with pytest.raises(ValueError):
            spin_operator_from_dense(np.eye(3))


class TestSuperoperator:
    def test_matches_lindblad_equation(self):
        osys = SpinOpenSystem(1)
        osys.system_set("0Z", 0.7)
        osys.noise_set(("0X", "0X"), 0.3)
        osys.noise_set(("0Y", "0Z"), 0.1j)
        L = to_dense_superoperator(osys)

        rng = np.random.default_rng(7)
        m = rng.normal(size=(2, 2)) + 1j * rng.normal(size=(2, 2))
        rho = m @ m.conj().T
        H = 0.7 * Z
        expected = -1j * (H @ rho - rho @ H)
        for a_l, a_r, g in ((X, X, 0.3), (Y, Z, 0.1j)):
            ra = a_r.conj().T @ a_l
            expected += g * (a_l @ rho @ a_r.conj().T - 0.5 * (ra @ rho + rho @ ra))
        np.testing.assert_allclose(L @ rho.reshape(-1), expected.reshape(-1), atol=1e-12)

    def test_trace_preserving(self):
        osys = SpinOpenSystem(2)
        osys.system_set("0X1X", 1.0)
        osys.noise_set(("0Z", "0Z"), 0.5)
        osys.noise_set(("1X", "1X"), 0.25)
        L = osys.to_dense_superoperator()
        vec_identity = np.eye(4).reshape(-1)
        np.testing.assert_allclose(vec_identity @ L, np.zeros(16), atol=1e-12)
