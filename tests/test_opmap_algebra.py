import pytest
import sympy as sp

from qterms.core import algebra
from qterms.core.config import MapOptions
from qterms.core.descriptors import BosonProduct, PauliProduct
from qterms.core.errors import InvalidTerm
from qterms.core.opmap import IndexedOperatorMap, KeySpec

SPINS = KeySpec(PauliProduct)
NOISE = KeySpec(PauliProduct, paired=True)


class TestIndexedOperatorMap:
    def test_zero_is_pruned(self):
        m = IndexedOperatorMap(SPINS)
        m.set("0X", 1.0)
        m.add("0X", -1.0)
        assert m.is_empty()
        m.set("0Z", 0)
        assert "0Z" not in m

    def test_zero_atol(self):
        m = IndexedOperatorMap(SPINS, options=MapOptions(zero_atol=1e-9))
        m.set("0X", 1e-12)
        assert len(m) == 0

    def test_canonical_iteration(self):
        m = IndexedOperatorMap(SPINS)
        for key in ["0X1X", "1Z", "0Y"]:
            m.set(key, 1)
        assert [str(k) for k in m.keys()] == ["0Y", "1Z", "0X1X"]
        assert [str(k) for k, _ in m.iter_items()] == ["0Y", "1Z", "0X1X"]

    def test_missing_key_reads_zero(self):
        m = IndexedOperatorMap(SPINS)
        assert m.get("0X") == 0

    def test_bad_key(self):
        m = IndexedOperatorMap(SPINS)
        with pytest.raises(InvalidTerm):
            m.set("0Q", 1)
        noise = IndexedOperatorMap(NOISE)
        with pytest.raises(InvalidTerm):
            noise.set("0X", 1)

    def test_hermitian_conjugate_of_noise_swaps(self):
        m = IndexedOperatorMap(NOISE)
        m.set(("0X", "0Z"), 1j)
        h = m.hermitian_conjugate()
        assert h.get(("0Z", "0X")) == -1j
        assert ("0X", "0Z") not in h

    def test_truncate_keeps_symbols(self):
        m = IndexedOperatorMap(SPINS, {"0X": 1e-8, "0Y": "theta", "0Z": 1.0})
        t = m.truncate(1e-6)
        assert [str(k) for k in t.keys()] == ["0Y", "0Z"]
        assert len(m) == 3

    def test_current_number_modes(self):
        m = IndexedOperatorMap(SPINS, {"0X": 1, "3Z": 1})
        assert m.current_number_modes() == 4
        assert m.free_symbols() == frozenset()


class TestAlgebra:
    def test_sum_and_subtract(self):
        a = IndexedOperatorMap(SPINS, {"0X": 1, "0Z": 2})
        b = IndexedOperatorMap(SPINS, {"0X": -1, "1Z": 3})
        s = algebra.sum_maps(a, b)
        assert [str(k) for k in s.keys()] == ["0Z", "1Z"]
        assert algebra.subtract(s, b) == a
        assert a.get("0X") == 1

    def test_mixed_key_specs_rejected(self):
        a = IndexedOperatorMap(SPINS)
        b = IndexedOperatorMap(KeySpec(BosonProduct))
        with pytest.raises(TypeError):
            algebra.sum_maps(a, b)

    def test_scale_by_zero(self):
        a = IndexedOperatorMap(SPINS, {"0X": 1})
        assert algebra.scale(a, 0).is_empty()
        assert algebra.scale(a, "g").get("0X") == sp.Symbol("g", real=True)

    def test_multiply_paulis(self):
        x = IndexedOperatorMap(SPINS, {"0X": 1})
        y = IndexedOperatorMap(SPINS, {"0Y": 1})
        assert algebra.multiply(x, y) == IndexedOperatorMap(SPINS, {"0Z": 1j})
        assert algebra.commutator(x, y) == IndexedOperatorMap(SPINS, {"0Z": 2j})
        assert algebra.anticommutator(x, y).is_empty()

    def test_multiply_cancels(self):
        # (X + iY)(X + iY) = 0
        plus = IndexedOperatorMap(SPINS, {"0X": 1, "0Y": 1j})
        assert algebra.multiply(plus, plus).is_empty()

    def test_multiply_is_associative(self):
        a = IndexedOperatorMap(SPINS, {"0X": 1, "1Z": "g"})
        b = IndexedOperatorMap(SPINS, {"0Y": 2, "0X1X": 1})
        c = IndexedOperatorMap(SPINS, {"1Y": 1j, "0Z": 0.5})
        left = algebra.multiply(algebra.multiply(a, b), c)
        right = algebra.multiply(a, algebra.multiply(b, c))
        assert algebra.equals_within_sparsity(left, right, atol=1e-12)

    def test_addition_commutes(self):
        a = IndexedOperatorMap(SPINS, {"0X": 1, "1Z": "g"})
        b = IndexedOperatorMap(SPINS, {"0X": "h", "0Y": 2})
        assert algebra.sum_maps(a, b) == algebra.sum_maps(b, a)

    def test_addition_is_associative(self):
        a = IndexedOperatorMap(SPINS, {"0X": 1, "1Z": "g", "0Y": 0.5})
        b = IndexedOperatorMap(SPINS, {"0X": -1, "1Z": "h - g", "0X1X": 2j})
        c = IndexedOperatorMap(SPINS, {"1Z": "-h", "0Y": "k", "0X1X": -2j})
        left = algebra.sum_maps(algebra.sum_maps(a, b), c)
        right = algebra.sum_maps(a, algebra.sum_maps(b, c))
        assert left == right
        assert [str(k) for k in left.keys()] == ["0Y"]
        assert left.get("0Y") == "k + 0.5"

    def test_noise_maps_do_not_multiply(self):
        n = IndexedOperatorMap(NOISE, {("0X", "0X"): 1})
        with pytest.raises(TypeError):
            algebra.multiply(n, n)

    def test_inputs_untouched(self):
        a = IndexedOperatorMap(SPINS, {"0X": 1})
        before = a.copy()
        algebra.multiply(a, a)
        algebra.negate(a)
        assert a == before
