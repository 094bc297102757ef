"""Tests for term descriptors: parsing, canonical order and composition."""

import pytest
import sympy as sp

from qterms.core.descriptors import (
    BosonProduct,
    FermionProduct,
    MixedProduct,
    PauliProduct,
    PlusMinusProduct,
    compare,
)
from qterms.core.errors import InvalidTerm


class TestPauliProduct:
    def test_parse_sorts_and_renders(self):
        d = PauliProduct.from_string("1Z0X")
        assert str(d) == "0X1Z"
        assert d.items == ((0, "X"), (1, "Z"))

    def test_identity_spellings(self):
        assert PauliProduct.from_string("") == PauliProduct.identity()
        assert PauliProduct.from_string("I") == PauliProduct.identity()
        assert str(PauliProduct.identity()) == ""

    def test_same_site_product_is_not_plain(self):
        with pytest.raises(InvalidTerm):
            PauliProduct.from_string("0X0Y")

    def test_normalized_reports_phase(self):
        d, phase = PauliProduct.normalized([(0, "X"), (0, "Y")])
        assert d == PauliProduct.from_string("0Z")
        assert phase == sp.I

    def test_bad_symbol(self):
        with pytest.raises(InvalidTerm):
            PauliProduct.from_string("0Q")
        with pytest.raises(InvalidTerm):
            PauliProduct.from_string("0")

    def test_builders(self):
        d = PauliProduct.identity().x(0).z(2)
        assert str(d) == "0X2Z"
        assert d.get(2) == "Z"
        assert d.get(1) is None
        assert str(d.set_pauli(0, "I")) == "2Z"

    @pytest.mark.parametrize(
        "a,b,expected,phase",
        [
            ("0X", "0Y", "0Z", sp.I),
            ("0Y", "0X", "0Z", -sp.I),
            ("0Y", "0Z", "0X", sp.I),
            ("0Z", "0X", "0Y", sp.I),
            ("0X", "0X", "", 1),
            ("0X", "1X", "0X1X", 1),
        ],
    )
    def test_compose(self, a, b, expected, phase):
        out = PauliProduct.from_string(a).compose(PauliProduct.from_string(b))
        assert out == [(PauliProduct.from_string(expected), phase)]

    def test_self_adjoint(self):
        d = PauliProduct.from_string("0X1Y")
        assert d.hermitian_conjugate() == (d, 1)
        assert d.is_self_adjoint()

    def test_ordering_is_graded(self):
        keys = [PauliProduct.from_string(s) for s in ["0X1X", "1X", "0Z", "", "0X"]]
        assert [str(k) for k in sorted(keys)] == ["", "0X", "0Z", "1X", "0X1X"]
        assert compare(keys[4], keys[2]) == -1
        assert compare(keys[4], keys[4]) == 0

    def test_capacity(self):
        d = PauliProduct.from_string("0X3Z")
        assert d.current_number_modes() == 4
        assert d.fits_within(4)
        assert not d.fits_within(3)
        assert d.fits_within(None)
        assert PauliProduct.identity().current_number_modes() == 0

    def test_cross_family_compare(self):
        with pytest.raises(TypeError):
            compare(PauliProduct.from_string("0X"), PlusMinusProduct.from_string("0+"))


class TestPlusMinusProduct:
    def test_parse(self):
        d = PlusMinusProduct.from_string("2Z0+1-")
        assert str(d) == "0+1-2Z"

    def test_duplicate_site_rejected(self):
        with pytest.raises(InvalidTerm):
            PlusMinusProduct.from_raw([(0, "+"), (0, "-")])

    def test_compose_raising_lowering(self):
        plus = PlusMinusProduct.from_string("0+")
        minus = PlusMinusProduct.from_string("0-")
        assert plus.compose(minus) == [
            (PlusMinusProduct.from_string(""), sp.Rational(1, 2)),
            (PlusMinusProduct.from_string("0Z"), sp.Rational(1, 2)),
        ]
        assert plus.compose(plus) == []

    def test_z_absorbs(self):
        z = PlusMinusProduct.from_string("0Z")
        plus = PlusMinusProduct.from_string("0+")
        assert z.compose(plus) == [(plus, 1)]
        assert plus.compose(z) == [(plus, -1)]

    def test_hermitian_conjugate_swaps(self):
        d = PlusMinusProduct.from_string("0+1Z")
        assert d.hermitian_conjugate() == (PlusMinusProduct.from_string("0-1Z"), 1)

    def test_pauli_conversion(self):
        x = PauliProduct.from_string("0X")
        assert PlusMinusProduct.from_pauli(x) == [
            (PlusMinusProduct.from_string("0+"), 1),
            (PlusMinusProduct.from_string("0-"), 1),
        ]
        assert PlusMinusProduct.from_string("0+").to_pauli() == [
            (PauliProduct.from_string("0X"), sp.Rational(1, 2)),
            (PauliProduct.from_string("0Y"), sp.I / 2),
        ]


class TestBosonProduct:
    def test_parse(self):
        d = BosonProduct.from_string("c1c0a2")
        assert d.creators == (0, 1)
        assert d.annihilators == (2,)
        assert str(d) == "c0c1a2"

    def test_creators_first(self):
        with pytest.raises(InvalidTerm):
            BosonProduct.from_string("a0c1")

    def test_repeated_indices_allowed(self):
        assert str(BosonProduct.from_string("c0c0a0")) == "c0c0a0"

    def test_wick_expansion(self):
        n = BosonProduct.from_string("c0a0")
        assert n.compose(n) == [
            (BosonProduct.from_string("c0a0"), 1),
            (BosonProduct.from_string("c0c0a0a0"), 1),
        ]

    def test_distinct_modes_commute(self):
        a = BosonProduct.from_string("a1")
        c = BosonProduct.from_string("c0")
        assert a.compose(c) == [(BosonProduct.from_string("c0a1"), 1)]

    def test_hermitian_conjugate(self):
        d = BosonProduct.from_string("c0c1a2")
        assert d.hermitian_conjugate() == (BosonProduct.from_string("c2a0a1"), 1)

    def test_shape(self):
        d = BosonProduct.from_string("c0c1a2")
        assert d.term_shape() == (2, 1)
        assert d.current_number_modes() == 3


class TestFermionProduct:
    def test_sort_sign(self):
        d, phase = FermionProduct.normalized(([1, 0], []))
        assert str(d) == "c0c1"
        assert phase == -1
        with pytest.raises(InvalidTerm):
            FermionProduct.from_string("c1c0")

    def test_pauli_exclusion(self):
        d, phase = FermionProduct.normalized(([0, 0], []))
        assert d is None
        assert phase == 0
        with pytest.raises(InvalidTerm):
            FermionProduct.from_string("c0c0")

    def test_number_times_creator(self):
        n = FermionProduct.from_string("c0a0")
        c = FermionProduct.from_string("c0")
        assert n.compose(c) == [(c, 1)]

    def test_anticommuting_modes(self):
        a = FermionProduct.from_string("a0")
        c = FermionProduct.from_string("c1")
        assert a.compose(c) == [(FermionProduct.from_string("c1a0"), -1)]

    def test_hermitian_conjugate_sign(self):
        d = FermionProduct.from_string("c0c1a2")
        assert d.hermitian_conjugate() == (FermionProduct.from_string("c2a0a1"), -1)

    def test_compose_with_boson_fails(self):
        with pytest.raises(InvalidTerm):
            FermionProduct.from_string("c0").compose(BosonProduct.from_string("c0"))


class TestMixedProduct:
    def test_parse_and_render(self):
        d = MixedProduct.from_string(":S0Z:Bc0a1:Fc0a0:")
        assert str(d) == "S0Z:Bc0a1:Fc0a0:"
        assert d.subsystem_counts() == (1, 1, 1)
        assert MixedProduct.from_string("S0Z:Bc0a1:Fc0a0:") == d

    def test_subsystem_order_enforced(self):
        with pytest.raises(InvalidTerm):
            MixedProduct.from_string("Bc0:S0X:")
        with pytest.raises(InvalidTerm):
            MixedProduct.from_string("S0X")

    def test_compose_sign(self):
        a = MixedProduct.from_string(":S0Z:Bc0a1:Fc0a0:")
        b = MixedProduct.from_string(":S1X:Bc2a3:Fc1a1:")
        assert a.compose(b) == [
            (MixedProduct.from_string(":S0Z1X:Bc0c2a1a3:Fc0c1a0a1:"), -1)
        ]

    def test_layout_mismatch(self):
        a = MixedProduct.from_string("S0Z:")
        b = MixedProduct.from_string("S0Z:S1X:")
        with pytest.raises(InvalidTerm):
            a.compose(b)

    def test_capacity(self):
        d = MixedProduct.from_string("S2X:Bc0:")
        assert d.current_number_modes() == ((3,), (1,), ())
        assert d.fits_within(((3,), (None,), ()))
        assert not d.fits_within(((2,), (None,), ()))
        with pytest.raises(InvalidTerm):
            d.fits_within(((3,), (), ()))

    def test_hermitian_conjugate(self):
        d = MixedProduct.from_string("S0Y:Fc0c1a2:")
        assert d.hermitian_conjugate() == (MixedProduct.from_string("S0Y:Fc2a0a1:"), -1)
