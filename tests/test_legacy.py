"""Tests for migrating generation-1 payloads."""

import json
import struct

import pytest

from qterms.core.errors import SchemaMismatch, UnsupportedLegacyShape
from qterms.core.serialization import deserialize, migrate_from_legacy, serialize
from qterms.core.systems import (
    BosonHamiltonian,
    FermionOperator,
    MixedOperator,
    PlusMinusOperator,
    SpinNoiseOperator,
    SpinOpenSystem,
    SpinOperator,
)

VERSION_1 = {"major_version": 1, "minor_version": 0}


def _text(s):
    data = s.encode("utf-8")
    return struct.pack("<I", len(data)) + data


def _part(p):
    if isinstance(p, str):
        return b"\x01" + _text(p)
    return b"\x00" + struct.pack("<d", p)


def _section(items):
    out = struct.pack("<I", len(items))
    for *keys, re, im in items:
        for key in keys:
            out += _text(key)
        out += _part(re) + _part(im)
    return out


def _capacity(n):
    if n is None:
        return b"\x00"
    return b"\x01" + struct.pack("<Q", n)


def _legacy_binary(type_name, capacity, *sections):
    body = _text(type_name) + _capacity(capacity)
    for items in sections:
        body += _section(items)
    return b"QTRM" + struct.pack("<HH", 1, 0) + body


def _legacy_json(**doc):
    doc["_version"] = VERSION_1
    return json.dumps(doc)


class TestLegacyJson:
    def test_spin_strings_are_renormalized(self):
        text = _legacy_json(
            type="SpinSystem", number_spins=2, operator={"items": [["0X0Y", 2.0, 0.0]]})
        op = migrate_from_legacy(text)
        assert type(op) is SpinOperator
        assert op.number_modes == 2
        assert op.get("0Z") == 2j
        assert len(op) == 1

    def test_hamiltonian_partner_is_filled_in(self):
        text = _legacy_json(
            type="BosonHamiltonianSystem", number_modes=None,
            hamiltonian={"items": [["c0a1", 0.5, 0.0], ["c0a0", 1.0, 0.0]]})
        h = migrate_from_legacy(text)
        assert type(h) is BosonHamiltonian
        assert h.get("c0a1") == 0.5
        assert h.get("c1a0") == 0.5
        assert h.get("c0a0") == 1

    def test_hamiltonian_with_both_partners_is_rejected(self):
        text = _legacy_json(
            type="BosonHamiltonianSystem",
            hamiltonian={"items": [["c0a1", 0.5, 0.0], ["c1a0", 0.5, 0.0]]})
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(text)

    def test_symbolic_coefficient(self):
        text = _legacy_json(type="SpinSystem", operator={"items": [["0X", "2*theta", 0.0]]})
        op = migrate_from_legacy(text)
        assert op.get("0X") == "2*theta"
        assert op.free_symbols() == frozenset({"theta"})

    def test_plus_minus_has_no_capacity(self):
        text = _legacy_json(type="PlusMinusOperator", operator={"items": [["0+1-", 1.0, 0.0]]})
        op = migrate_from_legacy(text)
        assert type(op) is PlusMinusOperator
        assert op.number_modes is None
        assert op.get("0+1-") == 1

    def test_noise_phases_fold_into_coefficient(self):
        text = _legacy_json(
            type="SpinLindbladNoiseSystem", number_spins=1,
            operator={"items": [["0X0Y", "0X0Y", 1.0, 0.0]]})
        noise = migrate_from_legacy(text)
        assert type(noise) is SpinNoiseOperator
        # (iZ) rho (iZ)^dagger = Z rho Z
        assert noise.get(("0Z", "0Z")) == 1

    def test_mixed_capacity(self):
        text = _legacy_json(
            type="MixedSystem", number_spins=[2], number_bosons=[None], number_fermions=[],
            operator={"items": [["S0X:Bc0a0:", 1.0, 0.0]]})
        op = migrate_from_legacy(text)
        assert op.number_modes == ((2,), (None,), ())
        assert op == MixedOperator(((2,), (None,), ()), {"S0X:Bc0a0:": 1})

    def test_open_system(self):
        text = _legacy_json(
            type="SpinLindbladOpenSystem",
            system={"number_spins": 1, "hamiltonian": {"items": [["0Z", 1.0, 0.0]]}},
            noise={"number_spins": 1, "operator": {"items": [["0X", "0X", 0.5, 0.0]]}})
        osys = migrate_from_legacy(text)
        assert type(osys) is SpinOpenSystem
        assert osys.system_get("0Z") == 1
        assert osys.noise_get(("0X", "0X")) == 0.5

    def test_complex_self_adjoint_term_is_rejected(self):
        text = _legacy_json(
            type="BosonHamiltonianSystem", hamiltonian={"items": [["c0a0", 0.0, 1.0]]})
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(text)

    def test_capacity_exceeded(self):
        text = _legacy_json(
            type="SpinSystem", number_spins=1, operator={"items": [["3X", 1.0, 0.0]]})
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(text)

    def test_rate_named_gamma(self):
        text = _legacy_json(
            type="SpinLindbladOpenSystem",
            system={"number_spins": 1, "hamiltonian": {"items": []}},
            noise={"number_spins": 1, "operator": {"items": [["0Z", "0Z", "gamma", 0.0]]}})
        osys = migrate_from_legacy(text)
        assert osys.noise_get(("0Z", "0Z")) == "gamma"
        assert osys.free_symbols() == frozenset({"gamma"})

    def test_unknown_type(self):
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(_legacy_json(type="Nope", operator={"items": []}))

    def test_bad_item(self):
        text = _legacy_json(type="SpinSystem", operator={"items": [["0X", 1.0]]})
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(text)

    def test_bad_key(self):
        text = _legacy_json(type="SpinSystem", operator={"items": [["0Q", 1.0, 0.0]]})
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(text)


class TestLegacyBinary:
    def test_fermion_sign(self):
        data = _legacy_binary("FermionSystem", 2, [("c1c0a0", 1.0, 0.0)])
        op = migrate_from_legacy(data)
        assert type(op) is FermionOperator
        assert op.number_modes == 2
        assert op.get("c0c1a0") == -1

    def test_repeated_fermion_is_dropped(self):
        data = _legacy_binary("FermionSystem", None, [("c0c0", 1.0, 0.0), ("c0", 1.0, 0.0)])
        op = migrate_from_legacy(data)
        assert len(op) == 1

    def test_string_part(self):
        data = _legacy_binary("SpinSystem", None, [("0Z", 0.0, "g")])
        assert migrate_from_legacy(data).get("0Z") == "I*g"

    def test_open_system(self):
        data = _legacy_binary(
            "SpinLindbladOpenSystem", None,
            [("0Z", 2.0, 0.0)],
            [("0Z", "0Z", 0.25, 0.0)])
        osys = migrate_from_legacy(data)
        assert osys.system_get("0Z") == 2
        assert osys.noise_get(("0Z", "0Z")) == 0.25

    def test_negative_diagonal_rate_is_rejected(self):
        data = _legacy_binary(
            "SpinLindbladOpenSystem", None,
            [("0Z", 2.0, 0.0)],
            [("0Z", "0Z", -0.25, 0.0)])
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(data)

    def test_complex_self_adjoint_term_is_rejected(self):
        data = _legacy_binary("SpinHamiltonianSystem", 1, [("0Z", 1.0, 0.5)])
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(data)

    def test_symbol_named_like_a_constant(self):
        data = _legacy_binary("SpinSystem", None, [("0Z", "E", 0.0)])
        assert migrate_from_legacy(data).free_symbols() == frozenset({"E"})

    def test_truncated(self):
        data = _legacy_binary("SpinSystem", None, [("0Z", 1.0, 0.0)])
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(data[:-3])

    def test_trailing_bytes(self):
        data = _legacy_binary("SpinSystem", None, [("0Z", 1.0, 0.0)])
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(data + b"\x00")

    def test_deserialize_refuses_legacy(self):
        data = _legacy_binary("SpinSystem", None, [("0Z", 1.0, 0.0)])
        with pytest.raises(SchemaMismatch):
            deserialize(data)

    def test_current_payload_is_rejected(self):
        with pytest.raises(UnsupportedLegacyShape):
            migrate_from_legacy(serialize(SpinOperator(None, {"0X": 1})))
