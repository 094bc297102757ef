"""
Migration of generation-1 encodings.

Generation 1 wrote descriptors as plain strings without normalizing them,
and Hamiltonians kept a single term per Hermitian conjugate pair. Both
binary (magic, u16 major, u16 minor, then the body without a length field)
and JSON (a "_version" object) forms are read here and rebuilt as current
variants. Nothing is ever written in the old format.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple, Type, Union

import sympy as sp

from qterms.core.coeffs import SymCoeff, join_parts
from qterms.core.errors import DecodeError, QTermsError, UnsupportedLegacyShape
from qterms.core.serialization.binary import Reader
from qterms.core.serialization.registry import (
    LEGACY_TYPES,
    CurrentEncoding,
    decode_envelope,
)
from qterms.core.systems.base import TermSystem
from qterms.core.systems.hamiltonians import Hamiltonian
from qterms.core.systems.open_systems import OpenSystem
from qterms.core.types import Capacity

logger = logging.getLogger(__name__)

RawEntry = Tuple[Tuple[str, ...], SymCoeff]


# --- descriptor re-normalization ---


def _normalize_descriptor(descriptor_type: type, text: str) -> Tuple[Any, Any]:
    try:
        return descriptor_type.normalized(descriptor_type.parse_raw(text))
    except QTermsError as e:
        raise UnsupportedLegacyShape(
            f"Legacy {descriptor_type.__name__} string {text!r} cannot be read: {e}") from e


def _rebuild(cls: Type[TermSystem], capacity: Capacity, entries: List[RawEntry]) -> TermSystem:
    """Normalize legacy keys, fold their phases into the coefficients and build cls."""
    try:
        out = cls(capacity)
    except QTermsError as e:
        raise UnsupportedLegacyShape(f"Legacy capacity {capacity!r} is not valid: {e}") from e
    seen = set()
    for texts, coeff in entries:
        normalized = [_normalize_descriptor(cls.descriptor_type, t) for t in texts]
        if any(d is None for d, _ in normalized):
            logger.debug("migrate: dropping vanishing legacy term %r", texts)
            continue
        if cls.paired:
            (left, pl), (right, pr) = normalized
            key: Any = (left, right)
            value = coeff * pl * sp.conjugate(pr)
        else:
            key, phase = normalized[0]
            value = coeff * phase
        if isinstance(out, Hamiltonian):
            partner, _ = out.key_spec().adjoint(key)
            if key in seen or (partner != key and partner in seen):
                raise UnsupportedLegacyShape(
                    f"Legacy {cls.__name__} stores both {texts!r} and its Hermitian partner")
            seen.add(key)
        out.add_operator_product(key, value)
    return out


# --- binary ---


def _read_legacy_capacity(r: Reader, mixed: bool) -> Capacity:
    if not mixed:
        return r.u64() if r.u8() else None
    groups = []
    for _ in range(3):
        groups.append(tuple(r.u64() if r.u8() else None for _ in range(r.count())))
    return tuple(groups)


def _read_legacy_section(r: Reader, paired: bool) -> List[RawEntry]:
    entries = []
    for _ in range(r.count()):
        texts = (r.text(), r.text()) if paired else (r.text(),)
        re, im = r.part(), r.part()
        entries.append((texts, _coefficient(re, im)))
    return entries


def _coefficient(re: Any, im: Any) -> SymCoeff:
    # Generation 1 wrote plain expressions, never srepr.
    try:
        return join_parts(re, im, parse=SymCoeff.parse)
    except QTermsError as e:
        raise UnsupportedLegacyShape(
            f"Legacy coefficient ({re!r}, {im!r}) cannot be read: {e}") from e


def _migrate_binary(body: bytes) -> Any:
    r = Reader(body)
    name = r.text()
    cls = _legacy_class(name)
    if issubclass(cls, OpenSystem):
        mixed = cls.hamiltonian_type.descriptor_type.family == "mixed"
        capacity = _read_legacy_capacity(r, mixed)
        system_entries = _read_legacy_section(r, False)
        noise_entries = _read_legacy_section(r, True)
        r.done()
        return cls.group(
            _rebuild(cls.hamiltonian_type, capacity, system_entries),
            _rebuild(cls.noise_type, capacity, noise_entries),
        )
    capacity = _read_legacy_capacity(r, cls.descriptor_type.family == "mixed")
    entries = _read_legacy_section(r, cls.paired)
    r.done()
    return _rebuild(cls, capacity, entries)


# --- JSON ---


def _legacy_class(name: Any) -> type:
    cls = LEGACY_TYPES.get(name) if isinstance(name, str) else None
    if cls is None:
        raise UnsupportedLegacyShape(f"Unknown legacy type {name!r}")
    return cls


def _json_capacity(doc: Dict[str, Any], family: str) -> Capacity:
    if family == "plus_minus":
        return None
    if family == "spins":
        return doc.get("number_spins")
    if family in ("bosons", "fermions"):
        return doc.get("number_modes")
    groups = []
    for name in ("number_spins", "number_bosons", "number_fermions"):
        group = doc.get(name, [])
        if not isinstance(group, list):
            raise UnsupportedLegacyShape(f"Legacy {name} must be a list, got {group!r}")
        groups.append(tuple(group))
    return tuple(groups)


def _json_items(doc: Dict[str, Any], body_key: str, paired: bool) -> List[RawEntry]:
    body = doc.get(body_key)
    if not isinstance(body, dict) or not isinstance(body.get("items"), list):
        raise UnsupportedLegacyShape(f"Legacy document has no {body_key!r} items")
    width = 4 if paired else 3
    entries = []
    for item in body["items"]:
        if not isinstance(item, list) or len(item) != width:
            raise UnsupportedLegacyShape(f"Legacy item must hold {width} values, got {item!r}")
        *texts, re, im = item
        if not all(isinstance(t, str) for t in texts):
            raise UnsupportedLegacyShape(f"Legacy keys must be strings, got {texts!r}")
        entries.append((tuple(texts), _coefficient(re, im)))
    return entries


def _single_body_key(cls: type) -> str:
    return "hamiltonian" if issubclass(cls, Hamiltonian) else "operator"


def _migrate_json(doc: Dict[str, Any]) -> Any:
    cls = _legacy_class(doc.get("type"))
    if issubclass(cls, OpenSystem):
        system_doc = doc.get("system")
        noise_doc = doc.get("noise")
        if not isinstance(system_doc, dict) or not isinstance(noise_doc, dict):
            raise UnsupportedLegacyShape("Legacy open system needs 'system' and 'noise' objects")
        family = cls.hamiltonian_type.descriptor_type.family
        system = _rebuild(
            cls.hamiltonian_type,
            _json_capacity(system_doc, family),
            _json_items(system_doc, "hamiltonian", False),
        )
        noise = _rebuild(
            cls.noise_type,
            _json_capacity(noise_doc, family),
            _json_items(noise_doc, "operator", True),
        )
        return cls.group(system, noise)
    capacity = _json_capacity(doc, cls.descriptor_type.family)
    return _rebuild(cls, capacity, _json_items(doc, _single_body_key(cls), cls.paired))


# --- public API ---


def migrate_from_legacy(data: Union[bytes, str]) -> Any:
    """
    Read a generation-1 binary or JSON encoding into a current variant.

    Current-generation payloads are rejected with UnsupportedLegacyShape;
    use deserialize or from_json for those.
    """
    enc = decode_envelope(data)
    if isinstance(enc, CurrentEncoding):
        raise UnsupportedLegacyShape(
            f"Payload is already at version {enc.version[0]}.{enc.version[1]}")
    try:
        if enc.format == "binary":
            out = _migrate_binary(enc.body)
        else:
            out = _migrate_json(enc.body)
    except UnsupportedLegacyShape:
        raise
    except DecodeError as e:
        raise UnsupportedLegacyShape(f"Malformed legacy {enc.format} payload: {e}") from e
    except QTermsError as e:
        raise UnsupportedLegacyShape(
            f"Legacy {enc.format} payload has no valid current form: {e}") from e
    logger.debug(
        "migrate_from_legacy: %s %s -> %s (%d terms)",
        enc.format, enc.version, type(out).__name__, len(out))
    return out
