from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Type

from qterms.core.coeffs import SymCoeff, join_parts, split_parts
from qterms.core.config import DEFAULT_SERIALIZATION_OPTIONS, SerializationOptions
from qterms.core.errors import DecodeError, QTermsError
from qterms.core.serialization.registry import (
    CURRENT_VERSION,
    LegacyEncoding,
    check_export_version,
    check_readable,
    decode_envelope,
    variant_class,
)
from qterms.core.systems.base import TermSystem
from qterms.core.systems.open_systems import OpenSystem
from qterms.core.types import Capacity, VersionTag

logger = logging.getLogger(__name__)


def _capacity_to_json(capacity: Capacity) -> Any:
    if isinstance(capacity, tuple):
        return [list(group) for group in capacity]
    return capacity


def _capacity_from_json(value: Any) -> Any:
    if isinstance(value, list):
        return tuple(tuple(group) if isinstance(group, list) else group for group in value)
    return value


def _items_to_json(system: TermSystem) -> List[List[Any]]:
    spec = system.key_spec()
    out = []
    for key, coeff in system.iter_items():
        rendered = spec.render(key)
        re, im = split_parts(coeff)
        if system.paired:
            out.append([rendered[0], rendered[1], re, im])
        else:
            out.append([rendered, re, im])
    return out


def _items_from_json(cls: Type[TermSystem], items: Any) -> List[Tuple[Any, SymCoeff]]:
    if not isinstance(items, list):
        raise DecodeError(f"{cls.__name__} items must be a list, got {type(items).__name__}")
    width = 4 if cls.paired else 3
    spec = cls.key_spec()
    out = []
    for entry in items:
        if not isinstance(entry, list) or len(entry) != width:
            raise DecodeError(
                f"{cls.__name__} item must be a list of {width} values, got {entry!r}")
        *key, re, im = entry
        try:
            k = spec.parse(key if cls.paired else key[0])
            out.append((k, join_parts(re, im)))
        except QTermsError as e:
            raise DecodeError(f"Bad {cls.__name__} item {entry!r}: {e}") from e
    return out


def to_document(variant: Any) -> Dict[str, Any]:
    """The JSON-ready dict for a variant, before dumping."""
    doc: Dict[str, Any] = {
        "type": variant.type_name,
        "version": {"major": CURRENT_VERSION[0], "minor": CURRENT_VERSION[1]},
        "number_modes": _capacity_to_json(variant.number_modes),
    }
    if isinstance(variant, OpenSystem):
        system, noise = variant.ungroup()
        doc["system"] = {"items": _items_to_json(system)}
        doc["noise"] = {"items": _items_to_json(noise)}
    elif isinstance(variant, TermSystem):
        doc["items"] = _items_to_json(variant)
    else:
        raise TypeError(f"Cannot serialize {type(variant).__name__}")
    return doc


def to_json(
    variant: Any,
    *,
    options: Optional[SerializationOptions] = None,
    version: Optional[VersionTag] = None,
) -> str:
    """
    Encode a variant as a version-tagged JSON document.

    Coefficients are stored as [real, imag] parts: numbers where the part is
    numeric, sympy strings otherwise.
    """
    check_export_version(version)
    opt = options or DEFAULT_SERIALIZATION_OPTIONS
    text = json.dumps(to_document(variant), indent=opt.indent, sort_keys=opt.sort_keys)
    logger.debug("to_json: %s, %d chars", variant.type_name, len(text))
    return text


def _section(doc: Dict[str, Any], name: str) -> Any:
    section = doc.get(name)
    if not isinstance(section, dict) or "items" not in section:
        raise DecodeError(f"Missing {name!r} section with items")
    return section["items"]


def from_document(doc: Dict[str, Any]) -> Any:
    if "type" not in doc:
        raise DecodeError("JSON payload has no 'type'")
    cls = variant_class(doc["type"])
    capacity = _capacity_from_json(doc.get("number_modes"))
    if issubclass(cls, OpenSystem):
        h = cls.hamiltonian_type
        n = cls.noise_type
        system = h(capacity, _items_from_json(h, _section(doc, "system")))
        noise = n(capacity, _items_from_json(n, _section(doc, "noise")))
        return cls.group(system, noise)
    if "items" not in doc:
        raise DecodeError(f"{cls.__name__} payload has no 'items'")
    return cls(capacity, _items_from_json(cls, doc["items"]))


def from_json(text: Any) -> Any:
    """
    Decode a document written by to_json().

    Legacy documents and newer versions raise SchemaMismatch; anything that
    is not a well-formed document raises DecodeError.
    """
    enc = decode_envelope(text)
    if isinstance(enc, LegacyEncoding):
        check_readable(enc.version)
    if enc.format != "json":
        raise DecodeError("from_json expects JSON text; use deserialize for binary payloads")
    out = from_document(enc.body)
    logger.debug("from_json: %s, %d terms", type(out).__name__, len(out))
    return out


# --- schema ---

_COEFF_PART = {"type": ["number", "string"]}


def _capacity_schema(cls: type) -> Dict[str, Any]:
    if issubclass(cls, TermSystem):
        descriptor_type = cls.descriptor_type
    else:
        descriptor_type = cls.hamiltonian_type.descriptor_type
    if descriptor_type.family != "mixed":
        return {"type": ["integer", "null"], "minimum": 0}
    group = {"type": "array", "items": {"type": ["integer", "null"], "minimum": 0}}
    return {
        "oneOf": [
            {"type": "null"},
            {"type": "array", "prefixItems": [group, group, group], "minItems": 3, "maxItems": 3},
        ]
    }


def _items_schema(cls: Type[TermSystem]) -> Dict[str, Any]:
    key = {"type": "string"}
    keys = [key, key] if cls.paired else [key]
    entry = {
        "type": "array",
        "prefixItems": keys + [_COEFF_PART, _COEFF_PART],
        "minItems": len(keys) + 2,
        "maxItems": len(keys) + 2,
    }
    return {"type": "array", "items": entry}


def json_schema(cls: type) -> Dict[str, Any]:
    """JSON Schema (draft 2020-12) of the documents to_json() writes for cls."""
    if not (isinstance(cls, type) and issubclass(cls, (TermSystem, OpenSystem)) and cls.type_name):
        raise TypeError(f"No schema for {cls!r}")
    props: Dict[str, Any] = {
        "type": {"const": cls.type_name},
        "version": {
            "type": "object",
            "properties": {
                "major": {"const": CURRENT_VERSION[0]},
                "minor": {"type": "integer", "minimum": 0},
            },
            "required": ["major", "minor"],
        },
        "number_modes": _capacity_schema(cls),
    }
    if issubclass(cls, OpenSystem):
        for name, part in (("system", cls.hamiltonian_type), ("noise", cls.noise_type)):
            props[name] = {
                "type": "object",
                "properties": {"items": _items_schema(part)},
                "required": ["items"],
            }
        required = ["type", "version", "number_modes", "system", "noise"]
    else:
        props["items"] = _items_schema(cls)
        required = ["type", "version", "number_modes", "items"]
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "title": cls.type_name,
        "type": "object",
        "properties": props,
        "required": required,
    }
