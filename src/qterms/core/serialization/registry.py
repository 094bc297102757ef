from __future__ import annotations

import json
import logging
import struct
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from qterms.core.errors import DecodeError, SchemaMismatch
from qterms.core.systems.families import (
    OPEN_SYSTEM_TYPES,
    SINGLE_MAP_TYPES,
    BosonHamiltonian,
    BosonNoiseOperator,
    BosonOpenSystem,
    BosonOperator,
    FermionHamiltonian,
    FermionNoiseOperator,
    FermionOpenSystem,
    FermionOperator,
    MixedHamiltonian,
    MixedNoiseOperator,
    MixedOpenSystem,
    MixedOperator,
    PlusMinusNoiseOperator,
    PlusMinusOperator,
    SpinHamiltonian,
    SpinNoiseOperator,
    SpinOpenSystem,
    SpinOperator,
)
from qterms.core.types import VersionTag

logger = logging.getLogger(__name__)

MAGIC = b"QTRM"
CURRENT_VERSION: VersionTag = (2, 0)
LEGACY_MAJOR = 1

# magic, major, minor
PREFIX = struct.Struct("<4sHH")
# payload length, current generation only
LENGTH = struct.Struct("<I")

VARIANT_TYPES: Dict[str, type] = {
    cls.type_name: cls for cls in SINGLE_MAP_TYPES + OPEN_SYSTEM_TYPES
}

# Generation-1 type names and the current class each one maps to.
LEGACY_TYPES: Dict[str, type] = {
    "SpinSystem": SpinOperator,
    "SpinHamiltonianSystem": SpinHamiltonian,
    "SpinLindbladNoiseSystem": SpinNoiseOperator,
    "SpinLindbladOpenSystem": SpinOpenSystem,
    "PlusMinusOperator": PlusMinusOperator,
    "PlusMinusLindbladNoiseOperator": PlusMinusNoiseOperator,
    "BosonSystem": BosonOperator,
    "BosonHamiltonianSystem": BosonHamiltonian,
    "BosonLindbladNoiseSystem": BosonNoiseOperator,
    "BosonLindbladOpenSystem": BosonOpenSystem,
    "FermionSystem": FermionOperator,
    "FermionHamiltonianSystem": FermionHamiltonian,
    "FermionLindbladNoiseSystem": FermionNoiseOperator,
    "FermionLindbladOpenSystem": FermionOpenSystem,
    "MixedSystem": MixedOperator,
    "MixedHamiltonianSystem": MixedHamiltonian,
    "MixedLindbladNoiseSystem": MixedNoiseOperator,
    "MixedLindbladOpenSystem": MixedOpenSystem,
}


def variant_class(name: str) -> type:
    cls = VARIANT_TYPES.get(name)
    if cls is None:
        raise DecodeError(f"Unknown variant type {name!r}")
    return cls


def check_export_version(version: Optional[VersionTag]) -> None:
    """Only the current generation can be written."""
    if version is None or tuple(version) == CURRENT_VERSION:
        return
    if version[0] == LEGACY_MAJOR:
        raise SchemaMismatch(
            f"Writing generation {LEGACY_MAJOR} encodings is not supported; "
            "migration only runs from old to new")
    raise SchemaMismatch(
        f"Cannot write version {tuple(version)}; only {CURRENT_VERSION} is supported")


def check_readable(version: VersionTag) -> None:
    """Raise SchemaMismatch unless version is the current generation."""
    major, minor = version
    if major == LEGACY_MAJOR:
        raise SchemaMismatch(
            f"Payload uses legacy version {major}.{minor}; use migrate_from_legacy")
    if (major, minor) > CURRENT_VERSION:
        raise SchemaMismatch(
            f"Payload version {major}.{minor} is newer than supported "
            f"{CURRENT_VERSION[0]}.{CURRENT_VERSION[1]}")
    if major != CURRENT_VERSION[0]:
        raise SchemaMismatch(f"Unknown payload version {major}.{minor}")


@dataclass(frozen=True)
class CurrentEncoding:
    """
    A payload written by this package.

    format is "binary" or "json"; body holds the binary payload after the
    header, or the parsed JSON document.
    """

    format: str
    version: VersionTag
    body: Any


@dataclass(frozen=True)
class LegacyEncoding:
    """A generation-1 payload; only migrate_from_legacy turns it into a variant."""

    format: str
    version: VersionTag
    body: Any


Encoding = Union[CurrentEncoding, LegacyEncoding]


def _decode_binary_envelope(data: bytes) -> Encoding:
    if len(data) < PREFIX.size:
        raise DecodeError(f"Payload too short for a header: {len(data)} bytes")
    magic, major, minor = PREFIX.unpack_from(data, 0)
    if magic != MAGIC:
        raise DecodeError(f"Bad magic {magic!r}")
    if major == LEGACY_MAJOR:
        return LegacyEncoding("binary", (major, minor), bytes(data[PREFIX.size:]))
    check_readable((major, minor))
    if len(data) < PREFIX.size + LENGTH.size:
        raise DecodeError("Payload too short for the length field")
    (length,) = LENGTH.unpack_from(data, PREFIX.size)
    start = PREFIX.size + LENGTH.size
    body = bytes(data[start:])
    if len(body) != length:
        raise DecodeError(f"Payload length mismatch: header says {length}, found {len(body)}")
    return CurrentEncoding("binary", (major, minor), body)


def _json_version(doc: Dict[str, Any]) -> Optional[Encoding]:
    if "version" in doc:
        v = doc["version"]
        try:
            version = (int(v["major"]), int(v["minor"]))
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Malformed version tag {v!r}") from e
        if version[0] == LEGACY_MAJOR:
            return LegacyEncoding("json", version, doc)
        check_readable(version)
        return CurrentEncoding("json", version, doc)
    if "_version" in doc:
        v = doc["_version"]
        try:
            version = (int(v["major_version"]), int(v.get("minor_version", 0)))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Malformed legacy version tag {v!r}") from e
        if version[0] != LEGACY_MAJOR:
            raise SchemaMismatch(f"Unknown legacy version {version[0]}.{version[1]}")
        return LegacyEncoding("json", version, doc)
    return None


def decode_envelope(data: Union[bytes, str]) -> Encoding:
    """
    Classify an encoded payload by generation without building a variant.

    Accepts binary payloads and JSON text (str or UTF-8 bytes). Versions
    newer than this package understands raise SchemaMismatch.
    """
    if isinstance(data, str):
        text = data
    elif isinstance(data, (bytes, bytearray, memoryview)):
        raw = bytes(data)
        if raw.startswith(MAGIC):
            enc = _decode_binary_envelope(raw)
            logger.debug("decode_envelope: binary %s version %s", type(enc).__name__, enc.version)
            return enc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError("Payload is neither a binary encoding nor UTF-8 JSON") from e
    else:
        raise TypeError(f"Expected bytes or str, got {type(data)!r}")

    try:
        doc = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Payload is not valid JSON: {e}") from e
    if not isinstance(doc, dict):
        raise DecodeError("JSON payload must be an object")
    enc = _json_version(doc)
    if enc is None:
        raise DecodeError("JSON payload carries no version tag")
    logger.debug("decode_envelope: json %s version %s", type(enc).__name__, enc.version)
    return enc

