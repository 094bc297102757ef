from __future__ import annotations

import logging
import struct
from typing import Any, List, Optional, Tuple

from qterms.core.coeffs import CoeffPart, SymCoeff, join_parts, split_parts
from qterms.core.descriptors.base import TermDescriptor
from qterms.core.descriptors.bosons import BosonProduct
from qterms.core.descriptors.fermions import FermionProduct
from qterms.core.descriptors.ladder import LadderProduct
from qterms.core.descriptors.mixed import MixedProduct
from qterms.core.descriptors.pauli import PauliProduct
from qterms.core.descriptors.plus_minus import PlusMinusProduct
from qterms.core.errors import DecodeError, QTermsError
from qterms.core.serialization.registry import (
    CURRENT_VERSION,
    LENGTH,
    PREFIX,
    MAGIC,
    CurrentEncoding,
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

SYMBOL_CODES = {"X": 1, "Y": 2, "Z": 3, "+": 4, "-": 5}
CODE_SYMBOLS = {v: k for k, v in SYMBOL_CODES.items()}

PART_FLOAT = 0
PART_TEXT = 1


class Writer:
    """Little-endian struct writer for encoded payloads."""

    def __init__(self) -> None:
        self.buf = bytearray()

    def u8(self, x: int) -> None:
        self.buf.extend(struct.pack("<B", x))

    def u32(self, x: int) -> None:
        self.buf.extend(struct.pack("<I", x))

    def u64(self, x: int) -> None:
        if not 0 <= x < 2**64:
            raise QTermsError(f"Value {x} does not fit in an unsigned 64-bit field")
        self.buf.extend(struct.pack("<Q", x))

    def f64(self, x: float) -> None:
        self.buf.extend(struct.pack("<d", x))

    def text(self, s: str) -> None:
        data = s.encode("utf-8")
        self.u32(len(data))
        self.buf.extend(data)

    def part(self, p: CoeffPart) -> None:
        if isinstance(p, str):
            self.u8(PART_TEXT)
            self.text(p)
        else:
            self.u8(PART_FLOAT)
            self.f64(float(p))

    def getvalue(self) -> bytes:
        return bytes(self.buf)


class Reader:
    """Bounds-checked counterpart of Writer; malformed input raises DecodeError."""

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def _unpack(self, fmt: str) -> Any:
        size = struct.calcsize(fmt)
        if self.pos + size > len(self.data):
            raise DecodeError(f"Truncated payload at byte {self.pos}")
        (value,) = struct.unpack_from(fmt, self.data, self.pos)
        self.pos += size
        return value

    def u8(self) -> int:
        return self._unpack("<B")

    def u32(self) -> int:
        return self._unpack("<I")

    def u64(self) -> int:
        return self._unpack("<Q")

    def f64(self) -> float:
        return self._unpack("<d")

    def text(self) -> str:
        n = self.u32()
        if self.pos + n > len(self.data):
            raise DecodeError(f"Truncated string at byte {self.pos}")
        raw = self.data[self.pos:self.pos + n]
        self.pos += n
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Invalid UTF-8 string at byte {self.pos - n}") from e

    def part(self) -> CoeffPart:
        tag = self.u8()
        if tag == PART_FLOAT:
            return self.f64()
        if tag == PART_TEXT:
            return self.text()
        raise DecodeError(f"Unknown coefficient part tag {tag}")

    def count(self) -> int:
        n = self.u32()
        # every entry takes at least one byte
        if n > len(self.data) - self.pos:
            raise DecodeError(f"Entry count {n} exceeds the remaining payload")
        return n

    def done(self) -> None:
        if self.pos != len(self.data):
            raise DecodeError(f"{len(self.data) - self.pos} trailing bytes after payload")


# --- capacity ---


def _write_capacity(w: Writer, capacity: Capacity) -> None:
    if capacity is None:
        w.u8(0)
    elif isinstance(capacity, tuple):
        w.u8(2)
        for group in capacity:
            w.u32(len(group))
            for n in group:
                if n is None:
                    w.u8(0)
                else:
                    w.u8(1)
                    w.u64(n)
    else:
        w.u8(1)
        w.u64(capacity)


def _read_capacity(r: Reader) -> Capacity:
    tag = r.u8()
    if tag == 0:
        return None
    if tag == 1:
        return r.u64()
    if tag == 2:
        groups = []
        for _ in range(3):
            group = []
            for _ in range(r.count()):
                group.append(r.u64() if r.u8() else None)
            groups.append(tuple(group))
        return tuple(groups)
    raise DecodeError(f"Unknown capacity tag {tag}")


# --- descriptors ---


def _write_descriptor(w: Writer, d: TermDescriptor) -> None:
    if isinstance(d, (PauliProduct, PlusMinusProduct)):
        w.u32(len(d.items))
        for i, s in d.items:
            w.u64(i)
            w.u8(SYMBOL_CODES[s])
    elif isinstance(d, LadderProduct):
        w.u32(len(d.creators))
        for i in d.creators:
            w.u64(i)
        w.u32(len(d.annihilators))
        for i in d.annihilators:
            w.u64(i)
    elif isinstance(d, MixedProduct):
        for group in (d.spins, d.bosons, d.fermions):
            w.u32(len(group))
            for sub in group:
                _write_descriptor(w, sub)
    else:
        raise TypeError(f"Unsupported descriptor type: {type(d)!r}")


def _read_raw(r: Reader, descriptor_type: type) -> Any:
    if descriptor_type in (PauliProduct, PlusMinusProduct):
        items = []
        for _ in range(r.count()):
            i = r.u64()
            code = r.u8()
            if code not in CODE_SYMBOLS:
                raise DecodeError(f"Unknown operator symbol code {code}")
            items.append((i, CODE_SYMBOLS[code]))
        return items
    if issubclass(descriptor_type, LadderProduct):
        creators = [r.u64() for _ in range(r.count())]
        annihilators = [r.u64() for _ in range(r.count())]
        return (creators, annihilators)
    if descriptor_type is MixedProduct:
        spins = [_read_raw(r, PauliProduct) for _ in range(r.count())]
        bosons = [_read_raw(r, BosonProduct) for _ in range(r.count())]
        fermions = [_read_raw(r, FermionProduct) for _ in range(r.count())]
        return (spins, bosons, fermions)
    raise TypeError(f"Unsupported descriptor type: {descriptor_type!r}")


def _read_descriptor(r: Reader, descriptor_type: type) -> TermDescriptor:
    raw = _read_raw(r, descriptor_type)
    try:
        return descriptor_type.from_raw(raw)
    except QTermsError as e:
        raise DecodeError(f"Stored {descriptor_type.__name__} is not canonical: {e}") from e


# --- sections ---


def _write_section(w: Writer, system: TermSystem) -> None:
    w.u32(len(system))
    for key, coeff in system.iter_items():
        for d in system.key_spec().descriptors(key):
            _write_descriptor(w, d)
        re, im = split_parts(coeff)
        w.part(re)
        w.part(im)


def _read_section(r: Reader, cls: type) -> List[Tuple[Any, SymCoeff]]:
    entries = []
    for _ in range(r.count()):
        if cls.paired:
            key: Any = (
                _read_descriptor(r, cls.descriptor_type),
                _read_descriptor(r, cls.descriptor_type),
            )
        else:
            key = _read_descriptor(r, cls.descriptor_type)
        re, im = r.part(), r.part()
        try:
            entries.append((key, join_parts(re, im)))
        except QTermsError as e:
            raise DecodeError(f"Bad coefficient ({re!r}, {im!r}): {e}") from e
    return entries


def _build(cls: type, capacity: Capacity, entries: List[Tuple[Any, SymCoeff]]) -> TermSystem:
    # constructors validate capacity and, for Hamiltonians, Hermiticity
    return cls(capacity, entries)


# --- public API ---


def serialize(variant: Any, *, version: Optional[VersionTag] = None) -> bytes:
    """
    Encode a system variant as a version-tagged binary payload.

    Layout: b"QTRM", u16 major, u16 minor, u32 payload length, payload.
    The payload holds the type name, the capacity and one section of
    canonically ordered entries per map. Mode indices and capacities are
    u64, counts and text lengths u32.
    """
    check_export_version(version)
    w = Writer()
    if isinstance(variant, OpenSystem):
        w.text(variant.type_name)
        system, noise = variant.ungroup()
        _write_capacity(w, variant.number_modes)
        _write_section(w, system)
        _write_section(w, noise)
    elif isinstance(variant, TermSystem):
        w.text(variant.type_name)
        _write_capacity(w, variant.number_modes)
        _write_section(w, variant)
    else:
        raise TypeError(f"Cannot serialize {type(variant).__name__}")
    payload = w.getvalue()
    header = PREFIX.pack(MAGIC, *CURRENT_VERSION) + LENGTH.pack(len(payload))
    logger.debug("serialize: %s, %d payload bytes", variant.type_name, len(payload))
    return header + payload


def deserialize(data: bytes) -> Any:
    """
    Decode a payload written by serialize().

    Newer or legacy versions raise SchemaMismatch; truncated or malformed
    payloads raise DecodeError.
    """
    enc = decode_envelope(bytes(data))
    if isinstance(enc, LegacyEncoding):
        check_readable(enc.version)
    if enc.format != "binary":
        raise DecodeError("deserialize expects a binary payload; use from_json for JSON text")
    return decode_payload(enc)


def decode_payload(enc: CurrentEncoding) -> Any:
    r = Reader(enc.body)
    cls = variant_class(r.text())
    capacity = _read_capacity(r)
    logger.debug("decode_payload: %s, %d bytes", cls.__name__, len(enc.body))
    if issubclass(cls, OpenSystem):
        system = _build(cls.hamiltonian_type, capacity, _read_section(r, cls.hamiltonian_type))
        noise = _build(cls.noise_type, capacity, _read_section(r, cls.noise_type))
        r.done()
        return cls.group(system, noise)
    entries = _read_section(r, cls)
    r.done()
    return _build(cls, capacity, entries)
