from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from typing import Any, List, Optional, Sequence, Tuple, Type

from qterms.core.descriptors.base import TermDescriptor, collect_terms
from qterms.core.descriptors.bosons import BosonProduct
from qterms.core.descriptors.fermions import FermionProduct
from qterms.core.descriptors.pauli import PauliProduct
from qterms.core.errors import InvalidTerm
from qterms.core.types import ONE, ZERO, Capacity, Phase

_PREFIXES = (("S", PauliProduct), ("B", BosonProduct), ("F", FermionProduct))


def _normalize_sub(
    kind: Type[TermDescriptor], value: Any
) -> Tuple[Optional[TermDescriptor], Phase]:
    if isinstance(value, kind):
        return value, ONE
    if isinstance(value, TermDescriptor):
        raise InvalidTerm(f"Expected {kind.__name__} in mixed product, got {type(value).__name__}")
    if isinstance(value, str):
        return kind.normalized(kind.parse_raw(value))
    return kind.normalized(value)


@dataclass(frozen=True)
class MixedProduct(TermDescriptor):
    """
    One sub-product per subsystem: spin subsystems first, then bosonic, then
    fermionic. Written as "S0Z:Bc0a1:Fc0a0:".

    Products of different subsystems commute, so composing two mixed
    products works subsystem by subsystem.
    """

    spins: Tuple[PauliProduct, ...] = ()
    bosons: Tuple[BosonProduct, ...] = ()
    fermions: Tuple[FermionProduct, ...] = ()

    family = "mixed"

    @classmethod
    def parse_raw(cls, text: str) -> Tuple[List[str], List[str], List[str]]:
        parts: Tuple[List[str], List[str], List[str]] = ([], [], [])
        body = text[1:] if text.startswith(":") else text
        if not body:
            return parts
        if not body.endswith(":"):
            raise InvalidTerm(f"Mixed product string must end with ':', got {text!r}")
        stage = 0
        for chunk in body[:-1].split(":"):
            if not chunk:
                raise InvalidTerm(f"Empty subsystem entry in {text!r}")
            for k, (prefix, _) in enumerate(_PREFIXES):
                if chunk[0] == prefix:
                    break
            else:
                raise InvalidTerm(f"Unknown subsystem prefix {chunk[0]!r} in {text!r}")
            if k < stage:
                raise InvalidTerm(
                    f"Subsystems must be ordered spins, bosons, fermions in {text!r}")
            stage = k
            parts[k].append(chunk[1:])
        return parts

    @classmethod
    def normalized(cls, raw: Any) -> Tuple[Optional["MixedProduct"], Phase]:
        if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence) or len(raw) != 3:
            raise InvalidTerm(f"MixedProduct needs (spins, bosons, fermions), got {raw!r}")
        phase: Phase = ONE
        groups = []
        for (_, kind), values in zip(_PREFIXES, raw):
            if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
                raise InvalidTerm(f"Subsystem list expected, got {values!r}")
            subs = []
            for v in values:
                d, p = _normalize_sub(kind, v)
                if d is None:
                    return None, ZERO
                subs.append(d)
                phase = phase * p
            groups.append(tuple(subs))
        return cls(*groups), phase

    def subsystem_counts(self) -> Tuple[int, int, int]:
        return (len(self.spins), len(self.bosons), len(self.fermions))

    def sort_key(self) -> Tuple[Any, ...]:
        return (
            tuple(s.sort_key() for s in self.spins),
            tuple(b.sort_key() for b in self.bosons),
            tuple(f.sort_key() for f in self.fermions),
        )

    def compose(self, other: "MixedProduct") -> List[Tuple["MixedProduct", Phase]]:
        if not isinstance(other, MixedProduct):
            raise InvalidTerm(f"Cannot compose MixedProduct with {type(other).__name__}")
        if self.subsystem_counts() != other.subsystem_counts():
            raise InvalidTerm(
                "Mixed products have different subsystem counts: "
                f"{self.subsystem_counts()} vs {other.subsystem_counts()}")
        per_sub = []
        for a, b in zip(self.spins + self.bosons + self.fermions,
                        other.spins + other.bosons + other.fermions):
            options = a.compose(b)
            if not options:
                return []
            per_sub.append(options)
        ns, nb, _ = self.subsystem_counts()
        out = []
        for combo in product(*per_sub):
            phase: Phase = ONE
            for _, p in combo:
                phase = phase * p
            subs = [d for d, _ in combo]
            d = MixedProduct(tuple(subs[:ns]), tuple(subs[ns:ns + nb]), tuple(subs[ns + nb:]))
            out.append((d, phase))
        return collect_terms(out)

    def hermitian_conjugate(self) -> Tuple["MixedProduct", Phase]:
        phase: Phase = ONE
        groups = []
        for subs in (self.spins, self.bosons, self.fermions):
            conj = []
            for s in subs:
                d, p = s.hermitian_conjugate()
                conj.append(d)
                phase = phase * p
            groups.append(tuple(conj))
        return MixedProduct(*groups), phase

    def current_number_modes(self) -> Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]:
        return (
            tuple(s.current_number_modes() for s in self.spins),
            tuple(b.current_number_modes() for b in self.bosons),
            tuple(f.current_number_modes() for f in self.fermions),
        )

    def term_shape(self) -> Tuple[Tuple[Any, ...], Tuple[Any, ...], Tuple[Any, ...]]:
        return (
            tuple(s.term_shape() for s in self.spins),
            tuple(b.term_shape() for b in self.bosons),
            tuple(f.term_shape() for f in self.fermions),
        )

    def fits_within(self, capacity: Capacity) -> bool:
        if capacity is None:
            return True
        if not isinstance(capacity, tuple) or len(capacity) != 3:
            raise InvalidTerm(
                f"Mixed capacity must be a (spins, bosons, fermions) triple, got {capacity!r}")
        for limits, used in zip(capacity, self.current_number_modes()):
            if len(limits) != len(used):
                raise InvalidTerm(
                    f"Mixed product layout {self.subsystem_counts()} does not match "
                    f"capacity {capacity!r}")
            for limit, n in zip(limits, used):
                if limit is not None and n > limit:
                    return False
        return True

    def __str__(self) -> str:
        out = []
        for (prefix, _), subs in zip(_PREFIXES, (self.spins, self.bosons, self.fermions)):
            out.extend(f"{prefix}{s}:" for s in subs)
        return "".join(out)
