from __future__ import annotations

from dataclasses import dataclass
from itertools import product
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import sympy as sp

from qterms.core.descriptors.base import TermDescriptor, check_index, collect_terms, parse_index
from qterms.core.descriptors.pauli import PauliProduct
from qterms.core.errors import InvalidTerm
from qterms.core.types import ONE, Phase

PLUS_MINUS_SYMBOLS = ("+", "-", "Z")
_RANK = {"+": 1, "-": 2, "Z": 3}
_HALF = sp.Rational(1, 2)

# sigma+ = (X + iY)/2 = |0><1| in the Z basis, sigma- its adjoint.
_PM_TABLE: Dict[Tuple[str, str], List[Tuple[Optional[str], Phase]]] = {
    ("+", "+"): [],
    ("-", "-"): [],
    ("+", "-"): [(None, _HALF), ("Z", _HALF)],
    ("-", "+"): [(None, _HALF), ("Z", -_HALF)],
    ("Z", "+"): [("+", ONE)],
    ("+", "Z"): [("+", -ONE)],
    ("Z", "-"): [("-", -ONE)],
    ("-", "Z"): [("-", ONE)],
    ("Z", "Z"): [(None, ONE)],
}

_TO_PAULI: Dict[str, List[Tuple[str, Phase]]] = {
    "+": [("X", _HALF), ("Y", sp.I * _HALF)],
    "-": [("X", _HALF), ("Y", -sp.I * _HALF)],
    "Z": [("Z", ONE)],
}

_FROM_PAULI: Dict[str, List[Tuple[str, Phase]]] = {
    "X": [("+", ONE), ("-", ONE)],
    "Y": [("+", -sp.I), ("-", sp.I)],
    "Z": [("Z", ONE)],
}

_DAGGER = {"+": "-", "-": "+", "Z": "Z"}


def _site_product(a: Optional[str], b: Optional[str]) -> List[Tuple[Optional[str], Phase]]:
    if a is None:
        return [(b, ONE)]
    if b is None:
        return [(a, ONE)]
    return _PM_TABLE[(a, b)]


@dataclass(frozen=True)
class PlusMinusProduct(TermDescriptor):
    """Product of sigma+, sigma- and Z operators on distinct sites, e.g. "0+1-2Z"."""

    items: Tuple[Tuple[int, str], ...] = ()

    family = "plus_minus"

    @classmethod
    def parse_raw(cls, text: str) -> List[Tuple[int, str]]:
        if text in ("", "I"):
            return []
        out = []
        pos = 0
        while pos < len(text):
            index, pos = parse_index(text, pos, text)
            if pos >= len(text):
                raise InvalidTerm(f"Missing symbol after index {index} in {text!r}")
            out.append((index, text[pos]))
            pos += 1
        return out

    @classmethod
    def normalized(cls, raw: Any) -> Tuple[Optional["PlusMinusProduct"], Phase]:
        if isinstance(raw, Mapping):
            pairs = list(raw.items())
        elif isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
            raise InvalidTerm(f"PlusMinusProduct needs (index, symbol) pairs, got {raw!r}")
        else:
            pairs = list(raw)
        sites: Dict[int, str] = {}
        for item in pairs:
            if isinstance(item, (str, bytes)) or not isinstance(item, Sequence) or len(item) != 2:
                raise InvalidTerm(f"PlusMinusProduct entry must be (index, symbol), got {item!r}")
            i = check_index(item[0], raw)
            s = item[1]
            if s == "I":
                continue
            if s not in _RANK:
                raise InvalidTerm(f"Unknown plus/minus symbol {s!r} in {raw!r}")
            if i in sites:
                raise InvalidTerm(f"Site {i} appears twice in {raw!r}")
            sites[i] = s
        return cls(tuple(sorted(sites.items()))), ONE

    @classmethod
    def from_pauli(cls, pauli: PauliProduct) -> List[Tuple["PlusMinusProduct", Phase]]:
        """Expand a Pauli product into plus/minus products."""
        per_site = [[(i, s, p) for s, p in _FROM_PAULI[sym]] for i, sym in pauli.items]
        out = []
        for combo in product(*per_site):
            phase: Phase = ONE
            for _, _, p in combo:
                phase = phase * p
            out.append((cls(tuple((i, s) for i, s, _ in combo)), phase))
        return collect_terms(out)

    def to_pauli(self) -> List[Tuple[PauliProduct, Phase]]:
        """Expand into Pauli products."""
        per_site = [[(i, s, p) for s, p in _TO_PAULI[sym]] for i, sym in self.items]
        out = []
        for combo in product(*per_site):
            phase: Phase = ONE
            for _, _, p in combo:
                phase = phase * p
            out.append((PauliProduct(tuple((i, s) for i, s, _ in combo)), phase))
        return collect_terms(out)

    def sort_key(self) -> Tuple[Any, ...]:
        return (len(self.items), tuple((i, _RANK[s]) for i, s in self.items))

    def compose(self, other: "PlusMinusProduct") -> List[Tuple["PlusMinusProduct", Phase]]:
        if not isinstance(other, PlusMinusProduct):
            raise InvalidTerm(f"Cannot compose PlusMinusProduct with {type(other).__name__}")
        left, right = dict(self.items), dict(other.items)
        per_site = []
        for i in sorted(set(left) | set(right)):
            options = _site_product(left.get(i), right.get(i))
            if not options:
                return []
            per_site.append([(i, s, p) for s, p in options])
        out = []
        for combo in product(*per_site):
            phase: Phase = ONE
            for _, _, p in combo:
                phase = phase * p
            items = tuple((i, s) for i, s, _ in combo if s is not None)
            out.append((PlusMinusProduct(items), phase))
        return collect_terms(out)

    def hermitian_conjugate(self) -> Tuple["PlusMinusProduct", Phase]:
        return PlusMinusProduct(tuple((i, _DAGGER[s]) for i, s in self.items)), ONE

    def term_shape(self) -> int:
        return len(self.items)

    def current_number_modes(self) -> int:
        if not self.items:
            return 0
        return self.items[-1][0] + 1

    def __str__(self) -> str:
        return "".join(f"{i}{s}" for i, s in self.items)
