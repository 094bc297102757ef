from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import sympy as sp

from qterms.core.descriptors.base import TermDescriptor, check_index, parse_index
from qterms.core.errors import InvalidTerm
from qterms.core.types import ONE, Phase

PAULI_SYMBOLS = ("X", "Y", "Z")
_RANK = {"X": 1, "Y": 2, "Z": 3}

# (a, b) -> (c, phase) with a*b == phase * c; None is the identity.
_PAULI_TABLE: Dict[Tuple[str, str], Tuple[Optional[str], Phase]] = {
    ("X", "X"): (None, ONE),
    ("Y", "Y"): (None, ONE),
    ("Z", "Z"): (None, ONE),
    ("X", "Y"): ("Z", sp.I),
    ("Y", "X"): ("Z", -sp.I),
    ("Y", "Z"): ("X", sp.I),
    ("Z", "Y"): ("X", -sp.I),
    ("Z", "X"): ("Y", sp.I),
    ("X", "Z"): ("Y", -sp.I),
}


def multiply_paulis(a: Optional[str], b: Optional[str]) -> Tuple[Optional[str], Phase]:
    if a is None:
        return b, ONE
    if b is None:
        return a, ONE
    return _PAULI_TABLE[(a, b)]


def _check_symbol(symbol: Any, source: Any) -> Optional[str]:
    if symbol == "I":
        return None
    if symbol not in _RANK:
        raise InvalidTerm(f"Unknown Pauli symbol {symbol!r} in {source!r}")
    return symbol


def _raw_pairs(raw: Any) -> List[Tuple[Any, Any]]:
    if isinstance(raw, Mapping):
        return list(raw.items())
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise InvalidTerm(f"Pauli product needs (index, symbol) pairs, got {raw!r}")
    pairs = []
    for item in raw:
        if isinstance(item, (str, bytes)) or not isinstance(item, Sequence) or len(item) != 2:
            raise InvalidTerm(f"Pauli product entry must be (index, symbol), got {item!r}")
        pairs.append((item[0], item[1]))
    return pairs


@dataclass(frozen=True)
class PauliProduct(TermDescriptor):
    """
    Product of single-site Pauli matrices, e.g. X_0 Z_1 written as "0X1Z".

    items holds (index, symbol) pairs sorted by index; identity sites are
    left out, so the empty product is the identity.
    """

    items: Tuple[Tuple[int, str], ...] = ()

    family = "spins"

    @classmethod
    def identity(cls) -> "PauliProduct":
        return cls(())

    @classmethod
    def parse_raw(cls, text: str) -> List[Tuple[int, str]]:
        if text in ("", "I"):
            return []
        out = []
        pos = 0
        while pos < len(text):
            index, pos = parse_index(text, pos, text)
            if pos >= len(text):
                raise InvalidTerm(f"Missing Pauli symbol after index {index} in {text!r}")
            out.append((index, text[pos]))
            pos += 1
        return out

    @classmethod
    def normalized(cls, raw: Any) -> Tuple[Optional["PauliProduct"], Phase]:
        sites: Dict[int, Optional[str]] = {}
        phase: Phase = ONE
        for index, symbol in _raw_pairs(raw):
            i = check_index(index, raw)
            s = _check_symbol(symbol, raw)
            new, p = multiply_paulis(sites.get(i), s)
            sites[i] = new
            phase = phase * p
        items = tuple(sorted((i, s) for i, s in sites.items() if s is not None))
        return cls(items), phase

    # --- builders ---

    def set_pauli(self, index: int, symbol: str) -> "PauliProduct":
        """Return a copy with the site at index replaced by symbol."""
        i = check_index(index, index)
        s = _check_symbol(symbol, symbol)
        sites = dict(self.items)
        if s is None:
            sites.pop(i, None)
        else:
            sites[i] = s
        return PauliProduct(tuple(sorted(sites.items())))

    def x(self, index: int) -> "PauliProduct":
        return self.set_pauli(index, "X")

    def y(self, index: int) -> "PauliProduct":
        return self.set_pauli(index, "Y")

    def z(self, index: int) -> "PauliProduct":
        return self.set_pauli(index, "Z")

    def get(self, index: int) -> Optional[str]:
        return dict(self.items).get(index)

    def term_shape(self) -> int:
        return len(self.items)

    def indices(self) -> Tuple[int, ...]:
        return tuple(i for i, _ in self.items)

    # --- algebra ---

    def sort_key(self) -> Tuple[Any, ...]:
        return (len(self.items), tuple((i, _RANK[s]) for i, s in self.items))

    def compose(self, other: "PauliProduct") -> List[Tuple["PauliProduct", Phase]]:
        if not isinstance(other, PauliProduct):
            raise InvalidTerm(f"Cannot compose PauliProduct with {type(other).__name__}")
        d, phase = PauliProduct.normalized(self.items + other.items)
        return [(d, phase)]

    def hermitian_conjugate(self) -> Tuple["PauliProduct", Phase]:
        return self, ONE

    def current_number_modes(self) -> int:
        if not self.items:
            return 0
        return self.items[-1][0] + 1

    def __str__(self) -> str:
        return "".join(f"{i}{s}" for i, s in self.items)
