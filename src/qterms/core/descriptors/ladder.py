from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, List, Optional, Sequence, Tuple

from qterms.core.descriptors.base import (
    TermDescriptor,
    check_indices,
    collect_terms,
    parse_index,
)
from qterms.core.errors import InvalidTerm
from qterms.core.types import ONE, ZERO, Phase

# (creators, annihilators, sign)
_Ordered = Tuple[Tuple[int, ...], Tuple[int, ...], int]


def _commute_through(
    annihilator: int, creators: Tuple[int, ...], fermionic: bool
) -> List[Tuple[Tuple[int, ...], bool, int]]:
    """
    Move one annihilator to the right of a run of creators.

    Returns (remaining_creators, annihilator_survives, sign) entries. Each
    contraction with an equal creator index drops both operators.
    """
    out = []
    for j, c in enumerate(creators):
        if c == annihilator:
            sign = -1 if (fermionic and j % 2) else 1
            out.append((creators[:j] + creators[j + 1:], False, sign))
    sign = -1 if (fermionic and len(creators) % 2) else 1
    out.append((creators, True, sign))
    return out


def normal_order(
    annihilators: Tuple[int, ...], creators: Tuple[int, ...], fermionic: bool
) -> List[_Ordered]:
    """
    Expand annihilators * creators into a sum of creators-first products.

    Uses a_i c_j = c_j a_i + delta_ij for bosons and
    a_i c_j = -c_j a_i + delta_ij for fermions.
    """
    if not annihilators or not creators:
        return [(creators, annihilators, 1)]
    rest, last = annihilators[:-1], annihilators[-1]
    out: List[_Ordered] = []
    for remaining, survives, sign in _commute_through(last, creators, fermionic):
        for cre, ann, inner in normal_order(rest, remaining, fermionic):
            tail = ann + (last,) if survives else ann
            out.append((cre, tail, sign * inner))
    return out


def sort_with_parity(values: Sequence[int]) -> Tuple[Tuple[int, ...], int]:
    """Sort values and return the parity (+1/-1) of the permutation used."""
    inversions = 0
    for i in range(len(values)):
        for j in range(i + 1, len(values)):
            if values[i] > values[j]:
                inversions += 1
    return tuple(sorted(values)), -1 if inversions % 2 else 1


@dataclass(frozen=True)
class LadderProduct(TermDescriptor):
    """
    Normal-ordered product of creation and annihilation operators.

    String form lists creators then annihilators, e.g. "c0c1a2". Subclasses
    decide the exchange statistics.
    """

    creators: Tuple[int, ...] = ()
    annihilators: Tuple[int, ...] = ()

    fermionic: ClassVar[bool] = False

    @classmethod
    def parse_raw(cls, text: str) -> Tuple[List[int], List[int]]:
        creators: List[int] = []
        annihilators: List[int] = []
        if text in ("", "I"):
            return creators, annihilators
        pos = 0
        while pos < len(text):
            kind = text[pos]
            if kind not in ("c", "a"):
                raise InvalidTerm(f"Expected 'c' or 'a' at position {pos} in {text!r}")
            index, pos = parse_index(text, pos + 1, text)
            if kind == "c":
                if annihilators:
                    raise InvalidTerm(
                        f"Creators must come before annihilators in {text!r}")
                creators.append(index)
            else:
                annihilators.append(index)
        return creators, annihilators

    @classmethod
    def _split_raw(cls, raw: Any) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence) or len(raw) != 2:
            raise InvalidTerm(
                f"{cls.__name__} needs (creators, annihilators), got {raw!r}")
        return check_indices(raw[0], raw), check_indices(raw[1], raw)

    @classmethod
    def normalized(cls, raw: Any) -> Tuple[Optional["LadderProduct"], Phase]:
        creators, annihilators = cls._split_raw(raw)
        if not cls.fermionic:
            return cls(tuple(sorted(creators)), tuple(sorted(annihilators))), ONE
        if len(set(creators)) != len(creators) or len(set(annihilators)) != len(annihilators):
            return None, ZERO
        c, sc = sort_with_parity(creators)
        a, sa = sort_with_parity(annihilators)
        return cls(c, a), ONE * (sc * sa)

    def sort_key(self) -> Tuple[Any, ...]:
        return (len(self.creators) + len(self.annihilators), self.creators, self.annihilators)

    def compose(self, other: "LadderProduct") -> List[Tuple["LadderProduct", Phase]]:
        if type(other) is not type(self):
            raise InvalidTerm(
                f"Cannot compose {type(self).__name__} with {type(other).__name__}")
        terms = []
        for cre, ann, sign in normal_order(self.annihilators, other.creators, self.fermionic):
            d, phase = type(self).normalized((self.creators + cre, ann + other.annihilators))
            if d is None:
                continue
            terms.append((d, phase * sign))
        return collect_terms(terms)

    def hermitian_conjugate(self) -> Tuple["LadderProduct", Phase]:
        d, phase = type(self).normalized(
            (tuple(reversed(self.annihilators)), tuple(reversed(self.creators))))
        return d, phase

    def current_number_modes(self) -> int:
        indices = self.creators + self.annihilators
        if not indices:
            return 0
        return max(indices) + 1

    def term_shape(self) -> Tuple[int, int]:
        return (len(self.creators), len(self.annihilators))

    def __str__(self) -> str:
        creators = "".join(f"c{i}" for i in self.creators)
        return creators + "".join(f"a{i}" for i in self.annihilators)
