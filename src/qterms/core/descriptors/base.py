from __future__ import annotations

import numbers
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

import sympy as sp

from qterms.core.errors import InvalidTerm
from qterms.core.types import Capacity, Phase

D = TypeVar("D", bound="TermDescriptor")


class TermDescriptor(ABC):
    """
    Canonical key for one elementary operator product.

    Subclasses are frozen dataclasses holding only canonical data, so equality
    and hashing come from the dataclass fields. Ordering goes through
    sort_key() and is only defined between descriptors of the same family.

    Construction paths:
    - from_string(text): canonical text form
    - from_raw(value): text, an instance, or the family's raw structure
    - normalized(raw): arbitrary raw input plus the phase picked up on the way
    """

    family: ClassVar[str] = ""

    # --- construction ---

    @classmethod
    @abstractmethod
    def parse_raw(cls, text: str) -> Any:
        """Parse text into the family's raw structure without reordering."""

    @classmethod
    @abstractmethod
    def normalized(cls: type[D], raw: Any) -> Tuple[Optional[D], Phase]:
        """
        Bring raw input into canonical form.

        Returns (descriptor, phase). A product that vanishes comes back as
        (None, 0).
        """

    @classmethod
    def from_string(cls: type[D], text: str) -> D:
        if not isinstance(text, str):
            raise InvalidTerm(f"{cls.__name__} string expected, got {type(text)!r}")
        return cls._exact(cls.parse_raw(text), text)

    @classmethod
    def from_raw(cls: type[D], value: Any) -> D:
        if isinstance(value, cls):
            return value
        if isinstance(value, TermDescriptor):
            raise InvalidTerm(
                f"Cannot use {type(value).__name__} as {cls.__name__}")
        if isinstance(value, str):
            return cls.from_string(value)
        return cls._exact(value, value)

    @classmethod
    def _exact(cls: type[D], raw: Any, shown: Any) -> D:
        d, phase = cls.normalized(raw)
        if d is None:
            raise InvalidTerm(f"{shown!r} is a vanishing {cls.__name__}")
        if phase != 1:
            raise InvalidTerm(
                f"{shown!r} is not a plain {cls.__name__}: reordering picks up phase {phase}")
        return d

    # --- algebra ---

    def normal_form(self: D) -> D:
        return self

    @abstractmethod
    def sort_key(self) -> Tuple[Any, ...]: ...

    @abstractmethod
    def compose(self: D, other: D) -> List[Tuple[D, Phase]]:
        """
        Normal-ordered product self * other.

        Each entry is (descriptor, phase); vanishing contributions are left
        out, so an empty list means the product is zero.
        """

    @abstractmethod
    def hermitian_conjugate(self: D) -> Tuple[D, Phase]:
        """Return (d, phase) with self^dagger == phase * d."""

    def adjoint(self: D) -> D:
        return self.hermitian_conjugate()[0]

    def is_self_adjoint(self) -> bool:
        d, phase = self.hermitian_conjugate()
        return d == self and phase == 1

    # --- capacity ---

    @abstractmethod
    def current_number_modes(self) -> Any:
        """Highest index used plus one."""

    @abstractmethod
    def term_shape(self) -> Any:
        """Operator counts used by separate_into_n_terms."""

    def fits_within(self, capacity: Capacity) -> bool:
        if capacity is None:
            return True
        return self.current_number_modes() <= capacity

    # --- ordering ---

    def _check_family(self, other: Any) -> bool:
        return type(other) is type(self)

    def __lt__(self, other: Any) -> bool:
        if not self._check_family(other):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: Any) -> bool:
        if not self._check_family(other):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: Any) -> bool:
        if not self._check_family(other):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: Any) -> bool:
        if not self._check_family(other):
            return NotImplemented
        return self.sort_key() >= other.sort_key()


def compare(a: TermDescriptor, b: TermDescriptor) -> int:
    """Three-way comparison of two descriptors of the same family."""
    if type(a) is not type(b):
        raise TypeError(
            f"Cannot compare {type(a).__name__} with {type(b).__name__}")
    ka, kb = a.sort_key(), b.sort_key()
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def collect_terms(terms: Iterable[Tuple[D, Phase]]) -> List[Tuple[D, Phase]]:
    """Merge duplicate descriptors, drop zero phases and sort canonically."""
    acc: Dict[D, Phase] = {}
    for d, phase in terms:
        if d is None:
            continue
        acc[d] = acc.get(d, sp.Integer(0)) + phase
    out = [(d, p) for d, p in acc.items() if p != 0]
    out.sort(key=lambda item: item[0].sort_key())
    return out


def parse_index(text: str, pos: int, source: str) -> Tuple[int, int]:
    """Read a non-negative decimal integer starting at pos; return (value, next_pos)."""
    end = pos
    while end < len(text) and text[end].isdigit():
        end += 1
    if end == pos:
        raise InvalidTerm(f"Expected a mode index at position {pos} in {source!r}")
    return int(text[pos:end]), end


def check_index(value: Any, source: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidTerm(
            f"Mode index must be an integer, got {value!r} in {source!r}")
    value = int(value)
    if value < 0:
        raise InvalidTerm(f"Mode index must be non-negative, got {value} in {source!r}")
    return value


def check_indices(values: Sequence[Any], source: Any) -> Tuple[int, ...]:
    if isinstance(values, (str, bytes)):
        raise InvalidTerm(f"Index list expected, got {values!r}")
    try:
        return tuple(check_index(v, source) for v in values)
    except TypeError:
        raise InvalidTerm(f"Index list expected, got {values!r}") from None
