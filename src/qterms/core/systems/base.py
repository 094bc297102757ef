from __future__ import annotations

import numbers
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Hashable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)

from qterms.core import algebra
from qterms.core.coeffs import SymCoeff, as_coeff
from qterms.core.config import MapOptions
from qterms.core.descriptors.base import TermDescriptor
from qterms.core.errors import InvalidCoefficient, ModeCountExceeded, QTermsError
from qterms.core.opmap import IndexedOperatorMap, Key, KeySpec
from qterms.core.types import Capacity, merge_capacities

S = TypeVar("S", bound="TermSystem")

_SAME: Any = object()


def is_scalar(value: Any) -> bool:
    """True for values that can act as a scalar coefficient."""
    if isinstance(value, (TermSystem, IndexedOperatorMap, bool)):
        return False
    if isinstance(value, (SymCoeff, str, numbers.Number)):
        return True
    try:
        as_coeff(value)
    except (InvalidCoefficient, TypeError):
        return False
    return True


def check_capacity(descriptor_type: Type[TermDescriptor], value: Any) -> Capacity:
    """Validate and normalize a number_modes value for a descriptor family."""
    if value is None:
        return None
    if descriptor_type.family == "mixed":
        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 3:
            raise QTermsError(
                f"Mixed capacity must be (spins, bosons, fermions), got {value!r}")
        return tuple(
            tuple(None if n is None else _check_count(n) for n in group) for group in value
        )
    return _check_count(value)


def _check_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value < 0:
        raise QTermsError(f"Mode count must be a non-negative integer or None, got {value!r}")
    return int(value)


class TermSystem:
    """
    Common behaviour of the single-map system variants.

    Concrete classes set descriptor_type, paired and type_name. The map is
    owned by the instance; every arithmetic operation returns a new system.
    """

    descriptor_type: ClassVar[Type[TermDescriptor]]
    paired: ClassVar[bool] = False
    type_name: ClassVar[str] = ""

    def __init__(
        self,
        number_modes: Any = None,
        items: Optional[Any] = None,
        *,
        options: Optional[MapOptions] = None,
    ) -> None:
        self._number_modes = check_capacity(self.descriptor_type, number_modes)
        self._map = IndexedOperatorMap(self.key_spec(), options=options)
        if items is not None:
            pairs = items.items() if isinstance(items, Mapping) else items
            for k, v in pairs:
                self.add_operator_product(k, v)

    # --- construction helpers ---

    @classmethod
    def key_spec(cls) -> KeySpec:
        return KeySpec(cls.descriptor_type, cls.paired)

    @classmethod
    def _from_map(cls: Type[S], m: IndexedOperatorMap, number_modes: Capacity) -> S:
        out = cls.__new__(cls)
        out._number_modes = number_modes
        out._map = m
        out._check_map_fits()
        return out

    def _check_map_fits(self) -> None:
        for k in self._map.keys():
            self._check_fits(k)

    def _check_fits(self, key: Key) -> None:
        spec = self._map.key_spec
        if not spec.fits_within(key, self._number_modes):
            raise ModeCountExceeded(
                f"Term {spec.render(key)} acts on {spec.modes(key)} modes, "
                f"but {type(self).__name__} is limited to {self._number_modes}")

    # --- properties ---

    @property
    def number_modes(self) -> Capacity:
        return self._number_modes

    @property
    def options(self) -> MapOptions:
        return self._map.options

    def current_number_modes(self) -> Any:
        found = self._map.current_number_modes()
        if found is None:
            return 0 if self.descriptor_type.family != "mixed" else ((), (), ())
        return found

    def as_map(self) -> IndexedOperatorMap:
        """Copy of the underlying map."""
        return self._map.copy()

    # --- mutation ---

    def set(self, key: Any, value: Any) -> None:
        k = self._map.key_spec.parse(key)
        c = as_coeff(value)
        self._check_fits(k)
        self._map._store(k, c)

    def add_operator_product(self, key: Any, value: Any) -> None:
        k = self._map.key_spec.parse(key)
        c = as_coeff(value)
        self._check_fits(k)
        self._map.add(k, c)

    def remove(self, key: Any) -> Optional[SymCoeff]:
        return self._map.remove(key)

    # --- access ---

    def get(self, key: Any) -> SymCoeff:
        return self._map.get(key)

    def keys(self) -> List[Key]:
        return self._map.keys()

    def values(self) -> List[SymCoeff]:
        return self._map.values()

    def items(self) -> List[Tuple[Key, SymCoeff]]:
        return self._map.items()

    def iter_items(self) -> Iterator[Tuple[Key, SymCoeff]]:
        return self._map.iter_items()

    def __iter__(self) -> Iterator[Key]:
        return iter(self._map)

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, key: Any) -> bool:
        return key in self._map

    def is_empty(self) -> bool:
        return self._map.is_empty()

    # --- derived systems ---

    def empty_clone(self: S, number_modes: Any = _SAME) -> S:
        n = self._number_modes if number_modes is _SAME else check_capacity(
            self.descriptor_type, number_modes)
        return type(self)._from_map(self._map.empty_clone(), n)

    def copy(self: S) -> S:
        return type(self)._from_map(self._map.copy(), self._number_modes)

    def hermitian_conjugate(self: S) -> S:
        return type(self)._from_map(self._map.hermitian_conjugate(), self._number_modes)

    def truncate(self: S, threshold: float) -> S:
        return type(self)._from_map(self._map.truncate(threshold), self._number_modes)

    def substitute(self: S, values: Mapping[str, Any]) -> S:
        return type(self)._from_map(self._map.substitute(values), self._number_modes)

    def free_symbols(self) -> frozenset:
        return self._map.free_symbols()

    def _group_label(self, key: Key, partition: Callable[[Key], Hashable]) -> Hashable:
        return partition(key)

    def group_into(self: S, partition: Callable[[Key], Hashable]) -> List[Tuple[Hashable, S]]:
        """
        Split terms by partition(key).

        Returns (label, sub_system) pairs sorted by label; each sub_system
        has the same class and capacity as self.
        """
        groups: Dict[Hashable, IndexedOperatorMap] = {}
        for k, v in self._map.iter_items():
            label = self._group_label(k, partition)
            sub = groups.get(label)
            if sub is None:
                sub = groups[label] = self._map.empty_clone()
            sub._store(k, v)
        return [
            (label, type(self)._from_map(groups[label], self._number_modes))
            for label in sorted(groups)
        ]

    def _shape_matches(self, key: Key, shape: Any) -> bool:
        return self._map.key_spec.shape(key) == _as_tuple(shape)

    def separate_into_n_terms(self: S, shape: Any) -> Tuple[S, S]:
        """
        Split into (terms with the given operator counts, everything else).

        shape is what the descriptors' term_shape() returns: the number of
        Pauli sites for spins, (creators, annihilators) for ladder operators,
        a (left, right) pair of those for noise keys.
        """
        matched = self._map.empty_clone()
        rest = self._map.empty_clone()
        for k, v in self._map.iter_items():
            target = matched if self._shape_matches(k, shape) else rest
            target._store(k, v)
        return (
            type(self)._from_map(matched, self._number_modes),
            type(self)._from_map(rest, self._number_modes),
        )

    # --- projections and encodings ---

    def to_dense_matrix(self, dimension: Any = None, *, options: Any = None):
        from qterms.core.dense import to_dense_matrix

        return to_dense_matrix(self, dimension, options=options)

    def to_json(self, *, options: Any = None) -> str:
        from qterms.core.serialization.structured import to_json

        return to_json(self, options=options)

    @classmethod
    def from_json(cls: Type[S], text: str) -> S:
        from qterms.core.serialization.structured import from_json

        return expect_type(cls, from_json(text))

    def to_bytes(self) -> bytes:
        from qterms.core.serialization.binary import serialize

        return serialize(self)

    @classmethod
    def from_bytes(cls: Type[S], data: bytes) -> S:
        from qterms.core.serialization.binary import deserialize

        return expect_type(cls, deserialize(data))

    # --- arithmetic ---

    def _merged_modes(self, other: "TermSystem") -> Capacity:
        return merge_capacities(self._number_modes, other._number_modes)

    def _sum_type(self, other: "TermSystem") -> Optional[type]:
        if type(other) is type(self):
            return type(self)
        return None

    def __add__(self, other: Any) -> Any:
        if not isinstance(other, TermSystem):
            return NotImplemented
        cls = self._sum_type(other) or other._sum_type(self)
        if cls is None:
            return NotImplemented
        return cls._from_map(algebra.sum_maps(self._map, other._map), self._merged_modes(other))

    def __sub__(self, other: Any) -> Any:
        if not isinstance(other, TermSystem):
            return NotImplemented
        cls = self._sum_type(other) or other._sum_type(self)
        if cls is None:
            return NotImplemented
        return cls._from_map(algebra.subtract(self._map, other._map), self._merged_modes(other))

    def __neg__(self: S) -> S:
        return type(self)._from_map(algebra.negate(self._map), self._number_modes)

    def _scaled(self, scalar: Any) -> "TermSystem":
        return type(self)._from_map(algebra.scale(self._map, scalar), self._number_modes)

    def __mul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        return NotImplemented

    def __rmul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        return NotImplemented

    def __truediv__(self, other: Any) -> Any:
        if is_scalar(other):
            s = as_coeff(other)
            if s.is_zero():
                raise ZeroDivisionError(f"Division of {type(self).__name__} by zero")
            return self._scaled(SymCoeff(1 / s.expr))
        return NotImplemented

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TermSystem) or type(other) is not type(self):
            return NotImplemented
        return self._number_modes == other._number_modes and self._map == other._map

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        spec = self._map.key_spec
        body = ", ".join(f"{spec.render(k)!r}: {v}" for k, v in self._map.iter_items())
        return f"{type(self).__name__}(number_modes={self._number_modes!r}, {{{body}}})"


def _as_tuple(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return tuple(_as_tuple(v) for v in value)
    return value


def expect_type(cls: type, value: Any) -> Any:
    if not isinstance(value, cls):
        raise TypeError(f"Decoded a {type(value).__name__}, expected {cls.__name__}")
    return value
