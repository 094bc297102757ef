from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Hashable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Type,
)

from qterms.core.coeffs import COEFF_ZERO, CoefficientProto, SymCoeff, as_coeff
from qterms.core.config import DEFAULT_MAP_OPTIONS, MapOptions
from qterms.core.descriptors.base import TermDescriptor
from qterms.core.errors import InvalidTerm
from qterms.core.types import ONE, Capacity, Phase, merge_mode_counts

logger = logging.getLogger(__name__)

# A key is a descriptor, or a (left, right) pair of descriptors for noise maps.
Key = Hashable


@dataclass(frozen=True)
class KeySpec:
    """
    Describes the keys of an IndexedOperatorMap.

    descriptor_type is the descriptor family; paired maps use
    (left, right) tuples of descriptors, as Lindblad noise operators do.
    """

    descriptor_type: Type[TermDescriptor]
    paired: bool = False

    def parse(self, key: Any) -> Key:
        if not self.paired:
            return self.descriptor_type.from_raw(key)
        if isinstance(key, (str, bytes)) or not isinstance(key, Sequence) or len(key) != 2:
            raise InvalidTerm(f"Noise key must be a (left, right) pair, got {key!r}")
        return (
            self.descriptor_type.from_raw(key[0]),
            self.descriptor_type.from_raw(key[1]),
        )

    def sort_key(self, key: Key) -> Tuple[Any, ...]:
        if self.paired:
            return (key[0].sort_key(), key[1].sort_key())
        return key.sort_key()

    def adjoint(self, key: Key) -> Tuple[Key, Phase]:
        if self.paired:
            return (key[1], key[0]), ONE
        return key.hermitian_conjugate()

    def descriptors(self, key: Key) -> Tuple[TermDescriptor, ...]:
        return tuple(key) if self.paired else (key,)

    def fits_within(self, key: Key, capacity: Capacity) -> bool:
        return all(d.fits_within(capacity) for d in self.descriptors(key))

    def modes(self, key: Key) -> Any:
        out = None
        for d in self.descriptors(key):
            out = merge_mode_counts(out, d.current_number_modes())
        return out

    def shape(self, key: Key) -> Any:
        if self.paired:
            return (key[0].term_shape(), key[1].term_shape())
        return key.term_shape()

    def render(self, key: Key) -> Any:
        if self.paired:
            return (str(key[0]), str(key[1]))
        return str(key)


class IndexedOperatorMap:
    """
    Sparse map from term keys to symbolic coefficients.

    Keys are canonical descriptors (or descriptor pairs). No stored
    coefficient is ever zero: every mutation prunes, using
    options.zero_atol for purely numeric values. Iteration is in canonical
    key order regardless of insertion order.
    """

    def __init__(
        self,
        key_spec: KeySpec,
        items: Optional[Any] = None,
        *,
        options: Optional[MapOptions] = None,
    ) -> None:
        self._spec = key_spec
        self._options = options or DEFAULT_MAP_OPTIONS
        self._data: Dict[Key, SymCoeff] = {}
        if items is not None:
            pairs = items.items() if isinstance(items, Mapping) else items
            for k, v in pairs:
                self.add(k, v)

    @property
    def key_spec(self) -> KeySpec:
        return self._spec

    @property
    def options(self) -> MapOptions:
        return self._options

    # --- mutation ---

    def _store(self, key: Key, value: SymCoeff) -> None:
        if value.is_zero(self._options.zero_atol):
            self._data.pop(key, None)
        else:
            self._data[key] = value

    def set(self, key: Any, value: Any) -> None:
        """Overwrite the coefficient at key; a zero value removes the entry."""
        self._store(self._spec.parse(key), as_coeff(value))

    def add(self, key: Any, value: Any) -> None:
        """Accumulate value into the coefficient at key."""
        k = self._spec.parse(key)
        c = as_coeff(value)
        if k in self._data:
            c = self._data[k] + c
        self._store(k, c)

    def remove(self, key: Any) -> Optional[SymCoeff]:
        return self._data.pop(self._spec.parse(key), None)

    # --- access ---

    def get(self, key: Any) -> SymCoeff:
        return self._data.get(self._spec.parse(key), COEFF_ZERO)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Any) -> bool:
        return self._spec.parse(key) in self._data

    def is_empty(self) -> bool:
        return not self._data

    def _sorted_keys(self) -> List[Key]:
        return sorted(self._data, key=self._spec.sort_key)

    def iter_items(self) -> Iterator[Tuple[Key, SymCoeff]]:
        """Canonically ordered (key, coefficient) pairs; each call starts over."""
        for k in self._sorted_keys():
            yield k, self._data[k]

    def __iter__(self) -> Iterator[Key]:
        return iter(self._sorted_keys())

    def keys(self) -> List[Key]:
        return self._sorted_keys()

    def values(self) -> List[SymCoeff]:
        return [self._data[k] for k in self._sorted_keys()]

    def items(self) -> List[Tuple[Key, SymCoeff]]:
        return list(self.iter_items())

    # --- derived maps ---

    def empty_clone(self) -> "IndexedOperatorMap":
        return IndexedOperatorMap(self._spec, options=self._options)

    def copy(self) -> "IndexedOperatorMap":
        out = self.empty_clone()
        out._data = dict(self._data)
        return out

    def hermitian_conjugate(self) -> "IndexedOperatorMap":
        out = self.empty_clone()
        for k, v in self._data.items():
            k2, phase = self._spec.adjoint(k)
            out._store(k2, out._data.get(k2, COEFF_ZERO) + v.conjugate() * phase)
        return out

    def map_values(
        self, fn: Callable[[SymCoeff], CoefficientProto]
    ) -> "IndexedOperatorMap":
        """Apply fn to every coefficient; zero results are dropped."""
        out = self.empty_clone()
        for k, v in self._data.items():
            out._store(k, as_coeff(fn(v)))
        return out

    def substitute(self, values: Mapping[str, Any]) -> "IndexedOperatorMap":
        return self.map_values(lambda c: c.substitute(values))

    def truncate(self, threshold: float) -> "IndexedOperatorMap":
        """
        Drop numeric entries whose magnitude is below threshold.

        Entries that still depend on free symbols are kept.
        """
        out = self.empty_clone()
        dropped = 0
        for k, v in self._data.items():
            if v.is_number and abs(v.to_complex()) < threshold:
                dropped += 1
                continue
            out._data[k] = v
        logger.debug("truncate(%s) dropped %d of %d entries", threshold, dropped, len(self._data))
        return out

    def current_number_modes(self) -> Any:
        out = None
        for k in self._data:
            out = merge_mode_counts(out, self._spec.modes(k))
        return out

    def free_symbols(self) -> frozenset:
        out: frozenset = frozenset()
        for v in self._data.values():
            out = out | v.free_symbols
        return out

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IndexedOperatorMap):
            return NotImplemented
        if self._spec != other._spec or self._data.keys() != other._data.keys():
            return False
        return all(v == other._data[k] for k, v in self._data.items())

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        body = ", ".join(f"{self._spec.render(k)!r}: {v}" for k, v in self.iter_items())
        return f"IndexedOperatorMap({self._spec.descriptor_type.__name__}, {{{body}}})"

