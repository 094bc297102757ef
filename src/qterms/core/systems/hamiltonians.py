from __future__ import annotations

from typing import Any, Callable, ClassVar, Hashable, Mapping, Optional, Tuple, Type

from qterms.core.coeffs import COEFF_ZERO, SymCoeff, as_coeff
from qterms.core.config import MapOptions
from qterms.core.errors import NonHermitianTerm
from qterms.core.opmap import IndexedOperatorMap, Key
from qterms.core.systems.base import TermSystem, check_capacity
from qterms.core.systems.operators import MultiplicativeMixin, Operator
from qterms.core.types import Capacity, Phase


class Hamiltonian(MultiplicativeMixin, TermSystem):
    """
    Hermitian operator.

    For every stored term d with d^dagger = phase * d', the coefficient at d'
    equals phase * conj(c[d]). Self-adjoint terms need a real coefficient;
    other terms are stored together with their partner.

    Results that can leave the Hermitian subset (products, commutators,
    complex scaling) come back as the family's Operator.
    """

    operator_type: ClassVar[Type[Operator]]

    def __init__(
        self,
        number_modes: Any = None,
        items: Optional[Any] = None,
        *,
        options: Optional[MapOptions] = None,
    ) -> None:
        self._number_modes = check_capacity(self.descriptor_type, number_modes)
        self._map = IndexedOperatorMap(self.key_spec(), items, options=options)
        self._check_map_fits()
        self._check_hermitian(self._map)

    @classmethod
    def _validated(cls, m: IndexedOperatorMap, number_modes: Capacity) -> "Hamiltonian":
        out = cls._from_map(m, number_modes)
        out._check_hermitian(m)
        return out

    @classmethod
    def from_operator(cls, operator: Operator) -> "Hamiltonian":
        """Reinterpret an operator as a Hamiltonian; fails if it is not Hermitian."""
        if operator.descriptor_type is not cls.descriptor_type:
            raise TypeError(
                f"Cannot build {cls.__name__} from {type(operator).__name__}")
        return cls._validated(operator.as_map(), operator.number_modes)

    def to_operator(self) -> Operator:
        return self.operator_type._from_map(self._map.copy(), self._number_modes)

    # --- invariant ---

    def _atol(self) -> float:
        return self._map.options.zero_atol

    def _partner(self, key: Key) -> Tuple[Key, Phase]:
        return self._map.key_spec.adjoint(key)

    def _check_hermitian(self, m: IndexedOperatorMap) -> None:
        atol = m.options.zero_atol
        render = m.key_spec.render
        for k, c in m.iter_items():
            partner, phase = m.key_spec.adjoint(k)
            expected = c.conjugate() * phase
            found = m._data.get(partner, COEFF_ZERO)
            if not (found - expected).is_zero(atol):
                if partner == k:
                    raise NonHermitianTerm(
                        f"Self-adjoint term {render(k)} needs a real coefficient, got {c}")
                raise NonHermitianTerm(
                    f"Term {render(k)} with coefficient {c} needs {expected} at "
                    f"{render(partner)}, found {found}")

    # --- mutation ---

    def set(self, key: Any, value: Any) -> None:
        """
        Overwrite one coefficient.

        Only accepted when the map stays Hermitian: the term is self-adjoint
        with a matching coefficient, or its partner already holds the
        conjugate value.
        """
        k = self._map.key_spec.parse(key)
        c = as_coeff(value)
        self._check_fits(k)
        partner, phase = self._partner(k)
        render = self._map.key_spec.render
        if partner == k:
            if not (c - c.conjugate() * phase).is_zero(self._atol()):
                raise NonHermitianTerm(
                    f"Self-adjoint term {render(k)} needs a real coefficient, got {c}")
        else:
            found = self._map.get(partner)
            expected = c.conjugate() * phase
            if not (found - expected).is_zero(self._atol()):
                raise NonHermitianTerm(
                    f"Setting {render(k)} to {c} needs {expected} at {render(partner)}, "
                    f"found {found}; use add_operator_product to insert both terms")
        self._map._store(k, c)

    def add_operator_product(self, key: Any, value: Any) -> None:
        """
        Add value * term plus its Hermitian conjugate where needed.

        A self-adjoint term only accepts a real value; any other term is
        added together with phase * conj(value) at its partner.
        """
        k = self._map.key_spec.parse(key)
        c = as_coeff(value)
        self._check_fits(k)
        partner, phase = self._partner(k)
        if partner == k:
            if not (c - c.conjugate() * phase).is_zero(self._atol()):
                raise NonHermitianTerm(
                    f"Self-adjoint term {self._map.key_spec.render(k)} needs a real "
                    f"coefficient, got {c}")
            self._map.add(k, c)
            return
        self._check_fits(partner)
        self._map.add(k, c)
        self._map.add(partner, c.conjugate() * phase)

    def remove(self, key: Any) -> Optional[SymCoeff]:
        """Remove a term together with its Hermitian partner."""
        k = self._map.key_spec.parse(key)
        partner, _ = self._partner(k)
        value = self._map.remove(k)
        if partner != k:
            self._map.remove(partner)
        return value

    # --- derived systems ---

    def substitute(self, values: Mapping[str, Any]) -> "Hamiltonian":
        return type(self)._validated(self._map.substitute(values), self._number_modes)

    def _group_label(self, key: Key, partition: Callable[[Key], Hashable]) -> Hashable:
        partner, _ = self._partner(key)
        spec = self._map.key_spec
        first = min(key, partner, key=spec.sort_key)
        return partition(first)

    def _shape_matches(self, key: Key, shape: Any) -> bool:
        partner, _ = self._partner(key)
        return super()._shape_matches(key, shape) or super()._shape_matches(partner, shape)

    # --- arithmetic ---

    def _operator_cls(self) -> Type[Operator]:
        return self.operator_type

    def _sum_type(self, other: TermSystem) -> Optional[type]:
        if type(other) is type(self):
            return type(self)
        return None

    def _scaled(self, scalar: Any) -> TermSystem:
        s = as_coeff(scalar)
        if s.is_real():
            return super()._scaled(s)
        return self.to_operator()._scaled(s)
