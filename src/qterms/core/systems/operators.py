from __future__ import annotations

from typing import Any, Optional, Type

from qterms.core import algebra
from qterms.core.systems.base import TermSystem, is_scalar


class MultiplicativeMixin:
    """
    Operator products between single-key systems of the same family.

    Products always land in the family's plain Operator class.
    """

    def _operator_cls(self) -> Type["Operator"]:
        raise NotImplementedError

    def _can_multiply(self, other: Any) -> bool:
        return (
            isinstance(other, TermSystem)
            and not self.paired
            and not other.paired
            and other.descriptor_type is self.descriptor_type
        )

    def _product(self, other: TermSystem) -> "Operator":
        return self._operator_cls()._from_map(
            algebra.multiply(self._map, other._map), self._merged_modes(other))

    def __mul__(self, other: Any) -> Any:
        if is_scalar(other):
            return self._scaled(other)
        if self._can_multiply(other):
            return self._product(other)
        return NotImplemented

    def commutator(self, other: TermSystem) -> "Operator":
        """[self, other] = self*other - other*self."""
        if not self._can_multiply(other):
            raise TypeError(
                f"Cannot build a commutator of {type(self).__name__} and {type(other).__name__}")
        return self._operator_cls()._from_map(
            algebra.commutator(self._map, other._map), self._merged_modes(other))

    def anticommutator(self, other: TermSystem) -> "Operator":
        """{self, other} = self*other + other*self."""
        if not self._can_multiply(other):
            raise TypeError(
                f"Cannot build an anticommutator of {type(self).__name__} "
                f"and {type(other).__name__}")
        return self._operator_cls()._from_map(
            algebra.anticommutator(self._map, other._map), self._merged_modes(other))


class Operator(MultiplicativeMixin, TermSystem):
    """General operator: an unconstrained sum of descriptor terms."""

    def _operator_cls(self) -> Type["Operator"]:
        return type(self)

    def _sum_type(self, other: TermSystem) -> Optional[type]:
        if type(other) is type(self):
            return type(self)
        if getattr(type(other), "operator_type", None) is type(self):
            return type(self)
        return None
