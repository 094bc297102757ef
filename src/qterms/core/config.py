from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MapOptions:
    """
    Options carried by an IndexedOperatorMap.

    zero_atol is the absolute tolerance under which a purely numeric
    coefficient counts as zero and is pruned. Symbolic coefficients are only
    pruned when they simplify to exactly zero.
    """

    zero_atol: float = 0.0

    def __post_init__(self) -> None:
        if self.zero_atol < 0:
            raise ValueError(f"zero_atol must be non-negative, got {self.zero_atol}")


@dataclass(frozen=True)
class DenseOptions:
    boson_cutoff: int = 4
    check_hermitian: bool = True
    hermitian_atol: float = 1e-10

    def __post_init__(self) -> None:
        if self.boson_cutoff < 1:
            raise ValueError(
                f"boson_cutoff must be positive, got {self.boson_cutoff}")


@dataclass(frozen=True)
class SerializationOptions:
    indent: Optional[int] = None
    sort_keys: bool = False


DEFAULT_MAP_OPTIONS = MapOptions()
DEFAULT_DENSE_OPTIONS = DenseOptions()
DEFAULT_SERIALIZATION_OPTIONS = SerializationOptions()
