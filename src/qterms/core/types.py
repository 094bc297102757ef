from __future__ import annotations

from typing import Optional, Tuple, TypeAlias, Union

import sympy as sp

# Generic aliases used across descriptors and systems
ModeIndex: TypeAlias = int
VersionTag: TypeAlias = Tuple[int, int]

# Sign or phase picked up by normal ordering: +1, -1, +i, -i, rational factors,
# or 0 for a product that vanishes.
Phase: TypeAlias = sp.Expr

# Capacity of a system: None means unbounded. Mixed systems use one entry per
# subsystem, grouped as (spins, bosons, fermions).
ModeCount: TypeAlias = Optional[int]
MixedCapacity: TypeAlias = Tuple[
    Tuple[ModeCount, ...], Tuple[ModeCount, ...], Tuple[ModeCount, ...]
]
Capacity: TypeAlias = Union[ModeCount, MixedCapacity]

ONE: Phase = sp.Integer(1)
ZERO: Phase = sp.Integer(0)


def merge_mode_counts(a, b):
    """
    Elementwise maximum of two mode counts.

    Works for plain ints, None (treated as absent) and nested tuples of the
    same layout, as produced by mixed products.
    """
    if a is None:
        return b
    if b is None:
        return a
    if isinstance(a, tuple) and isinstance(b, tuple):
        if len(a) != len(b):
            raise ValueError(f"Mode counts have different layouts: {a} vs {b}")
        return tuple(merge_mode_counts(x, y) for x, y in zip(a, b))
    return max(int(a), int(b))


def merge_capacities(a: Capacity, b: Capacity) -> Capacity:
    """
    Capacity of a combination of two systems.

    An unbounded side makes the result unbounded; otherwise the larger
    capacity wins.
    """
    if a is None or b is None:
        return None
    if isinstance(a, tuple) and isinstance(b, tuple):
        if len(a) != len(b):
            raise ValueError(f"Capacities have different layouts: {a} vs {b}")
        return tuple(merge_capacities(x, y) for x, y in zip(a, b))
    return max(int(a), int(b))
