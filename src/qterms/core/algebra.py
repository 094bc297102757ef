"""
Pure algebra over IndexedOperatorMap values.

Every function returns a new map and leaves its inputs untouched. The left
operand's options carry over to the result.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import sympy as sp

from qterms.core.coeffs import COEFF_ZERO, SymCoeff, as_coeff
from qterms.core.opmap import IndexedOperatorMap, Key

logger = logging.getLogger(__name__)


def _check_same_keys(a: IndexedOperatorMap, b: IndexedOperatorMap) -> None:
    if a.key_spec != b.key_spec:
        raise TypeError(
            f"Cannot combine maps keyed by {a.key_spec} and {b.key_spec}")


def sum_maps(a: IndexedOperatorMap, b: IndexedOperatorMap) -> IndexedOperatorMap:
    _check_same_keys(a, b)
    out = a.copy()
    for k, v in b.iter_items():
        out._store(k, out._data.get(k, COEFF_ZERO) + v)
    return out


def subtract(a: IndexedOperatorMap, b: IndexedOperatorMap) -> IndexedOperatorMap:
    _check_same_keys(a, b)
    out = a.copy()
    for k, v in b.iter_items():
        out._store(k, out._data.get(k, COEFF_ZERO) - v)
    return out


def negate(a: IndexedOperatorMap) -> IndexedOperatorMap:
    return a.map_values(lambda c: -c)


def scale(a: IndexedOperatorMap, scalar: Any) -> IndexedOperatorMap:
    s = as_coeff(scalar)
    if s.is_zero():
        return a.empty_clone()
    return a.map_values(lambda c: c * s)


def multiply(a: IndexedOperatorMap, b: IndexedOperatorMap) -> IndexedOperatorMap:
    """
    Operator product a * b.

    Each pair of keys is composed once; the coefficient products are summed as
    raw sympy expressions and pruned at the end.
    """
    _check_same_keys(a, b)
    if a.key_spec.paired:
        raise TypeError("Noise maps with (left, right) keys cannot be multiplied")

    acc: Dict[Key, sp.Expr] = {}
    right = b.items()
    for d1, c1 in a.iter_items():
        for d2, c2 in right:
            for d3, phase in d1.compose(d2):
                term = c1.expr * c2.expr * phase
                prev = acc.get(d3)
                acc[d3] = term if prev is None else prev + term

    out = a.empty_clone()
    for d3, expr in acc.items():
        out._store(d3, SymCoeff(sp.expand(expr)))
    logger.debug(
        "multiply: %d x %d terms -> %d candidates, %d kept",
        len(a), len(b), len(acc), len(out))
    return out


def commutator(a: IndexedOperatorMap, b: IndexedOperatorMap) -> IndexedOperatorMap:
    return subtract(multiply(a, b), multiply(b, a))


def anticommutator(a: IndexedOperatorMap, b: IndexedOperatorMap) -> IndexedOperatorMap:
    return sum_maps(multiply(a, b), multiply(b, a))


def equals_within_sparsity(
    a: IndexedOperatorMap, b: IndexedOperatorMap, atol: float = 0.0
) -> bool:
    """
    True iff both maps hold the same keys with equal coefficients.

    With atol > 0, numeric coefficients may differ by up to atol.
    """
    if a.key_spec != b.key_spec:
        return False
    if set(a.keys()) != set(b.keys()):
        return False
    for k, v in a.iter_items():
        if not (v - b.get(k)).is_zero(atol):
            return False
    return True
