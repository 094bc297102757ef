from __future__ import annotations

import numbers
from dataclasses import dataclass
from keyword import iskeyword
from tokenize import NAME, OP, STRING, TokenError
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    List,
    Mapping,
    Protocol,
    Tuple,
    Union,
    runtime_checkable,
)

import numpy as np
import sympy as sp
from sympy.parsing.sympy_parser import parse_expr, standard_transformations

from qterms.core.errors import InvalidCoefficient, UnresolvedSymbol

# Real and imaginary parts as they appear in encoded payloads.
CoeffPart = Union[float, str]

# Names a coefficient string may use. Any other identifier is a real parameter.
_TEXT_NAMES: Dict[str, Any] = {
    "I": sp.I,
    "pi": sp.pi,
    "Integer": sp.Integer,
    "Float": sp.Float,
    "Rational": sp.Rational,
    "Symbol": sp.Symbol,
    "sqrt": sp.sqrt,
    "exp": sp.exp,
    "log": sp.log,
    "sin": sp.sin,
    "cos": sp.cos,
    "tan": sp.tan,
    "sinh": sp.sinh,
    "cosh": sp.cosh,
    "tanh": sp.tanh,
    "Abs": sp.Abs,
}

# Stored parts are written by split_parts, where symbols always appear as
# Symbol(...) calls, so constructors and the remaining constants are safe here.
_STORED_NAMES: Dict[str, Any] = {
    **_TEXT_NAMES,
    "E": sp.E,
    "EulerGamma": sp.EulerGamma,
    "GoldenRatio": sp.GoldenRatio,
    "Catalan": sp.Catalan,
    "Add": sp.Add,
    "Mul": sp.Mul,
    "Pow": sp.Pow,
}

_PARSE_ERRORS = (
    SyntaxError,
    TypeError,
    ValueError,
    AttributeError,
    NameError,
    TokenError,
    sp.SympifyError,
)


def _keyword_symbols(tokens: List[Tuple[int, str]], local_dict: dict, global_dict: dict):
    # Python keywords such as "lambda" are parameter names in coefficient text.
    out: List[Tuple[int, str]] = []
    for toknum, tokval in tokens:
        if toknum == NAME and iskeyword(tokval) and tokval not in ("True", "False", "None"):
            out.extend([(NAME, "Symbol"), (OP, "("), (STRING, repr(tokval)), (OP, ")")])
        else:
            out.append((toknum, tokval))
    return out


_TRANSFORMATIONS = (_keyword_symbols,) + tuple(standard_transformations)


@runtime_checkable
class CoefficientProto(Protocol):
    """
    Capabilities the operator algebra needs from a coefficient type.

    Any symbolic or numeric scalar that supports these operations can be
    stored in an IndexedOperatorMap.
    """

    def __add__(self, other: Any) -> "CoefficientProto": ...

    def __mul__(self, other: Any) -> "CoefficientProto": ...

    def conjugate(self) -> "CoefficientProto": ...

    def is_zero(self, atol: float = 0.0) -> bool: ...


def _realify(expr: sp.Expr) -> sp.Expr:
    # Free parameters are real, so conjugation only acts on explicit I.
    subs = {
        s: sp.Symbol(s.name, real=True)
        for s in expr.free_symbols
        if isinstance(s, sp.Symbol) and not s.is_real
    }
    if not subs:
        return expr
    return expr.xreplace(subs)


def _parse_text(text: str, names: Mapping[str, Any]) -> "SymCoeff":
    try:
        expr = parse_expr(
            str(text),
            local_dict={},
            global_dict=dict(names),
            transformations=_TRANSFORMATIONS,
            evaluate=True,
        )
    except _PARSE_ERRORS as e:
        raise InvalidCoefficient(f"Cannot parse coefficient {text!r}") from e
    if not isinstance(expr, sp.Expr):
        raise InvalidCoefficient(f"Coefficient {text!r} does not parse to a scalar expression")
    return SymCoeff(sp.expand(_realify(expr)))


@dataclass(frozen=True, eq=False)
class SymCoeff:
    """
    Symbolic complex coefficient backed by a sympy expression.

    Every free symbol is treated as a real parameter. Arithmetic keeps the
    expression expanded so that structurally different spellings of the same
    value compare equal.
    """

    expr: sp.Expr

    __hash__ = None  # type: ignore[assignment]

    @staticmethod
    def parse(text: str) -> "SymCoeff":
        """
        Parse user text such as "2*gamma + I*theta".

        Only I, pi, numbers and a few elementary functions are predefined;
        every other name, E, S and lambda included, becomes a real symbol.
        """
        return _parse_text(text, _TEXT_NAMES)

    @staticmethod
    def parse_stored(text: str) -> "SymCoeff":
        """Parse a part written by split_parts."""
        return _parse_text(text, _STORED_NAMES)

    def __add__(self, other: Any) -> "SymCoeff":
        o = _coerce_or_none(other)
        if o is None:
            return NotImplemented
        return SymCoeff(sp.expand(self.expr + o.expr))

    __radd__ = __add__

    def __sub__(self, other: Any) -> "SymCoeff":
        o = _coerce_or_none(other)
        if o is None:
            return NotImplemented
        return SymCoeff(sp.expand(self.expr - o.expr))

    def __rsub__(self, other: Any) -> "SymCoeff":
        o = _coerce_or_none(other)
        if o is None:
            return NotImplemented
        return SymCoeff(sp.expand(o.expr - self.expr))

    def __mul__(self, other: Any) -> "SymCoeff":
        o = _coerce_or_none(other)
        if o is None:
            return NotImplemented
        return SymCoeff(sp.expand(self.expr * o.expr))

    __rmul__ = __mul__

    def __truediv__(self, other: Any) -> "SymCoeff":
        o = _coerce_or_none(other)
        if o is None:
            return NotImplemented
        if o.is_zero():
            raise ZeroDivisionError("Division of a coefficient by zero")
        return SymCoeff(sp.expand(self.expr / o.expr))

    def __neg__(self) -> "SymCoeff":
        return SymCoeff(-self.expr)

    def __eq__(self, other: object) -> bool:
        o = _coerce_or_none(other)
        if o is None:
            return NotImplemented
        return (self - o).is_zero()

    def conjugate(self) -> "SymCoeff":
        return SymCoeff(sp.expand(sp.conjugate(self.expr)))

    @property
    def real(self) -> "SymCoeff":
        return SymCoeff(sp.expand(sp.re(self.expr)))

    @property
    def imag(self) -> "SymCoeff":
        return SymCoeff(sp.expand(sp.im(self.expr)))

    @property
    def is_number(self) -> bool:
        return bool(self.expr.is_number)

    @property
    def free_symbols(self) -> FrozenSet[str]:
        return frozenset(str(s) for s in self.expr.free_symbols)

    def is_zero(self, atol: float = 0.0) -> bool:
        e = sp.expand(self.expr)
        if e.is_number:
            return abs(complex(e)) <= atol
        return e.is_zero is True

    def is_real(self, atol: float = 0.0) -> bool:
        return self.imag.is_zero(atol)

    def to_complex(self) -> complex:
        if self.expr.free_symbols:
            names = ", ".join(sorted(self.free_symbols))
            raise UnresolvedSymbol(
                f"Coefficient {self.expr} still depends on symbols: {names}"
            )
        return complex(sp.N(self.expr))

    def substitute(self, values: Mapping[str, Any]) -> "SymCoeff":
        if not values:
            return self
        subs = {}
        for s in self.expr.free_symbols:
            if str(s) in values:
                subs[s] = as_coeff(values[str(s)]).expr
        if not subs:
            return self
        return SymCoeff(sp.expand(self.expr.xreplace(subs)))

    def __complex__(self) -> complex:
        return self.to_complex()

    def __str__(self) -> str:
        return str(self.expr)

    def __repr__(self) -> str:
        return f"SymCoeff({self.expr})"


COEFF_ZERO = SymCoeff(sp.Integer(0))
COEFF_ONE = SymCoeff(sp.Integer(1))


def _float_expr(x: float) -> sp.Expr:
    if float(x).is_integer() and abs(x) < 2**53:
        return sp.Integer(int(x))
    return sp.Float(float(x))


def as_coeff(value: Any) -> SymCoeff:
    """
    Coerce value to a SymCoeff.

    Accepts SymCoeff, ints, floats, complex numbers (including numpy scalars),
    sympy expressions and strings parsed with sympy.
    """
    if isinstance(value, SymCoeff):
        return value
    if isinstance(value, bool):
        raise InvalidCoefficient(f"Unsupported coefficient type: {type(value)!r}")
    if isinstance(value, sp.Basic):
        if not isinstance(value, sp.Expr):
            raise InvalidCoefficient(f"Unsupported sympy object as coefficient: {value!r}")
        return SymCoeff(sp.expand(_realify(value)))
    if isinstance(value, str):
        return SymCoeff.parse(value)
    if isinstance(value, np.generic):
        value = value.item()
    if isinstance(value, numbers.Integral):
        return SymCoeff(sp.Integer(int(value)))
    if isinstance(value, numbers.Real):
        return SymCoeff(_float_expr(float(value)))
    if isinstance(value, numbers.Complex):
        re, im = float(value.real), float(value.imag)
        if im == 0.0:
            return SymCoeff(_float_expr(re))
        if re == 0.0:
            return SymCoeff(sp.I * _float_expr(im))
        return SymCoeff(_float_expr(re) + sp.I * _float_expr(im))
    raise InvalidCoefficient(f"Unsupported coefficient type: {type(value)!r}")


def _coerce_or_none(value: Any):
    try:
        return as_coeff(value)
    except InvalidCoefficient:
        return None


def split_parts(coeff: SymCoeff) -> Tuple[CoeffPart, CoeffPart]:
    """
    Split a coefficient into (real, imag) parts for encoding.

    Integer and double-precision float parts are emitted as floats. Other
    parts are emitted as their printed form when SymCoeff.parse_stored reads
    it back unchanged, and as sympy's srepr otherwise, so symbols named like
    sympy constants and floats of higher precision survive exactly.
    """

    def _part(e: sp.Expr) -> CoeffPart:
        e = sp.expand(e)
        if isinstance(e, sp.Integer) and abs(int(e)) < 2**53:
            return float(int(e))
        if isinstance(e, sp.Float) and e._prec <= 53:
            return float(e)
        for text in (str(e), sp.srepr(e)):
            try:
                back = SymCoeff.parse_stored(text).expr
            except InvalidCoefficient:
                continue
            if back == _realify(e):
                return text
        raise InvalidCoefficient(f"Coefficient part {e} cannot be written as text exactly")

    return _part(sp.re(coeff.expr)), _part(sp.im(coeff.expr))


def join_parts(
    re: CoeffPart,
    im: CoeffPart,
    *,
    parse: Callable[[str], SymCoeff] = SymCoeff.parse_stored,
) -> SymCoeff:
    """Inverse of split_parts; parse reads string parts."""

    def _part(p: CoeffPart) -> SymCoeff:
        if isinstance(p, str):
            return parse(p)
        if isinstance(p, numbers.Real) and not isinstance(p, bool):
            return as_coeff(float(p))
        raise InvalidCoefficient(f"Coefficient part must be a number or string, got {p!r}")

    return _part(re) + _part(im) * SymCoeff(sp.I)
