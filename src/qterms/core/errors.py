from __future__ import annotations


class QTermsError(ValueError):
    r"""Base class for errors raised while building or decoding term systems."""


class InvalidTerm(QTermsError):
    r"""Raised when a term descriptor cannot be built from its input."""


class InvalidCoefficient(QTermsError):
    r"""Raised when a value cannot be turned into a symbolic coefficient."""


class UnresolvedSymbol(QTermsError):
    r"""Raised when a numeric value is requested from a coefficient with free symbols."""


class NonHermitianTerm(QTermsError):
    r"""Raised when an insertion would break the Hermiticity of a Hamiltonian."""


class AsymmetricNoiseTerm(QTermsError):
    r"""Raised when a diagonal Lindblad rate has a negative real part."""


class ModeCountExceeded(QTermsError):
    r"""Raised when a term acts on more modes than the system allows."""


class SchemaMismatch(QTermsError):
    r"""Raised when an encoded payload carries a version this package cannot read."""


class UnsupportedLegacyShape(QTermsError):
    r"""Raised when a legacy payload uses a layout the migrator does not know."""


class DecodeError(QTermsError):
    r"""Raised when an encoded payload is truncated or structurally malformed."""
