from qterms.core.errors import (
    AsymmetricNoiseTerm,
    DecodeError,
    InvalidCoefficient,
    InvalidTerm,
    ModeCountExceeded,
    NonHermitianTerm,
    QTermsError,
    SchemaMismatch,
    UnresolvedSymbol,
    UnsupportedLegacyShape,
)
from qterms.core.config import DenseOptions, MapOptions, SerializationOptions
from qterms.core.coeffs import SymCoeff, as_coeff
from qterms.core.descriptors import (
    BosonProduct,
    FermionProduct,
    MixedProduct,
    PauliProduct,
    PlusMinusProduct,
    TermDescriptor,
)
from qterms.core.opmap import IndexedOperatorMap, KeySpec
from qterms.core.systems import (
    BosonHamiltonian,
    BosonNoiseOperator,
    BosonOpenSystem,
    BosonOperator,
    FermionHamiltonian,
    FermionNoiseOperator,
    FermionOpenSystem,
    FermionOperator,
    MixedHamiltonian,
    MixedNoiseOperator,
    MixedOpenSystem,
    MixedOperator,
    PlusMinusNoiseOperator,
    PlusMinusOperator,
    SpinHamiltonian,
    SpinNoiseOperator,
    SpinOpenSystem,
    SpinOperator,
)
from qterms.core.dense import spin_operator_from_dense, to_dense_matrix, to_dense_superoperator
from qterms.core.serialization import (
    decode_envelope,
    deserialize,
    from_json,
    json_schema,
    migrate_from_legacy,
    serialize,
    to_json,
)

__version__ = "0.2.0"

__all__ = [
    "QTermsError",
    "InvalidTerm",
    "InvalidCoefficient",
    "UnresolvedSymbol",
    "NonHermitianTerm",
    "AsymmetricNoiseTerm",
    "ModeCountExceeded",
    "SchemaMismatch",
    "UnsupportedLegacyShape",
    "DecodeError",
    "MapOptions",
    "DenseOptions",
    "SerializationOptions",
    "SymCoeff",
    "as_coeff",
    "TermDescriptor",
    "PauliProduct",
    "PlusMinusProduct",
    "BosonProduct",
    "FermionProduct",
    "MixedProduct",
    "IndexedOperatorMap",
    "KeySpec",
    "SpinOperator",
    "SpinHamiltonian",
    "SpinNoiseOperator",
    "SpinOpenSystem",
    "PlusMinusOperator",
    "PlusMinusNoiseOperator",
    "BosonOperator",
    "BosonHamiltonian",
    "BosonNoiseOperator",
    "BosonOpenSystem",
    "FermionOperator",
    "FermionHamiltonian",
    "FermionNoiseOperator",
    "FermionOpenSystem",
    "MixedOperator",
    "MixedHamiltonian",
    "MixedNoiseOperator",
    "MixedOpenSystem",
    "to_dense_matrix",
    "to_dense_superoperator",
    "spin_operator_from_dense",
    "serialize",
    "deserialize",
    "to_json",
    "from_json",
    "json_schema",
    "decode_envelope",
    "migrate_from_legacy",
]
