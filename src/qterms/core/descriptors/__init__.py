from qterms.core.descriptors.base import TermDescriptor, compare
from qterms.core.descriptors.pauli import PauliProduct
from qterms.core.descriptors.plus_minus import PlusMinusProduct
from qterms.core.descriptors.bosons import BosonProduct
from qterms.core.descriptors.fermions import FermionProduct
from qterms.core.descriptors.mixed import MixedProduct

__all__ = [
    "TermDescriptor",
    "compare",
    "PauliProduct",
    "PlusMinusProduct",
    "BosonProduct",
    "FermionProduct",
    "MixedProduct",
]
