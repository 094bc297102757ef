from qterms.core.systems.base import TermSystem
from qterms.core.systems.operators import Operator
from qterms.core.systems.hamiltonians import Hamiltonian
from qterms.core.systems.noise import LindbladNoiseOperator
from qterms.core.systems.open_systems import OpenSystem
from qterms.core.systems.families import (
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

__all__ = [
    "TermSystem",
    "Operator",
    "Hamiltonian",
    "LindbladNoiseOperator",
    "OpenSystem",
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
]
