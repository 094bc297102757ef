from __future__ import annotations

import sympy as sp

from qterms.core.descriptors.bosons import BosonProduct
from qterms.core.descriptors.fermions import FermionProduct
from qterms.core.descriptors.mixed import MixedProduct
from qterms.core.descriptors.pauli import PauliProduct
from qterms.core.descriptors.plus_minus import PlusMinusProduct
from qterms.core.systems.base import TermSystem
from qterms.core.systems.hamiltonians import Hamiltonian
from qterms.core.systems.noise import LindbladNoiseOperator
from qterms.core.systems.open_systems import OpenSystem
from qterms.core.systems.operators import Operator

# --- spins ---


class SpinOperator(Operator):
    descriptor_type = PauliProduct
    type_name = "SpinOperator"


class SpinHamiltonian(Hamiltonian):
    descriptor_type = PauliProduct
    type_name = "SpinHamiltonian"
    operator_type = SpinOperator


class SpinNoiseOperator(LindbladNoiseOperator):
    descriptor_type = PauliProduct
    type_name = "SpinNoiseOperator"


class SpinOpenSystem(OpenSystem):
    hamiltonian_type = SpinHamiltonian
    noise_type = SpinNoiseOperator
    type_name = "SpinOpenSystem"


# --- plus/minus ---


def _expand_map(source: TermSystem, target: TermSystem, expand) -> None:
    """Rewrite every term of source through expand() and add it into target."""
    paired = source.paired
    for key, coeff in source.iter_items():
        if not paired:
            for d, phase in expand(key):
                target.add_operator_product(d, coeff * phase)
            continue
        left, right = key
        for dl, pl in expand(left):
            for dr, pr in expand(right):
                target.add_operator_product((dl, dr), coeff * pl * sp.conjugate(pr))


class PlusMinusOperator(Operator):
    """Operator written in sigma+, sigma- and Z; converts to and from spins."""

    descriptor_type = PlusMinusProduct
    type_name = "PlusMinusOperator"

    @classmethod
    def from_spin(cls, operator: TermSystem) -> "PlusMinusOperator":
        if operator.descriptor_type is not PauliProduct or operator.paired:
            raise TypeError(f"Cannot convert {type(operator).__name__} to {cls.__name__}")
        out = cls(operator.number_modes)
        _expand_map(operator, out, PlusMinusProduct.from_pauli)
        return out

    def to_spin(self) -> SpinOperator:
        out = SpinOperator(self.number_modes)
        _expand_map(self, out, PlusMinusProduct.to_pauli)
        return out


class PlusMinusNoiseOperator(LindbladNoiseOperator):
    descriptor_type = PlusMinusProduct
    type_name = "PlusMinusNoiseOperator"

    @classmethod
    def from_spin(cls, noise: SpinNoiseOperator) -> "PlusMinusNoiseOperator":
        if not isinstance(noise, SpinNoiseOperator):
            raise TypeError(f"Cannot convert {type(noise).__name__} to {cls.__name__}")
        out = cls(noise.number_modes)
        _expand_map(noise, out, PlusMinusProduct.from_pauli)
        return out

    def to_spin(self) -> SpinNoiseOperator:
        out = SpinNoiseOperator(self.number_modes)
        _expand_map(self, out, PlusMinusProduct.to_pauli)
        return out


# --- bosons ---


class BosonOperator(Operator):
    descriptor_type = BosonProduct
    type_name = "BosonOperator"


class BosonHamiltonian(Hamiltonian):
    descriptor_type = BosonProduct
    type_name = "BosonHamiltonian"
    operator_type = BosonOperator


class BosonNoiseOperator(LindbladNoiseOperator):
    descriptor_type = BosonProduct
    type_name = "BosonNoiseOperator"


class BosonOpenSystem(OpenSystem):
    hamiltonian_type = BosonHamiltonian
    noise_type = BosonNoiseOperator
    type_name = "BosonOpenSystem"


# --- fermions ---


class FermionOperator(Operator):
    descriptor_type = FermionProduct
    type_name = "FermionOperator"


class FermionHamiltonian(Hamiltonian):
    descriptor_type = FermionProduct
    type_name = "FermionHamiltonian"
    operator_type = FermionOperator


class FermionNoiseOperator(LindbladNoiseOperator):
    descriptor_type = FermionProduct
    type_name = "FermionNoiseOperator"


class FermionOpenSystem(OpenSystem):
    hamiltonian_type = FermionHamiltonian
    noise_type = FermionNoiseOperator
    type_name = "FermionOpenSystem"


# --- mixed ---


class MixedOperator(Operator):
    descriptor_type = MixedProduct
    type_name = "MixedOperator"


class MixedHamiltonian(Hamiltonian):
    descriptor_type = MixedProduct
    type_name = "MixedHamiltonian"
    operator_type = MixedOperator


class MixedNoiseOperator(LindbladNoiseOperator):
    descriptor_type = MixedProduct
    type_name = "MixedNoiseOperator"


class MixedOpenSystem(OpenSystem):
    hamiltonian_type = MixedHamiltonian
    noise_type = MixedNoiseOperator
    type_name = "MixedOpenSystem"


SINGLE_MAP_TYPES = (
    SpinOperator,
    SpinHamiltonian,
    SpinNoiseOperator,
    PlusMinusOperator,
    PlusMinusNoiseOperator,
    BosonOperator,
    BosonHamiltonian,
    BosonNoiseOperator,
    FermionOperator,
    FermionHamiltonian,
    FermionNoiseOperator,
    MixedOperator,
    MixedHamiltonian,
    MixedNoiseOperator,
)

OPEN_SYSTEM_TYPES = (
    SpinOpenSystem,
    BosonOpenSystem,
    FermionOpenSystem,
    MixedOpenSystem,
)
