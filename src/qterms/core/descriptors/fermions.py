from __future__ import annotations

from dataclasses import dataclass

from qterms.core.descriptors.ladder import LadderProduct


@dataclass(frozen=True)
class FermionProduct(LadderProduct):
    """
    Fermionic ladder product with strictly increasing creator and annihilator
    indices, e.g. "c0c2a1".

    Reordering raw input into this form picks up the anticommutation sign;
    a repeated index in either list makes the product vanish.
    """

    family = "fermions"
    fermionic = True
