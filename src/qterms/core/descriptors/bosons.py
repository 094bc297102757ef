from __future__ import annotations

from dataclasses import dataclass

from qterms.core.descriptors.ladder import LadderProduct


@dataclass(frozen=True)
class BosonProduct(LadderProduct):
    """
    Bosonic ladder product, e.g. "c0c1a1" for b_0^dagger b_1^dagger b_1.

    Creators and annihilators are each sorted; repeated indices are allowed.
    """

    family = "bosons"
    fermionic = False
