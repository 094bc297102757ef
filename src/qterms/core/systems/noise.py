from __future__ import annotations

from qterms.core.systems.base import TermSystem


class LindbladNoiseOperator(TermSystem):
    """
    Lindblad noise terms keyed by (left, right) descriptor pairs.

    A coefficient gamma at (A, B) stands for the dissipator contribution
    gamma * (A rho B^dagger - 1/2 {B^dagger A, rho}). The hermitian
    conjugate swaps the pair and conjugates the coefficient.
    """

    paired = True
