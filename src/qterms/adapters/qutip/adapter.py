from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from qterms.core.config import DenseOptions
from qterms.core.dense import descriptor_matrix, local_dims, resolve_dimension, to_dense_matrix
from qterms.core.systems.base import TermSystem
from qterms.core.systems.open_systems import OpenSystem


@dataclass
class QuTiPAdapter:
    """
    QuTiP adapter.

    Conventions:
    - Operators are projected with qterms.core.dense and wrapped as Qobj with
      one tensor factor per site (per subsystem for mixed systems).
    - Liouvillians are assembled by QuTiP itself, so they follow its
      column-stacking superoperator convention.
    """

    dense_options: Optional[DenseOptions] = None

    # Storage preference (QuTiP 5 data layer), e.g. "csr", "dense" or None
    op_dtype: Optional[str] = None

    def to_qobj(self, variant: TermSystem, dimension: Any = None) -> Any:
        """Operator or Hamiltonian as a qutip.Qobj."""
        import qutip as qt  # type: ignore

        dim = resolve_dimension(variant, dimension)
        mat = to_dense_matrix(variant, dim, options=self.dense_options)
        dims = self._dims(variant.descriptor_type, dim)
        return self._toq(qt, mat, dims=dims, dtype=self.op_dtype)

    def liouvillian(self, open_system: OpenSystem, dimension: Any = None) -> Any:
        """
        Lindblad superoperator
        L(rho) = -i[H, rho] + sum_lr g_lr (A_l rho A_r^dag - 1/2 {A_r^dag A_l, rho}).
        """
        import qutip as qt  # type: ignore

        if not isinstance(open_system, OpenSystem):
            raise TypeError(f"liouvillian needs an open system, got {type(open_system).__name__}")
        system, noise = open_system.ungroup()
        dim = resolve_dimension(open_system, dimension)
        dims = self._dims(system.descriptor_type, dim)

        H = self._toq(
            qt,
            to_dense_matrix(system, dim, options=self.dense_options),
            dims=dims,
            dtype=self.op_dtype,
        )
        L = -1j * (qt.spre(H) - qt.spost(H))
        for (left, right), rate in noise.iter_items():
            g = rate.to_complex()
            m_l = descriptor_matrix(left, dim, self.dense_options)
            m_r = descriptor_matrix(right, dim, self.dense_options)
            a_l = self._toq(qt, m_l, dims=dims, dtype=self.op_dtype)
            a_r = self._toq(qt, m_r, dims=dims, dtype=self.op_dtype)
            ra = a_r.dag() * a_l
            L = L + g * (qt.sprepost(a_l, a_r.dag()) - 0.5 * qt.spre(ra) - 0.5 * qt.spost(ra))
        return L

    def _dims(self, descriptor_type: type, dimension: Any) -> List[int]:
        dims = local_dims(descriptor_type, dimension, self.dense_options)
        # Qobj needs at least one factor
        return dims or [1]

    def _toq(
        self, qt: Any, mat: np.ndarray, *, dims: list[int], dtype: Optional[str]
    ) -> Any:
        q = qt.Qobj(mat, dims=[dims, dims])
        if dtype:
            q = q.to(dtype)
        return q
