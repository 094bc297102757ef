from __future__ import annotations

import logging
from itertools import product
from typing import Any, List, Optional, Sequence

import numpy as np

from qterms.core.coeffs import as_coeff
from qterms.core.config import DEFAULT_DENSE_OPTIONS, DenseOptions
from qterms.core.descriptors.base import TermDescriptor
from qterms.core.descriptors.bosons import BosonProduct
from qterms.core.descriptors.fermions import FermionProduct
from qterms.core.descriptors.mixed import MixedProduct
from qterms.core.descriptors.pauli import PauliProduct
from qterms.core.descriptors.plus_minus import PlusMinusProduct
from qterms.core.errors import ModeCountExceeded, NonHermitianTerm
from qterms.core.systems.base import TermSystem
from qterms.core.systems.hamiltonians import Hamiltonian
from qterms.core.systems.open_systems import OpenSystem

logger = logging.getLogger(__name__)

_SPIN_LOCAL = {
    "X": np.array([[0, 1], [1, 0]], dtype=complex),
    "Y": np.array([[0, -1j], [1j, 0]], dtype=complex),
    "Z": np.array([[1, 0], [0, -1]], dtype=complex),
    "+": np.array([[0, 1], [0, 0]], dtype=complex),
    "-": np.array([[0, 0], [1, 0]], dtype=complex),
}

# Fermionic annihilator on one mode in the (empty, occupied) basis.
_F_ANNIHILATE = np.array([[0, 1], [0, 0]], dtype=complex)


def _prod_int(xs: Sequence[int]) -> int:
    out = 1
    for x in xs:
        out *= int(x)
    return out


def _kron_all(mats: Sequence[np.ndarray]) -> np.ndarray:
    if not mats:
        return np.eye(1, dtype=complex)
    out = np.asarray(mats[0], dtype=complex)
    for m in mats[1:]:
        out = np.kron(out, np.asarray(m, dtype=complex))
    return out


def boson_annihilator(cutoff: int) -> np.ndarray:
    """Truncated bosonic annihilator on cutoff Fock states."""
    return np.diag(np.sqrt(np.arange(1, cutoff, dtype=float)), k=1).astype(complex)


def _embed(local: np.ndarray, index: int, n_sites: int, local_dim: int) -> np.ndarray:
    mats = [np.eye(local_dim, dtype=complex) for _ in range(n_sites)]
    mats[index] = local
    return _kron_all(mats)


def _site_product_matrix(d: Any, n_sites: int) -> np.ndarray:
    mats = [np.eye(2, dtype=complex) for _ in range(n_sites)]
    for i, s in d.items:
        mats[i] = _SPIN_LOCAL[s]
    return _kron_all(mats)


def _boson_matrix(d: BosonProduct, n_modes: int, cutoff: int) -> np.ndarray:
    a = boson_annihilator(cutoff)
    D = cutoff ** n_modes
    out = np.eye(D, dtype=complex)
    for i in d.creators:
        out = out @ _embed(a.conj().T, i, n_modes, cutoff)
    for i in d.annihilators:
        out = out @ _embed(a, i, n_modes, cutoff)
    return out


def _fermion_mode(index: int, n_modes: int) -> np.ndarray:
    # Jordan-Wigner: Z string on all lower modes.
    upper = [np.eye(2, dtype=complex)] * (n_modes - index - 1)
    mats = [_SPIN_LOCAL["Z"]] * index + [_F_ANNIHILATE] + upper
    return _kron_all(mats)


def _fermion_matrix(d: FermionProduct, n_modes: int) -> np.ndarray:
    out = np.eye(2 ** n_modes, dtype=complex)
    for i in d.creators:
        out = out @ _fermion_mode(i, n_modes).conj().T
    for i in d.annihilators:
        out = out @ _fermion_mode(i, n_modes)
    return out


def descriptor_matrix(
    d: TermDescriptor, dimension: Any, options: Optional[DenseOptions] = None
) -> np.ndarray:
    """
    Dense matrix of a single descriptor.

    dimension is the number of sites, or for mixed products a
    (spins, bosons, fermions) triple of per-subsystem site counts.
    Ordering follows kron(site0, site1, ...).
    """
    opt = options or DEFAULT_DENSE_OPTIONS
    if isinstance(d, (PauliProduct, PlusMinusProduct)):
        return _site_product_matrix(d, int(dimension))
    if isinstance(d, BosonProduct):
        return _boson_matrix(d, int(dimension), opt.boson_cutoff)
    if isinstance(d, FermionProduct):
        return _fermion_matrix(d, int(dimension))
    if isinstance(d, MixedProduct):
        spins, bosons, fermions = dimension
        mats: List[np.ndarray] = []
        mats.extend(_site_product_matrix(s, n) for s, n in zip(d.spins, spins))
        mats.extend(_boson_matrix(b, n, opt.boson_cutoff) for b, n in zip(d.bosons, bosons))
        mats.extend(_fermion_matrix(f, n) for f, n in zip(d.fermions, fermions))
        return _kron_all(mats)
    raise TypeError(f"Unsupported descriptor type: {type(d)!r}")


def local_dims(
    descriptor_type: type, dimension: Any, options: Optional[DenseOptions] = None
) -> List[int]:
    """Per-factor local dimensions in kron order, as used by tensor-product backends."""
    opt = options or DEFAULT_DENSE_OPTIONS
    if descriptor_type is BosonProduct:
        return [opt.boson_cutoff] * int(dimension)
    if descriptor_type is MixedProduct:
        spins, bosons, fermions = dimension
        return (
            [2 ** int(n) for n in spins]
            + [opt.boson_cutoff ** int(n) for n in bosons]
            + [2 ** int(n) for n in fermions]
        )
    return [2] * int(dimension)


def _zeros_like(layout: Any) -> Any:
    return tuple(_zeros_like(x) if isinstance(x, (tuple, list)) else 0 for x in layout)


def _fill_dimension(capacity: Any, current: Any) -> Any:
    if capacity is None:
        return current
    if not isinstance(capacity, tuple):
        return capacity
    # mixed: unbounded subsystems fall back to the modes in use
    if not any(current):
        current = _zeros_like(capacity)
    return tuple(
        tuple(u if c is None else c for c, u in zip(group, used))
        for group, used in zip(capacity, current)
    )


def _check_dimension(dimension: Any, needed: Any) -> Any:
    if isinstance(dimension, (tuple, list)):
        dimension = tuple(dimension)
        if not isinstance(needed, tuple) or not any(needed):
            needed = _zeros_like(dimension)
        if len(dimension) != len(needed):
            raise ModeCountExceeded(f"Dimension {dimension!r} does not match layout {needed!r}")
        return tuple(_check_dimension(d, n) for d, n in zip(dimension, needed))
    if isinstance(needed, tuple):
        raise ModeCountExceeded(f"Dimension {dimension!r} does not match layout {needed!r}")
    if int(dimension) < int(needed):
        raise ModeCountExceeded(f"Dimension {dimension} is smaller than the {needed} modes in use")
    return int(dimension)


def resolve_dimension(variant: Any, dimension: Any = None) -> Any:
    """Site counts for a dense projection: explicit, else capacity, else modes in use."""
    current = variant.current_number_modes()
    if dimension is None:
        dimension = _fill_dimension(variant.number_modes, current)
    return _check_dimension(dimension, current)


def _total_dim(descriptor_type: type, dimension: Any, options: DenseOptions) -> int:
    return _prod_int(local_dims(descriptor_type, dimension, options))


def _accumulate(variant: TermSystem, dimension: Any, options: DenseOptions) -> np.ndarray:
    D = _total_dim(variant.descriptor_type, dimension, options)
    acc = np.zeros((D, D), dtype=complex)
    for d, c in variant.iter_items():
        acc += c.to_complex() * descriptor_matrix(d, dimension, options)
    return acc


def to_dense_matrix(
    variant: TermSystem,
    dimension: Any = None,
    *,
    options: Optional[DenseOptions] = None,
) -> np.ndarray:
    """
    Dense (D, D) complex matrix of an operator or Hamiltonian.

    Coefficients must be free of symbols. Nothing is cached.
    """
    if not isinstance(variant, TermSystem) or variant.paired:
        raise TypeError(
            f"to_dense_matrix needs an operator or Hamiltonian, got {type(variant).__name__}")
    opt = options or DEFAULT_DENSE_OPTIONS
    dim = resolve_dimension(variant, dimension)
    mat = _accumulate(variant, dim, opt)
    if isinstance(variant, Hamiltonian) and opt.check_hermitian and mat.size:
        err = float(np.max(np.abs(mat - mat.conj().T)))
        if err > opt.hermitian_atol:
            raise NonHermitianTerm(
                f"Dense {type(variant).__name__} is not Hermitian: max|H - H^dagger| = {err:.3e}")
    logger.debug(
        "to_dense_matrix: %s, dimension=%r, shape=%s", type(variant).__name__, dim, mat.shape)
    return mat


def to_dense_superoperator(
    open_system: OpenSystem,
    dimension: Any = None,
    *,
    options: Optional[DenseOptions] = None,
) -> np.ndarray:
    """
    Row-major vectorised Lindbladian of an open system.

    With vec(A X B) = (A kron B^T) vec(X):
    L = -i(H kron 1 - 1 kron H^T)
        + sum gamma_lr (A_l kron conj(A_r) - 1/2 A_r^dag A_l kron 1 - 1/2 1 kron (A_r^dag A_l)^T)
    """
    if not isinstance(open_system, OpenSystem):
        raise TypeError(
            f"to_dense_superoperator needs an open system, got {type(open_system).__name__}")
    opt = options or DEFAULT_DENSE_OPTIONS
    system, noise = open_system.ungroup()
    dim = resolve_dimension(open_system, dimension)

    H = to_dense_matrix(system, dim, options=opt)
    D = H.shape[0]
    eye = np.eye(D, dtype=complex)
    L = -1j * (np.kron(H, eye) - np.kron(eye, H.T))
    for (left, right), gamma in noise.iter_items():
        g = gamma.to_complex()
        a_l = descriptor_matrix(left, dim, opt)
        a_r = descriptor_matrix(right, dim, opt)
        ra = a_r.conj().T @ a_l
        L += g * (np.kron(a_l, a_r.conj()) - 0.5 * np.kron(ra, eye) - 0.5 * np.kron(eye, ra.T))
    return L


def spin_operator_from_dense(matrix: np.ndarray, *, atol: float = 1e-12):
    """
    Decompose a (2^n, 2^n) matrix into Pauli products.

    Returns a SpinOperator with capacity n; components with magnitude at or
    below atol are dropped.
    """
    from qterms.core.systems.families import SpinOperator

    m = np.asarray(matrix, dtype=complex)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        raise ValueError(f"Expected a square matrix, got shape {m.shape}")
    D = m.shape[0]
    n = D.bit_length() - 1
    if D < 1 or 2 ** n != D:
        raise ValueError(f"Matrix dimension must be a power of two, got {D}")

    out = SpinOperator(n)
    local = {"I": np.eye(2, dtype=complex), **{k: _SPIN_LOCAL[k] for k in ("X", "Y", "Z")}}
    for labels in product("IXYZ", repeat=n):
        P = _kron_all([local[s] for s in labels])
        c = complex(np.trace(P @ m)) / D
        if abs(c) <= atol:
            continue
        key = [(i, s) for i, s in enumerate(labels) if s != "I"]
        out.set(PauliProduct.from_raw(key), as_coeff(c))
    return out

