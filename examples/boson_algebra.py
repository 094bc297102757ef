from __future__ import annotations

import numpy as np

from qterms import BosonHamiltonian, BosonOperator, DenseOptions, FermionOperator, MixedHamiltonian


def main() -> None:
    a = BosonOperator(None, {"a0": 1})
    c = BosonOperator(None, {"c0": 1})
    print("[a, a^dag] =", {str(k): str(v) for k, v in a.commutator(c).items()})

    # beam splitter between two modes
    h = BosonHamiltonian(2)
    h.add_operator_product("c0a1", "g")
    print("Hamiltonian terms:", [str(k) for k in h.keys()])

    n0 = BosonOperator(2, {"c0a0": 1})
    flow = h.to_operator().commutator(n0)
    print("[H, n0] =", {str(k): str(v) for k, v in flow.items()})

    mat = h.substitute({"g": 0.3}).to_dense_matrix(options=DenseOptions(boson_cutoff=3))
    print("dense shape:", mat.shape, "hermitian:", np.allclose(mat, mat.conj().T))

    # fermionic signs
    a0 = FermionOperator(None, {"a0": 1})
    c1 = FermionOperator(None, {"c1": 1})
    print("a0 c1 =", {str(k): str(v) for k, v in (a0 * c1).items()})

    # spin coupled to a cavity mode; every key names one spin and one boson subsystem
    jc = MixedHamiltonian()
    jc.set("S0Z:B:", 0.5)
    jc.set("S:Bc0a0:", 1.0)
    jc.add_operator_product("S0X:Ba0:", "kappa")
    print(jc.to_json())


if __name__ == "__main__":
    main()
