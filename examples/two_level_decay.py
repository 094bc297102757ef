from __future__ import annotations

import numpy as np

from qterms import SpinHamiltonian, SpinNoiseOperator, SpinOpenSystem, migrate_from_legacy


def build_model(w: float, gamma: float) -> SpinOpenSystem:
    """
    Driven two-level system with spontaneous decay.

    H = 0.5 * w * Z + omega * X
    noise: gamma on the (sigma_-, sigma_-) channel, written in Pauli form
    """
    h = SpinHamiltonian(1, {"0Z": 0.5 * w, "0X": "omega"})
    # sigma_- = (X + iY) / 2, so (sigma_-, sigma_-) expands into four Pauli pairs
    noise = SpinNoiseOperator(1)
    for left, cl in (("0X", 0.5), ("0Y", 0.5j)):
        for right, cr in (("0X", 0.5), ("0Y", 0.5j)):
            noise.add_operator_product((left, right), gamma * cl * np.conj(cr))
    return SpinOpenSystem.group(h, noise)


def main() -> None:
    model = build_model(w=1.0, gamma=0.2)
    print("free symbols:", sorted(model.free_symbols()))

    bound = model.substitute({"omega": 0.05})
    L = bound.to_dense_superoperator()
    print("superoperator shape:", L.shape)

    # excited state |e><e| = diag(0, 1) in the computational basis
    rho = np.array([[0.0, 0.0], [0.0, 1.0]], dtype=complex)
    drho = (L @ rho.reshape(-1)).reshape(2, 2)
    print("d rho / dt at t=0:")
    print(np.round(drho, 4))

    data = model.to_bytes()
    print("binary payload:", len(data), "bytes")
    assert SpinOpenSystem.from_bytes(data) == model

    text = model.to_json()
    print(text)

    # a generation-1 document of the same Hamiltonian
    legacy = (
        '{"type": "SpinHamiltonianSystem", "_version": {"major_version": 1, "minor_version": 0},'
        ' "number_spins": 1, "hamiltonian": {"items": [["0Z", 0.5, 0.0], ["0X", "omega", 0.0]]}}'
    )
    print("migrated legacy Hamiltonian matches:", migrate_from_legacy(legacy) == model.system())


if __name__ == "__main__":
    main()
