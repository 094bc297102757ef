import pytest

from qterms.core.errors import AsymmetricNoiseTerm, NonHermitianTerm, QTermsError
from qterms.core.systems import (
    BosonHamiltonian,
    BosonNoiseOperator,
    BosonOpenSystem,
    SpinHamiltonian,
    SpinNoiseOperator,
    SpinOpenSystem,
)


def _spin_open_system():
    system = SpinHamiltonian(2, {"0Z": 1.0, "0X1X": 0.5})
    noise = SpinNoiseOperator(2, {("0Z", "0Z"): 0.1, ("1X", "1Y"): 0.2j})
    return SpinOpenSystem.group(system, noise)


class TestOpenSystem:
    def test_group_and_ungroup(self):
        osys = _spin_open_system()
        system, noise = osys.ungroup()
        assert len(system) == 2
        assert len(noise) == 2
        assert len(osys) == 4
        assert osys.number_modes == 2

    def test_parts_are_copies(self):
        osys = _spin_open_system()
        osys.system().set("1Z", 5.0)
        assert osys.system_get("1Z") == 0

    def test_negative_diagonal_rate_rejected(self):
        osys = SpinOpenSystem(1)
        with pytest.raises(AsymmetricNoiseTerm):
            osys.noise_set(("0X", "0X"), -1.0)
        osys.noise_set(("0X", "0X"), 1.0)
        with pytest.raises(AsymmetricNoiseTerm):
            osys.noise_add_operator_product(("0X", "0X"), -2.0)
        assert osys.noise_get(("0X", "0X")) == 1

    def test_group_checks_the_noise(self):
        noise = SpinNoiseOperator(1, {("0Z", "0Z"): -0.5})
        with pytest.raises(AsymmetricNoiseTerm):
            SpinOpenSystem.group(SpinHamiltonian(1), noise)

    def test_off_diagonal_rates_are_not_checked(self):
        osys = SpinOpenSystem(1)
        osys.noise_set(("0X", "0Z"), -1.0)
        assert osys.noise_get(("0X", "0Z")) == -1

    def test_symbolic_rates_are_not_checked(self):
        osys = SpinOpenSystem(1)
        osys.noise_set(("0X", "0X"), "gamma")
        assert osys.free_symbols() == frozenset({"gamma"})

    def test_capacities_must_match(self):
        with pytest.raises(QTermsError):
            SpinOpenSystem.group(SpinHamiltonian(2), SpinNoiseOperator(3))

    def test_family_checked(self):
        with pytest.raises(TypeError):
            SpinOpenSystem.group(BosonHamiltonian(), BosonNoiseOperator())

    def test_system_mutation_stays_hermitian(self):
        osys = BosonOpenSystem()
        osys.system_add_operator_product("c0a1", 1j)
        assert osys.system_get("c1a0") == -1j
        with pytest.raises(NonHermitianTerm):
            osys.system_set("c0a0", 1j)

    def test_current_number_modes(self):
        osys = SpinOpenSystem()
        osys.system_set("0Z", 1)
        osys.noise_set(("3X", "3X"), 1)
        assert osys.current_number_modes() == 4

    def test_arithmetic(self):
        osys = _spin_open_system()
        doubled = osys + osys
        assert doubled == 2 * osys
        assert doubled.noise_get(("0Z", "0Z")) == 0.2
        with pytest.raises(TypeError):
            osys * 1j

    def test_group_into(self):
        osys = _spin_open_system()
        groups = osys.group_into(lambda key: 0 if isinstance(key, tuple) else 1)
        assert [label for label, _ in groups] == [0, 1]
        assert groups[0][1].system().is_empty()
        assert groups[1][1].noise().is_empty()

    def test_substitute_and_truncate(self):
        osys = SpinOpenSystem(1)
        osys.system_set("0Z", "w")
        osys.noise_set(("0X", "0X"), 1e-9)
        bound = osys.substitute({"w": 2})
        assert bound.system_get("0Z") == 2
        assert bound.truncate(1e-6).noise().is_empty()

    def test_subtraction(self):
        osys = _spin_open_system()
        assert (osys - osys).is_empty()
        doubled = osys + osys
        assert doubled - osys == osys
        assert type(doubled - osys) is SpinOpenSystem

    def test_negation_of_off_diagonal_noise(self):
        osys = SpinOpenSystem(2)
        osys.system_set("0Z", 1.0)
        osys.noise_set(("1X", "1Y"), 0.2j)
        neg = -osys
        assert neg.system_get("0Z") == -1
        assert neg.noise_get(("1X", "1Y")) == -0.2j
        assert neg + osys == SpinOpenSystem(2)

    def test_negation_rejects_positive_diagonal_rates(self):
        with pytest.raises(AsymmetricNoiseTerm):
            -_spin_open_system()

    def test_subtraction_needs_same_type(self):
        with pytest.raises(TypeError):
            _spin_open_system() - BosonOpenSystem()
