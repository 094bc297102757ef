from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Hashable,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
)

from qterms.core.coeffs import SymCoeff, as_coeff
from qterms.core.config import MapOptions
from qterms.core.errors import AsymmetricNoiseTerm, QTermsError
from qterms.core.opmap import Key
from qterms.core.systems.base import expect_type, is_scalar
from qterms.core.systems.hamiltonians import Hamiltonian
from qterms.core.systems.noise import LindbladNoiseOperator
from qterms.core.types import Capacity, merge_mode_counts

logger = logging.getLogger(__name__)


def check_noise_entry(key: Key, value: SymCoeff, render: Callable[[Key], Any]) -> None:
    """
    Reject diagonal noise rates with a negative real part.

    Symbolic rates are not checked; neither is positivity of the full rate
    matrix, which stays with the caller.
    """
    left, right = key
    if left != right or not value.is_number:
        return
    if value.to_complex().real < 0:
        raise AsymmetricNoiseTerm(
            f"Diagonal noise rate at {render(key)} must have a non-negative real part, "
            f"got {value}")


class OpenSystem:
    """
    A Hamiltonian together with Lindblad noise on the same modes.

    The parts are owned by the open system: system() and noise() hand out
    copies, and changes go through the system_* and noise_* methods.
    """

    hamiltonian_type: ClassVar[Type[Hamiltonian]]
    noise_type: ClassVar[Type[LindbladNoiseOperator]]
    type_name: ClassVar[str] = ""

    def __init__(self, number_modes: Any = None, *, options: Optional[MapOptions] = None) -> None:
        self._system = self.hamiltonian_type(number_modes, options=options)
        self._noise = self.noise_type(number_modes, options=options)

    @classmethod
    def group(cls, system: Hamiltonian, noise: LindbladNoiseOperator) -> "OpenSystem":
        """Combine a Hamiltonian and a noise operator with equal capacities."""
        if not isinstance(system, cls.hamiltonian_type):
            raise TypeError(
                f"{cls.__name__} needs a {cls.hamiltonian_type.__name__}, "
                f"got {type(system).__name__}")
        if not isinstance(noise, cls.noise_type):
            raise TypeError(
                f"{cls.__name__} needs a {cls.noise_type.__name__}, got {type(noise).__name__}")
        if system.number_modes != noise.number_modes:
            raise QTermsError(
                f"System and noise capacities differ: "
                f"{system.number_modes!r} vs {noise.number_modes!r}")
        render = noise.key_spec().render
        for k, v in noise.iter_items():
            check_noise_entry(k, v, render)
        out = cls.__new__(cls)
        out._system = system.copy()
        out._noise = noise.copy()
        logger.debug(
            "%s.group: %d system terms, %d noise terms", cls.__name__, len(system), len(noise))
        return out

    def ungroup(self) -> Tuple[Hamiltonian, LindbladNoiseOperator]:
        return self._system.copy(), self._noise.copy()

    def system(self) -> Hamiltonian:
        return self._system.copy()

    def noise(self) -> LindbladNoiseOperator:
        return self._noise.copy()

    @property
    def number_modes(self) -> Capacity:
        return self._system.number_modes

    def current_number_modes(self) -> Any:
        a = self._system.current_number_modes()
        b = self._noise.current_number_modes()
        if isinstance(a, tuple) and not any(a):
            return b
        if isinstance(b, tuple) and not any(b):
            return a
        return merge_mode_counts(a, b)

    # --- mutation ---

    def system_set(self, key: Any, value: Any) -> None:
        self._system.set(key, value)

    def system_add_operator_product(self, key: Any, value: Any) -> None:
        self._system.add_operator_product(key, value)

    def noise_set(self, key: Any, value: Any) -> None:
        spec = self._noise.key_spec()
        k = spec.parse(key)
        c = as_coeff(value)
        check_noise_entry(k, c, spec.render)
        self._noise.set(k, c)

    def noise_add_operator_product(self, key: Any, value: Any) -> None:
        spec = self._noise.key_spec()
        k = spec.parse(key)
        total = self._noise.get(k) + as_coeff(value)
        check_noise_entry(k, total, spec.render)
        self._noise.set(k, total)

    def system_get(self, key: Any) -> SymCoeff:
        return self._system.get(key)

    def noise_get(self, key: Any) -> SymCoeff:
        return self._noise.get(key)

    def __len__(self) -> int:
        return len(self._system) + len(self._noise)

    def is_empty(self) -> bool:
        return self._system.is_empty() and self._noise.is_empty()

    # --- derived systems ---

    def empty_clone(self) -> "OpenSystem":
        return type(self).group(self._system.empty_clone(), self._noise.empty_clone())

    def truncate(self, threshold: float) -> "OpenSystem":
        return type(self).group(self._system.truncate(threshold), self._noise.truncate(threshold))

    def substitute(self, values: Mapping[str, Any]) -> "OpenSystem":
        return type(self).group(self._system.substitute(values), self._noise.substitute(values))

    def free_symbols(self) -> frozenset:
        return self._system.free_symbols() | self._noise.free_symbols()

    def group_into(
        self, partition: Callable[[Any], Hashable]
    ) -> List[Tuple[Hashable, "OpenSystem"]]:
        """
        Split by partition, which is called with system descriptors and with
        (left, right) noise keys.
        """
        systems: Dict[Hashable, Hamiltonian] = dict(self._system.group_into(partition))
        noises: Dict[Hashable, LindbladNoiseOperator] = dict(self._noise.group_into(partition))
        out = []
        for label in sorted(set(systems) | set(noises)):
            s = systems.get(label, self._system.empty_clone())
            n = noises.get(label, self._noise.empty_clone())
            out.append((label, type(self).group(s, n)))
        return out

    # --- projections and encodings ---

    def to_dense_superoperator(self, dimension: Any = None, *, options: Any = None):
        from qterms.core.dense import to_dense_superoperator

        return to_dense_superoperator(self, dimension, options=options)

    def to_json(self, *, options: Any = None) -> str:
        from qterms.core.serialization.structured import to_json

        return to_json(self, options=options)

    @classmethod
    def from_json(cls, text: str) -> "OpenSystem":
        from qterms.core.serialization.structured import from_json

        return expect_type(cls, from_json(text))

    def to_bytes(self) -> bytes:
        from qterms.core.serialization.binary import serialize

        return serialize(self)

    @classmethod
    def from_bytes(cls, data: bytes) -> "OpenSystem":
        from qterms.core.serialization.binary import deserialize

        return expect_type(cls, deserialize(data))

    # --- arithmetic ---

    def __add__(self, other: Any) -> Any:
        if type(other) is not type(self):
            return NotImplemented
        return type(self).group(self._system + other._system, self._noise + other._noise)

    def __sub__(self, other: Any) -> Any:
        if type(other) is not type(self):
            return NotImplemented
        return type(self).group(self._system - other._system, self._noise - other._noise)

    def __neg__(self) -> "OpenSystem":
        # Positive diagonal rates turn negative and are rejected by group.
        return type(self).group(-self._system, -self._noise)

    def __mul__(self, other: Any) -> Any:
        if not is_scalar(other):
            return NotImplemented
        s = as_coeff(other)
        if not s.is_real():
            raise TypeError(f"{type(self).__name__} can only be scaled by a real number, got {s}")
        return type(self).group(self._system * s, self._noise * s)

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._system == other._system and self._noise == other._noise

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"{type(self).__name__}(system={self._system!r}, noise={self._noise!r})"
