"""
Hash Engines

Two-input compression functions for trust-list trees. The engine selected
for a tree MUST be the one the verification circuit uses for the same mode:
a tree built with a different function has a root the circuit can never
validate. Every engine therefore runs a golden-value self-check before it is
handed to a builder.

Modes:
- poseidon: circomlib Poseidon, t=3 (pure Python, see merkle.poseidon)
- pedersen: Barretenberg pedersen_hash with hash index 0 (via a backend handle)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from trustroot.field.codec import field_to_hex, hex_to_field, is_field_element
from trustroot.protocol.errors import BackendError, EngineMismatchError, InputError

from .poseidon import poseidon

logger = logging.getLogger(__name__)

SELF_CHECK_PAIR = (1, 2)

# circomlibjs: poseidon([1, 2])
POSEIDON_GOLDEN = "115cc0f5e7d690413df64c6b9662e9cf2a3617f2743245519e19607a4417189a"

# Barretenberg reference vector: pedersen_hash([1, 1]) with generator index 0
PEDERSEN_CHECK_PAIR = (1, 1)
PEDERSEN_GOLDEN = "07ebfbf4df29888c6cd6dca13d4bb9d1a923013ddbbcbdc3378ab8845463297b"

PEDERSEN_HASH_INDEX = 0


class HashMode(str, Enum):
    """Closed set of supported compression functions."""

    PEDERSEN = "pedersen"
    POSEIDON = "poseidon"

    @classmethod
    def parse(cls, value: "str | HashMode") -> "HashMode":
        if isinstance(value, HashMode):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            supported = ", ".join(m.value for m in cls)
            raise InputError(f"Unknown hash mode {value!r} (supported: {supported})") from None


class HashEngine(ABC):
    """
    Deterministic, order-sensitive compression of two field elements.

    Implementations must be safe to call from several threads at once.
    """

    mode: HashMode
    description: str = ""
    check_pair = SELF_CHECK_PAIR

    @abstractmethod
    def hash(self, left: int, right: int) -> int:
        raise NotImplementedError

    def self_check(self, golden: Optional[str] = None) -> None:
        """
        Hash the engine's check pair and compare with the golden value.

        The pair is (1, 2) for poseidon and (1, 1) for pedersen, matching the
        published reference vectors.

        Raises:
            EngineMismatchError: on mismatch, or when the engine output is not
                a field element, not deterministic, or not order-sensitive
        """
        check_left, check_right = self.check_pair
        value = self.hash(check_left, check_right)

        if not is_field_element(value):
            raise EngineMismatchError(f"{self.mode.value} engine returned a non-field value")

        if golden is not None:
            expected = hex_to_field(golden)
            if value != expected:
                raise EngineMismatchError(
                    f"{self.mode.value} self-check failed: hash({check_left}, {check_right}) = "
                    f"{field_to_hex(value)}, expected {field_to_hex(expected)}"
                )
            return

        logger.warning(
            "No golden value configured for %s engine; checking determinism only",
            self.mode.value,
        )
        left, right = SELF_CHECK_PAIR
        first = self.hash(left, right)
        if self.hash(left, right) != first:
            raise EngineMismatchError(f"{self.mode.value} engine is not deterministic")
        if self.hash(right, left) == first:
            raise EngineMismatchError(f"{self.mode.value} engine is not order-sensitive")


class PoseidonEngine(HashEngine):
    mode = HashMode.POSEIDON
    description = "Poseidon BN254 t=3 (circomlib / poseidon-lite poseidon2 / Noir poseidon::bn254::hash_2)"

    golden = POSEIDON_GOLDEN

    def hash(self, left: int, right: int) -> int:
        return poseidon((left, right))


class PedersenEngine(HashEngine):
    """
    Pedersen compression through a proving backend.

    The backend handle is passed in explicitly and must be initialised by the
    caller (see trustroot.backend.base.ProvingBackend).
    """

    mode = HashMode.PEDERSEN
    description = "Pedersen (Barretenberg pedersen_hash, hash index 0, Noir std::hash::pedersen_hash)"
    check_pair = PEDERSEN_CHECK_PAIR

    def __init__(self, backend, golden: Optional[str] = None) -> None:
        if backend is None:
            raise BackendError("pedersen mode requires a proving backend")
        self._backend = backend
        self.golden = golden or PEDERSEN_GOLDEN

    def hash(self, left: int, right: int) -> int:
        value = self._backend.pedersen_hash([left, right], hash_index=PEDERSEN_HASH_INDEX)
        if not is_field_element(value):
            raise BackendError(f"Backend returned a value outside the field: {value!r}")
        return value


def create_engine(
    mode: "str | HashMode",
    backend=None,
    *,
    golden: Optional[str] = None,
    self_check: bool = True,
) -> HashEngine:
    """
    Build the engine for a mode and run its self-check.

    Args:
        mode: "pedersen" or "poseidon" (unknown tags raise InputError)
        backend: initialised ProvingBackend, required for pedersen
        golden: override of the expected hash of the engine's check pair, hex
        self_check: disable only for engines checked elsewhere
    """
    mode = HashMode.parse(mode)

    if mode is HashMode.POSEIDON:
        engine: HashEngine = PoseidonEngine()
    else:
        if golden is None:
            from trustroot.core.settings import get_settings

            golden = get_settings().backend.pedersen_golden
        # Falls back to PEDERSEN_GOLDEN when nothing is configured
        engine = PedersenEngine(backend, golden=golden)

    if self_check:
        engine.self_check(golden if golden is not None else engine.golden)
        logger.debug("%s engine passed self-check", mode.value)

    return engine
