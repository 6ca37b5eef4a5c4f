"""
Poseidon over the BN254 scalar field (circomlib parameterisation).

This is the Poseidon used by circomlib/circomlibjs, poseidon-lite's
``poseidon1..poseidon16`` and Noir's ``std::hash::poseidon::bn254``:

- state width t = number of inputs + 1, state = [0, *inputs]
- x^5 S-box, 8 full rounds split 4/4 around the partial rounds
- partial round count from POSEIDON_PARTIAL_ROUNDS[t - 2]
- output = state[0] after the permutation

Round constants and the MDS matrix are derived with the Grain LFSR, exactly
as the reference ``generate_parameters_grain`` script does for
(field=1, sbox=0, n=254, t, R_F, R_P). Parameters are derived lazily per
width and cached.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, List, Sequence, Tuple

from trustroot.field.codec import BN254_SCALAR_MODULUS
from trustroot.protocol.errors import InputError

P = BN254_SCALAR_MODULUS
FIELD_BITS = 254
FULL_ROUNDS = 8
POSEIDON_PARTIAL_ROUNDS = (56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68)
MAX_INPUTS = len(POSEIDON_PARTIAL_ROUNDS)


@dataclass(frozen=True)
class PoseidonParams:
    t: int
    full_rounds: int
    partial_rounds: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]


# ===========================================================================
# Grain LFSR
# ===========================================================================


def _grain_bits(t: int, full_rounds: int, partial_rounds: int) -> Iterator[int]:
    seed = (
        format(1, "02b")  # prime field
        + format(0, "04b")  # x^alpha S-box
        + format(FIELD_BITS, "012b")
        + format(t, "012b")
        + format(full_rounds, "010b")
        + format(partial_rounds, "010b")
        + "1" * 30
    )
    state = deque((int(b) for b in seed), maxlen=80)

    def step() -> int:
        bit = state[62] ^ state[51] ^ state[38] ^ state[23] ^ state[13] ^ state[0]
        state.append(bit)
        return bit

    for _ in range(160):
        step()

    # Self-shrinking output: emit the second bit of each pair whose first bit is 1
    while True:
        first = step()
        second = step()
        if first:
            yield second


def _take(bits: Iterator[int], count: int) -> int:
    value = 0
    for _ in range(count):
        value = (value << 1) | next(bits)
    return value


@lru_cache(maxsize=None)
def poseidon_params(t: int) -> PoseidonParams:
    if not 2 <= t <= MAX_INPUTS + 1:
        raise InputError(f"Unsupported Poseidon width t={t}")

    partial_rounds = POSEIDON_PARTIAL_ROUNDS[t - 2]
    bits = _grain_bits(t, FULL_ROUNDS, partial_rounds)

    constants: List[int] = []
    for _ in range((FULL_ROUNDS + partial_rounds) * t):
        value = _take(bits, FIELD_BITS)
        while value >= P:
            value = _take(bits, FIELD_BITS)
        constants.append(value)

    # Cauchy matrix M[i][j] = 1 / (x_i + y_j) from 2t distinct samples
    while True:
        samples = [_take(bits, FIELD_BITS) % P for _ in range(2 * t)]
        if len(set(samples)) != len(samples):
            continue
        xs, ys = samples[:t], samples[t:]
        if any((x + y) % P == 0 for x in xs for y in ys):
            continue
        break

    mds = tuple(tuple(pow(x + y, P - 2, P) for y in ys) for x in xs)

    return PoseidonParams(
        t=t,
        full_rounds=FULL_ROUNDS,
        partial_rounds=partial_rounds,
        round_constants=tuple(constants),
        mds=mds,
    )


# ===========================================================================
# Permutation
# ===========================================================================


def poseidon_permutation(state: Sequence[int], params: PoseidonParams) -> List[int]:
    t = params.t
    if len(state) != t:
        raise InputError(f"Poseidon state must have {t} elements, got {len(state)}")

    constants = params.round_constants
    mds = params.mds
    half_full = params.full_rounds // 2
    total = params.full_rounds + params.partial_rounds

    s = list(state)
    for r in range(total):
        offset = r * t
        s = [(v + constants[offset + i]) % P for i, v in enumerate(s)]
        if r < half_full or r >= half_full + params.partial_rounds:
            s = [pow(v, 5, P) for v in s]
        else:
            s[0] = pow(s[0], 5, P)
        s = [sum(row[j] * s[j] for j in range(t)) % P for row in mds]
    return s


def poseidon(inputs: Sequence[int]) -> int:
    """Hash 1..16 field elements."""
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise InputError(f"Poseidon takes 1..{MAX_INPUTS} inputs, got {len(inputs)}")
    for value in inputs:
        if not 0 <= value < P:
            raise InputError(f"Poseidon input is not a field element: {value}")
    params = poseidon_params(len(inputs) + 1)
    return poseidon_permutation([0, *inputs], params)[0]
