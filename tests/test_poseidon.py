"""
Tests for Poseidon and the hash engines.

Golden values come from circomlibjs / poseidon-lite.
"""

import pytest

from trustroot.merkle.hashing import (
    PEDERSEN_GOLDEN,
    POSEIDON_GOLDEN,
    HashMode,
    PedersenEngine,
    PoseidonEngine,
    create_engine,
)
from trustroot.merkle.poseidon import poseidon, poseidon_params
from trustroot.protocol.errors import BackendError, EngineMismatchError, InputError

POSEIDON_1_2 = 7853200120776062878684798364095072458815029376092732009249414926327459813530
POSEIDON_1 = 18586133768512220936620570745912940619677854269274689475585506675881198879027
POSEIDON_0_0 = 0x2098F5FB9E239EAB3CEAC3F27B81E481DC3124D55FFED523A839EE8446B64864


class TestPoseidon:
    def test_two_inputs_golden(self):
        assert poseidon([1, 2]) == POSEIDON_1_2
        assert format(POSEIDON_1_2, "064x") == POSEIDON_GOLDEN

    def test_one_input_golden(self):
        assert poseidon([1]) == POSEIDON_1

    def test_zero_pair(self):
        assert poseidon([0, 0]) == POSEIDON_0_0

    def test_order_sensitive(self):
        assert poseidon([2, 1]) != poseidon([1, 2])

    def test_t3_parameters(self):
        params = poseidon_params(3)
        assert params.full_rounds == 8
        assert params.partial_rounds == 57
        assert len(params.round_constants) == (8 + 57) * 3
        assert params.round_constants[0] == (
            0x0EE9A592BA9A9518D05986D656F40C2114C4993C11BB29938D21D47304CD8E6E
        )
        assert params.mds[0][0] == (
            0x109B7F411BA0E4C9B2B70CAF5C36A7B194BE7C11AD24378BFEDB68592BA8118B
        )

    def test_input_count_limits(self):
        with pytest.raises(InputError):
            poseidon([])
        with pytest.raises(InputError):
            poseidon(list(range(17)))

    def test_out_of_field_input_rejected(self):
        from trustroot.field.codec import BN254_SCALAR_MODULUS

        with pytest.raises(InputError):
            poseidon([BN254_SCALAR_MODULUS, 1])


class TestHashMode:
    def test_parse(self):
        assert HashMode.parse("poseidon") is HashMode.POSEIDON
        assert HashMode.parse(" PEDERSEN ") is HashMode.PEDERSEN
        assert HashMode.parse(HashMode.POSEIDON) is HashMode.POSEIDON

    def test_unknown_mode_rejected(self):
        with pytest.raises(InputError):
            HashMode.parse("sha256")

    def test_create_engine_rejects_unknown_mode(self):
        with pytest.raises(InputError):
            create_engine("keccak")


class TestSelfCheck:
    def test_poseidon_engine_passes(self):
        engine = create_engine("poseidon")
        assert isinstance(engine, PoseidonEngine)
        assert engine.hash(1, 2) == POSEIDON_1_2

    def test_wrong_golden_raises(self):
        with pytest.raises(EngineMismatchError):
            create_engine("poseidon", golden="00" * 32)

    def test_pedersen_requires_backend(self):
        with pytest.raises(BackendError):
            create_engine("pedersen")

    def test_pedersen_golden_mismatch(self, fake_backend):
        with pytest.raises(EngineMismatchError):
            create_engine("pedersen", fake_backend, golden="01")

    def test_pedersen_defaults_to_reference_vector(self, fake_backend, monkeypatch):
        monkeypatch.delenv("TRUSTROOT_BACKEND_PEDERSEN_GOLDEN", raising=False)
        engine = PedersenEngine(fake_backend)
        assert engine.golden == PEDERSEN_GOLDEN
        # The stand-in backend is not Barretenberg, so the default check rejects it
        with pytest.raises(EngineMismatchError, match=r"hash\(1, 1\)"):
            create_engine("pedersen", fake_backend)

    def test_pedersen_reference_vector_accepted(self, backend_factory, monkeypatch):
        monkeypatch.delenv("TRUSTROOT_BACKEND_PEDERSEN_GOLDEN", raising=False)

        class ReferenceBackend(backend_factory):
            def pedersen_hash(self, inputs, hash_index=0):
                if list(inputs) == [1, 1] and hash_index == 0:
                    return int(PEDERSEN_GOLDEN, 16)
                return super().pedersen_hash(inputs, hash_index)

        with ReferenceBackend() as backend:
            engine = create_engine("pedersen", backend)
            assert isinstance(engine, PedersenEngine)
            assert engine.hash(1, 1) == int(PEDERSEN_GOLDEN, 16)

    def test_behaviour_checks_without_golden(self, fake_backend, caplog):
        PedersenEngine(fake_backend).self_check(None)
        assert "No golden value" in caplog.text

    def test_pedersen_golden_from_settings(self, fake_backend, monkeypatch):
        golden = format(fake_backend.pedersen_hash([1, 1]), "064x")
        monkeypatch.setenv("TRUSTROOT_BACKEND_PEDERSEN_GOLDEN", "0x" + golden)
        engine = create_engine("pedersen", fake_backend)
        assert engine.golden == golden

    def test_order_insensitive_engine_rejected(self):
        class Symmetric(PoseidonEngine):
            def hash(self, left, right):
                return (left + right) % 101

        with pytest.raises(EngineMismatchError):
            Symmetric().self_check(None)

    def test_uninitialised_backend_raises(self, backend_factory):
        engine = PedersenEngine(backend_factory())
        with pytest.raises(BackendError):
            engine.hash(1, 2)

    def test_engine_isolation(self, pedersen_engine, poseidon_engine):
        assert pedersen_engine.hash(1, 2) != poseidon_engine.hash(1, 2)
