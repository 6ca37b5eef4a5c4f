"""
Shared fixtures for trustroot tests.

FakeBackend stands in for Barretenberg: its "pedersen" is SHA-256 reduced
into the field, which is deterministic and order-sensitive like the real
thing, so trees built with it exercise every code path except bit-exact
compatibility with the circuit.
"""

import hashlib
import shutil
import tempfile
from typing import List, Optional, Sequence

import pytest

from trustroot.backend.base import ProvingBackend
from trustroot.field.codec import bytes_to_field, field_to_bytes
from trustroot.protocol.errors import BackendError


AA = "aa" * 32
BB = "bb" * 32
CC = "cc" * 32

# Poseidon depth-8 root over [AA, BB, CC]
ABC_POSEIDON_ROOT = "0dc157e068c79c850113da540fea7a5e512929127b6ab4affae6b5afbc9bc490"


class FakeBackend(ProvingBackend):
    name = "fake"

    def __init__(self, accept: bool = True, error: Optional[str] = None) -> None:
        super().__init__()
        self.accept = accept
        self.error = error
        self.hash_calls = 0
        self.verify_calls: List[tuple] = []
        self.started = 0
        self.stopped = 0

    def _start(self) -> None:
        self.started += 1

    def _stop(self) -> None:
        self.stopped += 1

    def pedersen_hash(self, inputs: Sequence[int], hash_index: int = 0) -> int:
        self._require_ready()
        self.hash_calls += 1
        data = b"".join(field_to_bytes(v) for v in inputs) + bytes([hash_index])
        return bytes_to_field(hashlib.sha256(b"fake-pedersen" + data).digest())

    def verify_proof(self, public_inputs, proof, timeout=None) -> bool:
        self._require_ready()
        self.verify_calls.append((list(public_inputs), proof, timeout))
        if self.error:
            raise BackendError(self.error)
        return self.accept


@pytest.fixture
def tmp_dir():
    """Create a temporary directory for test data."""
    d = tempfile.mkdtemp(prefix="trustroot_test_")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def fake_backend():
    backend = FakeBackend()
    with backend:
        yield backend


@pytest.fixture
def poseidon_engine():
    from trustroot.merkle.hashing import create_engine

    return create_engine("poseidon")


@pytest.fixture
def pedersen_engine(fake_backend):
    from trustroot.merkle.hashing import create_engine

    golden = format(fake_backend.pedersen_hash([1, 1]), "064x")
    return create_engine("pedersen", fake_backend, golden=golden)


@pytest.fixture
def abc_leafset():
    from trustroot.merkle.leafset import LeafSet

    return LeafSet.from_fingerprints([AA, BB, CC], label="abc")


@pytest.fixture(autouse=True)
def _fresh_settings():
    from trustroot.core.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def backend_factory():
    """FakeBackend class, for tests that manage the lifecycle themselves."""
    return FakeBackend
