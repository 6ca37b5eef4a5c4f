"""
Tests for the proving backend handle and the Barretenberg adapter.

The hash helper is replaced by a small script speaking the same JSON-lines
protocol, and `bb` by a shell script with a fixed exit status.
"""

import hashlib
import os
import stat
import sys
import textwrap

import pytest

from trustroot.backend.barretenberg import BarretenbergBackend, _encode_public_inputs
from trustroot.core.settings import BackendSettings
from trustroot.field.codec import BN254_SCALAR_MODULUS
from trustroot.merkle.hashing import create_engine
from trustroot.merkle.tree import build_tree
from trustroot.protocol.errors import BackendError, InputError

HELPER = textwrap.dedent(
    """
    import hashlib
    import json
    import sys

    P = 21888242871839275222246405745257275088548364400416034343698204186575808495617

    for line in sys.stdin:
        request = json.loads(line)
        if request.get("op") != "pedersen_hash":
            reply = {"error": "unknown op"}
        elif any(int(v, 16) == 0xdead for v in request["inputs"]):
            reply = {"error": "refusing 0xdead"}
        else:
            data = "".join(request["inputs"]) + str(request["hash_index"])
            value = int(hashlib.sha256(data.encode()).hexdigest(), 16) % P
            reply = {"hash": format(value, "064x")}
        sys.stdout.write(json.dumps(reply) + "\\n")
        sys.stdout.flush()
    """
)


def expected_hash(inputs, hash_index=0):
    data = "".join(format(v, "064x") for v in inputs) + str(hash_index)
    return int(hashlib.sha256(data.encode()).hexdigest(), 16) % BN254_SCALAR_MODULUS


def _executable(path, body):
    with open(path, "w") as f:
        f.write(body)
    os.chmod(path, os.stat(path).st_mode | stat.S_IEXEC)
    return path


@pytest.fixture
def helper_settings(tmp_dir):
    script = os.path.join(tmp_dir, "helper.py")
    with open(script, "w") as f:
        f.write(HELPER)
    return BackendSettings(hash_command=f'"{sys.executable}" "{script}"', timeout=10)


class TestLifecycle:
    def test_context_manager(self, helper_settings):
        backend = BarretenbergBackend(helper_settings)
        assert not backend.is_ready
        with backend:
            assert backend.is_ready
        assert not backend.is_ready

    def test_uninitialised_calls_rejected(self, helper_settings):
        backend = BarretenbergBackend(helper_settings)
        with pytest.raises(BackendError):
            backend.pedersen_hash([1, 2])
        with pytest.raises(BackendError):
            backend.verify_proof([], b"proof")

    def test_destroy_is_idempotent(self, helper_settings):
        backend = BarretenbergBackend(helper_settings).init()
        backend.destroy()
        backend.destroy()
        assert not backend.is_ready

    def test_destroyed_on_error(self, helper_settings):
        backend = BarretenbergBackend(helper_settings)
        with pytest.raises(RuntimeError):
            with backend:
                raise RuntimeError("boom")
        assert not backend.is_ready

    def test_missing_helper_command(self):
        with pytest.raises(BackendError):
            BarretenbergBackend(BackendSettings(hash_command="/nonexistent/helper")).init()


class TestHashing:
    def test_round_trip(self, helper_settings):
        with BarretenbergBackend(helper_settings) as backend:
            assert backend.pedersen_hash([1, 2]) == expected_hash([1, 2])
            assert backend.pedersen_hash([1, 2], hash_index=5) == expected_hash([1, 2], 5)

    def test_helper_error(self, helper_settings):
        with BarretenbergBackend(helper_settings) as backend:
            with pytest.raises(BackendError, match="refusing"):
                backend.pedersen_hash([0xDEAD, 1])
            # Helper is still usable afterwards
            assert backend.pedersen_hash([3, 4]) == expected_hash([3, 4])

    def test_non_field_input(self, helper_settings):
        with BarretenbergBackend(helper_settings) as backend:
            with pytest.raises(InputError):
                backend.pedersen_hash([BN254_SCALAR_MODULUS, 1])

    def test_stalled_helper_times_out(self, tmp_dir):
        script = os.path.join(tmp_dir, "stalled.py")
        with open(script, "w") as f:
            f.write("import sys, time\nsys.stdin.readline()\ntime.sleep(60)\n")
        settings = BackendSettings(hash_command=f'"{sys.executable}" "{script}"', hash_timeout=0.5)

        with BarretenbergBackend(settings) as backend:
            with pytest.raises(BackendError, match="did not answer"):
                backend.pedersen_hash([1, 2])
            # The helper is gone; later calls fail fast instead of hanging
            with pytest.raises(BackendError):
                backend.pedersen_hash([1, 2])

    def test_helper_exit_is_reported(self, tmp_dir):
        script = os.path.join(tmp_dir, "quitter.py")
        with open(script, "w") as f:
            f.write("import sys\nsys.stdin.readline()\n")
        settings = BackendSettings(hash_command=f'"{sys.executable}" "{script}"', hash_timeout=10)

        with BarretenbergBackend(settings) as backend:
            with pytest.raises(BackendError, match="closed its output"):
                backend.pedersen_hash([1, 2])

    def test_no_helper_configured(self):
        with BarretenbergBackend(BackendSettings()) as backend:
            with pytest.raises(BackendError, match="HASH_COMMAND"):
                backend.pedersen_hash([1, 2])

    def test_tree_through_helper(self, helper_settings):
        with BarretenbergBackend(helper_settings) as backend:
            engine = create_engine("pedersen", backend, golden=format(expected_hash([1, 1]), "064x"))
            tree = build_tree([1, 2, 3], engine, depth=3, workers=4)
            assert tree.prove(2).verify(engine)


@pytest.mark.skipif(sys.platform.startswith("win"), reason="shell script stand-in for bb")
class TestVerification:
    @pytest.fixture
    def vk(self, tmp_dir):
        path = os.path.join(tmp_dir, "vk")
        with open(path, "wb") as f:
            f.write(b"vk")
        return path

    def _backend(self, tmp_dir, vk, exit_code, sleep=0):
        body = "#!/bin/sh\necho verify $@ >&2\n"
        body += f"exec sleep {sleep}\n" if sleep else f"exit {exit_code}\n"
        bb = _executable(os.path.join(tmp_dir, f"bb-{exit_code}-{sleep}"), body)
        return BarretenbergBackend(BackendSettings(bb_binary=bb, verification_key=vk, timeout=10))

    def test_success(self, tmp_dir, vk):
        with self._backend(tmp_dir, vk, 0) as backend:
            assert backend.verify_proof(["1", "0x02"], b"proof") is True

    def test_rejection(self, tmp_dir, vk):
        with self._backend(tmp_dir, vk, 1) as backend:
            assert backend.verify_proof(["1"], b"proof") is False

    def test_timeout(self, tmp_dir, vk):
        with self._backend(tmp_dir, vk, 0, sleep=5) as backend:
            with pytest.raises(BackendError, match="timed out"):
                backend.verify_proof(["1"], b"proof", timeout=0.5)

    def test_missing_binary(self, vk):
        settings = BackendSettings(bb_binary="/nonexistent/bb", verification_key=vk)
        with BarretenbergBackend(settings) as backend:
            with pytest.raises(BackendError, match="not found"):
                backend.verify_proof(["1"], b"proof")

    def test_missing_verification_key(self, tmp_dir):
        settings = BackendSettings(verification_key=os.path.join(tmp_dir, "missing"))
        with BarretenbergBackend(settings) as backend:
            with pytest.raises(BackendError):
                backend.verify_proof(["1"], b"proof")


class TestPublicInputEncoding:
    def test_decimal_and_hex(self):
        data = _encode_public_inputs(["1", "0x02"])
        assert len(data) == 64
        assert data[31] == 1 and data[63] == 2

    def test_out_of_field_rejected(self):
        with pytest.raises(InputError):
            _encode_public_inputs([str(BN254_SCALAR_MODULUS)])
