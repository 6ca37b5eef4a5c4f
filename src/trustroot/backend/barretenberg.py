"""
Barretenberg backend.

Hashing goes through a long-lived helper process that speaks newline-delimited
JSON over stdio:

    -> {"op": "pedersen_hash", "inputs": ["<hex>", ...], "hash_index": 0}
    <- {"hash": "<hex>"}            or    {"error": "<message>"}

The helper wraps the same Barretenberg build the circuit is compiled against,
so tree hashes and in-circuit hashes agree. scripts/pedersen-helper.mjs is a
reference helper built on @aztec/bb.js. Each reply is awaited for at most
`hash_timeout` seconds; a helper that misses it is killed. Proof
verification shells out to the `bb verify` CLI on temporary files.
"""

from __future__ import annotations

import json
import logging
import os
import queue
import shlex
import subprocess
import tempfile
import threading
from pathlib import Path
from typing import Optional, Sequence

from trustroot.core.settings import BackendSettings, get_settings
from trustroot.field.codec import (
    decimal_to_field,
    field_to_bytes,
    field_to_hex,
    hex_to_field,
    is_field_element,
)
from trustroot.protocol.errors import BackendError, InputError

from .base import ProvingBackend

logger = logging.getLogger(__name__)


class BarretenbergBackend(ProvingBackend):
    name = "barretenberg"

    def __init__(self, settings: Optional[BackendSettings] = None) -> None:
        super().__init__()
        self._settings = settings or get_settings().backend
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()
        self._replies: "queue.Queue[str]" = queue.Queue()

    @property
    def settings(self) -> BackendSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _start(self) -> None:
        cmd = self._settings.hash_command
        if not cmd:
            # Verification-only use; pedersen_hash will refuse to run
            logger.debug("No hash helper configured; pedersen hashing unavailable")
            return

        logger.info("Starting hash helper: %s", cmd)
        try:
            self._process = subprocess.Popen(
                shlex.split(cmd),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                bufsize=1,
            )
        except OSError as e:
            raise BackendError(f"Cannot start hash helper {cmd!r}: {e}") from e

        self._replies = queue.Queue()
        reader = threading.Thread(
            target=_relay_replies,
            args=(self._process.stdout, self._replies),
            name="hash-helper-reader",
            daemon=True,
        )
        reader.start()

    def _stop(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        try:
            if process.stdin:
                process.stdin.close()
            process.wait(timeout=5)
        except (subprocess.TimeoutExpired, OSError):
            process.kill()
            process.wait()

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    def pedersen_hash(self, inputs: Sequence[int], hash_index: int = 0) -> int:
        self._require_ready()
        if self._process is None:
            raise BackendError(
                "pedersen hashing needs a helper; set TRUSTROOT_BACKEND_HASH_COMMAND"
            )
        for value in inputs:
            if not is_field_element(value):
                raise InputError(f"pedersen input is not a field element: {value!r}")

        request = {
            "op": "pedersen_hash",
            "inputs": [field_to_hex(v) for v in inputs],
            "hash_index": hash_index,
        }
        response = self._round_trip(request)

        if "error" in response:
            raise BackendError(f"Hash helper error: {response['error']}")
        if "hash" not in response:
            raise BackendError(f"Hash helper reply has no 'hash': {response!r}")
        try:
            return hex_to_field(response["hash"])
        except InputError as e:
            raise BackendError(f"Hash helper returned malformed hash: {e}") from e

    def _round_trip(self, request: dict) -> dict:
        line = json.dumps(request, separators=(",", ":"))
        timeout = self._settings.hash_timeout
        with self._lock:
            process = self._process
            if process is None or process.poll() is not None:
                raise BackendError("Hash helper is not running")
            try:
                process.stdin.write(line + "\n")
                process.stdin.flush()
            except (BrokenPipeError, OSError) as e:
                raise BackendError(f"Hash helper pipe failed: {e}") from e
            try:
                reply = self._replies.get(timeout=timeout)
            except queue.Empty:
                # A late reply would pair with the next request; the helper is unusable
                self._process = None
                process.kill()
                process.wait()
                raise BackendError(f"Hash helper did not answer within {timeout}s") from None

        if not reply:
            raise BackendError("Hash helper closed its output")
        try:
            return json.loads(reply)
        except json.JSONDecodeError as e:
            raise BackendError(f"Hash helper sent invalid JSON: {reply.strip()!r}") from e

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_proof(
        self,
        public_inputs: Sequence[str],
        proof: bytes,
        timeout: Optional[float] = None,
        verification_key: Optional[str] = None,
    ) -> bool:
        self._require_ready()
        vk = verification_key or self._settings.verification_key
        if not vk:
            raise BackendError("No verification key configured (TRUSTROOT_BACKEND_VERIFICATION_KEY)")
        if not Path(vk).exists():
            raise BackendError(f"Verification key not found: {vk}")

        timeout = timeout if timeout is not None else self._settings.timeout

        with tempfile.TemporaryDirectory(prefix="trustroot-verify-") as workdir:
            proof_path = os.path.join(workdir, "proof")
            inputs_path = os.path.join(workdir, "public_inputs")
            with open(proof_path, "wb") as f:
                f.write(proof)
            with open(inputs_path, "wb") as f:
                f.write(_encode_public_inputs(public_inputs))

            cmd = [
                self._settings.bb_binary, "verify",
                "-p", proof_path,
                "-k", str(vk),
                "-i", inputs_path,
            ]
            logger.debug("Running %s", " ".join(cmd))
            try:
                result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
            except FileNotFoundError as e:
                raise BackendError(f"bb binary not found: {self._settings.bb_binary}") from e
            except subprocess.TimeoutExpired as e:
                raise BackendError(f"bb verify timed out after {timeout}s") from e

        if result.returncode != 0:
            logger.info("bb verify rejected proof: %s", (result.stderr or result.stdout).strip())
            return False
        return True


def _relay_replies(stream, replies: "queue.Queue[str]") -> None:
    """Move helper output lines onto a queue; an empty string marks end of output."""
    try:
        for line in stream:
            replies.put(line)
    except (OSError, ValueError) as e:
        logger.debug("Hash helper output closed: %s", e)
    replies.put("")


def _encode_public_inputs(public_inputs: Sequence[str]) -> bytes:
    """Public inputs as consecutive 32-byte big-endian field elements."""
    out = bytearray()
    for value in public_inputs:
        text = str(value).strip()
        if text.startswith(("0x", "0X")):
            element = hex_to_field(text)
        else:
            element = decimal_to_field(text)
        out += field_to_bytes(element)
    return bytes(out)
