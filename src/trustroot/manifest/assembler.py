"""
Manifest Assembler

Supplies the circuit with bit-exact trust-list inputs for one signer, and
binds the prover's output to the document, artifact and roots in a
Manifest.

Circuit inputs (decimal strings, the prover's numeric literal format):

    signer_fpr        leaf value (fingerprint reduced into the field)
    index             leaf index in the local list
    merkle_path       local sibling path, leaf level first
    tl_root           local root (public input)
    eu_trust_enabled  whether the EU path is checked
    tl_root_eu        EU root, "0" when disabled
    eu_index          leaf index in the EU list, "0" when disabled
    eu_merkle_path    EU sibling path, all "0" when disabled
"""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

from trustroot.field.codec import field_to_decimal, normalize_fingerprint
from trustroot.protocol.errors import InputError, PersistenceError, TreeInvariantError
from trustroot.store.proof_store import ProofRecord, ProofStore
from trustroot.utils.timestamps import now_iso

from .models import ArtifactInfo, EUTrust, Manifest, SignerInfo

logger = logging.getLogger(__name__)


def artifact_hash(data: bytes) -> str:
    """SHA-256 of artifact bytes, lowercase hex."""
    return hashlib.sha256(data).hexdigest()


def artifact_file_hash(path: Union[str, Path]) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


class ManifestAssembler:
    """
    Args:
        local_store: published local trust list
        eu_store: published EU trust list; enables dual trust when given
    """

    def __init__(self, local_store: ProofStore, eu_store: Optional[ProofStore] = None) -> None:
        if eu_store is not None and eu_store.mode is not local_store.mode:
            raise InputError(
                f"Local ({local_store.mode.value}) and EU ({eu_store.mode.value}) trust lists "
                "must use the same hash mode"
            )
        self._local = local_store
        self._eu = eu_store

    @property
    def dual_trust(self) -> bool:
        return self._eu is not None

    def _records(self, fingerprint: str) -> Tuple[ProofRecord, Optional[ProofRecord]]:
        fpr = normalize_fingerprint(fingerprint)
        local = _checked_lookup(self._local, fpr)
        eu = _checked_lookup(self._eu, fpr) if self._eu is not None else None
        return local, eu

    def circuit_inputs(self, fingerprint: str) -> Dict[str, Any]:
        """
        Trust-list inputs for the prover.

        Raises:
            NotFoundError: signer missing from the local (or EU) list
        """
        local, eu = self._records(fingerprint)
        inputs: Dict[str, Any] = {
            "signer_fpr": field_to_decimal(local.leaf),
            "index": str(local.index),
            "merkle_path": list(local.merkle_path_decimal),
            "tl_root": local.root_decimal,
        }
        if eu is not None:
            inputs.update(
                eu_trust_enabled=True,
                tl_root_eu=eu.root_decimal,
                eu_index=str(eu.index),
                eu_merkle_path=list(eu.merkle_path_decimal),
            )
        else:
            inputs.update(
                eu_trust_enabled=False,
                tl_root_eu="0",
                eu_index="0",
                eu_merkle_path=["0"] * local.depth,
            )
        return inputs

    def assemble(
        self,
        *,
        doc_hash: str,
        artifact: bytes,
        fingerprint: str,
        proof: bytes,
        public_inputs: Sequence[str],
        artifact_type: str = "ciphertext",
        pub_x: Optional[str] = None,
        pub_y: Optional[str] = None,
        timestamp: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Manifest:
        """Bind a prover run to its document, artifact and trust roots."""
        if not proof:
            raise InputError("Proof bytes are empty")
        local, eu = self._records(fingerprint)

        eu_trust = EUTrust()
        if eu is not None:
            eu_trust = EUTrust(enabled=True, tl_root_eu=eu.root_decimal, eu_index=eu.index)

        manifest = Manifest(
            doc_hash=doc_hash.lower(),
            artifact=ArtifactInfo(artifact_hash=artifact_hash(artifact), type=artifact_type),
            signer=SignerInfo(fingerprint=local.fingerprint, pub_x=pub_x, pub_y=pub_y),
            tl_root=local.root_decimal,
            hash_mode=self._local.mode,
            eu_trust=eu_trust,
            public_inputs=tuple(str(v) for v in public_inputs),
            proof=bytes(proof),
            timestamp=timestamp or now_iso(),
            notes=notes,
        )
        logger.info(
            "Assembled manifest for signer %s (local index %d%s)",
            local.fingerprint, local.index, f", EU index {eu.index}" if eu is not None else "",
        )
        return manifest


def write_manifest(manifest: Manifest, path: Union[str, Path]) -> Path:
    """Write a manifest JSON file (tmp + rename)."""
    target = Path(path)
    tmp_path = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(manifest.to_json())
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(target))
    except OSError as e:
        raise PersistenceError(f"Failed to write manifest: {e.strerror or e}", path=str(target)) from e
    return target


def _checked_lookup(store: ProofStore, fingerprint: str) -> ProofRecord:
    record = store.lookup(fingerprint)
    root = store.load_root()
    if record.root_hex != root.root_hex:
        raise TreeInvariantError(
            f"Proof for {fingerprint} in {store.directory} was built against another root"
        )
    return record
