"""
Manifest data model (schema version 1).

A manifest is the evidence bundle of one signing/proving event:

    {
      "version": 1,
      "doc_hash": "<hex>",
      "artifact": {"type": "ecies-ciphertext", "artifact_hash": "<sha256 hex>"},
      "signer": {"fingerprint": "<hex>", "pub_x": "<hex>", "pub_y": "<hex>"},
      "tl_root": "<decimal>",
      "hash_mode": "poseidon",
      "eu_trust": {"enabled": true, "tl_root_eu": "<decimal>", "eu_index": 3},
      "public_inputs": ["<decimal or 0x hex>", ...],
      "proof": "<base64>",
      "timestamp": "<ISO-8601>",
      "notes": "..."
    }

Manifests are immutable once assembled.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from trustroot.field.codec import decimal_to_field, hex_to_field, normalize_fingerprint
from trustroot.merkle.hashing import HashMode
from trustroot.protocol.errors import InputError, NotFoundError

MANIFEST_VERSION = 1


def parse_field_text(text: str) -> int:
    """Field element from manifest text: decimal, or hex with a 0x prefix."""
    clean = str(text).strip()
    if clean.startswith(("0x", "0X")):
        return hex_to_field(clean)
    return decimal_to_field(clean)


@dataclass(frozen=True)
class ArtifactInfo:
    artifact_hash: str
    type: str = "ciphertext"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "artifact_hash": self.artifact_hash}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArtifactInfo":
        return cls(artifact_hash=str(data["artifact_hash"]).lower(), type=data.get("type", "ciphertext"))


@dataclass(frozen=True)
class SignerInfo:
    fingerprint: str
    pub_x: Optional[str] = None
    pub_y: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"fingerprint": self.fingerprint}
        if self.pub_x is not None:
            d["pub_x"] = self.pub_x
        if self.pub_y is not None:
            d["pub_y"] = self.pub_y
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignerInfo":
        return cls(
            fingerprint=normalize_fingerprint(data["fingerprint"]),
            pub_x=data.get("pub_x"),
            pub_y=data.get("pub_y"),
        )


@dataclass(frozen=True)
class EUTrust:
    enabled: bool = False
    tl_root_eu: Optional[str] = None
    eu_index: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"enabled": self.enabled}
        if self.enabled:
            d["tl_root_eu"] = self.tl_root_eu
            d["eu_index"] = self.eu_index
        return d

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EUTrust":
        if not data:
            return cls()
        enabled = bool(data.get("enabled", False))
        eu_index = data.get("eu_index")
        return cls(
            enabled=enabled,
            tl_root_eu=data.get("tl_root_eu"),
            eu_index=int(eu_index) if eu_index is not None else None,
        )


@dataclass(frozen=True)
class Manifest:
    doc_hash: str
    artifact: ArtifactInfo
    signer: SignerInfo
    tl_root: str
    hash_mode: HashMode
    proof: bytes
    timestamp: str
    public_inputs: Tuple[str, ...] = ()
    eu_trust: EUTrust = field(default_factory=EUTrust)
    notes: Optional[str] = None
    version: int = MANIFEST_VERSION

    @property
    def dual_trust(self) -> bool:
        return self.eu_trust.enabled

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "version": self.version,
            "doc_hash": self.doc_hash,
            "artifact": self.artifact.to_dict(),
            "signer": self.signer.to_dict(),
            "tl_root": self.tl_root,
            "hash_mode": self.hash_mode.value,
            "eu_trust": self.eu_trust.to_dict(),
            "public_inputs": list(self.public_inputs),
            "proof": base64.b64encode(self.proof).decode("ascii"),
            "timestamp": self.timestamp,
        }
        if self.notes:
            d["notes"] = self.notes
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        if not isinstance(data, dict):
            raise InputError("Manifest must be a JSON object")
        version = data.get("version")
        if version != MANIFEST_VERSION:
            raise InputError(f"Unsupported manifest version: {version!r}")
        try:
            proof = base64.b64decode(data.get("proof", ""), validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise InputError(f"Manifest proof is not valid base64: {e}") from e
        try:
            return cls(
                version=version,
                doc_hash=data["doc_hash"],
                artifact=ArtifactInfo.from_dict(data["artifact"]),
                signer=SignerInfo.from_dict(data["signer"]),
                tl_root=str(data["tl_root"]),
                hash_mode=HashMode.parse(data.get("hash_mode", HashMode.POSEIDON.value)),
                eu_trust=EUTrust.from_dict(data.get("eu_trust")),
                public_inputs=tuple(str(v) for v in data.get("public_inputs", [])),
                proof=proof,
                timestamp=data.get("timestamp", ""),
                notes=data.get("notes"),
            )
        except (KeyError, TypeError) as e:
            raise InputError(f"Manifest is missing or has malformed field: {e}") from e

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "Manifest":
        p = Path(path)
        if not p.exists():
            raise NotFoundError(f"Manifest not found: {p}")
        try:
            with open(p, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InputError(f"Manifest {p} is not valid JSON: {e}") from e
        return cls.from_dict(data)
