"""
Leaf Sets

Ordered, validated collections of certificate fingerprints. The position of
a fingerprint is its leaf index, so insertion order is preserved end to end.

Sources:
- allowlist JSON: {"cert_fingerprints": [hex, ...]}; duplicates are an error
- EU trust-list snapshot: {"tsps": [{"certificates": [{"fingerprint": hex}]}]};
  a certificate listed by several providers keeps its first position
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from trustroot.field.codec import hex_to_field, normalize_fingerprint
from trustroot.protocol.errors import InputError, NotFoundError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass(frozen=True)
class LeafSet:
    """
    Attributes:
        fingerprints: canonical lowercase hex fingerprints, in leaf order
        label: where the set came from (file name, snapshot date)
        metadata: source-specific extras (snapshot_date, lotl_hash)
    """

    fingerprints: Tuple[str, ...]
    label: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.fingerprints:
            raise InputError("empty allowlist: at least one certificate fingerprint is required")

    def __len__(self) -> int:
        return len(self.fingerprints)

    def __iter__(self) -> Iterator[str]:
        return iter(self.fingerprints)

    def __contains__(self, fingerprint: object) -> bool:
        if not isinstance(fingerprint, str):
            return False
        try:
            return normalize_fingerprint(fingerprint) in self.fingerprints
        except InputError:
            return False

    def index_of(self, fingerprint: str) -> int:
        fpr = normalize_fingerprint(fingerprint)
        try:
            return self.fingerprints.index(fpr)
        except ValueError:
            raise NotFoundError(
                f"Fingerprint {fpr} is not in this trust list", fingerprint=fpr
            ) from None

    def to_fields(self) -> List[int]:
        """Leaf values: each fingerprint reduced into the field."""
        return [hex_to_field(fpr) for fpr in self.fingerprints]

    def to_allowlist(self) -> Dict[str, List[str]]:
        return {"cert_fingerprints": list(self.fingerprints)}

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_fingerprints(cls, fingerprints: Iterable[str], label: str = "") -> "LeafSet":
        """Strict constructor: any repeated fingerprint is an InputError."""
        ordered: List[str] = []
        seen: Dict[str, int] = {}
        for position, raw in enumerate(fingerprints):
            fpr = normalize_fingerprint(raw)
            if fpr in seen:
                raise InputError(
                    f"Duplicate certificate fingerprint {fpr} at positions {seen[fpr]} and {position}"
                )
            seen[fpr] = position
            ordered.append(fpr)
        return cls(fingerprints=tuple(ordered), label=label)

    @classmethod
    def from_allowlist(cls, data: Dict[str, Any], label: str = "") -> "LeafSet":
        if not isinstance(data, dict):
            raise InputError("Allowlist must be a JSON object")
        fingerprints = data.get("cert_fingerprints")
        if fingerprints is None:
            raise InputError("Allowlist is missing 'cert_fingerprints'")
        if not isinstance(fingerprints, list):
            raise InputError("'cert_fingerprints' must be a list")
        return cls.from_fingerprints(fingerprints, label=label)

    @classmethod
    def from_allowlist_file(cls, path: PathLike) -> "LeafSet":
        data = _read_json(path, "Allowlist")
        return cls.from_allowlist(data, label=Path(path).name)

    @classmethod
    def from_eu_snapshot(cls, data: Dict[str, Any], label: Optional[str] = None) -> "LeafSet":
        if not isinstance(data, dict) or not isinstance(data.get("tsps"), list):
            raise InputError("EU snapshot must be a JSON object with a 'tsps' list")

        ordered: List[str] = []
        seen = set()
        repeated = 0
        for position, tsp in enumerate(data["tsps"]):
            if not isinstance(tsp, dict):
                raise InputError(f"EU snapshot provider {position} must be a JSON object")
            certificates = tsp.get("certificates") or []
            if not isinstance(certificates, list):
                raise InputError(f"EU snapshot provider {position}: 'certificates' must be a list")
            for cert in certificates:
                if not isinstance(cert, dict):
                    raise InputError(
                        f"EU snapshot provider {position}: certificate entries must be JSON objects"
                    )
                fpr = normalize_fingerprint(cert.get("fingerprint", ""))
                if fpr in seen:
                    repeated += 1
                    continue
                seen.add(fpr)
                ordered.append(fpr)

        if not ordered:
            raise InputError("No certificate fingerprints found in EU snapshot")
        if repeated:
            logger.warning(
                "EU snapshot lists %d certificate(s) under more than one provider; "
                "keeping first occurrence",
                repeated,
            )

        metadata = {
            key: data[key] for key in ("snapshot_date", "lotl_hash") if key in data
        }
        return cls(
            fingerprints=tuple(ordered),
            label=label or str(data.get("snapshot_date", "eu-snapshot")),
            metadata=metadata,
        )

    @classmethod
    def from_eu_snapshot_file(cls, path: PathLike) -> "LeafSet":
        return cls.from_eu_snapshot(_read_json(path, "EU snapshot"))


def _read_json(path: PathLike, what: str) -> Any:
    p = Path(path)
    if not p.exists():
        raise NotFoundError(f"{what} file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise InputError(f"{what} {p} is not valid JSON: {e}") from e
