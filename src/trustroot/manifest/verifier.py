"""
Manifest Verifier

Runs the four verification checks in order and reports every one of them:

1. artifact_hash  SHA-256 of the artifact equals the recorded hash
2. local_root     independently obtained local root equals the recorded root
3. eu_root        (dual trust only) same for the EU root
4. proof          the public inputs include every recorded root, and the
                  proving backend accepts the proof for them

A manifest is accepted only when every applicable check passes. A check
that cannot run (missing root, backend failure) is a failed check, never a
pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from trustroot.backend.base import ProvingBackend
from trustroot.field.codec import field_to_decimal
from trustroot.merkle.hashing import HashEngine, HashMode
from trustroot.merkle.leafset import LeafSet
from trustroot.merkle.observer import NullObserver
from trustroot.merkle.tree import DEFAULT_DEPTH, MerkleTreeBuilder
from trustroot.protocol.errors import TrustRootError
from trustroot.store.proof_store import ProofStore

from .assembler import artifact_hash
from .models import Manifest, parse_field_text

logger = logging.getLogger(__name__)

CHECK_ARTIFACT = "artifact_hash"
CHECK_LOCAL_ROOT = "local_root"
CHECK_EU_ROOT = "eu_root"
CHECK_PROOF = "proof"


# ===========================================================================
# Root sources
# ===========================================================================


class RootSource(Protocol):
    mode: HashMode

    def root(self) -> int: ...

    def describe(self) -> str: ...


class StoreRootSource:
    """Root read from a published proof store."""

    def __init__(self, store: ProofStore) -> None:
        self._store = store
        self.mode = store.mode

    def root(self) -> int:
        return self._store.load_root().root

    def describe(self) -> str:
        return f"store {self._store.directory}"


class RebuildRootSource:
    """Root recomputed from the trust list itself (built once, on first use)."""

    def __init__(self, leafset: LeafSet, engine: HashEngine, depth: int = DEFAULT_DEPTH) -> None:
        self._leafset = leafset
        self._engine = engine
        self._depth = depth
        self._root: Optional[int] = None
        self.mode = engine.mode

    def root(self) -> int:
        if self._root is None:
            builder = MerkleTreeBuilder(self._engine, self._depth, observer=NullObserver())
            self._root = builder.build(self._leafset.to_fields()).root
        return self._root

    def describe(self) -> str:
        return f"rebuild of {self._leafset.label or 'leaf set'} ({len(self._leafset)} fingerprints)"


# ===========================================================================
# Report
# ===========================================================================


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    detail: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "passed": self.passed, "detail": self.detail}


@dataclass
class VerificationReport:
    checks: List[CheckResult] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return bool(self.checks) and all(c.passed for c in self.checks)

    @property
    def failed(self) -> List[CheckResult]:
        return [c for c in self.checks if not c.passed]

    def check(self, name: str) -> Optional[CheckResult]:
        for c in self.checks:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "checks": [c.to_dict() for c in self.checks],
        }


# ===========================================================================
# Verifier
# ===========================================================================


class ManifestVerifier:
    """
    Args:
        local_roots: where the expected local root comes from
        backend: initialised proving backend for the proof check
        eu_roots: where the expected EU root comes from (dual trust)
        timeout: seconds allowed for backend verification
    """

    def __init__(
        self,
        local_roots: RootSource,
        backend: Optional[ProvingBackend] = None,
        eu_roots: Optional[RootSource] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._local_roots = local_roots
        self._eu_roots = eu_roots
        self._backend = backend
        self._timeout = timeout

    def verify(self, manifest: Manifest, artifact: bytes) -> VerificationReport:
        report = VerificationReport()
        report.checks.append(self._check_artifact(manifest, artifact))
        report.checks.append(
            self._check_root(CHECK_LOCAL_ROOT, manifest.tl_root, manifest.hash_mode, self._local_roots)
        )
        if manifest.dual_trust:
            report.checks.append(self._check_eu_root(manifest))
        report.checks.append(self._check_proof(manifest))

        if report.accepted:
            logger.info("Manifest for signer %s accepted", manifest.signer.fingerprint)
        else:
            logger.warning(
                "Manifest for signer %s rejected: %s",
                manifest.signer.fingerprint,
                ", ".join(c.name for c in report.failed),
            )
        return report

    @staticmethod
    def _check_artifact(manifest: Manifest, artifact: bytes) -> CheckResult:
        actual = artifact_hash(artifact)
        expected = manifest.artifact.artifact_hash
        if actual == expected:
            return CheckResult(CHECK_ARTIFACT, True, actual)
        return CheckResult(CHECK_ARTIFACT, False, f"artifact hashes to {actual}, manifest records {expected}")

    @staticmethod
    def _check_root(
        name: str,
        recorded: Optional[str],
        mode: HashMode,
        source: Optional[RootSource],
    ) -> CheckResult:
        if source is None:
            return CheckResult(name, False, "no root source configured")
        if source.mode is not mode:
            return CheckResult(
                name, False, f"manifest uses {mode.value}, root source is {source.mode.value}"
            )
        if recorded is None:
            return CheckResult(name, False, "manifest records no root")
        try:
            claimed = parse_field_text(recorded)
            expected = source.root()
        except TrustRootError as e:
            return CheckResult(name, False, f"{source.describe()}: {e}")

        if claimed == expected:
            return CheckResult(name, True, field_to_decimal(expected))
        return CheckResult(
            name,
            False,
            f"manifest root {recorded} does not match {field_to_decimal(expected)} ({source.describe()})",
        )

    def _check_eu_root(self, manifest: Manifest) -> CheckResult:
        result = self._check_root(
            CHECK_EU_ROOT, manifest.eu_trust.tl_root_eu, manifest.hash_mode, self._eu_roots
        )
        if result.passed and manifest.eu_trust.eu_index is None:
            return CheckResult(CHECK_EU_ROOT, False, "dual trust declared without an EU index")
        return result

    def _check_proof(self, manifest: Manifest) -> CheckResult:
        if self._backend is None:
            return CheckResult(CHECK_PROOF, False, "no proving backend configured")
        if not manifest.proof:
            return CheckResult(CHECK_PROOF, False, "manifest carries no proof")
        unbound = _unbound_roots(manifest)
        if unbound:
            return CheckResult(
                CHECK_PROOF, False, f"public inputs do not include the recorded {', '.join(unbound)}"
            )
        try:
            ok = self._backend.verify_proof(
                list(manifest.public_inputs), manifest.proof, timeout=self._timeout
            )
        except (TrustRootError, OSError) as e:
            logger.warning("Proof verification could not run: %s", e)
            return CheckResult(CHECK_PROOF, False, f"backend error: {e}")

        if ok is True:
            return CheckResult(CHECK_PROOF, True, "proof verified")
        return CheckResult(CHECK_PROOF, False, "backend rejected the proof")


def _unbound_roots(manifest: Manifest) -> List[str]:
    """Recorded roots (tl_root, and tl_root_eu under dual trust) absent from the public inputs."""
    try:
        public = {parse_field_text(v) for v in manifest.public_inputs}
    except TrustRootError:
        return ["roots (public inputs are not field elements)"]

    required = [("tl_root", manifest.tl_root)]
    if manifest.dual_trust:
        required.append(("tl_root_eu", manifest.eu_trust.tl_root_eu))

    missing = []
    for name, recorded in required:
        if recorded is None:
            missing.append(name)
            continue
        try:
            value = parse_field_text(recorded)
        except TrustRootError:
            missing.append(name)
            continue
        if value not in public:
            missing.append(f"{name} {recorded}")
    return missing
