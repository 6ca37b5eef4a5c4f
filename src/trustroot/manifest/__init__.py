from trustroot.manifest.assembler import (
    ManifestAssembler,
    artifact_file_hash,
    artifact_hash,
    write_manifest,
)
from trustroot.manifest.models import (
    MANIFEST_VERSION,
    ArtifactInfo,
    EUTrust,
    Manifest,
    SignerInfo,
)
from trustroot.manifest.verifier import (
    CheckResult,
    ManifestVerifier,
    RebuildRootSource,
    RootSource,
    StoreRootSource,
    VerificationReport,
)

__all__ = [
    "MANIFEST_VERSION",
    "ArtifactInfo",
    "CheckResult",
    "EUTrust",
    "Manifest",
    "ManifestAssembler",
    "ManifestVerifier",
    "RebuildRootSource",
    "RootSource",
    "SignerInfo",
    "StoreRootSource",
    "VerificationReport",
    "artifact_file_hash",
    "artifact_hash",
    "write_manifest",
]
