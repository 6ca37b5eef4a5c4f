from .version import __version__
from .field.codec import BN254_SCALAR_MODULUS, field_to_decimal, field_to_hex, hex_to_field
from .merkle import (
    HashMode,
    InclusionProof,
    LeafSet,
    MerkleTree,
    MerkleTreeBuilder,
    create_engine,
)
from .protocol import TrustSource
from .service import BuildResult, build_trust_list
from .store import ProofRecord, ProofStore, RootRecord

__all__ = [
    "__version__",
    "BN254_SCALAR_MODULUS",
    "field_to_decimal",
    "field_to_hex",
    "hex_to_field",
    "HashMode",
    "InclusionProof",
    "LeafSet",
    "MerkleTree",
    "MerkleTreeBuilder",
    "create_engine",
    "TrustSource",
    "BuildResult",
    "build_trust_list",
    "ProofRecord",
    "ProofStore",
    "RootRecord",
]
