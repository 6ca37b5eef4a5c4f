"""
Trust-list Merkle commitments.

Key concepts:
- Field-encoded fingerprint leaves in insertion order
- Fixed depth (default 8, 256 leaves), zero padding
- Interchangeable compression functions (pedersen, poseidon)
- Inclusion proofs consumed by the verification circuit
"""

from trustroot.merkle.hashing import (
    HashEngine,
    HashMode,
    PedersenEngine,
    PoseidonEngine,
    create_engine,
)
from trustroot.merkle.leafset import LeafSet
from trustroot.merkle.observer import BuildObserver, LoggingObserver, NullObserver
from trustroot.merkle.proof import (
    InclusionProof,
    compute_root,
    prove_index,
    verify_inclusion,
)
from trustroot.merkle.tree import (
    DEFAULT_DEPTH,
    MerkleTree,
    MerkleTreeBuilder,
    build_tree,
    zero_hashes,
)

__all__ = [
    # Engines
    "HashEngine",
    "HashMode",
    "PedersenEngine",
    "PoseidonEngine",
    "create_engine",
    # Inputs
    "LeafSet",
    # Trees
    "DEFAULT_DEPTH",
    "MerkleTree",
    "MerkleTreeBuilder",
    "build_tree",
    "zero_hashes",
    # Proofs
    "InclusionProof",
    "compute_root",
    "prove_index",
    "verify_inclusion",
    # Observers
    "BuildObserver",
    "LoggingObserver",
    "NullObserver",
]
