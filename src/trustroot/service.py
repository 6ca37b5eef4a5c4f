"""
Build service: leaf set in, published trust list out.

Wires the pieces together for the CLI and for embedding callers:

    LeafSet -> engine (self-checked) -> MerkleTreeBuilder -> ProofStore.publish

Pedersen builds need a proving backend. A caller may pass one it manages
itself; otherwise a BarretenbergBackend is opened for the duration of the
build and destroyed afterwards, even on error.
"""

from __future__ import annotations

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from trustroot.backend.barretenberg import BarretenbergBackend
from trustroot.backend.base import ProvingBackend
from trustroot.merkle.hashing import HashMode, create_engine
from trustroot.merkle.leafset import LeafSet
from trustroot.merkle.observer import BuildObserver
from trustroot.merkle.tree import DEFAULT_DEPTH, MerkleTree, MerkleTreeBuilder
from trustroot.protocol.enums import TrustSource
from trustroot.store.proof_store import ProofStore, RootRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildResult:
    root: RootRecord
    store: ProofStore
    tree: MerkleTree

    def to_dict(self):
        return {
            "source": self.store.source.value,
            "mode": self.store.mode.value,
            "directory": str(self.store.directory),
            **self.root.to_dict(),
        }


def build_tree_for(
    leafset: LeafSet,
    mode: Union[str, HashMode],
    backend: Optional[ProvingBackend] = None,
    depth: int = DEFAULT_DEPTH,
    workers: int = 1,
    observer: Optional[BuildObserver] = None,
) -> MerkleTree:
    """Build (without publishing). The backend, if any, must be initialised."""
    engine = create_engine(mode, backend)
    builder = MerkleTreeBuilder(engine, depth, workers=workers, observer=observer)
    return builder.build(leafset.to_fields())


def build_trust_list(
    leafset: LeafSet,
    mode: Union[str, HashMode],
    source: Union[str, TrustSource],
    base_dir: Union[str, Path],
    backend: Optional[ProvingBackend] = None,
    depth: int = DEFAULT_DEPTH,
    workers: int = 1,
    observer: Optional[BuildObserver] = None,
) -> BuildResult:
    mode = HashMode.parse(mode)
    store = ProofStore(base_dir, source, mode)

    with ExitStack() as stack:
        if mode is HashMode.PEDERSEN and backend is None:
            backend = stack.enter_context(BarretenbergBackend())

        logger.info(
            "Building %s trust list from %s (%d fingerprints, %s)",
            store.source.value, leafset.label or "leaf set", len(leafset), mode.value,
        )
        tree = build_tree_for(leafset, mode, backend, depth, workers, observer)

    record = store.publish(tree, leafset)
    return BuildResult(root=record, store=store, tree=tree)
