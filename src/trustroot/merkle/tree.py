"""
Trust-List Merkle Tree

Fixed-capacity binary trees over field-encoded fingerprints.

Key features:
- Leaves right-padded with field-zero to exactly 2**depth, so every proof
  has exactly `depth` siblings regardless of list size
- Pairs hashed left to right, never swapped
- Optional per-layer thread pool; layers are strictly serialised
- Deterministic: same leaves, engine and depth give the same root
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from trustroot.field.codec import FIELD_ZERO, field_to_decimal, field_to_hex, is_field_element
from trustroot.protocol.errors import InputError
from trustroot.utils.timestamps import monotonic_ms

from .hashing import HashEngine, HashMode
from .observer import BuildObserver, LoggingObserver
from .proof import InclusionProof, prove_index

DEFAULT_DEPTH = 8


# ===========================================================================
# Merkle Tree
# ===========================================================================


@dataclass(frozen=True)
class MerkleTree:
    """
    A built tree. Immutable; rebuild to commit to a different list.

    Attributes:
        layers: layer 0 = padded leaves, last layer = [root]
        leaf_count: number of real (unpadded) leaves
        depth: tree depth
        mode: hash mode the tree was built with
    """

    layers: Tuple[Tuple[int, ...], ...]
    leaf_count: int
    depth: int
    mode: HashMode

    @property
    def root(self) -> int:
        return self.layers[-1][0]

    @property
    def root_hex(self) -> str:
        return field_to_hex(self.root)

    @property
    def root_decimal(self) -> str:
        return field_to_decimal(self.root)

    @property
    def capacity(self) -> int:
        return len(self.layers[0])

    def leaf(self, index: int) -> int:
        self._check_index(index)
        return self.layers[0][index]

    def prove(self, index: int, fingerprint: Optional[str] = None) -> InclusionProof:
        """
        Inclusion proof for a real leaf.

        Raises:
            InputError: index outside [0, leaf_count)
        """
        self._check_index(index)
        return InclusionProof(
            index=index,
            leaf=self.layers[0][index],
            siblings=tuple(prove_index(self.layers, index)),
            root=self.root,
            fingerprint=fingerprint,
        )

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < self.leaf_count:
            raise InputError(f"Leaf index {index!r} out of range [0, {self.leaf_count})")


# ===========================================================================
# Builder
# ===========================================================================


class MerkleTreeBuilder:
    """
    Builds fixed-depth trees with one hash engine.

    Args:
        engine: compression function (must match the circuit's)
        depth: tree depth; capacity is 2**depth leaves
        workers: threads hashing pairs within a layer (1 = serial)
        observer: progress hooks (defaults to logging)
    """

    def __init__(
        self,
        engine: HashEngine,
        depth: int = DEFAULT_DEPTH,
        *,
        workers: int = 1,
        observer: Optional[BuildObserver] = None,
    ) -> None:
        if depth < 1:
            raise InputError(f"Tree depth must be at least 1, got {depth}")
        if workers < 1:
            raise InputError(f"workers must be at least 1, got {workers}")
        self._engine = engine
        self._depth = depth
        self._workers = workers
        self._observer = observer or LoggingObserver()

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def capacity(self) -> int:
        return 1 << self._depth

    @property
    def engine(self) -> HashEngine:
        return self._engine

    def build(self, leaves: Sequence[int]) -> MerkleTree:
        """
        Build a tree and return it with all layers.

        Raises:
            InputError: empty input, more than 2**depth leaves, or a leaf
                that is not a field element
        """
        leaves = list(leaves)
        if not leaves:
            raise InputError("empty allowlist: cannot build a tree with no leaves")
        if len(leaves) > self.capacity:
            raise InputError(
                f"allowlist too large: {len(leaves)} leaves, capacity is {self.capacity} "
                f"(depth {self._depth})"
            )
        for position, leaf in enumerate(leaves):
            if not is_field_element(leaf):
                raise InputError(f"Leaf {position} is not a reduced field element")

        mode = self._engine.mode.value
        started = monotonic_ms()
        self._observer.build_started(mode, len(leaves), self.capacity)

        padded = leaves + [FIELD_ZERO] * (self.capacity - len(leaves))
        layers: List[Tuple[int, ...]] = [tuple(padded)]

        if self._workers > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self._workers) as executor:
                self._hash_layers(layers, executor)
        else:
            self._hash_layers(layers, None)

        tree = MerkleTree(
            layers=tuple(layers),
            leaf_count=len(leaves),
            depth=self._depth,
            mode=self._engine.mode,
        )
        self._observer.build_completed(mode, tree.root_hex, monotonic_ms() - started)
        return tree

    def _hash_layers(
        self,
        layers: List[Tuple[int, ...]],
        executor: Optional[concurrent.futures.Executor],
    ) -> None:
        current = layers[0]
        level = 0
        while len(current) > 1:
            lefts = current[0::2]
            rights = current[1::2]
            if executor is None:
                parents = tuple(self._engine.hash(l, r) for l, r in zip(lefts, rights))
            else:
                # map() yields in submission order and blocks until the layer is done
                parents = tuple(executor.map(self._engine.hash, lefts, rights))
            layers.append(parents)
            level += 1
            self._observer.layer_completed(level, len(parents))
            current = parents


def build_tree(
    leaves: Sequence[int],
    engine: HashEngine,
    depth: int = DEFAULT_DEPTH,
    **kwargs,
) -> MerkleTree:
    """Convenience wrapper around MerkleTreeBuilder."""
    return MerkleTreeBuilder(engine, depth, **kwargs).build(leaves)


def zero_hashes(engine: HashEngine, depth: int) -> List[int]:
    """Roots of all-zero subtrees: z[0] = 0, z[k+1] = hash(z[k], z[k])."""
    chain = [FIELD_ZERO]
    for _ in range(depth - 1):
        chain.append(engine.hash(chain[-1], chain[-1]))
    return chain
