"""
Inclusion Proofs

Sibling paths from a leaf to the root of a fixed-depth tree, and root
recomputation with the circuit's pairing rule: at every level the current
node is the left operand when its index is even, the right operand when odd.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from trustroot.field.codec import field_to_decimal, field_to_hex, is_field_element
from trustroot.protocol.errors import InputError, TreeInvariantError

from .hashing import HashEngine


@dataclass(frozen=True)
class InclusionProof:
    """
    Attributes:
        index: leaf position
        leaf: leaf field value
        siblings: sibling values, leaf level first (length = depth)
        root: root the siblings lead to
        fingerprint: fingerprint the leaf encodes, when known
    """

    index: int
    leaf: int
    siblings: tuple
    root: int
    fingerprint: Optional[str] = None

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_record(self) -> Dict[str, Any]:
        """Proof-file shape consumed by the prover."""
        return {
            "fingerprint": self.fingerprint,
            "index": self.index,
            "merkle_path_hex": [field_to_hex(s) for s in self.siblings],
            "merkle_path_decimal": [field_to_decimal(s) for s in self.siblings],
            "root_hex": field_to_hex(self.root),
            "root_decimal": field_to_decimal(self.root),
        }

    def verify(self, engine: HashEngine) -> bool:
        return compute_root(self.leaf, self.index, self.siblings, engine) == self.root


def prove_index(layers: Sequence[Sequence[int]], index: int) -> List[int]:
    """
    Sibling path for the leaf at `index`.

    Raises:
        InputError: index negative or beyond the padded capacity
        TreeInvariantError: a layer is too short to hold the sibling
    """
    if not layers:
        raise TreeInvariantError("Cannot prove against a tree with no layers")

    capacity = len(layers[0])
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < capacity:
        raise InputError(f"Leaf index {index!r} out of range [0, {capacity})")

    path: List[int] = []
    current = index
    for level, layer in enumerate(layers[:-1]):
        sibling = current ^ 1
        if sibling >= len(layer):
            raise TreeInvariantError(
                f"Layer {level} has {len(layer)} nodes; sibling {sibling} missing "
                f"(layers must be padded to a power of two)"
            )
        path.append(layer[sibling])
        current //= 2
    return path


def compute_root(leaf: int, index: int, siblings: Sequence[int], engine: HashEngine) -> int:
    """Fold a sibling path back up to the root."""
    if not is_field_element(leaf):
        raise InputError(f"Leaf is not a field element: {leaf!r}")
    if index < 0 or index >= (1 << len(siblings)):
        raise InputError(f"Leaf index {index} out of range for depth {len(siblings)}")

    current = leaf
    position = index
    for sibling in siblings:
        if position % 2 == 0:
            current = engine.hash(current, sibling)
        else:
            current = engine.hash(sibling, current)
        position //= 2
    return current


def verify_inclusion(proof: InclusionProof, engine: HashEngine) -> bool:
    return proof.verify(engine)
