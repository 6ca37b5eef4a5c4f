"""
Proof Store

Persists a built trust list: its root commitment and one proof record per
fingerprint, under one directory per (trust source, hash mode):

    <base>/<source>/<mode>/
        tl_root.hex          root, 64 hex chars
        tl_root.txt          root, decimal
        tl_root.json         {root_hex, root_decimal, depth, leaf_count, hash_function, built_at}
        paths/<fpr>.json     {fingerprint, index, merkle_path_hex, merkle_path_decimal,
                              root_hex, root_decimal}

Publication is all-or-nothing: files are written into a staging directory
next to the target and swapped in with renames, so readers see either the
previous publication or the new one. Only one writer may publish into a
directory at a time (thread lock + exclusive lock file).
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Tuple, Union

from trustroot.field.codec import (
    decimal_to_field,
    field_to_decimal,
    field_to_hex,
    hex_to_field,
    normalize_fingerprint,
)
from trustroot.merkle.hashing import HashMode
from trustroot.merkle.leafset import LeafSet
from trustroot.merkle.proof import InclusionProof
from trustroot.merkle.tree import MerkleTree
from trustroot.protocol.enums import TrustSource
from trustroot.protocol.errors import (
    InputError,
    NotFoundError,
    PersistenceError,
    TreeInvariantError,
)
from trustroot.utils.json import json_pretty
from trustroot.utils.timestamps import now_iso

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

ROOT_HEX_FILE = "tl_root.hex"
ROOT_DECIMAL_FILE = "tl_root.txt"
ROOT_META_FILE = "tl_root.json"
PATHS_DIR = "paths"


def parse_source(value: Union[str, TrustSource]) -> TrustSource:
    if isinstance(value, TrustSource):
        return value
    try:
        return TrustSource(str(value).strip().lower())
    except ValueError:
        supported = ", ".join(s.value for s in TrustSource)
        raise InputError(f"Unknown trust source {value!r} (supported: {supported})") from None


# ===========================================================================
# Records
# ===========================================================================


@dataclass(frozen=True)
class RootRecord:
    root_hex: str
    root_decimal: str
    depth: int
    leaf_count: int
    hash_function: str
    built_at: str

    @property
    def root(self) -> int:
        return hex_to_field(self.root_hex)

    @classmethod
    def from_tree(cls, tree: MerkleTree, built_at: str) -> "RootRecord":
        return cls(
            root_hex=tree.root_hex,
            root_decimal=tree.root_decimal,
            depth=tree.depth,
            leaf_count=tree.leaf_count,
            hash_function=tree.mode.value,
            built_at=built_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_hex": self.root_hex,
            "root_decimal": self.root_decimal,
            "depth": self.depth,
            "leaf_count": self.leaf_count,
            "hash_function": self.hash_function,
            "built_at": self.built_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RootRecord":
        return cls(
            root_hex=data["root_hex"],
            root_decimal=data["root_decimal"],
            depth=int(data["depth"]),
            leaf_count=int(data["leaf_count"]),
            hash_function=data["hash_function"],
            built_at=data.get("built_at", ""),
        )


@dataclass(frozen=True)
class ProofRecord:
    fingerprint: str
    index: int
    merkle_path_hex: Tuple[str, ...]
    merkle_path_decimal: Tuple[str, ...]
    root_hex: str
    root_decimal: str

    @property
    def depth(self) -> int:
        return len(self.merkle_path_hex)

    @property
    def leaf(self) -> int:
        return hex_to_field(self.fingerprint)

    def to_inclusion_proof(self) -> InclusionProof:
        """Field-valued proof, read from the decimal path (the circuit's form)."""
        return InclusionProof(
            index=self.index,
            leaf=self.leaf,
            siblings=tuple(decimal_to_field(s) for s in self.merkle_path_decimal),
            root=decimal_to_field(self.root_decimal),
            fingerprint=self.fingerprint,
        )

    @classmethod
    def from_proof(cls, proof: InclusionProof) -> "ProofRecord":
        return cls(
            fingerprint=proof.fingerprint or "",
            index=proof.index,
            merkle_path_hex=tuple(field_to_hex(s) for s in proof.siblings),
            merkle_path_decimal=tuple(field_to_decimal(s) for s in proof.siblings),
            root_hex=field_to_hex(proof.root),
            root_decimal=field_to_decimal(proof.root),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fingerprint": self.fingerprint,
            "index": self.index,
            "merkle_path_hex": list(self.merkle_path_hex),
            "merkle_path_decimal": list(self.merkle_path_decimal),
            "root_hex": self.root_hex,
            "root_decimal": self.root_decimal,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProofRecord":
        return cls(
            fingerprint=data["fingerprint"],
            index=int(data["index"]),
            merkle_path_hex=tuple(data["merkle_path_hex"]),
            merkle_path_decimal=tuple(data["merkle_path_decimal"]),
            root_hex=data["root_hex"],
            root_decimal=data["root_decimal"],
        )


# ===========================================================================
# Writer lock
# ===========================================================================

_registry_lock = threading.Lock()
_directory_locks: Dict[str, threading.Lock] = {}


def _thread_lock_for(key: str) -> threading.Lock:
    with _registry_lock:
        lock = _directory_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _directory_locks[key] = lock
        return lock


@contextmanager
def writer_lock(directory: Path) -> Iterator[Path]:
    """
    Exclusive right to publish into `directory`.

    Never waits: a directory already being published raises PersistenceError.
    The lock file lives beside the directory, since the directory itself is
    replaced during publication.
    """
    directory = directory.resolve()
    lock_path = directory.parent / f".{directory.name}.lock"

    thread_lock = _thread_lock_for(str(directory))
    if not thread_lock.acquire(blocking=False):
        raise PersistenceError("Another build is publishing to this directory", path=str(directory))

    try:
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            raise PersistenceError(
                "Directory is locked by another process (remove a stale lock file if none is running)",
                path=str(lock_path),
            ) from None
        except OSError as e:
            raise PersistenceError(f"Cannot create lock file: {e}", path=str(lock_path)) from e

        try:
            os.write(fd, str(os.getpid()).encode("ascii"))
        finally:
            os.close(fd)

        try:
            yield directory
        finally:
            try:
                os.unlink(str(lock_path))
            except FileNotFoundError:
                pass
    finally:
        thread_lock.release()


# ===========================================================================
# Store
# ===========================================================================


class ProofStore:
    """
    Root and proof records for one (trust source, hash mode).

    Stores for different sources or modes live in different directories and
    never interfere.
    """

    def __init__(
        self,
        base_dir: PathLike,
        source: Union[str, TrustSource] = TrustSource.LOCAL,
        mode: Union[str, HashMode] = HashMode.POSEIDON,
    ) -> None:
        self._source = parse_source(source)
        self._mode = HashMode.parse(mode)
        self._base_dir = Path(base_dir)
        self._directory = self._base_dir / self._source.value / self._mode.value

    @property
    def source(self) -> TrustSource:
        return self._source

    @property
    def mode(self) -> HashMode:
        return self._mode

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def is_published(self) -> bool:
        return (self._directory / ROOT_META_FILE).exists()

    def __repr__(self) -> str:
        return f"ProofStore({str(self._directory)!r})"

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def publish(self, tree: MerkleTree, leafset: LeafSet) -> RootRecord:
        """
        Write root and every proof, replacing any previous publication.

        Raises:
            InputError: tree and leafset disagree, or the tree's mode is not
                this store's mode
            PersistenceError: lock held or write failure (staging removed,
                previous publication intact)
        """
        self._check_tree(tree, leafset)
        record = RootRecord.from_tree(tree, built_at=now_iso())

        with writer_lock(self._directory) as target:
            token = uuid.uuid4().hex[:8]
            staging = target.parent / f".{target.name}.staging-{token}"
            retired = target.parent / f".{target.name}.old-{token}"
            try:
                self._write_all(staging, tree, leafset, record)
                self._swap(staging, target, retired)
            except OSError as e:
                shutil.rmtree(staging, ignore_errors=True)
                if isinstance(e, PersistenceError):
                    raise
                failed = getattr(e, "filename", None) or str(staging)
                raise PersistenceError(f"Failed to publish proof store: {e.strerror or e}", path=str(failed)) from e

        logger.info(
            "Published %s/%s root %s (%d proofs) to %s",
            self._source.value, self._mode.value, record.root_hex, len(leafset), self._directory,
        )
        return record

    def _check_tree(self, tree: MerkleTree, leafset: LeafSet) -> None:
        if tree.mode is not self._mode:
            raise InputError(
                f"Tree built with {tree.mode.value} cannot be published to a {self._mode.value} store"
            )
        if tree.leaf_count != len(leafset):
            raise InputError(
                f"Tree has {tree.leaf_count} leaves but leaf set has {len(leafset)} fingerprints"
            )
        if list(tree.layers[0][: tree.leaf_count]) != leafset.to_fields():
            raise InputError("Tree leaves do not match the leaf set")

    def _write_all(self, staging: Path, tree: MerkleTree, leafset: LeafSet, record: RootRecord) -> None:
        paths_dir = staging / PATHS_DIR
        paths_dir.mkdir(parents=True)

        _write_file(staging / ROOT_HEX_FILE, record.root_hex + "\n")
        _write_file(staging / ROOT_DECIMAL_FILE, record.root_decimal + "\n")
        _write_file(staging / ROOT_META_FILE, json_pretty(record.to_dict()))

        for index, fingerprint in enumerate(leafset):
            proof = tree.prove(index, fingerprint=fingerprint)
            _write_file(
                paths_dir / f"{fingerprint}.json",
                json_pretty(ProofRecord.from_proof(proof).to_dict()),
            )

    @staticmethod
    def _swap(staging: Path, target: Path, retired: Path) -> None:
        if target.exists():
            os.replace(str(target), str(retired))
            try:
                os.replace(str(staging), str(target))
            except OSError:
                os.replace(str(retired), str(target))
                raise
            shutil.rmtree(retired, ignore_errors=True)
        else:
            os.replace(str(staging), str(target))

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def load_root(self) -> RootRecord:
        path = self._directory / ROOT_META_FILE
        if not path.exists():
            raise NotFoundError(
                f"No {self._mode.value} trust list published for source {self._source.value!r}"
            )
        return self._read_record(path, RootRecord)

    def lookup(self, fingerprint: str) -> ProofRecord:
        """
        Proof record for one fingerprint.

        Raises:
            InputError: malformed fingerprint
            NotFoundError: fingerprint not part of the published tree
        """
        fpr = normalize_fingerprint(fingerprint)
        path = self._directory / PATHS_DIR / f"{fpr}.json"
        if not path.exists():
            raise NotFoundError(
                f"Signer {fpr} is not in the {self._source.value} trust list ({self._mode.value})",
                fingerprint=fpr,
            )
        record = self._read_record(path, ProofRecord)
        if record.fingerprint != fpr:
            raise TreeInvariantError(f"Proof file {path} holds fingerprint {record.fingerprint}")
        return record

    def fingerprints(self) -> List[str]:
        """Published fingerprints in leaf order."""
        paths_dir = self._directory / PATHS_DIR
        if not paths_dir.is_dir():
            return []
        records = [self._read_record(p, ProofRecord) for p in paths_dir.glob("*.json")]
        return [r.fingerprint for r in sorted(records, key=lambda r: r.index)]

    @staticmethod
    def _read_json(path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Corrupt store file: {e}", path=str(path)) from e

    @classmethod
    def _read_record(cls, path: Path, record_type):
        data = cls._read_json(path)
        try:
            return record_type.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise PersistenceError(f"Corrupt store file: bad or missing field {e}", path=str(path)) from e


def _write_file(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)
        f.flush()
        os.fsync(f.fileno())
