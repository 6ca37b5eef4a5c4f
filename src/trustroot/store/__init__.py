from trustroot.store.proof_store import (
    ProofRecord,
    ProofStore,
    RootRecord,
    parse_source,
    writer_lock,
)

__all__ = [
    "ProofRecord",
    "ProofStore",
    "RootRecord",
    "parse_source",
    "writer_lock",
]
