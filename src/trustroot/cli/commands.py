"""
trustroot CLI commands.

Commands:
    trustroot build <allowlist.json>             Build and publish a trust list
    trustroot build --eu-snapshot <snap.json>    Build the EU trust list from a snapshot
    trustroot prove --fingerprint <hex>          Print (or save) one signer's proof
    trustroot allowlist <certs...>               Fingerprint certificates into an allowlist
    trustroot verify-manifest <manifest.json>    Run the manifest verification checks
    trustroot serve                              Serve published roots and proofs over HTTP

Every command returns a process exit status.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List

from trustroot.core.settings import get_settings
from trustroot.protocol.enums import TrustSource
from trustroot.protocol.errors import InputError, NotFoundError, PersistenceError


def cmd_build(args) -> int:
    """Build a trust list and publish root + proofs."""
    from trustroot.merkle.leafset import LeafSet
    from trustroot.service import build_trust_list

    settings = get_settings()

    if args.eu_snapshot:
        leafset = LeafSet.from_eu_snapshot_file(args.eu_snapshot)
        source = TrustSource.EU
    elif args.allowlist:
        leafset = LeafSet.from_allowlist_file(args.allowlist)
        source = args.source
    else:
        raise InputError("build needs an allowlist file or --eu-snapshot")

    result = build_trust_list(
        leafset,
        mode=args.mode,
        source=source,
        base_dir=args.out or settings.store.base_dir,
        depth=args.depth if args.depth is not None else settings.tree.depth,
        workers=args.workers if args.workers is not None else settings.tree.workers,
    )

    data = result.to_dict()
    if args.output == "json":
        print(json.dumps(data, indent=2))
    else:
        print(f"Trust list:   {data['source']} ({data['mode']})")
        print(f"Leaves:       {data['leaf_count']} (depth {data['depth']}, capacity {2 ** data['depth']})")
        print(f"Root (hex):   {data['root_hex']}")
        print(f"Root (dec):   {data['root_decimal']}")
        print(f"Written to:   {data['directory']}")
    return 0


def cmd_prove(args) -> int:
    """Look up one signer's inclusion proof."""
    from trustroot.store.proof_store import ProofStore

    store = ProofStore(args.out or get_settings().store.base_dir, args.source, args.mode)
    record = store.lookup(args.fingerprint)
    data = record.to_dict()

    if args.out_file:
        _write_json(Path(args.out_file), data)
        print(f"Proof for index {record.index} written to {args.out_file}")
    elif args.output == "json":
        print(json.dumps(data, indent=2))
    else:
        print(f"Fingerprint:  {record.fingerprint}")
        print(f"Index:        {record.index}")
        print(f"Root (hex):   {record.root_hex}")
        print("Path:")
        for level, sibling in enumerate(record.merkle_path_hex):
            print(f"  [{level}] {sibling}")
    return 0


def cmd_allowlist(args) -> int:
    """Fingerprint certificates into an allowlist file."""
    from trustroot.fingerprint import build_allowlist, certificate_files, write_allowlist

    paths: List[Path] = [Path(p) for p in args.certs]
    for directory in args.dir or []:
        paths.extend(certificate_files(directory))
    if not paths:
        raise InputError("No certificates given (pass files or --dir)")

    allowlist = build_allowlist(paths, sort=args.sort)
    target = write_allowlist(allowlist, args.out)
    print(f"Wrote allowlist with {len(allowlist['cert_fingerprints'])} entries to: {target}")
    return 0


def cmd_verify_manifest(args) -> int:
    """Check a manifest against published roots and the proving backend."""
    from trustroot.backend.barretenberg import BarretenbergBackend
    from trustroot.manifest.models import Manifest
    from trustroot.manifest.verifier import ManifestVerifier, StoreRootSource
    from trustroot.store.proof_store import ProofStore

    settings = get_settings()
    base_dir = args.out or settings.store.base_dir

    manifest = Manifest.load(args.manifest)
    artifact_path = Path(args.artifact)
    if not artifact_path.exists():
        raise NotFoundError(f"Artifact not found: {artifact_path}")
    artifact = artifact_path.read_bytes()

    local_roots = StoreRootSource(ProofStore(base_dir, TrustSource.LOCAL, manifest.hash_mode))
    eu_roots = None
    if manifest.dual_trust:
        eu_store = ProofStore(base_dir, TrustSource.EU, manifest.hash_mode)
        if eu_store.is_published:
            eu_roots = StoreRootSource(eu_store)

    backend_settings = settings.backend
    if args.vk:
        backend_settings = backend_settings.model_copy(update={"verification_key": args.vk})

    with BarretenbergBackend(backend_settings) as backend:
        verifier = ManifestVerifier(local_roots, backend, eu_roots, timeout=backend_settings.timeout)
        report = verifier.verify(manifest, artifact)

    if args.output == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print(f"Signer:     {manifest.signer.fingerprint}")
        print(f"Timestamp:  {manifest.timestamp}")
        print(f"Hash mode:  {manifest.hash_mode.value}")
        print()
        for check in report.checks:
            mark = "PASS" if check.passed else "FAIL"
            print(f"  [{mark}] {check.name:<14} {check.detail}")
        print()
        print("ACCEPTED" if report.accepted else "REJECTED")
    return 0 if report.accepted else 1


def cmd_serve(args) -> int:
    """Serve published roots and proofs (read-only)."""
    import uvicorn

    from trustroot.api.app import create_app

    app = create_app(args.out or get_settings().store.base_dir)
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


def _write_json(path: Path, data: Dict[str, Any]) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        raise PersistenceError(f"Failed to write {path.name}: {e.strerror or e}", path=str(path)) from e
