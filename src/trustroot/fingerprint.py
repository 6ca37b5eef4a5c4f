"""
Certificate fingerprints and allowlist files.

A fingerprint is the SHA-256 digest of a certificate's DER encoding, as
lowercase hex. Certificates may be supplied PEM or DER encoded.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Union

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from trustroot.merkle.leafset import LeafSet
from trustroot.protocol.errors import InputError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CERT_EXTENSIONS = (".cer", ".crt", ".der", ".pem")

_PEM_MARKER = b"-----BEGIN CERTIFICATE-----"


def load_certificate(path: PathLike) -> x509.Certificate:
    p = Path(path)
    if not p.exists():
        raise NotFoundError(f"Certificate file not found: {p}")
    data = p.read_bytes()
    try:
        if _PEM_MARKER in data:
            return x509.load_pem_x509_certificate(data)
        return x509.load_der_x509_certificate(data)
    except ValueError as e:
        raise InputError(f"Cannot parse certificate {p}: {e}") from e


def certificate_fingerprint(cert: x509.Certificate) -> str:
    return cert.fingerprint(hashes.SHA256()).hex()


def fingerprint_certificate(path: PathLike) -> str:
    """SHA-256 of the certificate's DER bytes, lowercase hex."""
    fingerprint = certificate_fingerprint(load_certificate(path))
    logger.debug("Fingerprinted %s: %s", path, fingerprint)
    return fingerprint


def certificate_files(directory: PathLike) -> List[Path]:
    """Certificate files directly inside `directory` (non-recursive), sorted by name."""
    d = Path(directory)
    if not d.is_dir():
        raise NotFoundError(f"Certificate directory not found: {d}")
    return sorted(p for p in d.iterdir() if p.is_file() and p.suffix.lower() in CERT_EXTENSIONS)


def build_allowlist(paths: Iterable[PathLike], sort: bool = False) -> Dict[str, List[str]]:
    """
    Allowlist document for a set of certificates.

    Order follows `paths` unless `sort` is set. The same certificate given
    twice is an InputError, as it would be when the allowlist is loaded.
    """
    fingerprints = [fingerprint_certificate(p) for p in paths]
    if not fingerprints:
        raise InputError("No certificates given")
    if sort:
        fingerprints = sorted(fingerprints)
    # Same validation as loading: normalised, unique
    return LeafSet.from_fingerprints(fingerprints).to_allowlist()


def write_allowlist(allowlist: Dict[str, List[str]], path: PathLike) -> Path:
    """Write an allowlist JSON file (tmp + rename)."""
    target = Path(path)
    tmp_path = target.with_name(target.name + ".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(allowlist, f, indent=2)
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(str(tmp_path), str(target))
    except OSError as e:
        try:
            os.unlink(str(tmp_path))
        except FileNotFoundError:
            pass
        raise PersistenceError(f"Failed to write allowlist: {e.strerror or e}", path=str(target)) from e

    logger.info("Wrote allowlist with %d entries to %s", len(allowlist.get("cert_fingerprints", [])), target)
    return target
