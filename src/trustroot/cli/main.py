from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from trustroot.core.settings import get_settings
from trustroot.merkle.hashing import HashMode
from trustroot.protocol.enums import TrustSource
from trustroot.protocol.errors import NotFoundError, TrustRootError
from trustroot.utils.logging import configure_logging

from .commands import (
    cmd_allowlist,
    cmd_build,
    cmd_prove,
    cmd_serve,
    cmd_verify_manifest,
)

logger = logging.getLogger(__name__)

MODES = [m.value for m in HashMode]
SOURCES = [s.value for s in TrustSource]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trustroot",
        description="Trust-list Merkle commitments for zero-knowledge signature proofs",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: TRUSTROOT_LOG_LEVEL or INFO)",
    )
    sub = parser.add_subparsers(dest="command")

    # build
    p_build = sub.add_parser("build", help="Build and publish a trust list")
    p_build.add_argument("allowlist", nargs="?", help="Allowlist JSON ({cert_fingerprints: [...]})")
    p_build.add_argument("--mode", default=HashMode.POSEIDON.value, choices=MODES, help="Hash function")
    p_build.add_argument("--source", default=TrustSource.LOCAL.value, choices=SOURCES, help="Trust source")
    p_build.add_argument("--eu-snapshot", default=None, help="Build the EU list from a snapshot JSON")
    p_build.add_argument("--out", default=None, help="Store base directory")
    p_build.add_argument("--depth", type=int, default=None, help="Tree depth (must match the circuit)")
    p_build.add_argument("--workers", type=int, default=None, help="Hashing threads per layer")
    p_build.add_argument("--output", default="table", choices=["table", "json"])
    p_build.set_defaults(func=cmd_build)

    # prove
    p_prove = sub.add_parser("prove", help="Show one signer's inclusion proof")
    p_prove.add_argument("--fingerprint", required=True, help="Certificate fingerprint (hex)")
    p_prove.add_argument("--mode", default=HashMode.POSEIDON.value, choices=MODES)
    p_prove.add_argument("--source", default=TrustSource.LOCAL.value, choices=SOURCES)
    p_prove.add_argument("--out", default=None, help="Store base directory")
    p_prove.add_argument("--out-file", default=None, help="Write the proof record to this file")
    p_prove.add_argument("--output", default="table", choices=["table", "json"])
    p_prove.set_defaults(func=cmd_prove)

    # allowlist
    p_allow = sub.add_parser("allowlist", help="Build an allowlist from certificate files")
    p_allow.add_argument("certs", nargs="*", help="Certificate files (PEM or DER)")
    p_allow.add_argument("--dir", "-d", action="append", help="Add all certificates in a directory")
    p_allow.add_argument("--out", "-o", default="allowlist.generated.json", help="Output path")
    p_allow.add_argument("--sort", action="store_true", help="Sort fingerprints")
    p_allow.set_defaults(func=cmd_allowlist)

    # verify-manifest
    p_verify = sub.add_parser("verify-manifest", help="Verify a signing manifest")
    p_verify.add_argument("manifest", help="Manifest JSON")
    p_verify.add_argument("--artifact", required=True, help="Artifact file the manifest binds")
    p_verify.add_argument("--out", default=None, help="Store base directory")
    p_verify.add_argument("--vk", default=None, help="Verification key path")
    p_verify.add_argument("--output", default="table", choices=["table", "json"])
    p_verify.set_defaults(func=cmd_verify_manifest)

    # serve
    p_serve = sub.add_parser("serve", help="Serve roots and proofs over HTTP")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8765)
    p_serve.add_argument("--out", default=None, help="Store base directory")
    p_serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    args.log_level = args.log_level or get_settings().runtime.log_level
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except NotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except TrustRootError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
