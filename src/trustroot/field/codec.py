"""
Field Codec

Conversions between fingerprint hex, canonical field elements and their
textual forms. Field elements live in the BN254 scalar field, the native
value type of the verification circuit.

Encodings:
- hex:     64 lowercase hex characters, zero-padded, no prefix
- decimal: base-10 string (the circuit's numeric literal format)
- bytes:   32 bytes, big-endian
"""

from __future__ import annotations

import re

from trustroot.protocol.errors import InputError

BN254_SCALAR_MODULUS = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

FIELD_ZERO = 0
FIELD_BYTES = 32
FIELD_HEX_CHARS = FIELD_BYTES * 2

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_FINGERPRINT_RE = re.compile(r"^[0-9a-f]{64}$")
_DECIMAL_RE = re.compile(r"^[0-9]+$")


def _strip_prefix(text: str) -> str:
    if text.startswith(("0x", "0X")):
        return text[2:]
    return text


def is_field_element(value: object) -> bool:
    return (
        isinstance(value, int)
        and not isinstance(value, bool)
        and 0 <= value < BN254_SCALAR_MODULUS
    )


def hex_to_field(text: str) -> int:
    """
    Parse hex (optional 0x prefix) and reduce modulo the field.

    SHA-256 fingerprints are 256-bit and can exceed the ~254-bit modulus,
    so reduction is part of the canonical leaf encoding.
    """
    if not isinstance(text, str):
        raise InputError(f"Expected hex string, got {type(text).__name__}")
    clean = _strip_prefix(text.strip())
    if not clean or not _HEX_RE.match(clean):
        raise InputError(f"Malformed hex: {text!r}")
    return int(clean, 16) % BN254_SCALAR_MODULUS


def field_to_hex(value: int) -> str:
    _require_field(value)
    return format(value, "064x")


def field_to_decimal(value: int) -> str:
    _require_field(value)
    return str(value)


def decimal_to_field(text: str) -> int:
    """Parse a decimal field literal. Out-of-field values are rejected, not reduced."""
    clean = str(text).strip()
    if not _DECIMAL_RE.match(clean):
        raise InputError(f"Malformed decimal field element: {text!r}")
    value = int(clean)
    _require_field(value)
    return value


def bytes_to_field(data: bytes) -> int:
    if len(data) != FIELD_BYTES:
        raise InputError(f"Expected {FIELD_BYTES} bytes, got {len(data)}")
    return int.from_bytes(data, "big") % BN254_SCALAR_MODULUS


def field_to_bytes(value: int) -> bytes:
    _require_field(value)
    return value.to_bytes(FIELD_BYTES, "big")


def normalize_fingerprint(text: str) -> str:
    """Canonical fingerprint form: 64 lowercase hex characters, no prefix."""
    if not isinstance(text, str):
        raise InputError(f"Fingerprint must be a hex string, got {type(text).__name__}")
    clean = _strip_prefix(text.strip()).lower()
    if not _FINGERPRINT_RE.match(clean):
        raise InputError(
            f"Fingerprint must be {FIELD_HEX_CHARS} hex characters (32 bytes): {text!r}"
        )
    return clean


def _require_field(value: int) -> None:
    if not is_field_element(value):
        raise InputError(f"Not a field element: {value!r}")
