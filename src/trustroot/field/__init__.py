from .codec import (
    BN254_SCALAR_MODULUS,
    FIELD_ZERO,
    bytes_to_field,
    decimal_to_field,
    field_to_bytes,
    field_to_decimal,
    field_to_hex,
    hex_to_field,
    is_field_element,
    normalize_fingerprint,
)

__all__ = [
    "BN254_SCALAR_MODULUS",
    "FIELD_ZERO",
    "hex_to_field",
    "field_to_hex",
    "field_to_decimal",
    "decimal_to_field",
    "bytes_to_field",
    "field_to_bytes",
    "is_field_element",
    "normalize_fingerprint",
]
