"""
Tests for the field codec.
"""

import pytest

from trustroot.field.codec import (
    BN254_SCALAR_MODULUS,
    bytes_to_field,
    decimal_to_field,
    field_to_bytes,
    field_to_decimal,
    field_to_hex,
    hex_to_field,
    is_field_element,
    normalize_fingerprint,
)
from trustroot.protocol.errors import InputError

P = BN254_SCALAR_MODULUS


class TestHexToField:
    def test_strips_prefix(self):
        assert hex_to_field("0x1f") == 31
        assert hex_to_field("0X1F") == 31
        assert hex_to_field("1f") == 31

    def test_reduces_oversized_digest(self):
        """A 256-bit digest above the modulus is reduced, not rejected."""
        value = hex_to_field("ff" * 32)
        assert value == int("ff" * 32, 16) % P
        assert is_field_element(value)

    def test_modulus_reduces_to_zero(self):
        assert hex_to_field(format(P, "x")) == 0

    def test_aa_fingerprint_reduction(self):
        assert field_to_hex(hex_to_field("aa" * 32)) == (
            "197dbf520715ca2d81b9d9872626a193320ef1d13d7e58f6df04c9eedaaaaaa7"
        )

    @pytest.mark.parametrize("bad", ["", "0x", "xyz", "12 34", "0xg1"])
    def test_malformed_hex_rejected(self, bad):
        with pytest.raises(InputError):
            hex_to_field(bad)

    def test_non_string_rejected(self):
        with pytest.raises(InputError):
            hex_to_field(123)


class TestTextForms:
    def test_hex_is_zero_padded(self):
        assert field_to_hex(1) == "0" * 63 + "1"
        assert len(field_to_hex(P - 1)) == 64

    def test_decimal(self):
        assert field_to_decimal(12345) == "12345"
        assert decimal_to_field("12345") == 12345

    def test_decimal_out_of_field_rejected(self):
        with pytest.raises(InputError):
            decimal_to_field(str(P))

    def test_decimal_malformed_rejected(self):
        with pytest.raises(InputError):
            decimal_to_field("-1")
        with pytest.raises(InputError):
            decimal_to_field("0x10")

    def test_non_field_values_rejected(self):
        for bad in (-1, P, True, "1"):
            with pytest.raises(InputError):
                field_to_hex(bad)


class TestBytes:
    def test_fixed_width_big_endian(self):
        data = field_to_bytes(258)
        assert len(data) == 32
        assert data[-2:] == b"\x01\x02"
        assert bytes_to_field(data) == 258

    def test_wrong_length_rejected(self):
        with pytest.raises(InputError):
            bytes_to_field(b"\x01" * 31)

    def test_bytes_reduced(self):
        assert bytes_to_field(b"\xff" * 32) == int("ff" * 32, 16) % P


class TestFingerprints:
    def test_normalized(self):
        assert normalize_fingerprint("0x" + "AB" * 32) == "ab" * 32

    @pytest.mark.parametrize("bad", ["ab" * 31, "ab" * 33, "zz" * 32, ""])
    def test_wrong_shape_rejected(self, bad):
        with pytest.raises(InputError):
            normalize_fingerprint(bad)
