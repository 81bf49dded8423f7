"""Tests for key binding and hex helpers."""

import hashlib
import os

import pytest

from facesketch.crypto import (
    KeyBinding,
    bind_secret,
    candidate_token,
    from_hex,
    generate_salt,
    is_hex,
    parse_hex32,
    to_hex,
    tokens_match,
    verify_binding,
    xor_bytes,
)


def flip_byte(data: bytes, index: int) -> bytes:
    result = bytearray(data)
    result[index] ^= 0x01
    return bytes(result)


@pytest.fixture
def secret():
    return os.urandom(32)


@pytest.fixture
def salt():
    return generate_salt()


class TestHexHelpers:
    def test_is_hex(self):
        assert is_hex("00ffAB")
        assert not is_hex("")
        assert not is_hex("0g")
        assert not is_hex(None)

    def test_from_hex_roundtrip(self):
        data = os.urandom(16)
        assert from_hex(to_hex(data)) == data

    def test_from_hex_rejects_odd_length(self):
        assert from_hex("abc") is None

    def test_from_hex_rejects_invalid(self):
        assert from_hex("zz") is None

    def test_parse_hex32(self):
        assert parse_hex32("ab" * 32) == bytes([0xAB]) * 32
        assert parse_hex32("AB" * 32) == bytes([0xAB]) * 32
        assert parse_hex32("ab" * 31) is None
        assert parse_hex32("xy" * 32) is None
        assert parse_hex32(12) is None


class TestXor:
    def test_xor_self_is_zero(self):
        data = os.urandom(32)
        assert xor_bytes(data, data) == bytes(32)

    def test_xor_length_mismatch(self):
        with pytest.raises(ValueError, match="length"):
            xor_bytes(b"ab", b"abc")


class TestBindSecret:
    """Test the two-layer key binding."""

    def test_binding_with_known_key(self, secret, salt):
        key = os.urandom(32)
        binding = bind_secret(secret, salt, key)
        k1 = xor_bytes(secret, salt)
        assert binding.k2 == xor_bytes(key, k1)
        assert binding.token == hashlib.sha256(key + secret).digest()

    def test_hex_properties(self, secret, salt):
        binding = bind_secret(secret, salt)
        assert isinstance(binding, KeyBinding)
        assert len(binding.k2_hex) == 64
        assert len(binding.token_hex) == 64
        assert binding.token_hex == binding.token.hex()

    def test_fresh_key_per_binding(self, secret, salt):
        first = bind_secret(secret, salt)
        second = bind_secret(secret, salt)
        assert first.k2 != second.k2
        assert first.token != second.token

    def test_wrong_secret_length(self, salt):
        with pytest.raises(ValueError, match="Secret"):
            bind_secret(b"short", salt)

    def test_wrong_salt_length(self, secret):
        with pytest.raises(ValueError, match="Salt"):
            bind_secret(secret, b"short")


class TestCandidateToken:
    def test_recomputed_token_matches(self, secret, salt):
        binding = bind_secret(secret, salt)
        assert candidate_token(secret, salt, binding.k2) == binding.token

    def test_verify_binding_accepts_hex_token(self, secret, salt):
        binding = bind_secret(secret, salt)
        assert verify_binding(secret, salt, binding.k2, binding.token_hex)
        assert verify_binding(secret, salt, binding.k2, binding.token_hex.upper())

    def test_wrong_secret_rejected(self, secret, salt):
        binding = bind_secret(secret, salt)
        assert not verify_binding(flip_byte(secret, 0), salt, binding.k2, binding.token)

    def test_wrong_salt_rejected(self, secret, salt):
        binding = bind_secret(secret, salt)
        assert not verify_binding(secret, flip_byte(salt, 5), binding.k2, binding.token)

    def test_tampered_k2_rejected(self, secret, salt):
        binding = bind_secret(secret, salt)
        assert not verify_binding(secret, salt, flip_byte(binding.k2, 31), binding.token)

    def test_wrong_k2_length(self, secret, salt):
        with pytest.raises(ValueError, match="k2"):
            candidate_token(secret, salt, b"\x00" * 31)


class TestTokensMatch:
    def test_bytes_and_hex_mix(self):
        token = os.urandom(32)
        assert tokens_match(token, token.hex())
        assert tokens_match(token.hex().upper(), token)

    def test_invalid_hex_never_matches(self):
        assert not tokens_match("not hex", "not hex")

    def test_empty_never_matches(self):
        assert not tokens_match(b"", b"")
