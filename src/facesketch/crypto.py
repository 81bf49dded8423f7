"""
Key binding and token derivation for enrolled frames.

The server stores, per enrolled frame, a blinded key k2 and a token
instead of anything derived directly from the secret:

    k1    = R32 XOR salt
    K     = 32 random bytes
    k2    = K XOR k1
    token = SHA256(K ++ R32)

At verification a recovered R32' gives k1' = R32' XOR salt,
K' = k2 XOR k1' and a candidate token SHA256(K' ++ R32'), which equals
the stored token only if R32' == R32.

Security Note:
    Neither k2 nor the token (nor both together with the salt) reveals K
    or R without a biometric within the BCH correction capability.
    Tokens are compared in constant time.
"""

import hashlib
import hmac
import secrets
from dataclasses import dataclass

from .config import SALT_BYTES, SECRET_BYTES

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def random_bytes(count: int) -> bytes:
    return secrets.token_bytes(count)


def generate_salt() -> bytes:
    """Draw a per-user salt shared by all of that user's enrolled frames."""
    return random_bytes(SALT_BYTES)


def xor_bytes(a: bytes, b: bytes) -> bytes:
    if len(a) != len(b):
        raise ValueError(f"xor length mismatch: {len(a)} != {len(b)}")
    return bytes(x ^ y for x, y in zip(a, b))


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


# Hex helpers


def is_hex(s: str) -> bool:
    return isinstance(s, str) and len(s) > 0 and all(c in HEX_DIGITS for c in s)


def to_hex(data: bytes) -> str:
    return data.hex()


def from_hex(s: str) -> bytes | None:
    """Decode a hex string, or return None if it is not valid hex."""
    if not is_hex(s) or len(s) % 2:
        return None
    return bytes.fromhex(s)


def parse_hex32(s: str) -> bytes | None:
    """Decode a 64-character hex string into 32 bytes, or return None."""
    if not isinstance(s, str) or len(s) != 2 * SECRET_BYTES:
        return None
    return from_hex(s)


# Binding


@dataclass(frozen=True)
class KeyBinding:
    """
    Server-storable values derived from one frame's secret.

    Attributes:
        k2: K XOR (R32 XOR salt), 32 bytes.
        token: SHA256(K ++ R32), 32 bytes.
    """

    k2: bytes
    token: bytes

    @property
    def k2_hex(self) -> str:
        return to_hex(self.k2)

    @property
    def token_hex(self) -> str:
        return to_hex(self.token)


def _check_lengths(r_bytes32: bytes, salt: bytes) -> None:
    if len(r_bytes32) != SECRET_BYTES:
        raise ValueError(f"Secret must be {SECRET_BYTES} bytes, got {len(r_bytes32)}")
    if len(salt) != SALT_BYTES:
        raise ValueError(f"Salt must be {SALT_BYTES} bytes, got {len(salt)}")


def bind_secret(r_bytes32: bytes, salt: bytes, key: bytes | None = None) -> KeyBinding:
    """
    Derive the blinded key and token for a freshly registered secret.

    Args:
        r_bytes32: First 32 bytes of the frame secret R.
        salt: The user's 32-byte salt.
        key: The random key K. Drawn fresh when not provided; only tests
            should pass one.

    Returns:
        KeyBinding(k2, token).
    """
    _check_lengths(r_bytes32, salt)
    key = key if key is not None else random_bytes(SECRET_BYTES)
    k1 = xor_bytes(r_bytes32, salt)
    k2 = xor_bytes(key, k1)
    token = sha256(key + r_bytes32)
    return KeyBinding(k2=k2, token=token)


def candidate_token(r_bytes32: bytes, salt: bytes, k2: bytes) -> bytes:
    """Recompute the token a recovered secret would produce for a stored k2."""
    _check_lengths(r_bytes32, salt)
    if len(k2) != SECRET_BYTES:
        raise ValueError(f"k2 must be {SECRET_BYTES} bytes, got {len(k2)}")
    k1 = xor_bytes(r_bytes32, salt)
    key = xor_bytes(k2, k1)
    return sha256(key + r_bytes32)


def tokens_match(candidate: bytes | str, stored: bytes | str) -> bool:
    """
    Compare two tokens given as bytes or hex strings.

    Hex strings compare case-insensitively.
    """
    if isinstance(candidate, str):
        candidate = from_hex(candidate) or b""
    if isinstance(stored, str):
        stored = from_hex(stored) or b""
    if not candidate or not stored:
        return False
    return hmac.compare_digest(candidate, stored)


def verify_binding(r_bytes32: bytes, salt: bytes, k2: bytes, token: bytes | str) -> bool:
    """Whether a recovered secret reproduces the stored token."""
    return tokens_match(candidate_token(r_bytes32, salt, k2), token)
