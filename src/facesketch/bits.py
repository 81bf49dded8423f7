"""
Bit-array helpers.

Bit strings are numpy uint8 arrays holding one bit (0 or 1) per element,
most significant bit first. Packing follows numpy's big-endian bit order,
so the last byte of an odd-length string is zero-padded in its low bits.
"""

import secrets

import numpy as np

BitArray = np.ndarray


def as_bits(bits) -> BitArray:
    """Coerce a sequence of 0/1 values into a flat uint8 bit array."""
    return np.asarray(bits, dtype=np.uint8).reshape(-1) & 1


def align_bits(bits: BitArray, target: int) -> BitArray:
    """Zero-pad or truncate a bit array to exactly target bits."""
    if len(bits) == target:
        return bits
    if len(bits) > target:
        return bits[:target].copy()
    return np.concatenate([bits, np.zeros(target - len(bits), dtype=np.uint8)])


def xor_bits(a: BitArray, b: BitArray) -> BitArray:
    if len(a) != len(b):
        raise ValueError(f"xor length mismatch: {len(a)} != {len(b)}")
    return np.bitwise_xor(a, b)


def bits_to_bytes(bits: BitArray) -> bytes:
    """Pack bits MSB-first; the last byte is zero-padded."""
    return np.packbits(bits).tobytes()


def bytes_to_bits(data: bytes, length: int | None = None) -> BitArray:
    """Unpack bytes MSB-first, optionally keeping only the first length bits."""
    bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8))
    if length is not None:
        bits = bits[:length]
    return bits


def bits_to_string(bits: BitArray) -> str:
    return (bits.astype(np.uint8) + ord("0")).tobytes().decode("ascii")


def string_to_bits(s: str) -> BitArray:
    """
    Convert a "0"/"1" string to bits.

    Any character other than "1" reads as 0; callers that need strict
    validation should check with is_bit_string() first.
    """
    raw = np.frombuffer(s.encode("ascii", errors="replace"), dtype=np.uint8)
    return (raw == ord("1")).astype(np.uint8)


def is_bit_string(s: str, length: int | None = None) -> bool:
    if not isinstance(s, str):
        return False
    if length is not None and len(s) != length:
        return False
    return s.strip("01") == ""


def random_bits(length: int) -> BitArray:
    """Draw length cryptographically random bits."""
    return bytes_to_bits(secrets.token_bytes((length + 7) // 8), length)
