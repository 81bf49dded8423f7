"""
Secure sketch (code-offset fuzzy extractor) over face-geometry distances.

This module binds a fresh random secret R to a quantized biometric w by
publishing helper = C(R) XOR w, where C(R) = R ++ ecc(R) is a BCH
codeword. A later capture w' recovers R from the helper if w' differs
from w in at most t bit positions:

    helper XOR w' = C(R) XOR (w XOR w') = C(R) + e,  |e| <= t

The decoder removes e and the payload bits of the corrected codeword
are R again.

Security Note:
    The helper is public. It hides R only to the extent that the
    quantized biometric has min-entropy beyond the ecc length; the
    token layer in crypto.py adds the check that a recovered R is the
    right one.

References:
    Dodis et al., "Fuzzy Extractors: How to Generate Strong Keys from
    Biometrics and Other Noisy Data" (2004, 2008)
"""

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .bch import BCHCodec
from .bits import (
    BitArray,
    align_bits,
    bits_to_bytes,
    bits_to_string,
    is_bit_string,
    random_bits,
    string_to_bits,
    xor_bits,
)
from .config import SECRET_BYTES, BCHParams
from .exceptions import CodecFailureError, InsufficientSecretBytesError
from .quantizer import distances_to_bits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameRecord:
    """
    Result of registering one frame.

    Attributes:
        helper: n-character "0"/"1" string, safe to store server-side.
        r_bytes_full: The packed secret R. Never stored or transmitted.
        r_bytes32: First 32 bytes of R, the input to the key binding.
    """

    helper: str
    r_bytes_full: bytes
    r_bytes32: bytes


@dataclass(frozen=True)
class FrameVerification:
    """
    Result of verifying one frame against one helper.

    Attributes:
        success: Whether a secret was recovered at all. A recovered
            secret still has to pass the token check to count as a match.
        r_bytes_full: The recovered secret, empty on failure.
        r_bytes32: First 32 bytes of the recovered secret, empty on failure.
        num_errors: Bit errors corrected, or the decoder's negative
            sentinel when decoding failed.
    """

    success: bool
    r_bytes_full: bytes
    r_bytes32: bytes
    num_errors: int

    @classmethod
    def failure(cls, num_errors: int = 0) -> "FrameVerification":
        return cls(success=False, r_bytes_full=b"", r_bytes32=b"", num_errors=num_errors)


class SecureSketch:
    """
    Register/verify primitives built from the quantizer and BCH codec.

    The sketch owns no secret state; it holds a codec, which is created
    on first use when none is passed in.

    Example:
        >>> sketch = SecureSketch()
        >>> record = sketch.register(distances)
        >>> # Later, with a fresh capture of the same face:
        >>> result = sketch.verify(new_distances, record.helper)
        >>> assert result.r_bytes32 == record.r_bytes32  # if close enough
    """

    def __init__(self, codec: BCHCodec | None = None, params: BCHParams | None = None):
        """
        Initialize the secure sketch.

        Args:
            codec: Codec to use. A private one is created if not provided.
            params: Code parameters for the private codec. Ignored when a
                codec is given.
        """
        self.codec = codec or BCHCodec(params)

    @property
    def n(self) -> int:
        return self.codec.n

    def _check_capacity(self) -> None:
        if (self.codec.k + 7) // 8 < SECRET_BYTES:
            raise InsufficientSecretBytesError(
                f"Code payload of {self.codec.k} bits cannot hold a {SECRET_BYTES}-byte secret"
            )

    def align(self, biometric: BitArray) -> BitArray:
        """Zero-pad or truncate biometric bits to the codeword length."""
        return align_bits(biometric, self.n)

    # -- registration ------------------------------------------------------

    def register(self, distances: Sequence[float]) -> FrameRecord:
        """
        Bind a fresh random secret to one frame's distances.

        Args:
            distances: The frame's 316 feature values.

        Returns:
            FrameRecord with the helper string and the secret.

        Raises:
            InvalidDistancesCountError: If the vector has the wrong length.
            InvalidValueError: If the vector contains NaN or infinities.
            InsufficientSecretBytesError: If the code cannot carry 32 bytes.
        """
        return self.register_bits(distances_to_bits(distances))

    def register_bits(self, biometric: BitArray) -> FrameRecord:
        """Register already quantized biometric bits (aligned to n here)."""
        self._check_capacity()
        aligned = self.align(biometric)

        secret = random_bits(self.codec.k)
        codeword = self.align(np.concatenate([secret, self.codec.encode(secret)]))
        helper = xor_bits(codeword, aligned)

        r_full = bits_to_bytes(secret)
        if len(r_full) < SECRET_BYTES:
            raise InsufficientSecretBytesError()

        return FrameRecord(
            helper=bits_to_string(helper),
            r_bytes_full=r_full,
            r_bytes32=r_full[:SECRET_BYTES],
        )

    # -- verification ------------------------------------------------------

    def verify(self, distances: Sequence[float], helper: str) -> FrameVerification:
        """
        Try to recover the secret bound to helper from a fresh capture.

        A helper of the wrong length fails immediately without touching
        the codec. Quantization errors propagate; a decoding failure is
        returned as an unsuccessful FrameVerification.

        Raises:
            InvalidDistancesCountError: If the vector has the wrong length.
            InvalidValueError: If the vector contains NaN or infinities.
        """
        if not isinstance(helper, str) or len(helper) != self.n:
            logger.debug(
                "Helper length mismatch: %s != %d",
                len(helper) if isinstance(helper, str) else None, self.n,
            )
            return FrameVerification.failure()
        return self.verify_bits(distances_to_bits(distances), helper)

    def verify_bits(self, biometric: BitArray, helper: str) -> FrameVerification:
        """Verify already quantized biometric bits against a helper string."""
        if not is_bit_string(helper, self.n):
            return FrameVerification.failure()

        received = xor_bits(string_to_bits(helper), self.align(biometric))
        k, ecc_bits = self.codec.k, self.codec.ecc_bits
        data = received[:k].copy()
        ecc = received[k:k + ecc_bits]

        error_count, locations = self.codec.decode(data, ecc)
        if error_count < 0:
            logger.debug("Decode failed with sentinel %d", error_count)
            return FrameVerification.failure(error_count)
        if error_count > 0:
            self.codec.correct(data, locations, error_count)

        r_full = bits_to_bytes(data & 1)
        if len(r_full) < SECRET_BYTES:
            return FrameVerification.failure(error_count)

        logger.debug("Recovered secret, %d bit errors corrected", error_count)
        return FrameVerification(
            success=True,
            r_bytes_full=r_full,
            r_bytes32=r_full[:SECRET_BYTES],
            num_errors=error_count,
        )

    def reproduce(self, distances: Sequence[float], helper: str) -> bytes:
        """
        Recover the full secret or raise.

        Raises:
            CodecFailureError: If the capture is too far from the enrolled one
                or the helper is malformed.
        """
        result = self.verify(distances, helper)
        if not result.success:
            raise CodecFailureError(
                f"Unable to recover secret (decoder returned {result.num_errors})",
                error_count=result.num_errors if result.num_errors < 0 else -1,
            )
        return result.r_bytes_full
