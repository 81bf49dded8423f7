"""
Quantization of face-geometry distance vectors into bit strings.

Each of the 316 distances is min/max normalized over the vector, scaled
to an 8-bit level and emitted MSB-first, giving a 2528-bit biometric.
Normalizing per vector makes the output invariant to the capture scale,
which is what lets the matching engine rescale a verification frame to
a record's IOD without changing its quantized levels.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .bits import BitArray
from .config import BITS_PER_DISTANCE, DEGENERATE_LEVEL, NUM_DISTANCES
from .exceptions import InvalidDistancesCountError, InvalidValueError


@dataclass(frozen=True)
class Frame:
    """
    One capture as delivered by the geometry pipeline.

    Attributes:
        distances: The 316 normalized landmark distances.
        iod: Inter-ocular distance ratio of the capture.
    """

    distances: Sequence[float]
    iod: float


def validate_distances(distances: Sequence[float], expected: int = NUM_DISTANCES) -> np.ndarray:
    """
    Check a feature vector and return it as a float64 array.

    Raises:
        InvalidDistancesCountError: If the vector length is not expected.
        InvalidValueError: If any entry is NaN or infinite.
    """
    values = np.asarray(distances, dtype=np.float64).reshape(-1)
    if values.size != expected:
        raise InvalidDistancesCountError(expected, int(values.size))
    if not np.all(np.isfinite(values)):
        raise InvalidValueError()
    return values


def quantize(distances: Sequence[float]) -> np.ndarray:
    """
    Map distances to 8-bit levels in [0, 255].

    A vector without spread (max == min) maps every entry to 128.
    Otherwise each value becomes round-half-away-from-zero of
    255 * (v - min) / (max - min), clamped to [0, 255]. The normalized
    value is never negative, so half-away-from-zero rounds up whenever
    the fractional part is at least one half.
    """
    values = validate_distances(distances)

    lo = values.min()
    spread = values.max() - lo
    if spread == 0 or np.isnan(spread):
        return np.full(values.size, DEGENERATE_LEVEL, dtype=np.uint8)

    # Keep the (v - min) / spread * 255 evaluation order for bit-exact levels
    scaled = ((values - lo) / spread) * 255.0
    whole = np.floor(scaled)
    levels = whole + ((scaled - whole) >= 0.5)
    return np.clip(levels, 0, 255).astype(np.uint8)


def distances_to_bits(distances: Sequence[float]) -> BitArray:
    """Quantize distances and expand every level to 8 bits, MSB-first."""
    levels = quantize(distances)
    bits = np.unpackbits(levels)
    assert bits.size == levels.size * BITS_PER_DISTANCE
    return bits
