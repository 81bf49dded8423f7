"""
Protocol constants and tunable parameters.

The constants describe the wire-compatible layout of the quantized
biometric and must stay identical on every device that enrolls or
verifies a user. The dataclasses hold the values that may be tuned
per deployment (IOD tolerance, match thresholds, frame counts).
"""

from dataclasses import dataclass

# Quantized biometric layout
NUM_DISTANCES = 316
BITS_PER_DISTANCE = 8
TOTAL_DATA_BITS = NUM_DISTANCES * BITS_PER_DISTANCE

# Value every distance maps to when the vector has no spread
DEGENERATE_LEVEL = 128

# Key-binding sizes in bytes
SECRET_BYTES = 32
SALT_BYTES = 32

# BCH code over GF(2^13), corrects up to 455 bit errors
DEFAULT_BCH_M = 13
DEFAULT_BCH_T = 455

DEFAULT_MIN_ENROLLMENT_FRAMES = 60
DEFAULT_IOD_EPSILON = 0.3
DEFAULT_REQUIRED_RECORD_MATCHES = 1
DEFAULT_MAX_VERIFICATION_FRAMES = 10


@dataclass(frozen=True)
class BCHParams:
    """
    Parameters of the binary BCH code.

    Attributes:
        m: Galois field degree; the codeword length is 2^m - 1.
        t: Maximum number of correctable bit errors.
        prim_poly: Primitive polynomial of GF(2^m), or None for the
            library default of the given degree.

    Security Note:
        t bounds how far a verification capture may drift from the
        enrollment capture. Raising it tolerates noisier captures at the
        cost of a higher false-accept rate and a shorter secret.
    """

    m: int = DEFAULT_BCH_M
    t: int = DEFAULT_BCH_T
    prim_poly: int | None = None

    def __post_init__(self) -> None:
        if not 5 <= self.m <= 15:
            raise ValueError("m must be between 5 and 15")
        if self.t < 1:
            raise ValueError("t must be positive")
        if self.m * self.t >= self.n:
            raise ValueError("m * t must be smaller than the codeword length")

    @property
    def n(self) -> int:
        return (1 << self.m) - 1


@dataclass(frozen=True)
class EnrollmentConfig:
    """
    Enrollment batch parameters.

    Attributes:
        min_frames: Minimum number of valid frames, and of successfully
            registered records, for an enrollment to be accepted.
        num_distances: Expected feature vector length; frames of any
            other length are dropped before registration.
    """

    min_frames: int = DEFAULT_MIN_ENROLLMENT_FRAMES
    num_distances: int = NUM_DISTANCES

    def __post_init__(self) -> None:
        if self.min_frames < 1:
            raise ValueError("min_frames must be positive")


@dataclass(frozen=True)
class VerificationConfig:
    """
    Matching engine parameters.

    Attributes:
        iod_epsilon: Maximum difference between a frame's IOD (times 100)
            and a record's stored IOD for the pair to be tried at all.
        required_record_matches: Records a single frame has to match for
            the verification to pass.
        max_frames: Cap on the number of frames evaluated per attempt.
        select_center: Evaluate a window of frames around the middle of
            the capture instead of the first max_frames frames.
    """

    iod_epsilon: float = DEFAULT_IOD_EPSILON
    required_record_matches: int = DEFAULT_REQUIRED_RECORD_MATCHES
    max_frames: int = DEFAULT_MAX_VERIFICATION_FRAMES
    select_center: bool = False

    def __post_init__(self) -> None:
        if self.iod_epsilon < 0:
            raise ValueError("iod_epsilon must be non-negative")
        if self.required_record_matches < 1:
            raise ValueError("required_record_matches must be positive")
        if self.max_frames < 1:
            raise ValueError("max_frames must be positive")
