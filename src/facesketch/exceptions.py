"""
Custom exceptions for the facesketch library.

This module defines the failure modes of the secure sketch protocol.
Per-frame errors (malformed vectors, codec failures, malformed stored
records) are meant to be handled locally by the enrollment and matching
loops; only aggregate failures such as InsufficientFramesError are
expected to reach the user.
"""


class FaceSketchError(Exception):
    """Base exception for all facesketch errors."""

    pass


class NotInitializedError(FaceSketchError):
    """
    Raised when the BCH codec state cannot be built.

    The codec is initialized lazily on first use, so this only surfaces
    when the configured code parameters are unusable, for example a
    polynomial that is not primitive.
    """

    def __init__(self, message: str = "BCH codec not initialized"):
        self.message = message
        super().__init__(self.message)


class InvalidDistancesCountError(FaceSketchError):
    """
    Raised when a feature vector does not have the expected length.

    Attributes:
        expected: Number of distances the quantizer requires.
        actual: Number of distances that were supplied.
    """

    def __init__(self, expected: int, actual: int, message: str | None = None):
        self.expected = expected
        self.actual = actual
        self.message = message or f"Expected {expected} distances, got {actual}"
        super().__init__(self.message)


class InvalidValueError(FaceSketchError):
    """Raised when a feature vector contains NaN or infinite values."""

    def __init__(self, message: str = "Distances contained NaN or infinite values"):
        self.message = message
        super().__init__(self.message)


class CodecFailureError(FaceSketchError):
    """
    Raised when the BCH decoder reports an uncorrectable word.

    This is the expected outcome when the verification biometric differs
    from the enrolled one by more than t bits. It is a mismatch, not a
    crash, and must never be retried with the same inputs.

    Attributes:
        error_count: The negative sentinel returned by the decoder.
    """

    def __init__(self, message: str = "BCH decoding failed: too many bit errors", error_count: int = -1):
        self.error_count = error_count
        self.message = message
        super().__init__(self.message)


class InsufficientSecretBytesError(FaceSketchError):
    """
    Raised when the packed secret is shorter than 32 bytes.

    This indicates a misconfigured code (payload length too small) and
    is never caused by user input.
    """

    def __init__(self, message: str = "Secret must be at least 32 bytes"):
        self.message = message
        super().__init__(self.message)


class MalformedRecordError(FaceSketchError):
    """
    Raised when a stored enrollment record fails its shape checks.

    Helpers must be n characters of "0"/"1", k2 and token must be 64 hex
    characters and the IOD must parse as a finite float.
    """

    def __init__(self, message: str = "Malformed enrollment record"):
        self.message = message
        super().__init__(self.message)


class InsufficientFramesError(FaceSketchError):
    """
    Raised when a batch holds fewer usable frames than required.

    Attributes:
        required: Minimum number of frames or records needed.
        actual: Number that were available.
    """

    def __init__(self, required: int, actual: int, message: str | None = None):
        self.required = required
        self.actual = actual
        self.message = message or f"Insufficient frames: {actual} available, {required} required"
        super().__init__(self.message)


class NoEnrollmentError(FaceSketchError):
    """Raised when no usable enrollment data is available for verification."""

    def __init__(self, message: str = "No enrollment data available"):
        self.message = message
        super().__init__(self.message)
