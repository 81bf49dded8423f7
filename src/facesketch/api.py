"""
Public API for face-geometry enrollment and verification.

This module provides the main entry points for the facesketch library:
- enroll(): Register a batch of frames and build the upload payload
- verify(): Match fresh frames against fetched enrollment data
- FaceAuthenticator: Class-based interface owning one BCH codec

The library consumes the output of a geometry pipeline: per frame, 316
non-negative landmark distances and an inter-ocular distance ratio.
The caller is responsible for:
- Capturing frames and running landmark detection
- Normalizing landmarks into the distance vector
- Transporting the upload and fetch payloads to and from the backend

Security Assumptions:
    1. The quantized biometric has enough min-entropy that the helper
       data does not reveal the secret
    2. Captures of the same face stay within t = 455 bit errors of some
       enrolled frame after quantization
    3. The backend only ever sees helper, k2, token, iod and the salt

Example:
    >>> # Enrollment (upload the payload to the backend)
    >>> result = enroll("user-1", frames)
    >>> payload = result.to_payload().to_dict()
    >>>
    >>> # Verification (payload fetched back from the backend)
    >>> outcome = verify(fetched_payload, fresh_frames)
    >>> outcome.success
    True
"""

from typing import Sequence

from .bch import BCHCodec
from .config import BCHParams, EnrollmentConfig, VerificationConfig
from .enrollment import Enroller, EnrollmentResult, Uploader
from .fuzzy import SecureSketch
from .matching import MatchingEngine, VerificationResult
from .payload import FetchPayload
from .quantizer import Frame
from .session import Fetcher, VerificationSession


def enroll(
    user_id: str,
    frames: Sequence[Frame],
    *,
    upload: Uploader | None = None,
    min_frames: int | None = None,
) -> EnrollmentResult:
    """
    Enroll a user from a batch of captured frames.

    Args:
        user_id: Identifier of the user.
        frames: Captured frames (distances + iod).
        upload: Optional collaborator receiving (user_id, payload dict).
        min_frames: Optional override of the minimum number of frames
            (default 60).

    Returns:
        EnrollmentResult holding the salt and one record per frame.

    Raises:
        InsufficientFramesError: If too few frames are valid or register.
    """
    config = EnrollmentConfig(min_frames=min_frames) if min_frames is not None else EnrollmentConfig()
    return Enroller(SecureSketch(), config).enroll(user_id, frames, upload=upload)


def verify(
    payload: dict | str | FetchPayload,
    frames: Sequence[Frame],
    *,
    config: VerificationConfig | None = None,
) -> VerificationResult:
    """
    Verify fresh frames against fetched enrollment data.

    Args:
        payload: The fetch payload ({"salt", "faceData"}) as a dict, JSON
            text or FetchPayload.
        frames: Verification frames in capture order.
        config: Optional matching parameters.

    Returns:
        VerificationResult.

    Raises:
        NoEnrollmentError: If the payload has no usable salt or records.
    """
    session = VerificationSession(lambda: payload, MatchingEngine(SecureSketch(), config))
    return session.verify(frames)


class FaceAuthenticator:
    """
    Class-based interface sharing one codec across enrollments and sessions.

    Attributes:
        codec: The owned BCH codec, closed with the authenticator.

    Example:
        >>> with FaceAuthenticator() as auth:
        ...     result = auth.enroll("user-1", frames)
        ...     session = auth.session(fetch_from_backend)
        ...     outcome = session.verify(fresh_frames)
    """

    def __init__(
        self,
        *,
        params: BCHParams | None = None,
        enrollment: EnrollmentConfig | None = None,
        verification: VerificationConfig | None = None,
        workers: int = 1,
    ):
        self.codec = BCHCodec(params)
        self.sketch = SecureSketch(self.codec)
        self.enroller = Enroller(self.sketch, enrollment)
        self.engine = MatchingEngine(
            self.sketch,
            verification,
            workers=workers,
            sketch_factory=lambda: SecureSketch(params=self.codec.params),
        )

    def enroll(self, user_id: str, frames: Sequence[Frame], upload: Uploader | None = None) -> EnrollmentResult:
        """See module-level enroll() for full documentation."""
        return self.enroller.enroll(user_id, frames, upload=upload)

    def session(self, fetch: Fetcher) -> VerificationSession:
        """Start a verification session with its own enrollment cache."""
        return VerificationSession(fetch, self.engine)

    def verify(self, payload: dict | str | FetchPayload, frames: Sequence[Frame]) -> VerificationResult:
        """See module-level verify() for full documentation."""
        return self.session(lambda: payload).verify(frames)

    def close(self) -> None:
        self.codec.close()

    def __enter__(self) -> "FaceAuthenticator":
        self.codec.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
