"""
facesketch - Face-geometry authentication with a BCH secure sketch.

This library turns a noisy face-geometry feature vector into a
reproducible secret without storing the biometric or the secret. A
random secret is bound to each enrolled frame through a BCH codeword
(the "helper" data), and a two-layer key binding lets a backend store a
verifiable token without learning either.

The library starts where the geometry pipeline ends: it takes per-frame
distance vectors (316 values) and inter-ocular distance ratios. Camera
capture, landmark detection and network transport are up to the caller.

Quick Start:
    >>> from facesketch import Frame, enroll, verify
    >>>
    >>> # Enrollment (upload result.to_payload() to the backend)
    >>> result = enroll("user-1", frames)
    >>>
    >>> # Verification (with the payload fetched back from the backend)
    >>> outcome = verify(fetched_payload, fresh_frames)
    >>> outcome.success

For more control, use the FaceAuthenticator class:
    >>> from facesketch import FaceAuthenticator
    >>>
    >>> with FaceAuthenticator() as auth:
    ...     session = auth.session(fetch_from_backend)
    ...     outcome = session.verify(fresh_frames)

See Also:
    - api.py: Main API functions
    - fuzzy.py: Secure sketch register/verify
    - bch.py: BCH codec over GF(2^13)
    - crypto.py: Key binding and tokens
    - matching.py: Multi-frame matching engine
    - exceptions.py: Custom exception types
"""

import logging

__version__ = "0.1.0"
__author__ = "facesketch Contributors"

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API - main functions
from .api import enroll, verify, FaceAuthenticator

# Exceptions for error handling
from .exceptions import (
    FaceSketchError,
    NotInitializedError,
    InvalidDistancesCountError,
    InvalidValueError,
    CodecFailureError,
    InsufficientSecretBytesError,
    MalformedRecordError,
    InsufficientFramesError,
    NoEnrollmentError,
)

# Building blocks (for advanced usage)
from .bch import BCHCodec
from .config import BCHParams, EnrollmentConfig, VerificationConfig
from .enrollment import Enroller, EnrollmentResult
from .fuzzy import FrameRecord, FrameVerification, SecureSketch
from .matching import MatchingEngine, VerificationResult
from .payload import EnrollmentRecord, FetchPayload, UploadPayload
from .quantizer import Frame
from .session import VerificationSession

__all__ = [
    # Version
    "__version__",
    # Main API
    "enroll",
    "verify",
    "FaceAuthenticator",
    # Exceptions
    "FaceSketchError",
    "NotInitializedError",
    "InvalidDistancesCountError",
    "InvalidValueError",
    "CodecFailureError",
    "InsufficientSecretBytesError",
    "MalformedRecordError",
    "InsufficientFramesError",
    "NoEnrollmentError",
    # Types
    "BCHCodec",
    "BCHParams",
    "EnrollmentConfig",
    "VerificationConfig",
    "Enroller",
    "EnrollmentResult",
    "FrameRecord",
    "FrameVerification",
    "SecureSketch",
    "MatchingEngine",
    "VerificationResult",
    "EnrollmentRecord",
    "FetchPayload",
    "UploadPayload",
    "Frame",
    "VerificationSession",
]
