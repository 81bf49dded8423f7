"""
Enrollment orchestration: many frames, one salt, one upload.

Every valid frame is registered independently, each with its own fresh
secret, and bound to the user's salt. A frame that fails is counted and
skipped; the batch only fails when fewer than min_frames frames are
usable before registration or fewer than min_frames records survive it.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from .config import EnrollmentConfig
from .crypto import bind_secret, generate_salt, to_hex
from .exceptions import FaceSketchError, InsufficientFramesError
from .fuzzy import SecureSketch
from .payload import EnrollmentRecord, UploadPayload
from .quantizer import Frame

logger = logging.getLogger(__name__)

# upload(user_id, payload_dict) -> None
Uploader = Callable[[str, dict], None]


@dataclass(frozen=True)
class EnrollmentResult:
    """
    Outcome of a successful enrollment.

    Attributes:
        user_id: The enrolled user.
        salt: The user's 32-byte salt.
        records: One record per successfully registered frame.
        failures: Number of valid-length frames that failed to register.
    """

    user_id: str
    salt: bytes
    records: tuple[EnrollmentRecord, ...]
    failures: int

    def to_payload(self) -> UploadPayload:
        return UploadPayload(salt=to_hex(self.salt), records=self.records)


class Enroller:
    """
    Drives secure sketch registration over a batch of captured frames.

    Example:
        >>> enroller = Enroller(SecureSketch())
        >>> result = enroller.enroll("user-1", frames, upload=client.upload_face_ids)
        >>> len(result.records) >= 60
        True
    """

    def __init__(self, sketch: SecureSketch | None = None, config: EnrollmentConfig | None = None):
        self.sketch = sketch or SecureSketch()
        self.config = config or EnrollmentConfig()

    def _valid_frames(self, frames: Sequence[Frame]) -> list[Frame]:
        return [f for f in frames if len(f.distances) == self.config.num_distances]

    def enroll(
        self,
        user_id: str,
        frames: Sequence[Frame],
        upload: Uploader | None = None,
    ) -> EnrollmentResult:
        """
        Register every valid frame and hand the records to the uploader.

        Args:
            user_id: Identifier of the user being enrolled.
            frames: Captured frames; frames whose vector length is wrong
                are dropped up front.
            upload: Optional collaborator called once with the user id and
                the upload payload dict.

        Returns:
            EnrollmentResult with the salt and all records.

        Raises:
            InsufficientFramesError: If fewer than min_frames frames are
                valid, or fewer than min_frames registrations succeed.
        """
        required = self.config.min_frames
        valid = self._valid_frames(frames)
        if len(valid) < required:
            logger.info(
                "Enrollment for %s rejected: %d/%d valid frames, %d required",
                user_id, len(valid), len(frames), required,
            )
            raise InsufficientFramesError(required, len(valid))

        salt = generate_salt()
        records: list[EnrollmentRecord] = []
        failures = 0

        for index, frame in enumerate(valid):
            try:
                frame_record = self.sketch.register(frame.distances)
            except FaceSketchError as e:
                failures += 1
                logger.warning("Enrollment frame %d failed: %s", index + 1, e)
                continue

            binding = bind_secret(frame_record.r_bytes32, salt)
            records.append(
                EnrollmentRecord(
                    helper=frame_record.helper,
                    k2=binding.k2_hex,
                    token=binding.token_hex,
                    iod=str(float(frame.iod) * 100),
                )
            )

        if len(records) < required:
            logger.info(
                "Enrollment for %s failed: only %d records generated (failures=%d)",
                user_id, len(records), failures,
            )
            raise InsufficientFramesError(
                required,
                len(records),
                f"Only {len(records)} of {len(valid)} frames registered, {required} required",
            )

        result = EnrollmentResult(
            user_id=user_id,
            salt=salt,
            records=tuple(records),
            failures=failures,
        )
        logger.info(
            "Enrolled %s with %d records (failures=%d)", user_id, len(records), failures
        )

        if upload is not None:
            upload(user_id, result.to_payload().to_dict())
        return result
