"""
Multi-frame verification against a user's stored enrollment records.

For every (frame, record) pair the engine first applies the cheap IOD
gate, then rescales the frame's distances to the record's IOD, recovers
a secret through the secure sketch and checks it against the record's
token. Termination is explicit:

- within a frame, records are tried until required_record_matches of
  them matched, then the frame stops;
- frames are tried in order until one frame reaches the requirement
  (the best frame), then the attempt stops.

Success means a best frame was found. match_percentage reports the
highest per-frame match count relative to the number of stored records
and is not part of the pass/fail decision.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Sequence

import numpy as np

from .config import VerificationConfig
from .crypto import verify_binding
from .exceptions import FaceSketchError, MalformedRecordError
from .fuzzy import SecureSketch
from .payload import EnrollmentRecord, PreparedRecord
from .quantizer import Frame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    """
    Aggregated outcome of one verification attempt.

    Attributes:
        success: Whether some frame matched the required number of records.
        match_percentage: Best per-frame match count over total records, in percent.
        notes: Human-readable summary for diagnostics.
        best_frame_index: Index (within the evaluated frames) of the
            passing frame, or None.
        best_match_count: Highest number of records matched by one frame.
        total_records: Number of stored records, malformed ones included.
        frames_evaluated: Number of frames that were tried.
    """

    success: bool
    match_percentage: float
    notes: str
    best_frame_index: int | None = None
    best_match_count: int = 0
    total_records: int = 0
    frames_evaluated: int = 0


def select_center_frames(frames: Sequence[Frame], count: int) -> list[Frame]:
    """
    Pick a window of count frames around the middle of a capture.

    Frames in the middle of a capture sequence tend to be the most stable;
    the first and last ones are taken while the user settles or moves away.
    """
    center = len(frames) // 2
    start = max(0, center - count // 2)
    end = min(len(frames), start + count)
    return list(frames[start:end])


def prepare_records(records: Sequence[EnrollmentRecord], n: int) -> tuple[list[PreparedRecord], int]:
    """
    Validate and decode stored records once per verification pass.

    Returns:
        (prepared, skipped): the usable records and the number of
        malformed ones that were dropped.
    """
    prepared = []
    skipped = 0
    for index, record in enumerate(records):
        try:
            prepared.append(PreparedRecord.from_record(record, n, index))
        except MalformedRecordError as e:
            skipped += 1
            logger.warning("Skipping stored record: %s", e)
    return prepared, skipped


class MatchingEngine:
    """
    Drives verification frames against all stored records of one user.

    Example:
        >>> engine = MatchingEngine(SecureSketch())
        >>> result = engine.match(salt, records, frames)
        >>> result.success
        True

    With workers > 1, frames are evaluated on a thread pool. Each worker
    thread builds its own SecureSketch through sketch_factory so no codec
    is shared between threads; the result is aggregated in frame order
    exactly as in the sequential path.
    """

    def __init__(
        self,
        sketch: SecureSketch | None = None,
        config: VerificationConfig | None = None,
        *,
        workers: int = 1,
        sketch_factory: Callable[[], SecureSketch] | None = None,
    ):
        if workers < 1:
            raise ValueError("workers must be positive")
        self.sketch = sketch or SecureSketch()
        self.config = config or VerificationConfig()
        self.workers = workers
        self._sketch_factory = sketch_factory or (lambda: SecureSketch(params=self.sketch.codec.params))
        self._local = threading.local()

    def _worker_sketch(self) -> SecureSketch:
        sketch = getattr(self._local, "sketch", None)
        if sketch is None:
            sketch = self._sketch_factory()
            self._local.sketch = sketch
        return sketch

    def select_frames(self, frames: Sequence[Frame]) -> list[Frame]:
        """Apply the frame cap and selection policy."""
        if self.config.select_center:
            return select_center_frames(frames, self.config.max_frames)
        return list(frames[: self.config.max_frames])

    def iod_matches(self, frame_iod: float, record_iod: float) -> bool:
        return abs(frame_iod * 100 - record_iod) <= self.config.iod_epsilon

    def match_pair(self, sketch: SecureSketch, frame: Frame, record: PreparedRecord, salt: bytes) -> bool:
        """Whether one frame reproduces one record's token."""
        if not self.iod_matches(frame.iod, record.iod):
            return False

        scaled = np.asarray(frame.distances, dtype=np.float64) * (record.iod / 100)
        try:
            verification = sketch.verify(scaled, record.helper)
        except FaceSketchError as e:
            logger.debug("Record %d: frame rejected: %s", record.index, e)
            return False
        if not verification.success:
            return False
        return verify_binding(verification.r_bytes32, salt, record.k2, record.token)

    def count_frame_matches(
        self,
        sketch: SecureSketch,
        frame: Frame,
        records: Sequence[PreparedRecord],
        salt: bytes,
    ) -> int:
        """Matched records for one frame, stopping at required_record_matches."""
        required = self.config.required_record_matches
        matches = 0
        for record in records:
            if self.match_pair(sketch, frame, record, salt):
                matches += 1
                if matches >= required:
                    break
        return matches

    def _count_in_worker(self, frame: Frame, records: Sequence[PreparedRecord], salt: bytes) -> int:
        return self.count_frame_matches(self._worker_sketch(), frame, records, salt)

    def match(
        self,
        salt: bytes,
        records: Sequence[EnrollmentRecord],
        frames: Sequence[Frame],
    ) -> VerificationResult:
        """
        Verify captured frames against a user's stored records.

        Args:
            salt: The user's 32-byte salt.
            records: Stored enrollment records; malformed ones are skipped.
            frames: Freshly captured verification frames, in capture order.

        Returns:
            VerificationResult. Never raises for per-frame or per-record
            problems; those count as non-matches.
        """
        total = len(records)
        prepared, skipped = prepare_records(records, self.sketch.n)
        selected = self.select_frames(frames)
        required = self.config.required_record_matches

        if self.workers > 1 and len(selected) > 1:
            best_count, best_frame, evaluated = self._match_parallel(salt, prepared, selected)
        else:
            best_count, best_frame, evaluated = self._match_sequential(salt, prepared, selected)

        success = best_frame is not None
        percentage = best_count / max(1, total) * 100.0
        notes = (
            f"BestRecordMatches={best_count}/{total}, required={required}, "
            f"bestFrame={best_frame if best_frame is not None else 'nil'}, "
            f"framesEvaluated={evaluated}, skippedRecords={skipped}"
        )
        logger.info("Verification %s: %s", "passed" if success else "failed", notes)

        return VerificationResult(
            success=success,
            match_percentage=percentage,
            notes=notes,
            best_frame_index=best_frame,
            best_match_count=best_count,
            total_records=total,
            frames_evaluated=evaluated,
        )

    def _match_sequential(self, salt, prepared, frames) -> tuple[int, int | None, int]:
        required = self.config.required_record_matches
        best_count = 0
        for index, frame in enumerate(frames):
            count = self.count_frame_matches(self.sketch, frame, prepared, salt)
            logger.debug("Frame %d matched %d records", index, count)
            best_count = max(best_count, count)
            if count >= required:
                return best_count, index, index + 1
        return best_count, None, len(frames)

    def _match_parallel(self, salt, prepared, frames) -> tuple[int, int | None, int]:
        required = self.config.required_record_matches
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            counts = list(pool.map(lambda f: self._count_in_worker(f, prepared, salt), frames))

        best_count = 0
        for index, count in enumerate(counts):
            best_count = max(best_count, count)
            if count >= required:
                return best_count, index, len(frames)
        return best_count, None, len(frames)
