"""
Session-scoped cache of a user's fetched enrollment data.

A VerificationSession fetches the salt and stored records once and
reuses the same immutable snapshot for every verification attempt until
reset() is called (for example after re-enrollment). Sessions are
independent of each other, so tests and concurrent users never share a
cache.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Sequence

from .exceptions import MalformedRecordError, NoEnrollmentError
from .matching import MatchingEngine, VerificationResult
from .payload import EnrollmentRecord, FetchPayload
from .quantizer import Frame

logger = logging.getLogger(__name__)

# fetch() -> payload dict, JSON text or FetchPayload
Fetcher = Callable[[], "dict | str | bytes | FetchPayload"]


@dataclass(frozen=True)
class EnrollmentSnapshot:
    salt: bytes
    records: tuple[EnrollmentRecord, ...]


class VerificationSession:
    """
    Verification against one user's enrollment, with a cached fetch.

    Example:
        >>> session = VerificationSession(client.fetch_face_ids, engine)
        >>> result = session.verify(frames)   # fetches on first use
        >>> result = session.verify(frames)   # reuses the snapshot
    """

    def __init__(self, fetch: Fetcher, engine: MatchingEngine | None = None):
        self._fetch = fetch
        self.engine = engine or MatchingEngine()
        self._snapshot: EnrollmentSnapshot | None = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    def load(self) -> EnrollmentSnapshot:
        """
        Fetch enrollment data unless a snapshot is already cached.

        Raises:
            NoEnrollmentError: If the backend returned no usable salt or
                no records.
        """
        with self._lock:
            if self._snapshot is not None:
                logger.debug("Using cached enrollment data (%d records)", len(self._snapshot.records))
                return self._snapshot

            raw = self._fetch()
            try:
                if isinstance(raw, FetchPayload):
                    payload = raw
                elif isinstance(raw, (str, bytes)):
                    payload = FetchPayload.from_json(raw)
                else:
                    payload = FetchPayload.from_dict(raw)
            except MalformedRecordError as e:
                raise NoEnrollmentError(f"Unusable enrollment data: {e.message}") from e

            if not payload.face_data:
                raise NoEnrollmentError("Enrollment data contains no records")

            self._snapshot = EnrollmentSnapshot(
                salt=payload.salt_bytes,
                records=tuple(payload.face_data),
            )
            logger.info(
                "Fetched %d enrollment records (dropped=%d)",
                len(payload.face_data), payload.dropped,
            )
            return self._snapshot

    def reset(self) -> None:
        with self._lock:
            self._snapshot = None

    def verify(self, frames: Sequence[Frame]) -> VerificationResult:
        """Verify frames against the cached (or freshly fetched) enrollment."""
        snapshot = self.load()
        return self.engine.match(snapshot.salt, snapshot.records, frames)
