"""Tests for enrollment orchestration."""

import numpy as np
import pytest

from facesketch.config import EnrollmentConfig
from facesketch.enrollment import Enroller
from facesketch.exceptions import InsufficientFramesError
from facesketch.payload import PreparedRecord
from facesketch.crypto import verify_binding
from facesketch.quantizer import Frame


def random_distances(seed: int) -> np.ndarray:
    """Generate a random distance vector simulating one capture."""
    return np.random.default_rng(seed).uniform(0.05, 1.5, 316)


def make_frames(count: int, iod: float = 0.5, seed: int = 0) -> list[Frame]:
    return [Frame(distances=random_distances(seed + i), iod=iod) for i in range(count)]


class RecordingUploader:
    """Collects upload calls instead of talking to a backend."""

    def __init__(self):
        self.calls = []

    def __call__(self, user_id, payload):
        self.calls.append((user_id, payload))


@pytest.fixture
def enroller(sketch):
    return Enroller(sketch, EnrollmentConfig(min_frames=3))


class TestEnrollmentConfig:
    def test_defaults(self):
        config = EnrollmentConfig()
        assert config.min_frames == 60
        assert config.num_distances == 316

    def test_min_frames_must_be_positive(self):
        with pytest.raises(ValueError, match="min_frames"):
            EnrollmentConfig(min_frames=0)


class TestEnroll:
    def test_one_record_per_frame(self, enroller):
        result = enroller.enroll("user-1", make_frames(4))
        assert result.user_id == "user-1"
        assert len(result.records) == 4
        assert result.failures == 0
        assert len(result.salt) == 32

    def test_records_are_well_formed(self, enroller, sketch):
        result = enroller.enroll("user-1", make_frames(3, iod=0.5))
        for index, record in enumerate(result.records):
            prepared = PreparedRecord.from_record(record, sketch.n, index)
            assert prepared.iod == 50.0
            assert record.iod == "50.0"

    def test_records_bind_recovered_secret(self, enroller, sketch):
        frames = make_frames(3, seed=40)
        result = enroller.enroll("user-1", frames)
        record = PreparedRecord.from_record(result.records[1], sketch.n)
        recovered = sketch.verify(frames[1].distances, record.helper)
        assert recovered.success
        assert verify_binding(recovered.r_bytes32, result.salt, record.k2, record.token)

    def test_fresh_salt_per_enrollment(self, enroller):
        first = enroller.enroll("user-1", make_frames(3))
        second = enroller.enroll("user-1", make_frames(3))
        assert first.salt != second.salt

    def test_too_few_frames(self, enroller):
        with pytest.raises(InsufficientFramesError) as info:
            enroller.enroll("user-1", make_frames(2))
        assert info.value.required == 3
        assert info.value.actual == 2

    def test_wrong_length_frames_dropped_up_front(self, enroller):
        frames = make_frames(2) + [Frame(distances=[0.5] * 100, iod=0.5)]
        with pytest.raises(InsufficientFramesError) as info:
            enroller.enroll("user-1", frames)
        assert info.value.actual == 2

    def test_failed_frames_counted(self, enroller):
        bad = random_distances(77)
        bad[3] = float("inf")
        frames = make_frames(3) + [Frame(distances=bad, iod=0.5)]
        result = enroller.enroll("user-1", frames)
        assert len(result.records) == 3
        assert result.failures == 1

    def test_too_many_failures(self, enroller):
        bad = random_distances(78)
        bad[0] = float("nan")
        frames = make_frames(2) + [Frame(distances=bad, iod=0.5)]
        with pytest.raises(InsufficientFramesError) as info:
            enroller.enroll("user-1", frames)
        assert info.value.actual == 2

    def test_upload_called_once(self, enroller):
        uploader = RecordingUploader()
        result = enroller.enroll("user-7", make_frames(3), upload=uploader)
        assert len(uploader.calls) == 1
        user_id, payload = uploader.calls[0]
        assert user_id == "user-7"
        assert payload["salt"] == result.salt.hex()
        assert len(payload["records"]) == 3

    def test_no_upload_on_failure(self, enroller):
        uploader = RecordingUploader()
        with pytest.raises(InsufficientFramesError):
            enroller.enroll("user-1", make_frames(1), upload=uploader)
        assert uploader.calls == []


class TestDefaultMinimum:
    """The default batch needs 60 usable frames."""

    def test_59_frames_rejected(self, sketch):
        with pytest.raises(InsufficientFramesError):
            Enroller(sketch).enroll("user-1", make_frames(59))

    def test_60_frames_accepted(self, sketch):
        result = Enroller(sketch).enroll("user-1", make_frames(60))
        assert len(result.records) == 60
        assert len({record.helper for record in result.records}) == 60

        frames = make_frames(60)
        for index in (0, 29, 59):
            record = PreparedRecord.from_record(result.records[index], sketch.n, index)
            recovered = sketch.verify(frames[index].distances, record.helper)
            assert recovered.success
            assert verify_binding(recovered.r_bytes32, result.salt, record.k2, record.token)
