"""Tests for custom exceptions."""

import pytest

from facesketch.exceptions import (
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


class TestExceptionHierarchy:
    """Test that all exceptions inherit from FaceSketchError."""

    @pytest.mark.parametrize(
        "exc_type",
        [
            NotInitializedError,
            InvalidDistancesCountError,
            InvalidValueError,
            CodecFailureError,
            InsufficientSecretBytesError,
            MalformedRecordError,
            InsufficientFramesError,
            NoEnrollmentError,
        ],
    )
    def test_inherits_from_base(self, exc_type):
        assert issubclass(exc_type, FaceSketchError)
        assert issubclass(exc_type, Exception)


class TestExceptionMessages:
    """Test exception default and custom messages."""

    def test_invalid_distances_count_message(self):
        exc = InvalidDistancesCountError(316, 300)
        assert exc.expected == 316
        assert exc.actual == 300
        assert "316" in str(exc) and "300" in str(exc)

    def test_insufficient_frames_message(self):
        exc = InsufficientFramesError(60, 59)
        assert exc.required == 60
        assert exc.actual == 59
        assert "59" in str(exc)

    def test_insufficient_frames_custom_message(self):
        exc = InsufficientFramesError(60, 10, "Only 10 registered")
        assert str(exc) == "Only 10 registered"
        assert exc.message == "Only 10 registered"

    def test_codec_failure_default(self):
        exc = CodecFailureError()
        assert exc.error_count < 0
        assert "decod" in str(exc).lower()

    def test_codec_failure_custom_message(self):
        msg = "Custom codec message"
        exc = CodecFailureError(msg, error_count=-74)
        assert str(exc) == msg
        assert exc.error_count == -74

    def test_malformed_record_default_message(self):
        exc = MalformedRecordError()
        assert "malformed" in str(exc).lower()

    def test_insufficient_secret_bytes_default_message(self):
        assert "32 bytes" in str(InsufficientSecretBytesError())


class TestExceptionRaising:
    """Test that exceptions can be raised and caught properly."""

    def test_catch_base_exception(self):
        with pytest.raises(FaceSketchError):
            raise InvalidValueError("test")

    def test_exception_chaining(self):
        try:
            try:
                raise ValueError("original")
            except ValueError as e:
                raise MalformedRecordError("wrapper") from e
        except MalformedRecordError as e:
            assert isinstance(e.__cause__, ValueError)
