"""
Wire payloads exchanged with the enrollment backend.

Upload (device to backend, one call per user):

    {"salt": hex64, "records": [{"helper", "k2", "token", "iod"}, ...]}

Fetch (backend to device, before verification):

    {"salt": hex64, "faceData": [{"helper", "k2", "token", "iod"}, ...]}

helper is n characters of "0"/"1", k2 and token are 64 hex characters,
iod is a float serialized as a string. Stored records are parsed
leniently: shape checks happen in PreparedRecord.from_record(), where a
bad record is skipped rather than failing the whole batch.
"""

import json
import math
from dataclasses import asdict, dataclass, field

from .bits import is_bit_string
from .crypto import is_hex, parse_hex32
from .exceptions import MalformedRecordError


@dataclass(frozen=True)
class EnrollmentRecord:
    """
    One enrolled frame as stored server-side.

    Attributes:
        helper: codeword XOR biometric, as a "0"/"1" string.
        k2: Blinded key, 64 hex characters.
        token: SHA256(K ++ R32), 64 hex characters.
        iod: The frame's IOD ratio times 100, as a string of a float.
    """

    helper: str
    k2: str
    token: str
    iod: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "EnrollmentRecord":
        if not isinstance(d, dict):
            raise MalformedRecordError("Record is not an object")
        try:
            return cls(
                helper=d["helper"],
                k2=d["k2"],
                token=d["token"],
                iod=str(d["iod"]),
            )
        except KeyError as e:
            raise MalformedRecordError(f"Record is missing field {e}") from e


@dataclass(frozen=True)
class PreparedRecord:
    """
    A stored record with its fields validated and decoded once.

    Attributes:
        index: Position of the record in the fetched list.
        helper: n-character "0"/"1" string.
        k2: 32 bytes.
        token: 32 bytes.
        iod: Stored IOD (ratio times 100).
    """

    index: int
    helper: str
    k2: bytes
    token: bytes
    iod: float

    @classmethod
    def from_record(cls, record: EnrollmentRecord, n: int, index: int = 0) -> "PreparedRecord":
        """
        Validate a stored record against the codeword length n.

        Raises:
            MalformedRecordError: If any field fails its shape check.
        """
        if not is_bit_string(record.helper, n):
            raise MalformedRecordError(f"Record {index}: helper is not {n} bits")
        k2 = parse_hex32(record.k2)
        if k2 is None:
            raise MalformedRecordError(f"Record {index}: k2 is not 64 hex characters")
        token = parse_hex32(record.token)
        if token is None:
            raise MalformedRecordError(f"Record {index}: token is not 64 hex characters")
        try:
            iod = float(record.iod)
        except (TypeError, ValueError) as e:
            raise MalformedRecordError(f"Record {index}: iod is not a number") from e
        if not math.isfinite(iod):
            raise MalformedRecordError(f"Record {index}: iod is not finite")
        return cls(index=index, helper=record.helper, k2=k2, token=token, iod=iod)


@dataclass(frozen=True)
class UploadPayload:
    """Enrollment upload: one salt and one record per accepted frame."""

    salt: str
    records: tuple[EnrollmentRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"salt": self.salt, "records": [r.to_dict() for r in self.records]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class FetchPayload:
    """
    Enrollment data fetched for verification.

    Records that are not even objects with the four fields are dropped
    here; field-level shape checks happen later in PreparedRecord.
    """

    salt: str
    face_data: tuple[EnrollmentRecord, ...] = field(default_factory=tuple)
    dropped: int = 0

    @classmethod
    def from_dict(cls, d: dict) -> "FetchPayload":
        if not isinstance(d, dict):
            raise MalformedRecordError("Fetch payload is not an object")
        salt = d.get("salt")
        if not isinstance(salt, str) or len(salt) != 64 or not is_hex(salt):
            raise MalformedRecordError("Fetch payload salt is not 64 hex characters")

        face_data = d.get("faceData") or []
        if not isinstance(face_data, list):
            raise MalformedRecordError("Fetch payload faceData is not a list")

        records = []
        dropped = 0
        for item in face_data:
            try:
                records.append(EnrollmentRecord.from_dict(item))
            except MalformedRecordError:
                dropped += 1
        return cls(salt=salt, face_data=tuple(records), dropped=dropped)

    @classmethod
    def from_json(cls, data: str | bytes) -> "FetchPayload":
        try:
            decoded = json.loads(data)
        except ValueError as e:
            raise MalformedRecordError(f"Fetch payload is not valid JSON: {e}") from e
        return cls.from_dict(decoded)

    @classmethod
    def from_upload(cls, upload: UploadPayload) -> "FetchPayload":
        """The fetch view of what a backend stored for an upload."""
        return cls(salt=upload.salt, face_data=tuple(upload.records))

    @property
    def salt_bytes(self) -> bytes:
        return bytes.fromhex(self.salt)
