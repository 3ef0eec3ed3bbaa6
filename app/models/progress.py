r"""Progress records and their stored payload envelope.

A ProgressRecord is one immutable completion event: learner L finished
activity A of module M in course C (or, with no activity, the module
itself).  Records are only ever appended; there is no update or delete.

In the triple store a record is (subject=learner_id, predicate=progress,
value=payload).  The payload is compact JSON with a FIXED key order:

    {"course":"C","module":"M","activity":"A","log_time":"2024-05-01 10:00:00"}
    {"course":"C","module":"M","log_time":"2024-05-01 10:00:00"}

The repository's LIKE patterns depend on that order ("module" immediately
followed by "log_time" means a module-level record), so the encoder below
is the only place payloads are produced.  Escaping matches the records
already in the store: non-ASCII characters as \uXXXX and "/" as "\/",
so a tag is spelled the same way in old and new payloads.

Decoding goes through the tagged envelope
(ActivityProgressPayload | ModuleProgressPayload) so nothing downstream
ever handles a raw dict.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, TypeAdapter, field_validator

LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def dump_json(fields: dict[str, str]) -> str:
    """Compact JSON with the store's escaping (ASCII only, escaped slashes)."""
    return json.dumps(fields, separators=(",", ":")).replace("/", "\\/")


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    learner_id: str
    course_tag: str
    module_tag: str
    activity_tag: str | None
    timestamp: datetime

    @staticmethod
    def new(
        *,
        learner_id: str,
        course_tag: str,
        module_tag: str,
        activity_tag: str | None = None,
        timestamp: datetime | None = None,
    ) -> ProgressRecord:
        # The payload stores whole seconds; truncate so a record survives
        # an encode/decode cycle unchanged.
        ts = (timestamp or datetime.now(UTC)).replace(microsecond=0)
        return ProgressRecord(
            learner_id=learner_id,
            course_tag=course_tag,
            module_tag=module_tag,
            activity_tag=activity_tag,
            timestamp=ts,
        )

    @property
    def is_module_level(self) -> bool:
        return self.activity_tag is None


class _PayloadBase(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    course: str
    module: str
    log_time: str

    @field_validator("log_time")
    @classmethod
    def _check_log_time(cls, v: str) -> str:
        datetime.strptime(v, LOG_TIME_FORMAT)
        return v

    @property
    def timestamp(self) -> datetime:
        return datetime.strptime(self.log_time, LOG_TIME_FORMAT).replace(tzinfo=UTC)


class ActivityProgressPayload(_PayloadBase):
    activity: str


class ModuleProgressPayload(_PayloadBase):
    pass


ProgressPayload = ActivityProgressPayload | ModuleProgressPayload

# extra="forbid" on both variants makes the union unambiguous: a payload
# with an "activity" key can only be an ActivityProgressPayload.
_PAYLOAD_ADAPTER: TypeAdapter[ProgressPayload] = TypeAdapter(ProgressPayload)


def encode_payload(record: ProgressRecord) -> str:
    fields: dict[str, str] = {
        "course": record.course_tag,
        "module": record.module_tag,
    }
    if record.activity_tag is not None:
        fields["activity"] = record.activity_tag
    fields["log_time"] = record.timestamp.astimezone(UTC).strftime(LOG_TIME_FORMAT)
    return dump_json(fields)


def decode_payload(value: str) -> ProgressPayload:
    """Parse a stored payload.  Raises pydantic.ValidationError if corrupt."""
    return _PAYLOAD_ADAPTER.validate_json(value)


def decode_record(learner_id: str, value: str) -> ProgressRecord:
    payload = decode_payload(value)
    return ProgressRecord(
        learner_id=learner_id,
        course_tag=payload.course,
        module_tag=payload.module,
        activity_tag=(
            payload.activity if isinstance(payload, ActivityProgressPayload) else None
        ),
        timestamp=payload.timestamp,
    )
