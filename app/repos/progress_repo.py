"""Progress records on top of the triple store.

Builds the LIKE patterns that select progress payloads and turns matching
triples back into ProgressRecords.  Patterns rely on the fixed payload key
order (see app.models.progress):

    course only       %"course":"C"%
    module level      %"course":"C","module":"M","log_time"%
    activity level    %"course":"C","module":"M","activity":"A"%

"module" immediately followed by "log_time" is what tells a module-level
record apart from an activity-level one in the same module.

Write idempotency is NOT enforced here: insert() always writes, and the
caller (LearnerProgressService) checks for an existing record first.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from app.core.metrics import PAYLOAD_DECODE_FAILURES
from app.models.progress import (
    ProgressRecord,
    decode_record,
    dump_json,
    encode_payload,
)
from app.repos.triple_store import MatchOp, TripleStore, escape_like

logger = logging.getLogger(__name__)


def _json_fragment(key: str, value: str) -> str:
    # Same escaping as encode_payload, then neutralize LIKE metacharacters.
    encoded = dump_json({key: value})
    return escape_like(encoded[1:-1])


def build_payload_pattern(
    course_tag: str,
    module_tag: str | None = None,
    activity_tag: str | None = None,
) -> str:
    if activity_tag is not None and module_tag is None:
        raise ValueError("activity_tag requires module_tag")

    pattern = "%" + _json_fragment("course", course_tag)
    if module_tag is None:
        return pattern + "%"

    pattern += "," + _json_fragment("module", module_tag)
    if activity_tag is None:
        return pattern + ',"log\\_time"%'
    return pattern + "," + _json_fragment("activity", activity_tag) + "%"


class ProgressRepository:
    def __init__(self, store: TripleStore, predicate: str) -> None:
        self._store = store
        self._predicate = predicate

    async def find(
        self,
        course_tag: str,
        *,
        learner_id: str | None = None,
        module_tag: str | None = None,
        activity_tag: str | None = None,
    ) -> list[ProgressRecord]:
        """Records for a course, optionally narrowed to a learner and a unit.

        With module_tag and no activity_tag only module-level records match.
        Raises StoreUnavailableError when the store cannot be reached.
        """
        pattern = build_payload_pattern(course_tag, module_tag, activity_tag)
        if learner_id is None:
            triples = await self._store.query(
                None,
                self._predicate,
                pattern,
                subject_op=MatchOp.LIKE,
                object_op=MatchOp.LIKE,
            )
        else:
            triples = await self._store.query(
                learner_id,
                self._predicate,
                pattern,
                subject_op=MatchOp.EQUALS,
                object_op=MatchOp.LIKE,
            )

        records: list[ProgressRecord] = []
        for triple in triples:
            try:
                record = decode_record(triple.resource, triple.value)
            except ValidationError as exc:
                # One unreadable payload must not take down a whole dashboard.
                PAYLOAD_DECODE_FAILURES.inc()
                logger.warning(
                    "Skipping undecodable progress payload for learner=%s: %d error(s)",
                    triple.resource,
                    exc.error_count(),
                    extra={"learner_id": triple.resource, "course_tag": course_tag},
                )
                continue
            if _matches_scope(record, course_tag, module_tag, activity_tag):
                records.append(record)
        return records

    async def find_one(
        self,
        learner_id: str,
        course_tag: str,
        module_tag: str,
        activity_tag: str | None = None,
    ) -> ProgressRecord | None:
        records = await self.find(
            course_tag,
            learner_id=learner_id,
            module_tag=module_tag,
            activity_tag=activity_tag,
        )
        return records[0] if records else None

    async def insert(self, record: ProgressRecord) -> None:
        await self._store.insert(
            record.learner_id, self._predicate, encode_payload(record)
        )


def _matches_scope(
    record: ProgressRecord,
    course_tag: str,
    module_tag: str | None,
    activity_tag: str | None,
) -> bool:
    if record.course_tag != course_tag:
        return False
    if module_tag is None:
        return True
    if record.module_tag != module_tag:
        return False
    return record.activity_tag == activity_tag
