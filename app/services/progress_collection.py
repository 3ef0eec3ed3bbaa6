"""In-memory index over every progress record of one course.

Loaded with a single bulk find() per course; every per-unit question is
then answered from memory.  Sets make duplicate records (two racing writes
for the same unit) collapse into one completion.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from app.models.progress import ProgressRecord
from app.repos.progress_repo import ProgressRepository

logger = logging.getLogger(__name__)

_UnitKey = tuple[str, str | None]  # (module_tag, activity_tag or None)


@dataclass(frozen=True, slots=True)
class ProgressCollection:
    course_tag: str
    _learner_ids: frozenset[str]
    _finished: Mapping[_UnitKey, frozenset[str]]

    @staticmethod
    def from_records(
        course_tag: str, records: Iterable[ProgressRecord]
    ) -> ProgressCollection:
        learner_ids: set[str] = set()
        finished: defaultdict[_UnitKey, set[str]] = defaultdict(set)
        for record in records:
            if record.course_tag != course_tag:
                logger.debug(
                    "Ignoring record for course %s while indexing %s",
                    record.course_tag,
                    course_tag,
                )
                continue
            learner_ids.add(record.learner_id)
            finished[(record.module_tag, record.activity_tag)].add(record.learner_id)

        return ProgressCollection(
            course_tag=course_tag,
            _learner_ids=frozenset(learner_ids),
            _finished=MappingProxyType(
                {key: frozenset(ids) for key, ids in finished.items()}
            ),
        )

    @staticmethod
    async def load(repository: ProgressRepository, course_tag: str) -> ProgressCollection:
        """One store round-trip for all learners of the course."""
        records = await repository.find(course_tag)
        collection = ProgressCollection.from_records(course_tag, records)
        logger.debug(
            "Loaded %d record(s) for %d learner(s) in course %s",
            len(records),
            len(collection._learner_ids),
            course_tag,
            extra={"course_tag": course_tag},
        )
        return collection

    def all_learner_ids(self) -> frozenset[str]:
        """Learners with at least one record in the course."""
        return self._learner_ids

    def finished_learner_ids(
        self, module_tag: str, activity_tag: str | None = None
    ) -> frozenset[str]:
        """Learners with a record for the unit.

        activity_tag=None asks for module-level records, which are only a
        hint; module completion is computed from the activities.
        """
        return self._finished.get((module_tag, activity_tag), frozenset())
