"""Record and read a single learner's progress.

A completion write succeeds (returns True) only when all of these hold:

  1. the unit belongs to the claimed parents in the curriculum
  2. the learner is not excluded by policy (administrators, unless
     SAVE_PROGRESS_FOR_ADMINS is on)
  3. no record exists yet for (learner, course, module, activity)

Any failed condition is an expected outcome, reported as False with no
write, never as an exception.  Store outages still raise
StoreUnavailableError so the caller can retry.

Check-then-insert is not atomic: two racing requests can both pass (3)
and write twice.  Readers index records in sets, so the duplicate counts
once.
"""

from __future__ import annotations

import logging

from app.core.metrics import PROGRESS_WRITES
from app.models.learner import Learner
from app.models.progress import ProgressRecord
from app.repos.curriculum_repo import CurriculumRepo
from app.repos.progress_repo import ProgressRepository

logger = logging.getLogger(__name__)


class LearnerProgressService:
    def __init__(
        self,
        repository: ProgressRepository,
        curriculum: CurriculumRepo,
        *,
        save_progress_for_admins: bool = False,
    ) -> None:
        self._repository = repository
        self._curriculum = curriculum
        self._save_progress_for_admins = save_progress_for_admins

    async def record_activity_completion(
        self,
        learner: Learner,
        course_tag: str,
        module_tag: str,
        activity_tag: str,
    ) -> bool:
        if not self._activity_in_module(
            module_tag, activity_tag
        ) or not self._module_in_course(course_tag, module_tag):
            return self._reject(learner, course_tag, module_tag, activity_tag)
        return await self._record(learner, course_tag, module_tag, activity_tag)

    async def record_module_completion(
        self,
        learner: Learner,
        course_tag: str,
        module_tag: str,
    ) -> bool:
        if not self._module_in_course(course_tag, module_tag):
            return self._reject(learner, course_tag, module_tag, None)
        return await self._record(learner, course_tag, module_tag, None)

    async def get_learner_unit_progress(
        self,
        learner_id: str,
        course_tag: str,
        module_tag: str,
        activity_tag: str | None = None,
    ) -> ProgressRecord | None:
        return await self._repository.find_one(
            learner_id, course_tag, module_tag, activity_tag
        )

    # --- internals ---

    def _module_in_course(self, course_tag: str, module_tag: str) -> bool:
        course = self._curriculum.get_course(course_tag)
        return (
            course is not None
            and module_tag in course.module_tags
            and self._curriculum.get_module(module_tag) is not None
        )

    def _activity_in_module(self, module_tag: str, activity_tag: str) -> bool:
        module = self._curriculum.get_module(module_tag)
        return (
            module is not None
            and activity_tag in module.activity_tags
            and self._curriculum.get_activity(activity_tag) is not None
        )

    def _is_excluded(self, learner: Learner) -> bool:
        return learner.is_admin() and not self._save_progress_for_admins

    def _reject(
        self,
        learner: Learner,
        course_tag: str,
        module_tag: str,
        activity_tag: str | None,
    ) -> bool:
        PROGRESS_WRITES.labels(result="rejected").inc()
        logger.info(
            "Rejected progress for unit outside curriculum: %s/%s/%s",
            course_tag,
            module_tag,
            activity_tag or "-",
            extra=_context(learner, course_tag, module_tag, activity_tag),
        )
        return False

    async def _record(
        self,
        learner: Learner,
        course_tag: str,
        module_tag: str,
        activity_tag: str | None,
    ) -> bool:
        context = _context(learner, course_tag, module_tag, activity_tag)

        if self._is_excluded(learner):
            PROGRESS_WRITES.labels(result="excluded").inc()
            logger.debug("Not tracking progress for admin", extra=context)
            return False

        existing = await self._repository.find_one(
            learner.learner_id, course_tag, module_tag, activity_tag
        )
        if existing is not None:
            PROGRESS_WRITES.labels(result="duplicate").inc()
            logger.debug("Progress already recorded", extra=context)
            return False

        record = ProgressRecord.new(
            learner_id=learner.learner_id,
            course_tag=course_tag,
            module_tag=module_tag,
            activity_tag=activity_tag,
        )
        await self._repository.insert(record)
        PROGRESS_WRITES.labels(result="recorded").inc()
        logger.info(
            "Recorded progress %s/%s/%s",
            course_tag,
            module_tag,
            activity_tag or "-",
            extra=context,
        )
        return True


def _context(
    learner: Learner, course_tag: str, module_tag: str, activity_tag: str | None
) -> dict[str, str | None]:
    return {
        "learner_id": learner.learner_id,
        "course_tag": course_tag,
        "module_tag": module_tag,
        "activity_tag": activity_tag,
    }
