"""Per-course completion surface used by the progress dashboards.

Every call loads a fresh ProgressCollection (one store query for the whole
course) and runs the pure CompletionAggregator over it.  Nothing computed
here is kept between calls; caching of the rendered payload, if any, is
the HTTP layer's business.

Errors:
  StoreUnavailableError  the course's records could not be fetched; the
                         caller shows "no data" rather than a partial view
  UnitNotFoundError      unknown course, or module not in the course
  CurriculumError        curriculum references tags that do not resolve
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from app.core.metrics import DASHBOARD_COMPUTATIONS
from app.models.completion import CourseDashboard, ModuleDashboard, UnitCompletion
from app.models.learner import LearnerEntry
from app.repos.curriculum_repo import CurriculumRepo
from app.repos.learner_directory import LearnerDirectory
from app.repos.progress_repo import ProgressRepository
from app.services.completion import CompletionAggregator
from app.services.curriculum import require_course, require_module
from app.services.progress_collection import ProgressCollection

logger = logging.getLogger(__name__)


class ProgressDashboardService:
    def __init__(
        self,
        repository: ProgressRepository,
        curriculum: CurriculumRepo,
        directory: LearnerDirectory,
    ) -> None:
        self._repository = repository
        self._curriculum = curriculum
        self._directory = directory

    async def _aggregator(self, course_tag: str, scope: str) -> CompletionAggregator:
        collection = await ProgressCollection.load(self._repository, course_tag)
        DASHBOARD_COMPUTATIONS.labels(scope=scope).inc()
        return CompletionAggregator(collection)

    async def compute_course_completion(self, course_tag: str) -> UnitCompletion:
        course = require_course(self._curriculum, course_tag)
        aggregator = await self._aggregator(course_tag, "course")
        return aggregator.course_completion(course)

    async def compute_module_completion(
        self, course_tag: str, module_tag: str
    ) -> UnitCompletion:
        course = require_course(self._curriculum, course_tag)
        module = require_module(course, module_tag)
        aggregator = await self._aggregator(course_tag, "module")
        return aggregator.module_completion(course, module)

    async def course_dashboard(self, course_tag: str) -> CourseDashboard:
        course = require_course(self._curriculum, course_tag)
        aggregator = await self._aggregator(course_tag, "course")
        module_stats = aggregator.module_completions(course)
        course_stat = aggregator.course_completion(course, module_stats)
        return CourseDashboard(
            course=course,
            course_stat=course_stat,
            module_stats=module_stats,
            learners=self.learner_entries(
                course_stat.finished + course_stat.not_finished
            ),
        )

    async def module_dashboard(self, course_tag: str, module_tag: str) -> ModuleDashboard:
        course = require_course(self._curriculum, course_tag)
        module = require_module(course, module_tag)
        aggregator = await self._aggregator(course_tag, "module")
        module_stat = aggregator.module_completion(course, module)
        activity_stats = {
            activity.tag: aggregator.activity_completion(course, module, activity)
            for activity in module.activities
        }
        return ModuleDashboard(
            course=course,
            module=module,
            module_stat=module_stat,
            activity_stats=activity_stats,
            learners=self.learner_entries(
                module_stat.finished + module_stat.not_finished
            ),
        )

    def learner_entries(self, learner_ids: Iterable[str]) -> dict[str, LearnerEntry]:
        """Display entries keyed by learner id, in learner id order."""
        entries: dict[str, LearnerEntry] = {}
        for learner_id in sorted(set(learner_ids)):
            entry = self._directory.get_entry(learner_id)
            if entry is None:
                logger.debug("No directory entry for learner=%s", learner_id)
                entry = LearnerEntry.placeholder(learner_id)
            entries[learner_id] = entry
        return entries
