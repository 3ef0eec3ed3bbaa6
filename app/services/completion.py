"""Finished / not-finished learner sets for activities, modules and courses.

Completion is strict AND-composition:

    course finished  <=> every module of the course finished
    module finished  <=> every activity of the module finished

Each level is a chained intersection seeded by the first unit in sequence.
A module with no activities, or a course with no modules, has nobody
finished.  Completion order never matters, only set membership, and the
scripted (sequential navigation) flags play no part here.

The universe for "not finished" is every learner with at least one record
in the course, not every registered user.

CompletionAggregator is pure: no I/O, no mutation, same input same output.
"""

from __future__ import annotations

from collections.abc import Iterable

from app.models.completion import UnitCompletion
from app.models.course import Activity, Course, Module
from app.services.curriculum import CurriculumError
from app.services.progress_collection import ProgressCollection


def _chain_intersection(sets: Iterable[frozenset[str]]) -> frozenset[str]:
    finished: frozenset[str] | None = None
    for unit_finished in sets:
        finished = unit_finished if finished is None else finished & unit_finished
    return finished if finished is not None else frozenset()


class CompletionAggregator:
    def __init__(self, collection: ProgressCollection) -> None:
        self._collection = collection

    def _partition(self, unit_tag: str, finished: frozenset[str]) -> UnitCompletion:
        return UnitCompletion.partition(
            unit_tag, finished, self._collection.all_learner_ids()
        )

    def _module_finished(self, module: Module) -> frozenset[str]:
        return _chain_intersection(
            self._collection.finished_learner_ids(module.tag, activity.tag)
            for activity in module.activities
        )

    def _check_course(self, course: Course) -> None:
        if course.tag != self._collection.course_tag:
            raise CurriculumError(
                f"course {course.tag!r} does not match progress collection "
                f"for {self._collection.course_tag!r}"
            )

    def activity_completion(
        self, course: Course, module: Module, activity: Activity
    ) -> UnitCompletion:
        self._check_course(course)
        if not course.has_module(module.tag):
            raise CurriculumError(f"module {module.tag!r} is not in course {course.tag!r}")
        if not module.has_activity(activity.tag):
            raise CurriculumError(
                f"activity {activity.tag!r} is not in module {module.tag!r}"
            )
        return self._partition(
            activity.tag, self._collection.finished_learner_ids(module.tag, activity.tag)
        )

    def module_completion(self, course: Course, module: Module) -> UnitCompletion:
        self._check_course(course)
        if not course.has_module(module.tag):
            raise CurriculumError(f"module {module.tag!r} is not in course {course.tag!r}")
        return self._partition(module.tag, self._module_finished(module))

    def module_completions(self, course: Course) -> dict[str, UnitCompletion]:
        """Every module of the course, in course order."""
        return {m.tag: self.module_completion(course, m) for m in course.modules}

    def course_completion(
        self,
        course: Course,
        module_completions: dict[str, UnitCompletion] | None = None,
    ) -> UnitCompletion:
        """Course partition, chained over the modules' finished sets.

        Pass module_completions when they were already computed for the same
        collection to avoid recomputing them.
        """
        self._check_course(course)
        stats = module_completions or self.module_completions(course)
        missing = [m.tag for m in course.modules if m.tag not in stats]
        if missing:
            raise CurriculumError(f"no module completion computed for {missing!r}")
        finished = _chain_intersection(
            frozenset(stats[m.tag].finished) for m in course.modules
        )
        return self._partition(course.tag, finished)
