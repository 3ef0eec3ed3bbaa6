from __future__ import annotations

from collections.abc import Mapping, Set
from dataclasses import dataclass

from app.models.course import Course, Module
from app.models.learner import LearnerEntry


@dataclass(frozen=True, slots=True)
class UnitCompletion:
    """Finished / not-finished partition of a course's learners for one unit.

    Both sequences are sorted by learner id so dashboards render the same
    way on every call over unchanged data.
    """

    unit_tag: str
    finished: tuple[str, ...]
    not_finished: tuple[str, ...]

    @staticmethod
    def partition(
        unit_tag: str, finished: Set[str], universe: Set[str]
    ) -> UnitCompletion:
        return UnitCompletion(
            unit_tag=unit_tag,
            finished=tuple(sorted(finished)),
            not_finished=tuple(sorted(universe - finished)),
        )


@dataclass(frozen=True, slots=True)
class CourseDashboard:
    course: Course
    course_stat: UnitCompletion
    module_stats: Mapping[str, UnitCompletion]
    learners: Mapping[str, LearnerEntry]


@dataclass(frozen=True, slots=True)
class ModuleDashboard:
    course: Course
    module: Module
    module_stat: UnitCompletion
    activity_stats: Mapping[str, UnitCompletion]
    learners: Mapping[str, LearnerEntry]
