"""Resolve curriculum definitions into an ordered Course tree."""

from __future__ import annotations

import logging

from app.models.course import Activity, Course, Module
from app.repos.curriculum_repo import CurriculumRepo

logger = logging.getLogger(__name__)


class CurriculumError(Exception):
    """The curriculum contradicts itself or the progress data it is used with.

    Raised for dangling child tags and for units checked against the wrong
    parent.  Fatal for the current request only.
    """


def resolve_module(repo: CurriculumRepo, module_tag: str) -> Module | None:
    definition = repo.get_module(module_tag)
    if definition is None:
        return None

    activities: list[Activity] = []
    for activity_tag in definition.activity_tags:
        activity = repo.get_activity(activity_tag)
        if activity is None:
            raise CurriculumError(
                f"module {module_tag!r} references unknown activity {activity_tag!r}"
            )
        activities.append(Activity(tag=activity.tag, title=activity.title))

    return Module(
        tag=definition.tag,
        title=definition.title,
        activities=tuple(activities),
        active=definition.active,
    )


def resolve_course(repo: CurriculumRepo, course_tag: str) -> Course | None:
    """Build the course tree, or None when the course does not exist.

    Raises CurriculumError when a child tag cannot be resolved.
    """
    definition = repo.get_course(course_tag)
    if definition is None:
        return None

    modules: list[Module] = []
    for module_tag in definition.module_tags:
        module = resolve_module(repo, module_tag)
        if module is None:
            raise CurriculumError(
                f"course {course_tag!r} references unknown module {module_tag!r}"
            )
        modules.append(module)

    logger.debug("Resolved course %s with %d module(s)", course_tag, len(modules))
    return Course(
        tag=definition.tag,
        title=definition.title,
        modules=tuple(modules),
        activities_scripted=definition.activities_scripted,
        modules_scripted=definition.modules_scripted,
    )


class UnitNotFoundError(CurriculumError):
    """The requested course or module is not (or not in) the curriculum."""


def require_course(repo: CurriculumRepo, course_tag: str) -> Course:
    course = resolve_course(repo, course_tag)
    if course is None:
        raise UnitNotFoundError(f"unknown course {course_tag!r}")
    return course


def require_module(course: Course, module_tag: str) -> Module:
    module = course.get_module(module_tag)
    if module is None:
        raise UnitNotFoundError(
            f"module {module_tag!r} is not part of course {course.tag!r}"
        )
    return module
