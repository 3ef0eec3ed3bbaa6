"""Curriculum lookup boundary.

Courses, modules and activities are content records owned by the CMS.
The progress services only need to look one up by tag; the in-memory
repo below is what dev, tests and CURRICULUM_PATH deployments use.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, Field

from app.models.course import ActivityDefinition, CourseDefinition, ModuleDefinition

logger = logging.getLogger(__name__)


class CurriculumRepo(Protocol):
    def get_course(self, tag: str) -> CourseDefinition | None: ...
    def get_module(self, tag: str) -> ModuleDefinition | None: ...
    def get_activity(self, tag: str) -> ActivityDefinition | None: ...


class InMemoryCurriculumRepo:
    def __init__(self) -> None:
        self._courses: dict[str, CourseDefinition] = {}
        self._modules: dict[str, ModuleDefinition] = {}
        self._activities: dict[str, ActivityDefinition] = {}

    def get_course(self, tag: str) -> CourseDefinition | None:
        return self._courses.get(tag)

    def get_module(self, tag: str) -> ModuleDefinition | None:
        return self._modules.get(tag)

    def get_activity(self, tag: str) -> ActivityDefinition | None:
        return self._activities.get(tag)

    def add_course(self, course: CourseDefinition) -> None:
        self._courses[course.tag] = course

    def add_module(self, module: ModuleDefinition) -> None:
        self._modules[module.tag] = module

    def add_activity(self, activity: ActivityDefinition) -> None:
        self._activities[activity.tag] = activity

    def clear(self) -> None:
        self._courses.clear()
        self._modules.clear()
        self._activities.clear()


# --- JSON seed file (CURRICULUM_PATH) ---


class _ActivityIn(BaseModel):
    tag: str
    title: str


class _ModuleIn(BaseModel):
    tag: str
    title: str
    active: bool = True
    activities: list[_ActivityIn] = Field(default_factory=list)


class _CourseIn(BaseModel):
    tag: str
    title: str
    activities_scripted: bool = True
    modules_scripted: bool = False
    modules: list[_ModuleIn] = Field(default_factory=list)


class CurriculumFile(BaseModel):
    courses: list[_CourseIn]


def load_curriculum_file(repo: InMemoryCurriculumRepo, path: str | Path) -> int:
    """Load nested course definitions from a JSON file.  Returns course count.

    Raises pydantic.ValidationError on a malformed file; a bad seed should
    stop startup rather than serve a half-loaded curriculum.
    """
    data = CurriculumFile.model_validate_json(Path(path).read_text(encoding="utf-8"))
    for course in data.courses:
        for module in course.modules:
            for activity in module.activities:
                repo.add_activity(ActivityDefinition(tag=activity.tag, title=activity.title))
            repo.add_module(
                ModuleDefinition(
                    tag=module.tag,
                    title=module.title,
                    activity_tags=tuple(a.tag for a in module.activities),
                    active=module.active,
                )
            )
        repo.add_course(
            CourseDefinition(
                tag=course.tag,
                title=course.title,
                module_tags=tuple(m.tag for m in course.modules),
                activities_scripted=course.activities_scripted,
                modules_scripted=course.modules_scripted,
            )
        )
    logger.info("Loaded %d course(s) from %s", len(data.courses), path)
    return len(data.courses)
