"""Progress dashboards: who finished what, per course and per module.

GET /v1/dashboard/courses/{course_tag}
    course partition + one partition per module, in course order
GET /v1/dashboard/courses/{course_tag}/modules/{module_tag}
    module partition + one partition per activity, in module order

Both are read-through cached (see app.services.cache) and reserved to
administrators.  If the course's records cannot be fetched the response
is a 503 "no data available", never a partial dashboard.

A completion recorded while a dashboard is being computed invalidates the
course before that computation finishes; the result is then returned but
not stored, so the stale payload cannot outlive the request.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import get_dashboard_service, require_dashboard_access
from app.core.config import SETTINGS
from app.core.metrics import CACHE_OPERATIONS
from app.models.completion import CourseDashboard, ModuleDashboard, UnitCompletion
from app.models.course import Course, Module
from app.models.learner import Learner, LearnerEntry
from app.repos.triple_store import StoreUnavailableError
from app.services.cache import (
    cache_service,
    course_generation,
    dashboard_cache_key,
)
from app.services.curriculum import CurriculumError, UnitNotFoundError
from app.services.dashboard import ProgressDashboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/dashboard", tags=["dashboard"])


class ActivityOut(BaseModel):
    tag: str
    title: str


class ModuleOut(BaseModel):
    tag: str
    title: str
    active: bool
    activities: list[ActivityOut]

    @staticmethod
    def from_module(module: Module) -> ModuleOut:
        return ModuleOut(
            tag=module.tag,
            title=module.title,
            active=module.active,
            activities=[ActivityOut(tag=a.tag, title=a.title) for a in module.activities],
        )


class CourseOut(BaseModel):
    tag: str
    title: str
    activities_scripted: bool
    modules_scripted: bool
    modules: list[ModuleOut]

    @staticmethod
    def from_course(course: Course) -> CourseOut:
        return CourseOut(
            tag=course.tag,
            title=course.title,
            activities_scripted=course.activities_scripted,
            modules_scripted=course.modules_scripted,
            modules=[ModuleOut.from_module(m) for m in course.modules],
        )


class UnitCompletionOut(BaseModel):
    unit_tag: str
    finished: list[str]
    not_finished: list[str]

    @staticmethod
    def from_completion(stat: UnitCompletion) -> UnitCompletionOut:
        return UnitCompletionOut(
            unit_tag=stat.unit_tag,
            finished=list(stat.finished),
            not_finished=list(stat.not_finished),
        )


class LearnerEntryOut(BaseModel):
    learner_id: str
    display_name: str
    is_placeholder: bool


class CourseDashboardOut(BaseModel):
    course: CourseOut
    course_stat: UnitCompletionOut
    module_stats: list[UnitCompletionOut]
    learners: list[LearnerEntryOut]

    @staticmethod
    def from_dashboard(dashboard: CourseDashboard) -> CourseDashboardOut:
        return CourseDashboardOut(
            course=CourseOut.from_course(dashboard.course),
            course_stat=UnitCompletionOut.from_completion(dashboard.course_stat),
            module_stats=[
                UnitCompletionOut.from_completion(s)
                for s in dashboard.module_stats.values()
            ],
            learners=_learners_out(dashboard.learners.values()),
        )


class ModuleDashboardOut(BaseModel):
    course: CourseOut
    module: ModuleOut
    module_stat: UnitCompletionOut
    activity_stats: list[UnitCompletionOut]
    learners: list[LearnerEntryOut]

    @staticmethod
    def from_dashboard(dashboard: ModuleDashboard) -> ModuleDashboardOut:
        return ModuleDashboardOut(
            course=CourseOut.from_course(dashboard.course),
            module=ModuleOut.from_module(dashboard.module),
            module_stat=UnitCompletionOut.from_completion(dashboard.module_stat),
            activity_stats=[
                UnitCompletionOut.from_completion(s)
                for s in dashboard.activity_stats.values()
            ],
            learners=_learners_out(dashboard.learners.values()),
        )


def _learners_out(entries: Iterable[LearnerEntry]) -> list[LearnerEntryOut]:
    return [
        LearnerEntryOut(
            learner_id=e.learner_id,
            display_name=e.display_name,
            is_placeholder=e.is_placeholder,
        )
        for e in entries
    ]


async def _read_through(
    course_tag: str,
    cache_key: str,
    compute: Callable[[], Awaitable[BaseModel]],
) -> str:
    """Return the cached JSON for cache_key, computing and storing it on a miss."""
    cached = await cache_service.get(cache_key)
    if cached is not None:
        CACHE_OPERATIONS.labels(operation="hit").inc()
        return cached
    CACHE_OPERATIONS.labels(operation="miss").inc()

    generation = course_generation(course_tag)
    try:
        body = (await compute()).model_dump_json()
    except UnitNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from None
    except StoreUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No data available for this course",
        ) from None
    except CurriculumError:
        logger.exception("Curriculum inconsistency for %s", cache_key)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Curriculum is inconsistent",
        ) from None

    if generation != course_generation(course_tag):
        logger.debug("Course %s changed during computation, not caching", course_tag)
    elif SETTINGS.dashboard_cache_ttl > 0:
        await cache_service.set(cache_key, body, SETTINGS.dashboard_cache_ttl)
    return body


@router.get("/courses/{course_tag}", response_model=CourseDashboardOut)
async def get_course_dashboard(
    course_tag: str,
    _learner: Annotated[Learner, Depends(require_dashboard_access)],
    service: Annotated[ProgressDashboardService, Depends(get_dashboard_service)],
) -> CourseDashboardOut:
    async def compute() -> CourseDashboardOut:
        return CourseDashboardOut.from_dashboard(
            await service.course_dashboard(course_tag)
        )

    body = await _read_through(course_tag, dashboard_cache_key(course_tag), compute)
    return CourseDashboardOut.model_validate_json(body)


@router.get(
    "/courses/{course_tag}/modules/{module_tag}",
    response_model=ModuleDashboardOut,
)
async def get_module_dashboard(
    course_tag: str,
    module_tag: str,
    _learner: Annotated[Learner, Depends(require_dashboard_access)],
    service: Annotated[ProgressDashboardService, Depends(get_dashboard_service)],
) -> ModuleDashboardOut:
    async def compute() -> ModuleDashboardOut:
        return ModuleDashboardOut.from_dashboard(
            await service.module_dashboard(course_tag, module_tag)
        )

    body = await _read_through(
        course_tag, dashboard_cache_key(course_tag, module_tag), compute
    )
    return ModuleDashboardOut.model_validate_json(body)
