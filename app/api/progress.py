"""Learner progress endpoints.

Completion sequence:
  Client -> POST /v1/progress/courses/{c}/modules/{m}/activities/{a}/complete
  -> curriculum + policy + duplicate checks
  -> append progress triple
  -> invalidate dashboard cache for the course
  -> 200 {"recorded": true}

A refused write (unit not in curriculum, excluded admin, already recorded)
is still a 200 with {"recorded": false}: it is an expected outcome, not an
error.  Only a store outage turns into an error status (503, retryable).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import get_learner_progress_service, require_learner
from app.models.learner import Learner
from app.models.progress import ProgressRecord
from app.repos.triple_store import StoreUnavailableError
from app.services.cache import cache_service, invalidate_course_dashboards
from app.services.learner_progress import LearnerProgressService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class ProgressWriteOut(BaseModel):
    recorded: bool


class ProgressRecordOut(BaseModel):
    learner_id: str
    course_tag: str
    module_tag: str
    activity_tag: str | None
    completed_at: datetime

    @staticmethod
    def from_record(record: ProgressRecord) -> ProgressRecordOut:
        return ProgressRecordOut(
            learner_id=record.learner_id,
            course_tag=record.course_tag,
            module_tag=record.module_tag,
            activity_tag=record.activity_tag,
            completed_at=record.timestamp,
        )


def _store_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Progress store unavailable, retry later",
    )


async def _after_write(recorded: bool, course_tag: str) -> ProgressWriteOut:
    if recorded:
        # The dashboards for this course now miss a completion.
        await invalidate_course_dashboards(cache_service, course_tag)
    return ProgressWriteOut(recorded=recorded)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


@router.post(
    "/courses/{course_tag}/modules/{module_tag}/activities/{activity_tag}/complete",
    response_model=ProgressWriteOut,
)
async def complete_activity(
    course_tag: str,
    module_tag: str,
    activity_tag: str,
    learner: Annotated[Learner, Depends(require_learner)],
    service: Annotated[LearnerProgressService, Depends(get_learner_progress_service)],
) -> ProgressWriteOut:
    try:
        recorded = await service.record_activity_completion(
            learner, course_tag, module_tag, activity_tag
        )
    except StoreUnavailableError:
        raise _store_unavailable() from None
    return await _after_write(recorded, course_tag)


@router.post(
    "/courses/{course_tag}/modules/{module_tag}/complete",
    response_model=ProgressWriteOut,
)
async def complete_module(
    course_tag: str,
    module_tag: str,
    learner: Annotated[Learner, Depends(require_learner)],
    service: Annotated[LearnerProgressService, Depends(get_learner_progress_service)],
) -> ProgressWriteOut:
    try:
        recorded = await service.record_module_completion(
            learner, course_tag, module_tag
        )
    except StoreUnavailableError:
        raise _store_unavailable() from None
    return await _after_write(recorded, course_tag)


# ---------------------------------------------------------------------------
# Reads (the caller's own progress)
# ---------------------------------------------------------------------------


async def _get_own_progress(
    service: LearnerProgressService,
    learner: Learner,
    course_tag: str,
    module_tag: str,
    activity_tag: str | None,
) -> ProgressRecordOut:
    try:
        record = await service.get_learner_unit_progress(
            learner.learner_id, course_tag, module_tag, activity_tag
        )
    except StoreUnavailableError:
        raise _store_unavailable() from None
    if record is None:
        raise HTTPException(status_code=404, detail="no progress recorded")
    return ProgressRecordOut.from_record(record)


@router.get(
    "/courses/{course_tag}/modules/{module_tag}",
    response_model=ProgressRecordOut,
)
async def get_module_progress(
    course_tag: str,
    module_tag: str,
    learner: Annotated[Learner, Depends(require_learner)],
    service: Annotated[LearnerProgressService, Depends(get_learner_progress_service)],
) -> ProgressRecordOut:
    return await _get_own_progress(service, learner, course_tag, module_tag, None)


@router.get(
    "/courses/{course_tag}/modules/{module_tag}/activities/{activity_tag}",
    response_model=ProgressRecordOut,
)
async def get_activity_progress(
    course_tag: str,
    module_tag: str,
    activity_tag: str,
    learner: Annotated[Learner, Depends(require_learner)],
    service: Annotated[LearnerProgressService, Depends(get_learner_progress_service)],
) -> ProgressRecordOut:
    return await _get_own_progress(
        service, learner, course_tag, module_tag, activity_tag
    )
