"""Tests for LearnerProgressService writes and reads."""

from __future__ import annotations

import asyncio

import pytest
from prometheus_client import REGISTRY

from app.models.learner import Learner
from app.repos.curriculum_repo import InMemoryCurriculumRepo
from app.repos.progress_repo import ProgressRepository
from app.repos.triple_store import InMemoryTripleStore, StoreUnavailableError
from app.services.learner_progress import LearnerProgressService
from tests.conftest import make_repository, seed_course

ADA = Learner(learner_id="ada", roles=frozenset({"user"}))
ADMIN = Learner(learner_id="root", roles=frozenset({"admin"}))


@pytest.fixture
def curriculum() -> InMemoryCurriculumRepo:
    repo = InMemoryCurriculumRepo()
    seed_course(repo, "c1", {"m1": ["a1", "a2"], "m2": ["a3"]})
    seed_course(repo, "c2", {"m9": ["a9"]})
    return repo


@pytest.fixture
def repository() -> ProgressRepository:
    return make_repository()


@pytest.fixture
def service(
    repository: ProgressRepository, curriculum: InMemoryCurriculumRepo
) -> LearnerProgressService:
    return LearnerProgressService(repository, curriculum)


def _writes(result: str) -> float:
    return REGISTRY.get_sample_value("progress_writes_total", {"result": result}) or 0.0


# ---- activity writes ----


def test_records_activity_completion(
    service: LearnerProgressService, repository: ProgressRepository
) -> None:
    assert asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a1"))
    stored = asyncio.run(repository.find_one("ada", "c1", "m1", "a1"))
    assert stored is not None
    assert stored.timestamp.microsecond == 0


def test_second_activity_write_is_a_noop(
    service: LearnerProgressService, repository: ProgressRepository
) -> None:
    before = _writes("duplicate")
    assert asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a1"))
    assert not asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a1"))
    assert len(asyncio.run(repository.find("c1"))) == 1
    assert _writes("duplicate") - before == 1


def test_activity_outside_module_is_rejected_without_write(
    service: LearnerProgressService, repository: ProgressRepository
) -> None:
    before = _writes("rejected")
    assert not asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a3"))
    assert asyncio.run(repository.find("c1")) == []
    assert _writes("rejected") - before == 1


@pytest.mark.parametrize(
    ("course", "module", "activity"),
    [
        ("c1", "m9", "a9"),  # module of another course
        ("nope", "m1", "a1"),  # unknown course
        ("c1", "nope", "a1"),  # unknown module
        ("c1", "m1", "nope"),  # unknown activity
    ],
)
def test_units_outside_curriculum_are_rejected(
    service: LearnerProgressService,
    repository: ProgressRepository,
    course: str,
    module: str,
    activity: str,
) -> None:
    assert not asyncio.run(
        service.record_activity_completion(ADA, course, module, activity)
    )
    assert asyncio.run(repository.find(course)) == []


def test_dangling_activity_tag_in_module_is_rejected(
    curriculum: InMemoryCurriculumRepo, repository: ProgressRepository
) -> None:
    seed_course(curriculum, "c3", {"m3": ["a3x"]})
    curriculum._activities.pop("a3x")
    service = LearnerProgressService(repository, curriculum)
    assert not asyncio.run(service.record_activity_completion(ADA, "c3", "m3", "a3x"))


# ---- module writes ----


def test_records_module_completion_once(
    service: LearnerProgressService, repository: ProgressRepository
) -> None:
    assert asyncio.run(service.record_module_completion(ADA, "c1", "m2"))
    assert not asyncio.run(service.record_module_completion(ADA, "c1", "m2"))
    stored = asyncio.run(repository.find("c1"))
    assert len(stored) == 1
    assert stored[0].is_module_level


def test_module_record_does_not_block_activity_record(
    service: LearnerProgressService,
) -> None:
    assert asyncio.run(service.record_module_completion(ADA, "c1", "m1"))
    assert asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a1"))


def test_module_outside_course_is_rejected(service: LearnerProgressService) -> None:
    assert not asyncio.run(service.record_module_completion(ADA, "c1", "m9"))


# ---- admin policy ----


def test_admin_progress_is_not_tracked_by_default(
    service: LearnerProgressService, repository: ProgressRepository
) -> None:
    before = _writes("excluded")
    assert not asyncio.run(service.record_activity_completion(ADMIN, "c1", "m1", "a1"))
    assert asyncio.run(repository.find("c1")) == []
    assert _writes("excluded") - before == 1


def test_admin_progress_tracked_when_enabled(
    repository: ProgressRepository, curriculum: InMemoryCurriculumRepo
) -> None:
    service = LearnerProgressService(
        repository, curriculum, save_progress_for_admins=True
    )
    assert asyncio.run(service.record_activity_completion(ADMIN, "c1", "m1", "a1"))


def test_structure_is_checked_before_admin_policy(
    service: LearnerProgressService,
) -> None:
    before = _writes("rejected")
    assert not asyncio.run(service.record_activity_completion(ADMIN, "c1", "m1", "a3"))
    assert _writes("rejected") - before == 1


# ---- reads ----


def test_get_learner_unit_progress(service: LearnerProgressService) -> None:
    asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a2"))
    found = asyncio.run(service.get_learner_unit_progress("ada", "c1", "m1", "a2"))
    assert found is not None
    assert found.activity_tag == "a2"
    assert asyncio.run(service.get_learner_unit_progress("ada", "c1", "m1")) is None
    assert asyncio.run(service.get_learner_unit_progress("bob", "c1", "m1", "a2")) is None


# ---- store outage ----


class _DownStore(InMemoryTripleStore):
    async def query(self, *args, **kwargs):  # type: ignore[override]
        raise StoreUnavailableError("connection refused")


def test_store_outage_propagates(curriculum: InMemoryCurriculumRepo) -> None:
    service = LearnerProgressService(
        ProgressRepository(_DownStore(), "urn:test"), curriculum
    )
    with pytest.raises(StoreUnavailableError):
        asyncio.run(service.record_activity_completion(ADA, "c1", "m1", "a1"))
