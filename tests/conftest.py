from __future__ import annotations

import sys
from collections.abc import Mapping, Sequence
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import curriculum_repo, learner_directory, triple_store
from app.core.config import DEFAULT_PROGRESS_PREDICATE
from app.main import app
from app.models.course import ActivityDefinition, CourseDefinition, ModuleDefinition
from app.models.progress import ProgressRecord
from app.repos.curriculum_repo import InMemoryCurriculumRepo
from app.repos.progress_repo import ProgressRepository
from app.repos.triple_store import InMemoryTripleStore
from app.services import token_service
from app.services.cache import cache_service

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_triple_store() -> None:
    """Drop every stored triple between tests."""
    if hasattr(triple_store, "_triples"):
        triple_store._triples.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_curriculum() -> None:
    curriculum_repo.clear()
    learner_directory.clear()


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    """Token with admin role."""
    return mint_token(username="test-admin", roles=["admin"])


# ---------------------------------------------------------------------------
# Curriculum and progress helpers
# ---------------------------------------------------------------------------


def seed_course(
    repo: InMemoryCurriculumRepo,
    course_tag: str,
    modules: Mapping[str, Sequence[str]],
    **course_flags: bool,
) -> CourseDefinition:
    """Register a course whose modules and activities are given in order.

    seed_course(repo, "c1", {"m1": ["a1", "a2"], "m2": ["a3"]})
    """
    for module_tag, activity_tags in modules.items():
        for activity_tag in activity_tags:
            repo.add_activity(
                ActivityDefinition(tag=activity_tag, title=activity_tag.upper())
            )
        repo.add_module(
            ModuleDefinition(
                tag=module_tag,
                title=module_tag.upper(),
                activity_tags=tuple(activity_tags),
            )
        )
    course = CourseDefinition(
        tag=course_tag,
        title=course_tag.upper(),
        module_tags=tuple(modules),
        **course_flags,
    )
    repo.add_course(course)
    return course


def make_repository(
    store: InMemoryTripleStore | None = None,
) -> ProgressRepository:
    return ProgressRepository(store or InMemoryTripleStore(), DEFAULT_PROGRESS_PREDICATE)


def record(
    learner_id: str,
    course_tag: str,
    module_tag: str,
    activity_tag: str | None = None,
) -> ProgressRecord:
    return ProgressRecord.new(
        learner_id=learner_id,
        course_tag=course_tag,
        module_tag=module_tag,
        activity_tag=activity_tag,
    )
