from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.core.config import SETTINGS
from app.db.engine import async_session_factory
from app.models.learner import Learner
from app.repos.curriculum_repo import InMemoryCurriculumRepo
from app.repos.learner_directory import InMemoryLearnerDirectory
from app.repos.pg_triple_store import PgTripleStore
from app.repos.progress_repo import ProgressRepository
from app.repos.triple_store import InMemoryTripleStore, TripleStore
from app.services import token_service
from app.services.dashboard import ProgressDashboardService
from app.services.learner_progress import LearnerProgressService

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# --- Module-level collaborators ---
# The triple store follows DATABASE_URL like the engine does; curriculum
# and learner directory are external content, held in memory and seeded
# at startup (see app.main).

if async_session_factory is not None:
    triple_store: TripleStore = PgTripleStore(async_session_factory)
else:
    triple_store = InMemoryTripleStore()

curriculum_repo = InMemoryCurriculumRepo()
learner_directory = InMemoryLearnerDirectory()


def require_learner(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Learner:
    """Extract and validate the JWT bearer token. Returns the Learner."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    learner = Learner(
        learner_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for learner=%s roles=%s", learner.learner_id, learner.roles
    )
    return learner


def require_dashboard_access(
    learner: Annotated[Learner, Depends(require_learner)],
) -> Learner:
    """Dashboards are for administrators, unless ADMIN_AS_USER demotes them."""
    if not learner.is_admin() or SETTINGS.admin_as_user:
        logger.warning("Dashboard access denied: learner=%s", learner.learner_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reserved for administrators",
        )
    return learner


def get_progress_repository() -> ProgressRepository:
    return ProgressRepository(triple_store, SETTINGS.progress_predicate)


def get_learner_progress_service(
    repository: Annotated[ProgressRepository, Depends(get_progress_repository)],
) -> LearnerProgressService:
    return LearnerProgressService(
        repository,
        curriculum_repo,
        save_progress_for_admins=SETTINGS.save_progress_for_admins,
    )


def get_dashboard_service(
    repository: Annotated[ProgressRepository, Depends(get_progress_repository)],
) -> ProgressDashboardService:
    return ProgressDashboardService(repository, curriculum_repo, learner_directory)
