from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.dashboard import router as dashboard_router
from app.api.dependencies import curriculum_repo, learner_directory
from app.api.health import router as health_router
from app.api.metrics_endpoint import router as metrics_router
from app.api.progress import router as progress_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.db.redis import lifespan_redis
from app.middleware.metrics import MetricsMiddleware
from app.middleware.request_context import RequestContextMiddleware
from app.repos.curriculum_repo import load_curriculum_file
from app.repos.learner_directory import load_learner_file

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order (LIFO) even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            if SETTINGS.curriculum_path:
                load_curriculum_file(curriculum_repo, SETTINGS.curriculum_path)
            else:
                logger.warning(
                    "CURRICULUM_PATH not set: every completion will be rejected "
                    "until courses are loaded"
                )
            if SETTINGS.learners_path:
                load_learner_file(learner_directory, SETTINGS.learners_path)
            else:
                logger.info("LEARNERS_PATH not set: dashboards show learner ids")
            yield


# only app setup + router registration

app = FastAPI(
    title="progress-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware execution order: last-added runs first (outermost layer).
# RequestContext (outermost) → Metrics → CORS → route handler
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(progress_router)
app.include_router(dashboard_router)

logger.info(
    "progress-service started  env=%s log_level=%s port=%d docs=%s predicate=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.is_dev else "off",
    SETTINGS.progress_predicate,
)
