"""Liveness and readiness checks.

/health  — is the process alive?  Always 200; `status` says whether a
           backing service is degraded.
/ready   — can this instance serve dashboards?  503 when the progress
           store (PostgreSQL) is configured but unreachable: without it
           every dashboard would answer "no data available".
"""

from __future__ import annotations

from fastapi import APIRouter, Response
from sqlalchemy import text

from app.db.engine import engine
from app.db.redis import redis_pool

router = APIRouter(tags=["health"])


async def _check_database() -> str:
    if engine is None:
        return "not_configured"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        return "degraded"
    return "ok"


async def _check_redis() -> str:
    if redis_pool is None:
        return "not_configured"
    try:
        await redis_pool.ping()  # type: ignore[misc]
    except Exception:
        return "degraded"
    return "ok"


@router.get("/health")
async def health() -> dict:
    checks = {
        "database": await _check_database(),
        "redis": await _check_redis(),
    }
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> Response:
    # Redis only backs the dashboard cache, so it does not gate readiness.
    if await _check_database() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
