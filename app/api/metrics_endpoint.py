"""Prometheus scrape endpoint.

Exposes the inventory in app.core.metrics (HTTP traffic, progress write
outcomes, skipped payloads, dashboard recomputations and cache hits) in
the text exposition format.  Restrict it to the scraper's network in
production; write outcomes per label are operational data.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
