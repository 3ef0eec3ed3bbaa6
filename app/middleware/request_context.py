"""Request context middleware — assigns a unique ID to every request.

Dashboard reads and completion writes from many learners interleave in
the logs; the request ID ties a "Skipping undecodable progress payload"
warning to the dashboard request that hit it.

The ID lives in a ContextVar (per asyncio task, not per thread) and the
LogRecord factory copies it onto every record at creation.  A filter on
the root logger would not do: logger filters never see records that
propagate up from app.* loggers.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


_base_record_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs) -> logging.LogRecord:
    record = _base_record_factory(*args, **kwargs)
    record.request_id = request_id_var.get()  # type: ignore[attr-defined]
    return record


# Install once; guard against module reloads.
if not getattr(_base_record_factory, "_adds_request_id", False):
    _record_factory._adds_request_id = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(_record_factory)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    An incoming X-Request-ID header is reused so a caller's trace ID flows
    through; otherwise a UUID is generated.  The ID is echoed back in the
    X-Request-ID response header.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
