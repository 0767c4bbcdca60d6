from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from pos_backend.core.request_context import request_scope

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id and emit one structured completion line."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        with request_scope(request_id):
            status_code = 500
            try:
                response = await call_next(request)
                status_code = response.status_code
                response.headers[REQUEST_ID_HEADER] = request_id
                return response
            finally:
                logger.log(
                    logging.WARNING if status_code >= 500 else logging.INFO,
                    "request completed",
                    extra={
                        "request_id": request_id,
                        "user_id": _extract_user_id(request),
                        "endpoint": _route_template(request),
                        "method": request.method,
                        "status_code": status_code,
                        "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                    },
                )


def _route_template(request: Request) -> str:
    # route template such as /api/modifiers/{modifier_id}; raw path when nothing matched
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _extract_user_id(request: Request) -> str | None:
    user = getattr(request.state, "user", None)
    user_id = getattr(user, "id", None)
    return str(user_id) if user_id is not None else None
