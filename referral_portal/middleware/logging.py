from __future__ import annotations

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("referrals.request")


def _route_template(request: Request) -> Optional[str]:
    # Set by the router once a route matched, e.g. "/referrals/{referral_id}".
    route = request.scope.get("route")
    return getattr(route, "path", None)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request, tagged with the matched route and the caller."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "request_completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "route": _route_template(request),
                "referral_id": request.path_params.get("referral_id"),
                "actor_id": getattr(request.state, "actor_id", None),
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
