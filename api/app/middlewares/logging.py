import logging
import os
import random
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from ..utils.responses import err
from .request_id import request_id_ctx

LOG_SAMPLE_2XX = float(os.getenv("LOG_SAMPLE_2XX", "1.0"))

logger = logging.getLogger("api")


def _tenant_from_path(path: str) -> str | None:
    parts = path.strip("/").split("/")
    if len(parts) >= 3 and parts[0] == "api" and parts[1] == "outlet":
        return parts[2]
    return None


class LoggingMiddleware(BaseHTTPMiddleware):
    """Emit one structured access log line per request with a request ID."""

    async def dispatch(self, request: Request, call_next):
        req_id = getattr(request.state, "request_id", None)
        token = None
        if not req_id:
            req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
            request.state.request_id = req_id
            # Fallback for contexts where RequestIdMiddleware is absent
            token = request_id_ctx.set(req_id)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            error_id = str(uuid.uuid4())
            logger.exception("unhandled_error error_id=%s", error_id)
            payload = err(500, "Internal Server Error")
            payload["error_id"] = error_id
            response = JSONResponse(payload, status_code=500)
        dur_ms = int((time.perf_counter() - start) * 1000)
        status = response.status_code

        extra = {
            "tenant": _tenant_from_path(request.url.path),
            "location": request.headers.get("X-Location-ID"),
            "user": request.headers.get("X-Staff-ID"),
            "route": request.url.path,
            "status": status,
            "latency_ms": dur_ms,
        }
        message = f"{request.method} {request.url.path} {status}"
        if status >= 500:
            logger.error(message, extra=extra)
        elif status >= 400:
            logger.warning(message, extra=extra)
        elif random.random() < LOG_SAMPLE_2XX:
            logger.info(message, extra=extra)

        response.headers["X-Request-ID"] = req_id
        if token is not None:
            request_id_ctx.reset(token)
        return response
