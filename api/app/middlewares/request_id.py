import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Context variable used by log filter to inject request id
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def _incoming_id(request: Request) -> str | None:
    value = request.headers.get("X-Request-ID")
    if value and _VALID_ID.match(value):
        return value
    return None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Ensure every request carries a request id.

    Client supplied ids are honoured only when short and free of odd
    characters; anything else is replaced by a fresh UUID.
    """

    async def dispatch(self, request: Request, call_next):
        req_id = _incoming_id(request) or str(uuid.uuid4())
        token = request_id_ctx.set(req_id)
        request.state.request_id = req_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = req_id
        return response
