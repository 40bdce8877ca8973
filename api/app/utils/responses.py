from typing import Any, Dict

from fastapi.responses import JSONResponse

from ..domain import LifecycleError, NotFoundError, PersistenceError

CONFLICT_CODES = {"TABLE_OCCUPIED", "TABLE_UNAVAILABLE", "INVALID_TRANSITION"}


def ok(data: Any) -> Dict[str, Any]:
    """Return a success envelope."""
    return {"ok": True, "data": data}


def err(
    code: int | str,
    message: str,
    details: Dict[str, Any] | None = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Return an error envelope."""
    from ..middlewares.request_id import request_id_ctx

    error: Dict[str, Any] = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    if details:
        error["details"] = details

    return {"ok": False, "request_id": request_id_ctx.get(None), "error": error}


def status_for(exc: LifecycleError) -> int:
    """Map a lifecycle failure onto an HTTP status code."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, PersistenceError):
        return 503
    if exc.code in CONFLICT_CODES:
        return 409
    return 400


def lifecycle_error(exc: LifecycleError) -> JSONResponse:
    """Return the standard envelope for a lifecycle failure."""
    return JSONResponse(err(exc.code, exc.message), status_code=status_for(exc))
