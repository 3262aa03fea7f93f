"""
Exception handlers: map errors to the JSON error body of the blockchain
integration contract.

    {"errorMessage": "...", "errorCode": "notEnoughBalance", "data": {...}}

Request validation failures answer 400 with per-field messages:

    {"errorMessage": "The request is invalid", "modelErrors": {"operationId": ["..."]}}
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ripple_api.exceptions import RippleApiError
from ripple_api.logging import get_logger

logger = get_logger(__name__)

# Location prefixes FastAPI puts in front of field names.
_LOCATIONS = frozenset({"body", "path", "query", "header"})


def invalid_request(field: str, message: str, location: str = "path") -> RequestValidationError:
    """Validation error for a parameter checked inside a route."""
    return RequestValidationError(
        [{"loc": (location, field), "msg": message, "type": "value_error"}]
    )


def _model_errors(errors: Any) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    for error in errors:
        parts = [str(p) for p in error.get("loc", ()) if p not in _LOCATIONS]
        field = ".".join(parts) or "request"
        result.setdefault(field, []).append(error.get("msg", "invalid value"))
    return result


async def ripple_api_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RippleApiError)
    if exc.status_code >= 500:
        logger.warning(
            "request_failed",
            path=request.url.path,
            status=exc.status_code,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    return JSONResponse(
        status_code=400,
        content={
            "errorMessage": "The request is invalid",
            "modelErrors": _model_errors(exc.errors()),
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500, message hidden unless debug."""
    logger.error("unhandled_exception", path=request.url.path, exc_info=exc)
    message = str(exc) if request.app.state.settings.debug else "An unexpected error occurred."
    return JSONResponse(
        status_code=500,
        content={"errorMessage": message, "errorCode": None},
    )
