"""Global error handlers mapping domain errors to JSON responses with a request_id."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from clubconnect.domain.errors import CoreError, RateLimitExceeded
from clubconnect.obs import logging as obs_logging
from clubconnect.obs import metrics

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "unauthenticated": 401,
    "forbidden": 403,
    "not_found": 404,
    "invalid_state": 409,
    "conflict": 409,
    "validation_failed": 422,
    "rate_limited": 429,
    "internal": 500,
}


def get_request_id(request: Request, default: str = "unknown") -> str:
    rid = getattr(request.state, "request_id", None) or obs_logging.current_request_id()
    return rid or default


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CoreError)
    async def core_error_handler(request: Request, exc: CoreError):  # type: ignore[override]
        status_code = STATUS_BY_KIND.get(exc.kind, 500)
        metrics.inc_domain_rejection(exc.kind, exc.reason)
        if status_code >= 500:
            logger.error("request_failed", exc_info=exc, extra={"reason": exc.reason})
        payload = exc.to_payload()
        payload["request_id"] = get_request_id(request)
        headers = None
        if isinstance(exc, RateLimitExceeded):
            headers = {"Retry-After": str(exc.retry_after_seconds)}
        return JSONResponse(status_code=status_code, content=payload, headers=headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
        payload = {"detail": exc.detail, "request_id": get_request_id(request)}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
        metrics.inc_domain_rejection("validation_failed", "request_validation")
        payload = {
            "kind": "validation_failed",
            "detail": "validation_error",
            "message": "The request is malformed or out of range.",
            "errors": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
                for error in exc.errors()
            ],
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=422, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
        logger.error("unhandled_exception", exc_info=exc)
        payload = {
            "kind": "internal",
            "detail": "internal_error",
            "message": "Something went wrong. Please try again later.",
            "request_id": get_request_id(request),
        }
        return JSONResponse(status_code=500, content=payload)
