"""Response envelope and translation of feed engine errors to HTTP statuses."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from services.errors import (
    ConflictingEngagementState,
    FeedEngineError,
    FeedUnavailable,
    InvalidQuery,
    ResourceNotFound,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    InvalidQuery: 400,
    ResourceNotFound: 404,
    FeedUnavailable: 503,
    ConflictingEngagementState: 500,
}


def success_response(data: Any, message: Optional[str] = None) -> dict:
    return {"success": True, "data": data, "message": message}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "data": None, "message": message},
    )


def status_for_error(exc: FeedEngineError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def _feed_engine_error_handler(request: Request, exc: FeedEngineError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("Feed engine error on %s %s: %s", request.method, request.url.path, exc)
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return error_response(status_code, str(exc))


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    )
    return error_response(400, details or "Invalid request.")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FeedEngineError, _feed_engine_error_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
