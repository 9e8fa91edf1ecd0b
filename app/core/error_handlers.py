"""
Exception handlers translating deal room errors into JSON responses.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.errors import (
    ConcurrencyConflict,
    DealRoomError,
    NotFoundError,
    PermissionDenied,
    TransientIOError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConcurrencyConflict, status.HTTP_409_CONFLICT),
    (TransientIOError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: DealRoomError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(exc: DealRoomError) -> dict:
    return {
        "error": exc.code,
        "message": exc.message,
        "details": exc.details,
        "retryable": exc.retryable,
    }


async def deal_room_error_handler(request: Request, exc: DealRoomError):
    code = status_for(exc)
    log = logger.error if code >= 500 else logger.warning
    log(
        "deal room error",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "request_id": getattr(request.state, "request_id", None),
        },
    )
    return JSONResponse(status_code=code, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DealRoomError, deal_room_error_handler)
