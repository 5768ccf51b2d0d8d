"""Translate domain errors into JSON error responses."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import status
from fastapi.responses import JSONResponse

from faceentry.core.errors import (
    FaceEntryError,
    InvalidIdentityError,
    InvalidImageError,
    ModelUnavailableError,
    NoFaceDetectedError,
    ShapeMismatchError,
    StorageError,
)

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[FaceEntryError], int] = {
    InvalidIdentityError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidImageError: status.HTTP_400_BAD_REQUEST,
    NoFaceDetectedError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ShapeMismatchError: status.HTTP_409_CONFLICT,
    ModelUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
    StorageError: status.HTTP_507_INSUFFICIENT_STORAGE,
}


def status_for(exc: FaceEntryError) -> int:
    for cls, code in ERROR_STATUS.items():
        if isinstance(exc, cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, detail: str, code: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": code})


async def face_entry_error_handler(request: Request, exc: FaceEntryError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return error_response(status_code, str(exc), exc.code)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FaceEntryError, face_entry_error_handler)  # type: ignore[arg-type]
