"""API route definitions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated, TypeVar

from fastapi import APIRouter, Depends, Form, HTTPException, Request, UploadFile, status

from faceentry.api.middleware import verify_api_key
from faceentry.api.schemas import (
    CountResponse,
    EnrollResponse,
    ErrorResponse,
    HealthResponse,
    RecognizeResponse,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from faceentry.config import Settings
    from faceentry.ml.inference import InferencePool
    from faceentry.ml.model_manager import ModelManager
    from faceentry.service import FaceEntryService

logger = logging.getLogger(__name__)

T = TypeVar("T")

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

_ERRORS = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_413_REQUEST_ENTITY_TOO_LARGE: {"model": ErrorResponse},
    status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


def _get_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def _get_inference_pool(request: Request) -> InferencePool:
    pool: InferencePool = request.app.state.inference_pool
    return pool


def _get_service(request: Request) -> FaceEntryService:
    service: FaceEntryService = request.app.state.service
    return service


def _get_model_manager(request: Request) -> ModelManager:
    manager: ModelManager = request.app.state.model_manager
    return manager


async def _run(request: Request, func: Callable[..., T], *args: object) -> T:
    try:
        return await _get_inference_pool(request).run(func, *args)
    except TimeoutError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Server busy, try again later",
        ) from None


async def _read_upload(request: Request, file: UploadFile) -> bytes:
    limit = _get_settings(request).max_file_size
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {limit} bytes",
        )
    logger.debug("Received %s (%d bytes)", file.filename, len(data))
    return data


@router.post(
    "/faces",
    response_model=EnrollResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**_ERRORS, status.HTTP_507_INSUFFICIENT_STORAGE: {"model": ErrorResponse}},
    summary="Register a face under a name",
)
async def enroll_face(
    request: Request,
    file: UploadFile,
    name: Annotated[str, Form()] = "",
) -> EnrollResponse:
    """Detect the face in the uploaded image and store its embedding under ``name``.

    Registering an existing name replaces its previous face.
    """
    service = _get_service(request)
    data = await _read_upload(request, file)
    stored = await _run(request, service.enroll, name, data)
    return EnrollResponse(name=stored, registered=service.count())


@router.post(
    "/faces/recognize",
    response_model=RecognizeResponse,
    responses=_ERRORS,
    summary="Check whether a face has been registered",
)
async def recognize_face(request: Request, file: UploadFile) -> RecognizeResponse:
    """Find the registered face closest to the uploaded one."""
    service = _get_service(request)
    data = await _read_upload(request, file)
    match = await _run(request, service.recognize, data)
    if match is None:
        return RecognizeResponse(matched=False, threshold=service.threshold)
    return RecognizeResponse(
        matched=True,
        name=match.identity,
        distance=match.distance,
        threshold=service.threshold,
    )


@router.get(
    "/faces/count",
    response_model=CountResponse,
    summary="Number of registered faces",
)
async def count_faces(request: Request) -> CountResponse:
    return CountResponse(count=_get_service(request).count())


@router.delete(
    "/faces",
    response_model=CountResponse,
    responses={status.HTTP_507_INSUFFICIENT_STORAGE: {"model": ErrorResponse}},
    summary="Remove every registered face",
)
async def clear_faces(request: Request) -> CountResponse:
    service = _get_service(request)
    await _run(request, service.clear_all)
    return CountResponse(count=service.count())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    settings = _get_settings(request)
    pool = _get_inference_pool(request)
    return HealthResponse(
        status="ok",
        device=settings.device,
        model=settings.face_recognition_model,
        registered_faces=_get_service(request).count(),
        models_loaded=_get_model_manager(request).get_loaded_models(),
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )
