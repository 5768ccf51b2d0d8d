"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from faceentry.api.errors import install_error_handlers
from faceentry.api.routes import router
from faceentry.config import Settings, get_settings
from faceentry.core.errors import ShapeMismatchError
from faceentry.core.store import FaceStore
from faceentry.ml.face_detector import HaarCascadeDetector
from faceentry.ml.face_recognizer import OnnxFaceEmbedder
from faceentry.ml.inference import InferencePool
from faceentry.ml.model_manager import OnnxModelManager
from faceentry.ml.pipeline import FacePipeline
from faceentry.service import FaceEntryService

logger = logging.getLogger(__name__)


def build_service(settings: Settings, model_manager: OnnxModelManager) -> FaceEntryService:
    """Load the models and the face database.

    Raises:
        ModelUnavailableError: If the detector or embedder cannot be loaded.
        ShapeMismatchError: If the configured dimension disagrees with the model.
    """
    detector = HaarCascadeDetector()
    embedder = OnnxFaceEmbedder(model_manager, settings.face_recognition_model)
    if settings.embedding_dim and settings.embedding_dim != embedder.embedding_dim:
        raise ShapeMismatchError(
            f"FACEENTRY_EMBEDDING_DIM={settings.embedding_dim} but {settings.face_recognition_model} "
            f"produces {embedder.embedding_dim}-d embeddings"
        )
    pipeline = FacePipeline(detector, embedder, settings.max_image_pixels)

    store = FaceStore(settings.store_path)
    store.load()

    return FaceEntryService(
        pipeline,
        store,
        threshold=settings.match_threshold,
        embedding_dim=settings.embedding_dim,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting FaceEntry (device=%s, model=%s, threshold=%.2f, store=%s)",
        settings.device,
        settings.face_recognition_model,
        settings.match_threshold,
        settings.store_path,
    )

    model_manager = OnnxModelManager(settings)
    app.state.model_manager = model_manager
    # Model failures propagate here and abort startup.
    app.state.service = build_service(settings, model_manager)
    app.state.inference_pool = InferencePool(settings)

    logger.info("FaceEntry ready (%d faces registered)", app.state.service.count())
    yield

    logger.info("Shutting down FaceEntry")
    app.state.inference_pool.shutdown()
    model_manager.shutdown()
    logger.info("FaceEntry shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="FaceEntry",
        description="Face registration and re-entry recognition API",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(application)
    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run("faceentry.main:app", host=settings.host, port=settings.port)
