"""FaceEntry service: the operations exposed to the HTTP layer.

Ties the image pipeline to the matching core. Every method is synchronous
and may block on model inference or disk I/O; the API runs them on the
worker pool.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from faceentry.core.enrollment import EnrollmentService, validate_identity
from faceentry.core.matcher import MatchEngine

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from faceentry.core.matcher import Match
    from faceentry.core.store import FaceStore

logger = logging.getLogger(__name__)


class EmbeddingPipeline(Protocol):
    """Anything that turns image bytes into one normalized face embedding."""

    def embed_image(self, image_bytes: bytes) -> NDArray[np.float32]: ...


class FaceEntryService:
    def __init__(
        self,
        pipeline: EmbeddingPipeline,
        store: FaceStore,
        threshold: float,
        embedding_dim: int = 0,
    ) -> None:
        self._pipeline = pipeline
        self._store = store
        self._engine = MatchEngine(threshold)
        self._enrollment = EnrollmentService(store, embedding_dim)

    @property
    def threshold(self) -> float:
        return self._engine.threshold

    def enroll(self, identity: str, image_bytes: bytes) -> str:
        """Register the face in ``image_bytes`` under ``identity``.

        The identity is checked before the image is processed so an empty
        name never costs a model run.
        """
        name = validate_identity(identity)
        logger.info("Registering face with ID: %s", name)
        embedding = self._pipeline.embed_image(image_bytes)
        return self._enrollment.enroll(name, embedding)

    def recognize(self, image_bytes: bytes) -> Match | None:
        logger.info("Attempting to recognize face")
        embedding = self._pipeline.embed_image(image_bytes)
        return self._engine.recognize(embedding, self._store.all())

    def count(self) -> int:
        return self._store.count()

    def clear_all(self) -> None:
        self._store.clear()
