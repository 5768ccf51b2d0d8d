"""Face embedding models.

Implementations: AuraFace v1 (default), ArcFace w600k_r50 (opt-in), both run
through ONNX Runtime.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import cv2
import numpy as np

from faceentry.core.errors import ModelUnavailableError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from faceentry.ml.model_manager import ModelManager

logger = logging.getLogger(__name__)


class FaceEmbedder(Protocol):
    """Protocol for face recognition (embedding) models."""

    @property
    def input_size(self) -> int:
        """Side length of the square face crop the model expects."""
        ...

    @property
    def embedding_dim(self) -> int:
        """Return the embedding dimensionality (e.g., 512)."""
        ...

    def embed(self, face: NDArray[np.uint8]) -> NDArray[np.float32]:
        """Compute the raw (unnormalized) embedding of one BGR face crop."""
        ...


class OnnxFaceEmbedder:
    """ArcFace-style embedder: 112x112 RGB input scaled to [-1, 1]."""

    def __init__(self, model_manager: ModelManager, model_name: str) -> None:
        try:
            spec = model_manager.get_spec(model_name)
            self._session = model_manager.get_session(model_name)
        except Exception as exc:
            raise ModelUnavailableError(f"Failed to load embedding model '{model_name}': {exc}") from exc

        self._model_name = model_name
        self._input_size = spec.input_size
        self._embedding_dim = spec.embedding_dim
        self._input_name = self._session.get_inputs()[0].name
        logger.info("Embedding model %s ready (%d-d)", model_name, self._embedding_dim)

    @property
    def input_size(self) -> int:
        return self._input_size

    @property
    def embedding_dim(self) -> int:
        return self._embedding_dim

    def embed(self, face: NDArray[np.uint8]) -> NDArray[np.float32]:
        blob = self._to_blob(face)
        try:
            outputs = self._session.run(None, {self._input_name: blob})
        except Exception as exc:
            raise ModelUnavailableError(f"Embedding model '{self._model_name}' failed: {exc}") from exc
        embedding = np.asarray(outputs[0], dtype=np.float32).reshape(-1)
        logger.debug("Generated %d-dimensional face embedding", embedding.shape[0])
        return embedding

    def _to_blob(self, face: NDArray[np.uint8]) -> NDArray[np.float32]:
        if face.shape[:2] != (self._input_size, self._input_size):
            face = cv2.resize(face, (self._input_size, self._input_size))
        rgb = cv2.cvtColor(face, cv2.COLOR_BGR2RGB).astype(np.float32)
        rgb = (rgb - 127.5) / 127.5
        return np.ascontiguousarray(rgb.transpose(2, 0, 1)[np.newaxis, ...])
