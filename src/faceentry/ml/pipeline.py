"""Image -> embedding pipeline: decode, detect, crop, embed, normalize."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faceentry.core.embedding import normalize
from faceentry.core.errors import NoFaceDetectedError
from faceentry.ml.preprocessing import crop_face, decode_image

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from faceentry.ml.face_detector import FaceDetector
    from faceentry.ml.face_recognizer import FaceEmbedder

logger = logging.getLogger(__name__)


class FacePipeline:
    """Turns an uploaded image into one L2-normalized face embedding.

    When the detector reports several faces the first one is used.
    """

    def __init__(self, detector: FaceDetector, embedder: FaceEmbedder, max_image_pixels: int) -> None:
        self._detector = detector
        self._embedder = embedder
        self._max_image_pixels = max_image_pixels

    @property
    def embedding_dim(self) -> int:
        return self._embedder.embedding_dim

    def embed_image(self, image_bytes: bytes) -> NDArray[np.float32]:
        """Return the normalized embedding of the first face in ``image_bytes``.

        Raises:
            InvalidImageError: If the bytes cannot be decoded.
            NoFaceDetectedError: If no face is found.
            ModelUnavailableError: If the embedding model fails.
        """
        image = decode_image(image_bytes, self._max_image_pixels)

        boxes = self._detector.detect(image)
        if not boxes:
            raise NoFaceDetectedError()
        box = boxes[0]
        logger.info(
            "Detected %d face(s), using face at x=%d, y=%d, width=%d, height=%d",
            len(boxes),
            box.x,
            box.y,
            box.width,
            box.height,
        )

        face = crop_face(image, box, self._embedder.input_size)
        return normalize(self._embedder.embed(face))
