"""Face detection.

The default implementation is OpenCV's frontal-face Haar cascade, which ships
with the ``opencv-python`` wheels.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import cv2

from faceentry.core.errors import ModelUnavailableError

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

DEFAULT_CASCADE = "haarcascade_frontalface_default.xml"


@dataclass(frozen=True)
class FaceBox:
    """Face bounding box in pixel coordinates."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class DetectionPass:
    scale_factor: float
    min_neighbors: int
    min_size: int


# The second pass is only tried when the first finds nothing.
DETECTION_PASSES: tuple[DetectionPass, ...] = (
    DetectionPass(scale_factor=1.1, min_neighbors=3, min_size=30),
    DetectionPass(scale_factor=1.05, min_neighbors=2, min_size=20),
)


class FaceDetector(Protocol):
    """Protocol for face detection models."""

    def detect(self, image: NDArray[np.uint8]) -> list[FaceBox]:
        """Detect faces in an image.

        Args:
            image: HxWx3 BGR uint8 array.

        Returns:
            Face boxes in the order the detector reports them.
        """
        ...


class HaarCascadeDetector:
    """Haar cascade detector with a lenient retry pass."""

    def __init__(self, cascade_path: str | Path | None = None) -> None:
        path = Path(cascade_path) if cascade_path is not None else Path(cv2.data.haarcascades) / DEFAULT_CASCADE
        try:
            self._classifier = cv2.CascadeClassifier(str(path))
        except cv2.error as exc:
            raise ModelUnavailableError(f"Failed to load cascade classifier from {path}: {exc}") from exc
        if self._classifier.empty():
            raise ModelUnavailableError(f"Failed to load cascade classifier from {path}")
        logger.info("Loaded face cascade %s", path.name)

    def detect(self, image: NDArray[np.uint8]) -> list[FaceBox]:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY) if image.ndim == 3 else image
        gray = cv2.equalizeHist(gray)

        for attempt, params in enumerate(DETECTION_PASSES, start=1):
            rects = self._classifier.detectMultiScale(
                gray,
                scaleFactor=params.scale_factor,
                minNeighbors=params.min_neighbors,
                minSize=(params.min_size, params.min_size),
            )
            logger.debug("Detection pass %d found %d faces", attempt, len(rects))
            if len(rects):
                return [FaceBox(int(x), int(y), int(w), int(h)) for x, y, w, h in rects]
        return []
