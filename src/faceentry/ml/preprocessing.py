"""Image decoding and face cropping helpers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import cv2
import numpy as np

from faceentry.core.errors import InvalidImageError

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from faceentry.ml.face_detector import FaceBox


def decode_image(image_bytes: bytes, max_pixels: int) -> NDArray[np.uint8]:
    """Decode raw file bytes into a BGR uint8 array.

    Raises:
        InvalidImageError: If the bytes are not a decodable image or the
            image has more than ``max_pixels`` pixels.
    """
    if not image_bytes:
        raise InvalidImageError("Please select an image")

    image = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise InvalidImageError("Failed to decode image")

    height, width = image.shape[:2]
    if height * width > max_pixels:
        raise InvalidImageError(f"Image too large: {width}x{height} exceeds {max_pixels} pixels")
    return image


def crop_face(image: NDArray[np.uint8], box: FaceBox, size: int) -> NDArray[np.uint8]:
    """Cut ``box`` out of ``image`` (clamped to its bounds) and resize to size x size."""
    height, width = image.shape[:2]
    x1 = max(0, box.x)
    y1 = max(0, box.y)
    x2 = min(width, box.x + box.width)
    y2 = min(height, box.y + box.height)
    if x2 <= x1 or y2 <= y1:
        raise InvalidImageError(f"Face region {box} lies outside the {width}x{height} image")

    face = image[y1:y2, x1:x2]
    return cv2.resize(face, (size, size), interpolation=cv2.INTER_LINEAR)
