"""Shared fixtures: a model-free detector/embedder pair and image helpers."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import cv2
import numpy as np
import pytest

from faceentry.core.store import FaceStore
from faceentry.ml.face_detector import FaceBox
from faceentry.ml.pipeline import FacePipeline
from faceentry.service import FaceEntryService

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

FAKE_DIM = 3


class FakeDetector:
    """Reports the whole image as one face, or nothing for an all-black image."""

    def __init__(self, faces_per_image: int = 1) -> None:
        self.faces_per_image = faces_per_image
        self.calls = 0

    def detect(self, image: NDArray[np.uint8]) -> list[FaceBox]:
        self.calls += 1
        if not image.any():
            return []
        height, width = image.shape[:2]
        return [FaceBox(0, 0, width, height)] + [FaceBox(0, 0, 1, 1)] * (self.faces_per_image - 1)


class FakeEmbedder:
    """Embeds a crop as its mean BGR colour, so same-coloured images match."""

    input_size = 16
    embedding_dim = FAKE_DIM

    def __init__(self) -> None:
        self.crops: list[NDArray[np.uint8]] = []

    def embed(self, face: NDArray[np.uint8]) -> NDArray[np.float32]:
        self.crops.append(face)
        return face.reshape(-1, 3).mean(axis=0).astype(np.float32) + 1.0


def encode_png(color: tuple[int, int, int], size: int = 32) -> bytes:
    image = np.full((size, size, 3), color, dtype=np.uint8)
    ok, buf = cv2.imencode(".png", image)
    assert ok
    return buf.tobytes()


@pytest.fixture()
def make_image() -> Callable[..., bytes]:
    """PNG bytes of a solid BGR colour."""
    return encode_png


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "face_database.npz"


@pytest.fixture()
def store(store_path: Path) -> FaceStore:
    face_store = FaceStore(store_path)
    face_store.load()
    return face_store


@pytest.fixture()
def detector() -> FakeDetector:
    return FakeDetector()


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def pipeline(detector: FakeDetector, embedder: FakeEmbedder) -> FacePipeline:
    return FacePipeline(detector, embedder, max_image_pixels=1_000_000)


@pytest.fixture()
def service(pipeline: FacePipeline, store: FaceStore) -> FaceEntryService:
    return FaceEntryService(pipeline, store, threshold=0.9, embedding_dim=FAKE_DIM)
