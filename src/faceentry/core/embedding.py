"""Embedding vector math: L2 normalization and Euclidean distance."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from faceentry.core.errors import ShapeMismatchError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray


def as_vector(values: ArrayLike) -> NDArray[np.float32]:
    """Return ``values`` as a fresh flat float32 array."""
    return np.array(values, dtype=np.float32).reshape(-1)


def normalize(vector: ArrayLike) -> NDArray[np.float32]:
    """Scale a vector to unit Euclidean length.

    The all-zero vector has no direction and is returned unchanged.
    """
    vec = as_vector(vector)
    norm = float(np.linalg.norm(vec.astype(np.float64)))
    if norm > 0:
        vec = (vec.astype(np.float64) / norm).astype(np.float32)
    return vec


def distance(a: ArrayLike, b: ArrayLike) -> float:
    """Euclidean distance between two equal-length vectors.

    Raises:
        ShapeMismatchError: If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64).reshape(-1)
    vb = np.asarray(b, dtype=np.float64).reshape(-1)
    if va.shape != vb.shape:
        raise ShapeMismatchError(f"Embeddings must have the same length (got {va.shape[0]} and {vb.shape[0]})")
    return float(np.sqrt(np.sum((va - vb) ** 2)))
