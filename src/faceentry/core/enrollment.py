"""Enrollment: validate a name/embedding pair and write it to the store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from faceentry.core.embedding import normalize
from faceentry.core.errors import InvalidIdentityError, ShapeMismatchError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

    from faceentry.core.store import FaceStore

logger = logging.getLogger(__name__)


def validate_identity(identity: str | None) -> str:
    """Return the stripped identity, rejecting empty or missing names."""
    name = (identity or "").strip()
    if not name:
        raise InvalidIdentityError("A non-empty name is required to register a face")
    return name


class EnrollmentService:
    """Stores one embedding per identity; enrolling again replaces the old one."""

    def __init__(self, store: FaceStore, embedding_dim: int = 0) -> None:
        self._store = store
        self._embedding_dim = embedding_dim

    def enroll(self, identity: str, embedding: ArrayLike) -> str:
        """Register ``embedding`` under ``identity`` and return the stored name.

        Raises:
            InvalidIdentityError: If the identity is empty.
            ShapeMismatchError: If the embedding length is not the configured one.
            StorageError: If the store could not be persisted.
        """
        name = validate_identity(identity)
        vector = normalize(embedding)
        if self._embedding_dim and vector.shape[0] != self._embedding_dim:
            raise ShapeMismatchError(f"Expected a {self._embedding_dim}-dimensional embedding, got {vector.shape[0]}")

        replaced = name in self._store
        self._store.put(name, vector)
        logger.info(
            "%s face for %s (total registered: %d)",
            "Re-registered" if replaced else "Registered",
            name,
            self._store.count(),
        )
        return name
