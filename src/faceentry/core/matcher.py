"""Nearest-neighbour identity matching under a fixed distance threshold."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from faceentry.core.embedding import distance

if TYPE_CHECKING:
    from collections.abc import Mapping

    import numpy as np
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD: float = 0.9


@dataclass(frozen=True)
class Match:
    """The closest enrolled identity and its distance to the query."""

    identity: str
    distance: float


class MatchEngine:
    """Finds the closest stored embedding whose distance is below ``threshold``.

    Candidates are scanned in the mapping's iteration order and only a strictly
    smaller distance replaces the current best, so among exact ties the
    first entry wins. Distances equal to or above the threshold never match,
    even when they are the closest available.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self._threshold = threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    def recognize(self, query: ArrayLike, database: Mapping[str, NDArray[np.float32]]) -> Match | None:
        """Return the best match for ``query`` or None if nothing is close enough.

        Raises:
            ShapeMismatchError: If a stored embedding differs in length from the query.
        """
        best_identity: str | None = None
        best_distance = math.inf

        logger.info("Comparing against %d registered faces (threshold: %.4f)", len(database), self._threshold)

        for identity, stored in database.items():
            d = distance(query, stored)
            logger.debug("  %s: distance=%.4f", identity, d)
            if d < self._threshold and d < best_distance:
                best_distance = d
                best_identity = identity

        if best_identity is None:
            logger.info("No match found")
            return None

        logger.info("Match found: %s (distance: %.4f)", best_identity, best_distance)
        return Match(identity=best_identity, distance=best_distance)
