from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from faceid.config import MIN_DESCRIPTOR_LENGTH
from faceid.face.gallery import GalleryEntry
from faceid.utils.math import clamp, truncated_euclidean


def confidence_from_distance(distance: float) -> float:
    """Map a distance to a 0..100 score: 0 -> 100, >= 1.0 -> 0.

    Linear heuristic, not a probability. Only meaningful relative to the
    acceptance threshold.
    """
    return clamp(100.0 - float(distance) * 100.0, 0.0, 100.0)


@dataclass(frozen=True)
class MatchResult:
    identity: str
    distance: float

    @property
    def confidence(self) -> float:
        return confidence_from_distance(self.distance)


@dataclass
class MatcherConfig:
    # Overlaps shorter than this count as "not comparable" (infinite distance).
    min_descriptor_length: int = MIN_DESCRIPTOR_LENGTH


class EuclideanMatcher:
    """Nearest-descriptor search over a small gallery.

    Descriptors of different lengths are compared over their common prefix,
    so a query shortened by non-finite filtering still matches.
    """

    def __init__(self, config: Optional[MatcherConfig] = None):
        self.config = config or MatcherConfig()

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        return truncated_euclidean(a, b, min_length=self.config.min_descriptor_length)

    def match(self, query: np.ndarray, gallery: Iterable[GalleryEntry]) -> Optional[MatchResult]:
        """Return the nearest entry, or None if nothing is comparable.

        Ties keep the first entry in gallery order.
        """
        best: Optional[MatchResult] = None
        for entry in gallery:
            d = self.distance(query, entry.descriptor)
            if not np.isfinite(d):
                continue
            if best is None or d < best.distance:
                best = MatchResult(identity=entry.identity, distance=d)
        return best
