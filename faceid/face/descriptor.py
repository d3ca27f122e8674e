from __future__ import annotations

import math
import numbers

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from faceid.errors import MalformedDescriptor
from faceid.utils.log import get_logger

logger = get_logger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class FaceCandidate:
    """One face reported by the detector for a single frame."""

    landmarks: Sequence[Sequence[float]]
    probability: Optional[float]
    # (top_left, bottom_right) in frame pixels
    bbox: Tuple[Point, Point]


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(float(value))


def flatten_candidate(candidate: FaceCandidate) -> list:
    """Interleave landmark x,y in detector order and append the probability."""
    raw = []
    for point in candidate.landmarks:
        raw.extend(list(point)[:2])
    raw.append(candidate.probability)
    return raw


def build_descriptor(candidate: FaceCandidate, strict: bool = False) -> np.ndarray:
    """Build the per-frame descriptor for `candidate`.

    Non-finite or missing components are dropped, so the result can be shorter
    than 2 * len(landmarks) + 1. With `strict=True` any dropped component
    rejects the candidate instead.

    Raises:
        MalformedDescriptor: no landmarks, no finite component left, or a
            component was dropped in strict mode.
    """
    if not candidate.landmarks:
        raise MalformedDescriptor("candidate has no landmarks")

    raw = flatten_candidate(candidate)
    values = [float(v) for v in raw if _is_finite_number(v)]

    if not values:
        raise MalformedDescriptor("candidate has no finite descriptor components")

    dropped = len(raw) - len(values)
    if dropped:
        if strict:
            raise MalformedDescriptor(f"{dropped} of {len(raw)} descriptor components are not finite")
        logger.warning(f"描述符丢弃了 {dropped} 个非有限分量，长度 {len(raw)} -> {len(values)}")

    return np.asarray(values, dtype=np.float64)
