from __future__ import annotations

import numpy as np


def truncated_euclidean(a: np.ndarray, b: np.ndarray, min_length: int = 1) -> float:
    """Euclidean distance over the first min(len(a), len(b)) components.

    Returns inf when the common prefix is shorter than `min_length`.
    """
    va = np.asarray(a, dtype=np.float64).reshape(-1)
    vb = np.asarray(b, dtype=np.float64).reshape(-1)
    n = min(va.shape[0], vb.shape[0])
    if n < max(1, int(min_length)):
        return float("inf")
    return float(np.linalg.norm(va[:n] - vb[:n]))


def clamp(x: float, lo: float, hi: float) -> float:
    if x < lo:
        return float(lo)
    if x > hi:
        return float(hi)
    return float(x)


def quantize(x: float, step: float) -> float:
    """Round `x` to the nearest multiple of `step`; step <= 0 returns x unchanged."""
    if step <= 0:
        return float(x)
    return float(round(round(x / step) * step, 10))
