from __future__ import annotations

from pathlib import Path
import sys

import numpy as np
import pytest

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from faceid.face.gallery import Gallery
from faceid.face.matcher import EuclideanMatcher, confidence_from_distance


@pytest.fixture
def gallery_ab():
    return Gallery.from_records(
        [
            {"name": "A", "descriptor": [0, 0, 0]},
            {"name": "B", "descriptor": [1, 1, 1]},
        ]
    )


def test_distance_identity_and_symmetry():
    m = EuclideanMatcher()
    d1 = np.array([0.3, -1.2, 4.0, 2.5])
    d2 = np.array([1.0, 0.5, -2.0, 2.5])
    assert m.distance(d1, d1) == 0.0
    assert m.distance(d1, d2) == pytest.approx(m.distance(d2, d1))
    assert confidence_from_distance(0.0) == 100.0


def test_confidence_scale_is_clamped():
    assert confidence_from_distance(0.25) == pytest.approx(75.0)
    assert confidence_from_distance(1.0) == 0.0
    assert confidence_from_distance(7.5) == 0.0


def test_exact_match_selects_first_entry(gallery_ab):
    result = EuclideanMatcher().match(np.array([0.0, 0.0, 0.0]), gallery_ab)
    assert result.identity == "A"
    assert result.distance == 0.0
    assert result.confidence == 100.0


def test_far_query_still_returns_nearest(gallery_ab):
    result = EuclideanMatcher().match(np.array([10.0, 10.0, 10.0]), gallery_ab)
    assert result.identity == "B"
    assert result.distance > 0.6


def test_empty_gallery_returns_none():
    assert EuclideanMatcher().match(np.array([0.0, 0.0, 0.0]), Gallery()) is None


def test_ties_keep_gallery_order():
    gallery = Gallery.from_records(
        [
            {"name": "first", "descriptor": [1, 0, 0]},
            {"name": "second", "descriptor": [-1, 0, 0]},
        ]
    )
    assert EuclideanMatcher().match(np.array([0.0, 0.0, 0.0]), gallery).identity == "first"


def test_unequal_lengths_use_common_prefix():
    m = EuclideanMatcher()
    query = np.arange(9, dtype=float)
    stored = np.arange(7, dtype=float) + 1.0
    # 7 components differ by 1 each; the 2 extra query components are ignored.
    assert m.distance(query, stored) == pytest.approx(np.sqrt(7.0))

    gallery = Gallery.from_records([{"name": "short", "descriptor": stored.tolist()}])
    result = m.match(query, gallery)
    assert result.identity == "short"
    assert result.distance == pytest.approx(np.sqrt(7.0))


def test_too_short_overlap_is_not_comparable():
    m = EuclideanMatcher()
    gallery = Gallery.from_records(
        [
            {"name": "tiny", "descriptor": [0, 0]},
            {"name": "ok", "descriptor": [5, 5, 5, 5]},
        ]
    )
    assert m.distance(np.zeros(4), np.zeros(2)) == float("inf")
    assert m.match(np.zeros(4), gallery).identity == "ok"

    only_tiny = Gallery.from_records([{"name": "tiny", "descriptor": [0, 0]}])
    assert m.match(np.zeros(4), only_tiny) is None
