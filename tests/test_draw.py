from __future__ import annotations

from pathlib import Path
import sys

import numpy as np

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from faceid.config import UNKNOWN_LABEL
from faceid.utils.draw import IDENTIFIED_COLOR, UNIDENTIFIED_COLOR, draw_match_overlay, format_label


def test_format_label():
    assert format_label("赵文", 87.24) == "赵文 (87.2%)"
    assert format_label(None, 0.0) == UNKNOWN_LABEL


def test_overlay_draws_box_in_identity_color():
    img = np.zeros((240, 320, 3), dtype=np.uint8)
    draw_match_overlay(img, ((40.0, 30.0), (140.0, 150.0)), "赵文", 92.0)
    assert tuple(int(c) for c in img[30, 90]) == IDENTIFIED_COLOR

    img2 = np.zeros((240, 320, 3), dtype=np.uint8)
    draw_match_overlay(img2, ((40.0, 30.0), (140.0, 150.0)), None, 0.0)
    assert tuple(int(c) for c in img2[30, 90]) == UNIDENTIFIED_COLOR


def test_overlay_without_bbox_is_noop():
    img = np.zeros((10, 10, 3), dtype=np.uint8)
    draw_match_overlay(img, None, "A", 50.0)
    assert not img.any()
