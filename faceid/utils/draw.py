from __future__ import annotations

from functools import lru_cache
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from faceid.config import FONT_LIST, UNKNOWN_LABEL

# BGR
IDENTIFIED_COLOR = (0, 0, 255)
UNIDENTIFIED_COLOR = (255, 0, 0)


@lru_cache(maxsize=64)
def _get_best_font(font_size: int) -> ImageFont.ImageFont:
    """Return a font instance (cached) that best supports CJK on current OS."""
    for p in FONT_LIST:
        try:
            return ImageFont.truetype(p, int(font_size))
        except Exception:
            continue
    return ImageFont.load_default()


def format_label(identity: Optional[str], confidence: float) -> str:
    if identity is None:
        return UNKNOWN_LABEL
    return f"{identity} ({confidence:.1f}%)"


def draw_match_overlay(
    img: np.ndarray,
    bbox: Tuple[Tuple[float, float], Tuple[float, float]],
    identity: Optional[str],
    confidence: float,
    font_size: int = 16,
) -> None:
    """Draw the face box and a centred label strip below it, in-place.

    Red box with "name (xx.x%)" when identified, blue box with the unknown
    label otherwise. Text goes through PIL so Chinese names render.
    """
    if img is None or bbox is None:
        return

    (x1, y1), (x2, y2) = [(int(p[0]), int(p[1])) for p in bbox]
    color = IDENTIFIED_COLOR if identity is not None else UNIDENTIFIED_COLOR
    thickness = 3 if identity is not None else 2
    cv2.rectangle(img, (x1, y1), (x2, y2), color, thickness)

    text = format_label(identity, confidence)
    font = _get_best_font(int(font_size))
    try:
        pil_img = Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(pil_img)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        label_w = (right - left) + 20
        label_h = 28
        lx = x1 + ((x2 - x1) - label_w) // 2
        ly = y2 + 5
        rgb = (int(color[2]), int(color[1]), int(color[0]))
        draw.rectangle([lx, ly, lx + label_w, ly + label_h], fill=rgb)
        draw.text((lx + 10, ly + (label_h - (bottom - top)) // 2 - top), text, font=font, fill=(255, 255, 255))
        img[:] = cv2.cvtColor(np.array(pil_img), cv2.COLOR_RGB2BGR)
    except Exception:
        # Fallback: OpenCV text (non-ASCII may render as '?')
        cv2.putText(img, text, (x1, y2 + 22), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2, cv2.LINE_AA)
