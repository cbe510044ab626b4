"""
Content-aware crop window search.

Scoring is done by the smartcrop library (edge detail, skin tone and
saturation, weighted towards the rule-of-thirds points). The analysis runs
on an 8-bit RGB copy whose shorter side is at most ANALYSIS_MIN_SIDE; the
chosen window is mapped back to source coordinates.
"""

import math
from typing import Tuple

import numpy as np
import smartcrop
from PIL import Image

ANALYSIS_MIN_SIDE = 400


def find_best_crop(pixels: np.ndarray, width: int, height: int) -> Tuple[int, int, int, int]:
    """
    Find the most interesting crop window.

    Args:
        pixels: H x W x C float array (values in 0..1)
        width: Target width
        height: Target height

    Returns:
        (x, y, w, h) of the best window, inside the source bounds
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"invalid crop size {width}x{height}")

    image = Image.fromarray(_to_rgb8(pixels), "RGB")
    src_w, src_h = image.size

    factor = min(1.0, ANALYSIS_MIN_SIDE / min(src_w, src_h))
    if factor < 1.0:
        image = image.resize(
            (max(1, int(src_w * factor)), max(1, int(src_h * factor))), Image.BILINEAR
        )

    top = smartcrop.SmartCrop().crop(image, width, height, prescale=False)["top_crop"]

    crop_w = min(src_w, max(1, int(round(top["width"] / factor))))
    crop_h = min(src_h, max(1, int(round(top["height"] / factor))))
    x = min(max(0, int(math.floor(top["x"] / factor))), src_w - crop_w)
    y = min(max(0, int(math.floor(top["y"] / factor))), src_h - crop_h)
    return x, y, crop_w, crop_h


def _to_rgb8(pixels: np.ndarray) -> np.ndarray:
    """H x W x 3 uint8 copy of a float pixel array; gray is replicated, alpha dropped."""
    if pixels.ndim == 2:
        pixels = pixels[:, :, np.newaxis]
    if pixels.shape[2] < 3:
        rgb = np.repeat(pixels[:, :, :1], 3, axis=2)
    else:
        rgb = pixels[:, :, :3]
    return np.ascontiguousarray(np.clip(rgb, 0.0, 1.0) * 255.0 + 0.5, dtype=np.uint8)
