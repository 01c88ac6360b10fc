"""Forehead ROI and per-frame intensity sampling.

The pulse signal is the mean green channel over a forehead band placed
inside the landmark face box.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .landmarks import FaceBox

Rect = Tuple[int, int, int, int]  # x, y, w, h in pixels


@dataclass
class RoiConfig:
    x_frac: float = 0.3
    y_frac: float = 0.08
    w_frac: float = 0.4
    h_frac: float = 0.12
    stride: int = 4  # sample every n-th pixel


def forehead_roi(box: FaceBox, width: int, height: int, cfg: Optional[RoiConfig] = None) -> Rect:
    """Pixel rectangle of the forehead band for a normalized face box.

    The rectangle is clamped to the frame; a degenerate box gives zero size.
    """
    cfg = cfg or RoiConfig()
    bx = box.min_x * width
    by = box.min_y * height
    bw = box.width * width
    bh = box.height * height
    x = int(round(bx + bw * cfg.x_frac))
    y = int(round(by + bh * cfg.y_frac))
    w = int(round(bw * cfg.w_frac))
    h = int(round(bh * cfg.h_frac))
    x = max(0, min(width, x))
    y = max(0, min(height, y))
    w = max(0, min(width - x, w))
    h = max(0, min(height - y, h))
    return x, y, w, h


def mean_green(frame: np.ndarray, roi: Rect, stride: int = 4) -> Optional[float]:
    """Mean green value inside ``roi``, sampling every ``stride``-th pixel.

    Args:
        frame: HxWx3 (or HxWx4) RGB or BGR array; green is channel 1 in both.
        roi: (x, y, w, h) pixel rectangle.
        stride: pixel step in raster order.

    Returns:
        The mean, or None when the ROI is empty.
    """
    if frame.ndim != 3 or frame.shape[2] < 3:
        raise ValueError("frame must be HxWx3 array")
    x, y, w, h = roi
    if w <= 0 or h <= 0:
        return None
    patch = frame[y : y + h, x : x + w, 1].astype(np.float32)
    sel = patch.reshape(-1)[:: max(1, int(stride))]
    if sel.size == 0:
        return None
    return float(sel.mean())
