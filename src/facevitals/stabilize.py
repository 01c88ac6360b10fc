"""Frontalized face crop.

Eye centers and mouth center are mapped onto a canonical template and the
frame is warped with the fitted transform, giving a stabilized crop that
stays put while the head moves.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .geometry import FaceMetrics
from .transform import Affine2D, estimate_similarity_2d

# Normalized template positions: left eye, right eye, mouth
CANONICAL_TEMPLATE = np.array([[0.32, 0.40], [0.68, 0.40], [0.50, 0.75]], dtype=np.float64)


def anchor_points(metrics: FaceMetrics) -> np.ndarray:
    """Left-eye, right-eye and mouth centers as a (3, 2) array."""
    return np.array(
        [metrics.left_eye.center, metrics.right_eye.center, metrics.mouth.center],
        dtype=np.float64,
    )


def frontalize_transform(
    metrics: FaceMetrics,
    frame_size: Tuple[int, int],
    out_size: Tuple[int, int] = (160, 160),
) -> Affine2D:
    """Pixel-space transform from the frame onto the canonical crop.

    Args:
        metrics: geometry for the frame.
        frame_size: (width, height) of the source frame.
        out_size: (width, height) of the crop.
    """
    fw, fh = frame_size
    ow, oh = out_size
    src = anchor_points(metrics) * np.array([fw, fh], dtype=np.float64)
    dst = CANONICAL_TEMPLATE * np.array([ow, oh], dtype=np.float64)
    return estimate_similarity_2d(src, dst)


def frontalize(
    frame: np.ndarray,
    metrics: FaceMetrics,
    out_size: Tuple[int, int] = (160, 160),
) -> np.ndarray:
    """Warp ``frame`` into a stabilized ``out_size`` crop."""
    import cv2  # local import

    h, w = frame.shape[:2]
    T = frontalize_transform(metrics, (w, h), out_size)
    return cv2.warpAffine(frame, T.matrix(), out_size, flags=cv2.INTER_LINEAR)
