from __future__ import annotations

import numpy as np
import pytest

from facevitals.landmarks import FaceBox
from facevitals.roi import RoiConfig, forehead_roi, mean_green


def test_forehead_roi_inside_face_box() -> None:
    box = FaceBox(0.25, 0.2, 0.75, 0.8)
    x, y, w, h = forehead_roi(box, 640, 480)
    assert (x, y, w, h) == (256, 119, 128, 35)


def test_forehead_roi_clamped_and_degenerate() -> None:
    assert forehead_roi(FaceBox(), 640, 480)[2:] == (0, 0)
    x, y, w, h = forehead_roi(FaceBox(0.9, 0.9, 1.4, 1.4), 100, 100, RoiConfig())
    assert x + w <= 100 and y + h <= 100


def test_mean_green_with_stride() -> None:
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    frame[..., 1] = np.arange(16, dtype=np.uint8).reshape(4, 4)
    assert mean_green(frame, (0, 0, 4, 4), stride=1) == pytest.approx(7.5)
    # every 4th pixel in raster order is the first column
    assert mean_green(frame, (0, 0, 4, 4), stride=4) == pytest.approx(6.0)
    assert mean_green(frame, (0, 0, 0, 4)) is None


def test_mean_green_rejects_bad_frame() -> None:
    with pytest.raises(ValueError):
        mean_green(np.zeros((4, 4)), (0, 0, 2, 2))
