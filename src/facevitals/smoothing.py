"""Polyline smoothing for jittery landmark contours."""

from __future__ import annotations

import numpy as np
from scipy.ndimage import correlate1d
from scipy.signal import savgol_coeffs

# 7-tap quadratic Savitzky-Golay kernel: [-2, 3, 6, 7, 6, 3, -2] / 21
SAVGOL_WINDOW = 7
SAVGOL_KERNEL = savgol_coeffs(SAVGOL_WINDOW, 2)


def _as_polyline(points: np.ndarray | list) -> np.ndarray:
    p = np.asarray(points, dtype=np.float64)
    if p.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return p.reshape(-1, 2)


def smooth_chaikin(points: np.ndarray | list, iterations: int = 2) -> np.ndarray:
    """Chaikin corner cutting.

    Endpoints are kept; every segment (p, q) is replaced by the points at 1/4
    and 3/4 along it. Fewer than 3 points or 0 iterations returns a copy.
    """
    pts = _as_polyline(points).copy()
    if pts.shape[0] < 3:
        return pts
    for _ in range(max(0, int(iterations))):
        p = pts[:-1]
        q = pts[1:]
        cut = np.empty((2 * p.shape[0], 2), dtype=np.float64)
        cut[0::2] = 0.75 * p + 0.25 * q
        cut[1::2] = 0.25 * p + 0.75 * q
        pts = np.vstack([pts[:1], cut, pts[-1:]])
    return pts


def savitzky_golay(points: np.ndarray | list, window: int = SAVGOL_WINDOW) -> np.ndarray:
    """Smooth the y coordinate with the fixed 7-tap quadratic kernel.

    x is passed through untouched and the boundary is edge-replicated. Only
    ``window == 7`` is supported; anything else returns a copy of the input.
    """
    pts = _as_polyline(points).copy()
    if pts.shape[0] < 3 or window != SAVGOL_WINDOW:
        return pts
    pts[:, 1] = correlate1d(pts[:, 1], SAVGOL_KERNEL, mode="nearest")
    return pts
