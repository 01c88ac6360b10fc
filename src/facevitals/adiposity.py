"""Facial fullness heuristic from a single landmark snapshot.

Three raw ratios are rescaled against empirically chosen plausible ranges
and combined with fixed weights. This is a coarse visual heuristic, not a
body-composition measurement.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .landmarks import EPS, LandmarkSet, MeshKind, bounding_box, clamp01

# (low, high) ranges used to rescale each raw ratio to 0..1
WIDTH_RANGE = (0.7, 1.3)
CHEEK_RANGE = (0.18, 0.38)
JAW_RANGE = (0.8, 1.2)
WEIGHTS = (0.45, 0.35, 0.20)


@dataclass
class AdiposityResult:
    fullness_index: float  # 0..1
    category: str  # "low" | "medium" | "high"
    width_height_ratio: float
    cheek_plumpness: float
    jaw_taper: float


def _rescale(v: float, rng: tuple[float, float]) -> float:
    lo, hi = rng
    return clamp01((v - lo) / (hi - lo))


def fullness_category(index: float) -> str:
    if index < 0.33:
        return "low"
    if index < 0.66:
        return "medium"
    return "high"


def empty_adiposity() -> AdiposityResult:
    return AdiposityResult(0.0, "low", 0.0, 0.0, 0.0)


def estimate_facial_adiposity(landmarks: LandmarkSet) -> AdiposityResult:
    """Fullness heuristic; no face or a zero-area box gives the zero result."""
    if landmarks.kind is MeshKind.EMPTY:
        return empty_adiposity()
    xy = landmarks.xy
    box = bounding_box(xy)
    if box.width <= EPS or box.height <= EPS:
        return empty_adiposity()
    ys = xy[:, 1]
    width_height_ratio = box.width / max(EPS, box.height)

    mid = xy[(ys >= box.min_y + box.height * 0.35) & (ys <= box.min_y + box.height * 0.65)]
    cx, _ = box.center
    if mid.shape[0]:
        lateral = float(np.mean(np.abs(mid[:, 0] - cx)))
        cheek_plumpness = lateral / max(EPS, box.width / 2.0)
    else:
        cheek_plumpness = 0.0

    upper = xy[ys <= box.min_y + box.height * 0.33]
    lower = xy[ys >= box.min_y + box.height * 0.66]
    upper_w = bounding_box(upper).width if upper.shape[0] else box.width
    lower_w = bounding_box(lower).width if lower.shape[0] else box.width
    jaw_taper = lower_w / max(EPS, upper_w)

    w_width, w_cheek, w_jaw = WEIGHTS
    index = clamp01(
        w_width * _rescale(width_height_ratio, WIDTH_RANGE)
        + w_cheek * _rescale(cheek_plumpness, CHEEK_RANGE)
        + w_jaw * _rescale(jaw_taper, JAW_RANGE)
    )
    return AdiposityResult(
        fullness_index=index,
        category=fullness_category(index),
        width_height_ratio=float(width_height_ratio),
        cheek_plumpness=float(cheek_plumpness),
        jaw_taper=float(jaw_taper),
    )
