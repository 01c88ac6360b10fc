"""Per-frame facial geometry: box, eye/mouth openness, head pose, jawline.

Dense meshes (MediaPipe 468/478 topology) use index-based EAR/MAR; sparse
point clouds fall back to percentile spreads inside fractional regions of
the face box. The mode is resolved once from ``LandmarkSet.kind``.

Head pose here is a coarse 2D heuristic derived from eye placement inside
the face box, not a metric 3D pose.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

import numpy as np

from .landmarks import EPS, FaceBox, LandmarkSet, MeshKind, clamp01, percentile

# MediaPipe face mesh indices
LEFT_EYE_H = (33, 133)
LEFT_EYE_V1 = (159, 145)
LEFT_EYE_V2 = (158, 153)
RIGHT_EYE_H = (263, 362)
RIGHT_EYE_V1 = (386, 374)
RIGHT_EYE_V2 = (385, 380)
MOUTH_H = (61, 291)
MOUTH_V = (13, 14)
FACE_OVAL = (
    10, 338, 297, 332, 284, 251, 389, 356, 454, 323, 361, 288,
    397, 365, 379, 378, 400, 377, 152, 148, 176, 149, 150, 136,
    172, 58, 132, 93, 234, 127, 162, 21, 54, 103, 67, 109,
)

# Fractional ROIs of the face box: (x0, x1, y0, y1)
LEFT_EYE_ROI = (0.12, 0.46, 0.25, 0.55)
RIGHT_EYE_ROI = (0.54, 0.88, 0.25, 0.55)
MOUTH_ROI = (0.25, 0.75, 0.60, 1.00)

JAW_OVAL_CUTOFF = 0.55
JAW_LOWEST_FRACTION = 0.06
JAW_MIN_POINTS = 12


def _empty_points() -> np.ndarray:
    return np.zeros((0, 2), dtype=np.float64)


@dataclass
class EyeMetrics:
    points: np.ndarray = field(default_factory=_empty_points)
    center: Tuple[float, float] = (0.0, 0.0)
    openness: float = 0.0  # EAR (dense) or spread / face height (sparse), 0..1


@dataclass
class MouthMetrics:
    points: np.ndarray = field(default_factory=_empty_points)
    center: Tuple[float, float] = (0.0, 0.0)
    open_ratio: float = 0.0  # MAR, 0..1


@dataclass
class HeadPose:
    roll: float = 0.0  # radians, in-plane rotation of the eye line
    yaw: float = 0.0  # -1..1
    pitch: float = 0.0  # -1..1


@dataclass
class FaceMetrics:
    box: FaceBox = field(default_factory=FaceBox)
    left_eye: EyeMetrics = field(default_factory=EyeMetrics)
    right_eye: EyeMetrics = field(default_factory=EyeMetrics)
    mouth: MouthMetrics = field(default_factory=MouthMetrics)
    head: HeadPose = field(default_factory=HeadPose)
    jawline: np.ndarray = field(default_factory=_empty_points)
    kind: MeshKind = MeshKind.EMPTY

    @property
    def eye_openness(self) -> float:
        return 0.5 * (self.left_eye.openness + self.right_eye.openness)


def _center(points: np.ndarray) -> Tuple[float, float]:
    if points.size == 0:
        return 0.0, 0.0
    m = points.mean(axis=0)
    return float(m[0]), float(m[1])


def _roi(xy: np.ndarray, box: FaceBox, frac: Tuple[float, float, float, float]) -> np.ndarray:
    rx0, rx1, ry0, ry1 = frac
    x0 = box.min_x + box.width * rx0
    x1 = box.min_x + box.width * rx1
    y0 = box.min_y + box.height * ry0
    y1 = box.min_y + box.height * ry1
    m = (xy[:, 0] >= x0) & (xy[:, 0] <= x1) & (xy[:, 1] >= y0) & (xy[:, 1] <= y1)
    return xy[m]


def _spread(points: np.ndarray, face_h: float, lo: float, hi: float, min_points: int) -> float:
    if points.shape[0] < min_points:
        return 0.0
    ys = points[:, 1]
    return clamp01((percentile(ys, hi) - percentile(ys, lo)) / max(EPS, face_h))


def _ear(lm: LandmarkSet, h: Tuple[int, int], v1: Tuple[int, int], v2: Tuple[int, int]) -> float:
    vertical = lm.distance(*v1) + lm.distance(*v2)
    return clamp01(vertical / (2.0 * max(EPS, lm.distance(*h))))


def _dense_features(lm: LandmarkSet, box: FaceBox) -> Tuple[EyeMetrics, EyeMetrics, MouthMetrics]:
    left_pts = lm.take(LEFT_EYE_H + LEFT_EYE_V1 + LEFT_EYE_V2)
    right_pts = lm.take(RIGHT_EYE_H + RIGHT_EYE_V1 + RIGHT_EYE_V2)
    mouth_pts = lm.take(MOUTH_H + MOUTH_V)
    left = EyeMetrics(left_pts, _center(left_pts), _ear(lm, LEFT_EYE_H, LEFT_EYE_V1, LEFT_EYE_V2))
    right = EyeMetrics(
        right_pts, _center(right_pts), _ear(lm, RIGHT_EYE_H, RIGHT_EYE_V1, RIGHT_EYE_V2)
    )
    mar = clamp01(lm.distance(*MOUTH_V) / max(EPS, lm.distance(*MOUTH_H)))
    return left, right, MouthMetrics(mouth_pts, _center(mouth_pts), mar)


def _sparse_features(lm: LandmarkSet, box: FaceBox) -> Tuple[EyeMetrics, EyeMetrics, MouthMetrics]:
    left_pts = _roi(lm.xy, box, LEFT_EYE_ROI)
    right_pts = _roi(lm.xy, box, RIGHT_EYE_ROI)
    mouth_pts = _roi(lm.xy, box, MOUTH_ROI)
    left = EyeMetrics(left_pts, _center(left_pts), _spread(left_pts, box.height, 0.15, 0.85, 4))
    right = EyeMetrics(right_pts, _center(right_pts), _spread(right_pts, box.height, 0.15, 0.85, 4))
    mar = _spread(mouth_pts, box.height, 0.20, 0.90, 1)
    return left, right, MouthMetrics(mouth_pts, _center(mouth_pts), mar)


def _dense_jaw(lm: LandmarkSet, max_points: Optional[int]) -> np.ndarray:
    oval = lm.take(FACE_OVAL)
    if oval.size == 0:
        return _sparse_jaw(lm, max_points)
    thr = percentile(oval[:, 1], JAW_OVAL_CUTOFF)
    return oval[oval[:, 1] >= thr].copy()


def _sparse_jaw(lm: LandmarkSet, max_points: Optional[int]) -> np.ndarray:
    n = len(lm)
    k = min(n, max(JAW_MIN_POINTS, int(n * JAW_LOWEST_FRACTION)))
    # lowest points have the largest y
    lowest = lm.xy[np.argsort(-lm.xy[:, 1], kind="stable")[:k]]
    path = lowest[np.argsort(lowest[:, 0], kind="stable")]
    if max_points is not None and 1 < max_points < path.shape[0]:
        idx = np.round(np.linspace(0, path.shape[0] - 1, max_points)).astype(int)
        path = path[idx]
    return path.copy()


FeatureFn = Callable[[LandmarkSet, FaceBox], Tuple[EyeMetrics, EyeMetrics, MouthMetrics]]
JawFn = Callable[[LandmarkSet, Optional[int]], np.ndarray]

_FORMULAS: Dict[MeshKind, Tuple[FeatureFn, JawFn]] = {
    MeshKind.DENSE: (_dense_features, _dense_jaw),
    MeshKind.SPARSE: (_sparse_features, _sparse_jaw),
}


def estimate_head_pose(
    box: FaceBox, left_eye: Tuple[float, float], right_eye: Tuple[float, float]
) -> HeadPose:
    """Heuristic roll/yaw/pitch from eye centers within the face box."""
    roll = math.atan2(right_eye[1] - left_eye[1], right_eye[0] - left_eye[0])
    left_dist = abs(left_eye[0] - box.min_x)
    right_dist = abs(box.max_x - right_eye[0])
    yaw = float(np.clip((right_dist - left_dist) / max(EPS, box.width), -1.0, 1.0))
    _, cy = box.center
    eyes_y = 0.5 * (left_eye[1] + right_eye[1])
    pitch = float(np.clip((cy - eyes_y) / max(EPS, box.height), -1.0, 1.0))
    return HeadPose(
        roll=roll,
        yaw=float(np.clip(yaw * 2.0, -1.0, 1.0)),
        pitch=float(np.clip(pitch * 2.0, -1.0, 1.0)),
    )


def analyze_face(landmarks: LandmarkSet, max_jaw_points: Optional[int] = None) -> FaceMetrics:
    """Derive the per-frame geometry snapshot.

    Args:
        landmarks: validated landmark set.
        max_jaw_points: thin the sparse-mode jawline to at most this many points.

    Returns:
        FaceMetrics; an all-zero instance when fewer than 3 points are given.
    """
    kind = landmarks.kind
    if kind is MeshKind.EMPTY:
        return FaceMetrics()
    box = landmarks.box()
    features, jaw = _FORMULAS[kind]
    left, right, mouth = features(landmarks, box)
    return FaceMetrics(
        box=box,
        left_eye=left,
        right_eye=right,
        mouth=mouth,
        head=estimate_head_pose(box, left.center, right.center),
        jawline=jaw(landmarks, max_jaw_points),
        kind=kind,
    )
