"""Landmark ingestion and shared geometric helpers.

Detector output (lists of ``(x, y[, z])`` tuples, objects with ``.x/.y``
attributes, or an ``(N, 2|3)`` array) is validated once here and turned
into a :class:`LandmarkSet`. Every downstream function reads the typed
arrays and the ``kind`` tag instead of re-checking the raw input.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

import numpy as np

DENSE_MIN_POINTS = 400
COORD_MARGIN = 0.5
EPS = 1e-6


class MeshKind(str, Enum):
    EMPTY = "empty"
    SPARSE = "sparse"
    DENSE = "dense"


@dataclass(frozen=True)
class FaceBox:
    min_x: float = 0.0
    min_y: float = 0.0
    max_x: float = 0.0
    max_y: float = 0.0

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> tuple[float, float]:
        return 0.5 * (self.min_x + self.max_x), 0.5 * (self.min_y + self.max_y)


def bounding_box(xy: np.ndarray) -> FaceBox:
    """Axis-aligned bounds of an ``(N, 2)`` array. Empty input gives a zero box."""
    if xy.size == 0:
        return FaceBox()
    mn = xy.min(axis=0)
    mx = xy.max(axis=0)
    return FaceBox(float(mn[0]), float(mn[1]), float(mx[0]), float(mx[1]))


def clamp01(v: float) -> float:
    return float(min(1.0, max(0.0, v)))


def percentile(values: np.ndarray, p: float) -> float:
    """Linear-interpolated percentile, ``p`` in [0, 1]. Empty input gives 0."""
    if values.size == 0:
        return 0.0
    return float(np.percentile(values, clamp01(p) * 100.0))


def _point_tuple(p: Any) -> tuple[float, ...]:
    if hasattr(p, "x") and hasattr(p, "y"):
        z = getattr(p, "z", None)
        return (p.x, p.y) if z is None else (p.x, p.y, z)
    return tuple(p)


@dataclass(frozen=True, eq=False)
class LandmarkSet:
    """Immutable per-frame landmark snapshot in normalized image coordinates.

    Attributes:
        xy: ``(N, 2)`` float64 array of planar coordinates.
        z: optional ``(N,)`` depth array.
    """

    xy: np.ndarray
    z: Optional[np.ndarray] = None

    @classmethod
    def from_points(cls, points: Iterable[Any] | np.ndarray | None) -> "LandmarkSet":
        """Validate raw detector output.

        Raises:
            ValueError: malformed points, non-finite coordinates, or
                coordinates more than ``COORD_MARGIN`` outside [0, 1].
        """
        if points is None:
            return cls.empty()
        if isinstance(points, np.ndarray):
            arr = np.asarray(points, dtype=np.float64)
        else:
            try:
                rows = [_point_tuple(p) for p in points]
            except TypeError as exc:
                raise ValueError(f"malformed landmark point: {exc}") from exc
            if not rows:
                return cls.empty()
            widths = {len(r) for r in rows}
            if len(widths) != 1:
                raise ValueError("landmark points must all have the same dimension")
            arr = np.asarray(rows, dtype=np.float64)
        if arr.size == 0:
            return cls.empty()
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise ValueError("landmarks must have shape (N, 2) or (N, 3)")
        if not np.isfinite(arr).all():
            raise ValueError("landmark coordinates must be finite")
        xy = arr[:, :2].copy()
        if (xy < -COORD_MARGIN).any() or (xy > 1.0 + COORD_MARGIN).any():
            raise ValueError("landmark coordinates must be normalized to the frame")
        z = arr[:, 2].copy() if arr.shape[1] == 3 else None
        xy.setflags(write=False)
        if z is not None:
            z.setflags(write=False)
        return cls(xy=xy, z=z)

    @classmethod
    def empty(cls) -> "LandmarkSet":
        xy = np.zeros((0, 2), dtype=np.float64)
        xy.setflags(write=False)
        return cls(xy=xy)

    def __len__(self) -> int:
        return int(self.xy.shape[0])

    @property
    def kind(self) -> MeshKind:
        n = len(self)
        if n < 3:
            return MeshKind.EMPTY
        return MeshKind.DENSE if n >= DENSE_MIN_POINTS else MeshKind.SPARSE

    def box(self) -> FaceBox:
        return bounding_box(self.xy)

    def take(self, indices: Iterable[int]) -> np.ndarray:
        """Coordinates at ``indices``, silently skipping indices past the end."""
        idx = [i for i in indices if 0 <= i < len(self)]
        return self.xy[idx]

    def distance(self, i: int, j: int) -> float:
        """Planar distance between two indexed points; 0 if either is missing."""
        n = len(self)
        if not (0 <= i < n and 0 <= j < n):
            return 0.0
        return float(np.hypot(*(self.xy[i] - self.xy[j])))
