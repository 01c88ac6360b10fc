"""2D similarity/affine fit from three point correspondences.

Solves for ``(a, b, c, d, tx, ty)`` such that

    x' = a x + b y + tx
    y' = c x + d y + ty

using Gaussian elimination with partial pivoting on the 6x6 system. When a
pivot collapses (near-colinear correspondences) the exact solve is abandoned
and a ridge-regularized least-squares solution biased toward the identity
is returned instead, flagged with ``regularized=True``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.linalg import lstsq

logger = logging.getLogger(__name__)

PIVOT_EPS = 1e-8
_IDENTITY = np.array([1.0, 0.0, 0.0, 1.0, 0.0, 0.0])


@dataclass(frozen=True)
class Affine2D:
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    tx: float = 0.0
    ty: float = 0.0
    regularized: bool = False

    def as_tuple(self) -> tuple[float, float, float, float, float, float]:
        return self.a, self.b, self.c, self.d, self.tx, self.ty

    def matrix(self) -> np.ndarray:
        """2x3 matrix in the layout expected by ``cv2.warpAffine``."""
        return np.array([[self.a, self.b, self.tx], [self.c, self.d, self.ty]], dtype=np.float64)

    def apply(self, points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
        p = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        m = self.matrix()
        return p @ m[:, :2].T + m[:, 2]


def _as_points(points: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    p = np.asarray(points, dtype=np.float64)
    if p.size == 0:
        return np.zeros((0, 2), dtype=np.float64)
    return p.reshape(-1, p.shape[-1])[:, :2]


def _system(src: np.ndarray, dst: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    A = np.zeros((6, 6), dtype=np.float64)
    rhs = np.zeros(6, dtype=np.float64)
    for k in range(3):
        x, y = src[k]
        A[2 * k] = [x, y, 0.0, 0.0, 1.0, 0.0]
        A[2 * k + 1] = [0.0, 0.0, x, y, 0.0, 1.0]
        rhs[2 * k] = dst[k, 0]
        rhs[2 * k + 1] = dst[k, 1]
    return A, rhs


def gauss_solve(A: np.ndarray, rhs: np.ndarray, eps: float = PIVOT_EPS) -> Optional[np.ndarray]:
    """Solve ``A x = rhs`` with partial pivoting. Returns None on a collapsed pivot."""
    n = A.shape[0]
    M = np.hstack([np.asarray(A, dtype=np.float64), np.asarray(rhs, dtype=np.float64).reshape(n, 1)])
    for col in range(n):
        pivot = col + int(np.argmax(np.abs(M[col:, col])))
        if abs(M[pivot, col]) < eps:
            return None
        if pivot != col:
            M[[col, pivot]] = M[[pivot, col]]
        M[col, col:] /= M[col, col]
        for r in range(n):
            if r != col:
                M[r, col:] -= M[r, col] * M[col, col:]
    return M[:, n].copy()


def _ridge_solve(A: np.ndarray, rhs: np.ndarray, ridge: float) -> np.ndarray:
    # min ||A p - rhs||^2 + ridge * ||p - identity||^2
    lam = np.sqrt(ridge)
    A_aug = np.vstack([A, lam * np.eye(6)])
    b_aug = np.concatenate([rhs, lam * _IDENTITY])
    sol, *_ = lstsq(A_aug, b_aug)
    return sol


def estimate_similarity_2d(
    src: np.ndarray | Sequence[Sequence[float]],
    dst: np.ndarray | Sequence[Sequence[float]],
    ridge: float = 1e-6,
) -> Affine2D:
    """Fit the affine map taking the first three ``src`` points onto ``dst``.

    Fewer than three points on either side yields the identity transform.
    """
    s = _as_points(src)
    t = _as_points(dst)
    if s.shape[0] < 3 or t.shape[0] < 3:
        return Affine2D()
    A, rhs = _system(s[:3], t[:3])
    sol = gauss_solve(A, rhs)
    if sol is not None:
        return Affine2D(*map(float, sol))
    logger.warning("Near-singular correspondences; using regularized affine fit")
    return Affine2D(*map(float, _ridge_solve(A, rhs, ridge)), regularized=True)


@dataclass
class FacialMotion:
    transform: Affine2D
    raw: float  # mean displacement of the points, same units as input
    corrected: float  # mean displacement left after removing the rigid head motion


def facial_motion(
    prev_anchors: np.ndarray | Sequence[Sequence[float]],
    cur_anchors: np.ndarray | Sequence[Sequence[float]],
    prev_points: np.ndarray | Sequence[Sequence[float]],
    cur_points: np.ndarray | Sequence[Sequence[float]],
) -> FacialMotion:
    """Landmark displacement between two frames with head motion cancelled.

    The anchors (e.g. eye centers and mouth center) define the rigid motion;
    ``prev_points`` are carried through it before measuring the residual.
    """
    p0 = _as_points(prev_points)
    p1 = _as_points(cur_points)
    if p0.shape != p1.shape:
        raise ValueError("prev_points and cur_points must have the same shape")
    T = estimate_similarity_2d(prev_anchors, cur_anchors)
    if p0.shape[0] == 0:
        return FacialMotion(T, 0.0, 0.0)
    raw = float(np.linalg.norm(p1 - p0, axis=1).mean())
    corrected = float(np.linalg.norm(p1 - T.apply(p0), axis=1).mean())
    return FacialMotion(T, raw, corrected)
