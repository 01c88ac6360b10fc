"""Per-subject analysis session.

``AnalysisSession`` owns every piece of cross-frame state (PPG buffer,
refresh timers, eye-state tracker, previous landmarks). Create one per
subject; calls on a single session must be serialized by the caller.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import numpy as np

from .adiposity import AdiposityResult, empty_adiposity, estimate_facial_adiposity
from .geometry import FaceMetrics, analyze_face
from .insights import EyeStateTracker, InsightsConfig, InsightsSnapshot
from .landmarks import LandmarkSet, MeshKind
from .ppg import PpgConfig, PpgProcessor, PpgSnapshot
from .roi import RoiConfig, forehead_roi, mean_green
from .smoothing import SAVGOL_WINDOW, savitzky_golay, smooth_chaikin
from .stabilize import anchor_points
from .transform import FacialMotion, facial_motion

logger = logging.getLogger(__name__)


@dataclass
class SmoothingConfig:
    chaikin_iterations: int = 2
    savgol_window: int = SAVGOL_WINDOW
    max_jaw_points: Optional[int] = 64

    def __post_init__(self) -> None:
        if self.chaikin_iterations < 0:
            raise ValueError("chaikin_iterations must be >= 0")


@dataclass
class SessionConfig:
    ppg: PpgConfig = field(default_factory=PpgConfig)
    insights: InsightsConfig = field(default_factory=InsightsConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    roi: RoiConfig = field(default_factory=RoiConfig)


@dataclass
class FrameResult:
    t_ms: float
    metrics: FaceMetrics
    insights: InsightsSnapshot
    adiposity: AdiposityResult
    ppg: PpgSnapshot
    jawline_smoothed: np.ndarray
    intensity: Optional[float] = None
    motion: Optional[FacialMotion] = None

    @property
    def face_detected(self) -> bool:
        return self.metrics.kind is not MeshKind.EMPTY


class AnalysisSession:
    def __init__(self, cfg: Optional[SessionConfig] = None) -> None:
        self.cfg = cfg or SessionConfig()
        self.ppg = PpgProcessor(self.cfg.ppg)
        self.tracker = EyeStateTracker(self.cfg.insights)
        self._last_t: Optional[float] = None
        self._prev_lm: Optional[LandmarkSet] = None
        self._prev_anchors: Optional[np.ndarray] = None
        self.frames = 0

    def reset(self) -> None:
        self.ppg.reset()
        self.tracker.reset()
        self._last_t = None
        self._prev_lm = None
        self._prev_anchors = None
        self.frames = 0

    def _check_time(self, t_ms: float) -> None:
        if not math.isfinite(t_ms) or t_ms < 0:
            raise ValueError(f"invalid timestamp: {t_ms!r}")
        if self._last_t is not None and t_ms < self._last_t:
            raise ValueError("timestamps must be non-decreasing")

    def _motion(self, lm: LandmarkSet, anchors: np.ndarray) -> Optional[FacialMotion]:
        prev_lm, prev_anchors = self._prev_lm, self._prev_anchors
        if prev_lm is None or prev_anchors is None or len(prev_lm) != len(lm):
            return None
        return facial_motion(prev_anchors, anchors, prev_lm.xy, lm.xy)

    def update(
        self,
        landmarks: LandmarkSet | Iterable[Any] | np.ndarray | None,
        t_ms: float,
        intensity: Optional[float] = None,
        frame: Optional[np.ndarray] = None,
    ) -> FrameResult:
        """Process one frame.

        Args:
            landmarks: validated LandmarkSet or raw detector points.
            t_ms: monotonic timestamp in milliseconds.
            intensity: color-intensity sample for the PPG buffer.
            frame: optional HxWx3 image; when ``intensity`` is None the
                forehead mean green is sampled from it.

        Raises:
            ValueError: bad timestamp or malformed landmarks.
        """
        self._check_time(t_ms)
        lm = landmarks if isinstance(landmarks, LandmarkSet) else LandmarkSet.from_points(landmarks)
        self._last_t = t_ms
        self.frames += 1

        sm = self.cfg.smoothing
        metrics = analyze_face(lm, sm.max_jaw_points)
        motion = None
        if metrics.kind is MeshKind.EMPTY:
            insights = self.tracker.idle(t_ms)
            adiposity = empty_adiposity()
            self._prev_lm = self._prev_anchors = None
        else:
            insights = self.tracker.update_metrics(metrics, t_ms)
            adiposity = estimate_facial_adiposity(lm)
            anchors = anchor_points(metrics)
            motion = self._motion(lm, anchors)
            self._prev_lm, self._prev_anchors = lm, anchors
            if intensity is None and frame is not None:
                h, w = frame.shape[:2]
                rect = forehead_roi(metrics.box, w, h, self.cfg.roi)
                intensity = mean_green(frame, rect, self.cfg.roi.stride)

        if intensity is not None:
            self.ppg.push(t_ms, intensity)
        ppg = self.ppg.update(t_ms)

        jaw = savitzky_golay(
            smooth_chaikin(metrics.jawline, sm.chaikin_iterations), sm.savgol_window
        )
        if insights.blink:
            logger.debug("Blink at %.0f ms (rate %.1f/min)", t_ms, insights.blink_rate_per_min)
        return FrameResult(
            t_ms=t_ms,
            metrics=metrics,
            insights=insights,
            adiposity=adiposity,
            ppg=ppg,
            jawline_smoothed=jaw,
            intensity=intensity,
            motion=motion,
        )
