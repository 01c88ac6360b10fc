"""Blink, PERCLOS and yawn tracking over eye/mouth openness.

A two-state (OPEN / CLOSED) machine with an adaptive closure threshold that
follows an exponential moving average of the eye openness. Closed spans
feed PERCLOS; short closures (80-500 ms by default) additionally count as
blinks. All history is pruned to the sliding window on every update.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .geometry import FaceMetrics
from .landmarks import clamp01


@dataclass
class InsightsConfig:
    window_ms: float = 60000.0
    blink_min_ms: float = 80.0
    blink_max_ms: float = 500.0
    baseline_decay: float = 0.98
    threshold_scale: float = 0.55
    threshold_min: float = 0.08
    threshold_max: float = 0.6
    yawn_low: float = 0.25
    yawn_high: float = 0.5

    def __post_init__(self) -> None:
        if not self.window_ms > 0:
            raise ValueError("window_ms must be positive")
        if self.blink_min_ms > self.blink_max_ms:
            raise ValueError("blink_min_ms must not exceed blink_max_ms")
        if not self.yawn_low < self.yawn_high:
            raise ValueError("yawn_low must be below yawn_high")


@dataclass
class TrackerState:
    closed: bool = False
    last_change: float = 0.0  # ms
    blink_times: List[float] = field(default_factory=list)
    closed_spans: List[Tuple[float, float]] = field(default_factory=list)
    baseline: Optional[float] = None
    last_t: Optional[float] = None


@dataclass
class InsightsSnapshot:
    ear_left: float
    ear_right: float
    ear_avg: float
    blink: bool  # a blink completed on this update
    blink_rate_per_min: float
    perclos: float  # 0..1 over the window
    mar: float
    yawn_probability: float
    threshold: float


def yawn_probability(mar: float, low: float = 0.25, high: float = 0.5) -> float:
    """Linear ramp of mouth openness: 0 at ``low``, 1 at ``high``."""
    return clamp01((mar - low) / (high - low))


class EyeStateTracker:
    def __init__(self, cfg: Optional[InsightsConfig] = None) -> None:
        self.cfg = cfg or InsightsConfig()
        self.state = TrackerState()

    def reset(self) -> None:
        self.state = TrackerState()

    def _threshold(self) -> float:
        cfg = self.cfg
        base = self.state.baseline if self.state.baseline is not None else 0.0
        return min(cfg.threshold_max, max(cfg.threshold_min, base * cfg.threshold_scale))

    def _advance(self, now_ms: float) -> None:
        if not math.isfinite(now_ms) or now_ms < 0:
            raise ValueError(f"invalid timestamp: {now_ms!r}")
        st = self.state
        if st.last_t is not None and now_ms < st.last_t:
            raise ValueError("timestamps must be non-decreasing")
        st.last_t = now_ms

    def _prune(self, now: float) -> None:
        cutoff = now - self.cfg.window_ms
        st = self.state
        st.blink_times = [t for t in st.blink_times if t >= cutoff]
        st.closed_spans = [s for s in st.closed_spans if s[1] >= cutoff]

    def perclos(self, now: float) -> float:
        """Fraction of the window spent closed, including an ongoing closure."""
        cutoff = now - self.cfg.window_ms
        spans = list(self.state.closed_spans)
        if self.state.closed:
            spans.append((self.state.last_change, now))
        closed_ms = 0.0
        for start, end in spans:
            start = max(start, cutoff)
            closed_ms += max(0.0, end - start)
        return clamp01(closed_ms / self.cfg.window_ms)

    def blink_rate(self) -> float:
        return len(self.state.blink_times) * (60000.0 / self.cfg.window_ms)

    def update(
        self,
        now_ms: float,
        ear_left: float,
        ear_right: float,
        mar: float = 0.0,
    ) -> InsightsSnapshot:
        """Advance the tracker by one frame.

        Raises:
            ValueError: negative/non-finite or decreasing timestamp.
        """
        self._advance(now_ms)
        st = self.state
        cfg = self.cfg

        ear_avg = 0.5 * (ear_left + ear_right)
        if st.baseline is None:
            st.baseline = ear_avg
        st.baseline = cfg.baseline_decay * st.baseline + (1.0 - cfg.baseline_decay) * ear_avg
        thresh = self._threshold()

        blink = False
        if not st.closed and ear_avg < thresh:
            st.closed = True
            st.last_change = now_ms
        elif st.closed and ear_avg >= thresh:
            start = st.last_change
            duration = now_ms - start
            st.closed_spans.append((start, now_ms))
            if cfg.blink_min_ms <= duration <= cfg.blink_max_ms:
                st.blink_times.append(now_ms)
                blink = True
            st.closed = False
            st.last_change = now_ms

        self._prune(now_ms)
        return InsightsSnapshot(
            ear_left=ear_left,
            ear_right=ear_right,
            ear_avg=ear_avg,
            blink=blink,
            blink_rate_per_min=self.blink_rate(),
            perclos=self.perclos(now_ms),
            mar=mar,
            yawn_probability=yawn_probability(mar, cfg.yawn_low, cfg.yawn_high),
            threshold=thresh,
        )

    def idle(self, now_ms: float) -> InsightsSnapshot:
        """Snapshot for a frame without a face; state transitions are skipped.

        Raises:
            ValueError: negative/non-finite or decreasing timestamp.
        """
        self._advance(now_ms)
        self._prune(now_ms)
        return InsightsSnapshot(
            ear_left=0.0,
            ear_right=0.0,
            ear_avg=0.0,
            blink=False,
            blink_rate_per_min=self.blink_rate(),
            perclos=self.perclos(now_ms),
            mar=0.0,
            yawn_probability=0.0,
            threshold=self._threshold(),
        )

    def update_metrics(self, metrics: FaceMetrics, now_ms: float) -> InsightsSnapshot:
        return self.update(
            now_ms, metrics.left_eye.openness, metrics.right_eye.openness, metrics.mouth.open_ratio
        )
