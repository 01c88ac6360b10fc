"""Rolling PPG processor: intensity ring buffer with rate-limited estimates.

One instance per analysis session. ``push`` appends a sample and evicts
anything older than the window; ``update`` recomputes heart rate,
respiration and HRV only when their refresh interval has elapsed and
returns the latest cached results.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Deque, Optional

import numpy as np

from .bpm import HrResult, estimate_heart_rate
from .hrv import HrvResult, estimate_hrv
from .quality import confidence_label, signal_quality
from .respiration import RespirationResult, estimate_respiration_rate

logger = logging.getLogger(__name__)


@dataclass
class PpgConfig:
    window_ms: float = 20000.0
    hr_min_bpm: float = 42.0
    hr_max_bpm: float = 180.0
    rr_min_bpm: float = 6.0
    rr_max_bpm: float = 30.0
    hr_interval_ms: float = 1000.0
    rr_interval_ms: float = 2000.0
    hrv_interval_ms: float = 5000.0
    min_samples: int = 64
    hrv_min_samples: int = 128

    def __post_init__(self) -> None:
        if not self.window_ms > 0:
            raise ValueError("window_ms must be positive")
        if not 0 < self.hr_min_bpm < self.hr_max_bpm:
            raise ValueError("heart-rate band must satisfy 0 < min < max")
        if not 0 < self.rr_min_bpm < self.rr_max_bpm:
            raise ValueError("respiration band must satisfy 0 < min < max")


@dataclass(frozen=True)
class ColorSample:
    t: float  # ms
    intensity: float


def _empty_hr() -> HrResult:
    return HrResult(None, 0.0, None, 0.0)


def _empty_rr() -> RespirationResult:
    return RespirationResult(None, 0.0, None, 0.0)


def _empty_hrv() -> HrvResult:
    return HrvResult(None, None, None, 0)


@dataclass
class PpgSnapshot:
    heart_rate: HrResult = field(default_factory=_empty_hr)
    respiration: RespirationResult = field(default_factory=_empty_rr)
    hrv: HrvResult = field(default_factory=_empty_hrv)
    signal_quality: float = 0.0
    samples: int = 0

    @property
    def confidence_label(self) -> str:
        return confidence_label(self.heart_rate.confidence)


class PpgProcessor:
    def __init__(self, cfg: Optional[PpgConfig] = None) -> None:
        self.cfg = cfg or PpgConfig()
        self._buf: Deque[ColorSample] = deque()
        self._last_hr: Optional[float] = None
        self._last_rr: Optional[float] = None
        self._last_hrv: Optional[float] = None
        self._snap = PpgSnapshot()

    def __len__(self) -> int:
        return len(self._buf)

    def reset(self) -> None:
        self._buf.clear()
        self._last_hr = self._last_rr = self._last_hrv = None
        self._snap = PpgSnapshot()

    def push(self, t_ms: float, intensity: float) -> None:
        """Append one sample and evict samples older than the window.

        Raises:
            ValueError: negative/non-finite timestamp or a timestamp earlier
                than the previous sample.
        """
        if not math.isfinite(t_ms) or t_ms < 0:
            raise ValueError(f"invalid timestamp: {t_ms!r}")
        if self._buf and t_ms < self._buf[-1].t:
            raise ValueError("timestamps must be non-decreasing")
        if math.isfinite(intensity):
            self._buf.append(ColorSample(float(t_ms), float(intensity)))
        self._evict(t_ms)

    def _evict(self, now_ms: float) -> None:
        cutoff = now_ms - self.cfg.window_ms
        while self._buf and self._buf[0].t < cutoff:
            self._buf.popleft()

    def arrays(self) -> tuple[np.ndarray, np.ndarray]:
        t = np.fromiter((s.t for s in self._buf), dtype=np.float64, count=len(self._buf))
        v = np.fromiter((s.intensity for s in self._buf), dtype=np.float64, count=len(self._buf))
        return t, v

    @staticmethod
    def _due(last: Optional[float], now: float, interval: float) -> bool:
        return last is None or now - last >= interval

    def update(self, now_ms: float) -> PpgSnapshot:
        """Refresh whichever estimates are due and return the cached snapshot.

        Estimates are cleared as soon as the buffer holds fewer samples than
        they need, so a drained buffer never reports a stale rate.
        """
        self._evict(now_ms)
        cfg = self.cfg
        n = len(self._buf)
        self._snap.samples = n
        if n < cfg.min_samples:
            self._snap.heart_rate = _empty_hr()
            self._snap.respiration = _empty_rr()
            self._snap.signal_quality = 0.0
            self._last_hr = self._last_rr = None
        if n < cfg.hrv_min_samples:
            self._snap.hrv = _empty_hrv()
            self._last_hrv = None
        hr_due = n >= cfg.min_samples and self._due(self._last_hr, now_ms, cfg.hr_interval_ms)
        rr_due = n >= cfg.min_samples and self._due(self._last_rr, now_ms, cfg.rr_interval_ms)
        hrv_due = n >= cfg.hrv_min_samples and self._due(
            self._last_hrv, now_ms, cfg.hrv_interval_ms
        )
        if not (hr_due or rr_due or hrv_due):
            return replace(self._snap)
        t, v = self.arrays()
        if hr_due:
            self._last_hr = now_ms
            self._snap.heart_rate = estimate_heart_rate(t, v, cfg.hr_min_bpm, cfg.hr_max_bpm)
            self._snap.signal_quality = signal_quality(v)
            logger.debug(
                "HR %s bpm (conf %.2f, n=%d)",
                self._snap.heart_rate.bpm,
                self._snap.heart_rate.confidence,
                n,
            )
        if rr_due:
            self._last_rr = now_ms
            self._snap.respiration = estimate_respiration_rate(
                t, v, cfg.rr_min_bpm, cfg.rr_max_bpm
            )
        if hrv_due:
            self._last_hrv = now_ms
            self._snap.hrv = estimate_hrv(t, v)
            logger.debug("HRV rmssd=%s beats=%d", self._snap.hrv.rmssd, self._snap.hrv.beats)
        return replace(self._snap)

    def snapshot(self) -> PpgSnapshot:
        return replace(self._snap)
