"""Heart-rate variability from time-domain pulse peaks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .preprocess import detrend, moving_average

MIN_SAMPLES = 128
MIN_PEAKS = 3
DETREND_SPAN = 15
SMOOTH_HALF = 3
THRESHOLD_K = 0.3


@dataclass
class HrvResult:
    rmssd: Optional[float]  # ms
    sdnn: Optional[float]  # ms
    ibi_ms: Optional[float]  # mean inter-beat interval
    beats: int  # detected peaks


def pulse_waveform(values: np.ndarray) -> np.ndarray:
    """Mean-removed, detrended and lightly smoothed pulse trace."""
    x = np.asarray(values, dtype=np.float64)
    x = x - float(np.mean(x)) if x.size else x
    return moving_average(detrend(x, DETREND_SPAN), SMOOTH_HALF)


def detect_peaks(x: np.ndarray, k: float = THRESHOLD_K) -> np.ndarray:
    """Indices of strict local maxima above ``mean + k * std``."""
    x = np.asarray(x, dtype=np.float64)
    if x.size < 3:
        return np.zeros(0, dtype=int)
    thr = float(np.mean(x)) + k * float(np.std(x))
    mid = x[1:-1]
    hit = (mid > thr) & (mid > x[:-2]) & (mid > x[2:])
    return np.flatnonzero(hit) + 1


def estimate_hrv(t_ms: np.ndarray, values: np.ndarray) -> HrvResult:
    """RMSSD / SDNN / mean IBI from peaks of the pulse waveform.

    Fewer than 128 samples gives all-null metrics with 0 beats; fewer than 3
    peaks gives null metrics with the raw peak count.
    """
    t = np.asarray(t_ms, dtype=np.float64)
    x = np.asarray(values, dtype=np.float64)
    if x.size < MIN_SAMPLES or t.size != x.size:
        return HrvResult(None, None, None, 0)
    peaks = detect_peaks(pulse_waveform(x))
    if peaks.size < MIN_PEAKS:
        return HrvResult(None, None, None, int(peaks.size))
    ibis = np.diff(t[peaks])
    diffs = np.diff(ibis)
    return HrvResult(
        rmssd=float(np.sqrt(np.mean(diffs**2))),
        sdnn=float(np.std(ibis)),
        ibi_ms=float(np.mean(ibis)),
        beats=int(peaks.size),
    )
