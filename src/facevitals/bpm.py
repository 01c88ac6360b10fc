"""Heart-rate estimation from a color-intensity trace.

The same band-peak spectral estimator also drives respiration
(:mod:`facevitals.respiration`); only the band and detrend span differ.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .preprocess import detrend, magnitude_spectrum, sampling_rate
from .quality import band_confidence, snr_db

MIN_SAMPLES = 64


@dataclass
class BandEstimate:
    rate: Optional[float]  # cycles per minute
    confidence: float
    sample_rate: Optional[float]
    window_seconds: float
    peak_index: int = -1
    snr_db: float = 0.0


def band_peak_rate(
    t_ms: np.ndarray,
    values: np.ndarray,
    min_per_min: float,
    max_per_min: float,
    detrend_seconds: float,
    min_samples: int = MIN_SAMPLES,
) -> BandEstimate:
    """Dominant cyclic rate inside ``[min_per_min, max_per_min]``.

    Mean removal, moving-average detrend, zero-padded Hann FFT, then the
    strongest bin in band. Returns ``rate=None`` with confidence 0 on too few
    samples, a bad sampling rate or an empty band.
    """
    t = np.asarray(t_ms, dtype=np.float64)
    x = np.asarray(values, dtype=np.float64)
    if x.size < min_samples or t.size != x.size:
        return BandEstimate(None, 0.0, None, 0.0)
    fs = sampling_rate(t)
    if fs <= 0:
        return BandEstimate(None, 0.0, None, 0.0)
    window_seconds = x.size / fs

    x = x - float(np.mean(x))
    x = detrend(x, int(round(detrend_seconds * fs)))
    mag, bin_hz = magnitude_spectrum(x, fs)

    lo = max(1, int(np.floor((min_per_min / 60.0) / bin_hz)))
    hi = min(mag.size - 1, int(np.ceil((max_per_min / 60.0) / bin_hz)))
    if hi < lo:
        return BandEstimate(None, 0.0, fs, window_seconds)
    idx = lo + int(np.argmax(mag[lo : hi + 1]))
    if mag[idx] <= 0.0:
        return BandEstimate(None, 0.0, fs, window_seconds)
    return BandEstimate(
        rate=float(idx * bin_hz * 60.0),
        confidence=band_confidence(mag, lo, hi, idx),
        sample_rate=fs,
        window_seconds=window_seconds,
        peak_index=idx,
        snr_db=snr_db(mag, idx),
    )


@dataclass
class HrResult:
    bpm: Optional[float]
    confidence: float  # 0..1, relative peak dominance, not a probability
    sample_rate: Optional[float]
    window_seconds: float
    snr_db: float = 0.0


def estimate_heart_rate(
    t_ms: np.ndarray,
    values: np.ndarray,
    min_bpm: float = 42.0,
    max_bpm: float = 180.0,
) -> HrResult:
    """Estimate BPM as the spectral peak of the intensity trace.

    Args:
        t_ms: sample timestamps (ms), non-decreasing.
        values: intensity samples, same length.
        min_bpm/max_bpm: search band.
    """
    est = band_peak_rate(t_ms, values, min_bpm, max_bpm, detrend_seconds=0.5)
    return HrResult(est.rate, est.confidence, est.sample_rate, est.window_seconds, est.snr_db)
