"""Quality metrics for rPPG signals.

Includes a band-relative peak confidence, a simple SNR at the peak, and a
variance-based signal quality index. None of these are calibrated
probabilities; treat them as relative indicators.
"""

from __future__ import annotations

import numpy as np


def band_confidence(mag: np.ndarray, lo: int, hi: int, peak_index: int) -> float:
    """Peak magnitude divided by the mean magnitude over bins ``lo..hi``, clipped to [0, 1]."""
    band = np.asarray(mag, dtype=np.float64)[lo : hi + 1]
    if band.size == 0:
        return 0.0
    total = float(band.sum())
    if total <= 0.0:
        return 0.0
    ratio = float(mag[peak_index]) / (total / band.size)
    return float(np.clip(ratio, 0.0, 1.0))


def snr_db(
    spectrum: np.ndarray,
    peak_index: int,
    guard_bins: int = 1,
    band_bins: int = 1,
) -> float:
    """Estimate SNR at a known peak using the local noise floor.

    Signal is the mean magnitude within ±band_bins of the peak; noise is the
    median of bins outside a further ±guard_bins guard region.
    """
    p = np.asarray(spectrum, dtype=np.float64)
    n = int(p.size)
    if n == 0 or not 0 <= peak_index < n:
        return 0.0
    i0 = max(0, peak_index - band_bins)
    i1 = min(n, peak_index + band_bins + 1)
    sig = float(np.mean(p[i0:i1]))
    g0 = max(0, i0 - guard_bins)
    g1 = min(n, i1 + guard_bins)
    noise_bins = np.concatenate([p[:g0], p[g1:]])
    if noise_bins.size == 0:
        return 0.0
    noise = float(np.median(noise_bins))
    if noise <= 0.0 or sig <= 0.0:
        return 0.0
    return 10.0 * float(np.log10(sig / noise))


def signal_quality(values: np.ndarray, scale: float = 100.0) -> float:
    """Variance of the raw intensity divided by ``scale``, clipped to [0, 1]."""
    x = np.asarray(values, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(np.clip(np.var(x) / scale, 0.0, 1.0))


def confidence_label(confidence: float) -> str:
    if confidence > 0.66:
        return "high"
    if confidence > 0.33:
        return "medium"
    return "low"
