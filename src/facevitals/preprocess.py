"""Signal preprocessing for rPPG.

All helpers are pure: 1D array in, new array out.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np


def moving_average(x: np.ndarray, half: int) -> np.ndarray:
    """Centered moving average over ``[i - half, i + half]``.

    The window is truncated at the boundaries (mean of the samples that
    exist) rather than padded.
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.size
    if n == 0:
        return x.copy()
    half = max(0, int(half))
    c = np.concatenate([[0.0], np.cumsum(x)])
    i = np.arange(n)
    lo = np.maximum(0, i - half)
    hi = np.minimum(n, i + half + 1)
    return (c[hi] - c[lo]) / (hi - lo)


def detrend(x: np.ndarray, span: int) -> np.ndarray:
    """Remove slow baseline drift by subtracting a centered moving average.

    Args:
        x: 1D array.
        span: full window length in samples; half-width is ``max(1, span // 2)``.
    """
    x = np.asarray(x, dtype=np.float64)
    return x - moving_average(x, max(1, int(span) // 2))


def next_pow2(n: int) -> int:
    n = max(2, int(n))
    return 1 << (n - 1).bit_length()


def sampling_rate(t_ms: np.ndarray) -> float:
    """Mean sampling rate (Hz) from millisecond timestamps; 0 if not estimable."""
    t = np.asarray(t_ms, dtype=np.float64)
    if t.size < 2:
        return 0.0
    dt = float(np.mean(np.diff(t))) / 1000.0
    if not np.isfinite(dt) or dt <= 0:
        return 0.0
    return 1.0 / dt


def magnitude_spectrum(x: np.ndarray, fs: float) -> Tuple[np.ndarray, float]:
    """Zero-pad to a power of two, Hann window, and return (|X|, bin width Hz).

    The window spans the padded length. Magnitudes are scaled by 1/N.
    """
    x = np.asarray(x, dtype=np.float64)
    n = next_pow2(x.size)
    padded = np.zeros(n, dtype=np.float64)
    padded[: x.size] = x
    w = np.hanning(n)
    X = np.fft.rfft(padded * w / n)
    # positive-frequency half without Nyquist
    mag = np.abs(X[: n // 2])
    return mag, fs / n
