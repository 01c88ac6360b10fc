from __future__ import annotations

import numpy as np

from facevitals.preprocess import (
    detrend,
    magnitude_spectrum,
    moving_average,
    next_pow2,
    sampling_rate,
)


def test_detrend_constant_signal_is_zero() -> None:
    x = np.full(100, 5.0)
    assert np.allclose(detrend(x, span=15), 0.0)


def test_moving_average_truncates_at_edges() -> None:
    x = np.array([0.0, 3.0, 6.0, 9.0])
    y = moving_average(x, half=1)
    assert np.allclose(y, [1.5, 3.0, 6.0, 7.5])


def test_detrend_removes_linear_drift_in_interior() -> None:
    x = np.linspace(0.0, 10.0, 200)
    y = detrend(x, span=15)
    assert np.allclose(y[10:-10], 0.0, atol=1e-9)


def test_next_pow2() -> None:
    assert next_pow2(64) == 64
    assert next_pow2(65) == 128
    assert next_pow2(600) == 1024
    assert next_pow2(1) == 2


def test_sampling_rate_from_ms() -> None:
    t = np.arange(0, 1000, 1000 / 30)
    assert abs(sampling_rate(t) - 30.0) < 1e-6
    assert sampling_rate(np.zeros(10)) == 0.0
    assert sampling_rate(np.array([5.0])) == 0.0


def test_magnitude_spectrum_peak_and_bin_width() -> None:
    fs = 32.0
    t = np.arange(256) / fs
    x = np.sin(2 * np.pi * 4.0 * t)
    mag, bin_hz = magnitude_spectrum(x, fs)
    assert mag.size == 128
    assert bin_hz == fs / 256
    assert int(np.argmax(mag)) == 32
