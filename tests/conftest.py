from __future__ import annotations

import numpy as np
import pytest

from facevitals.geometry import FACE_OVAL

# Open eyes (EAR 0.3) and a closed mouth (MAR 0.025) on a 468-point mesh
EYE_AND_MOUTH = {
    33: (0.38, 0.40), 133: (0.48, 0.40),
    159: (0.42, 0.385), 145: (0.42, 0.415),
    158: (0.44, 0.385), 153: (0.44, 0.415),
    263: (0.62, 0.40), 362: (0.52, 0.40),
    386: (0.58, 0.385), 374: (0.58, 0.415),
    385: (0.56, 0.385), 380: (0.56, 0.415),
    61: (0.42, 0.65), 291: (0.58, 0.65),
    13: (0.50, 0.648), 14: (0.50, 0.652),
}


def make_dense_face(n: int = 468) -> np.ndarray:
    i = np.arange(n)
    xy = np.stack(
        [0.35 + 0.3 * ((i * 37) % 100) / 100.0, 0.25 + 0.5 * ((i * 61) % 100) / 100.0],
        axis=1,
    )
    theta = np.linspace(-np.pi / 2, 3 * np.pi / 2, len(FACE_OVAL), endpoint=False)
    for k, idx in enumerate(FACE_OVAL):
        xy[idx] = (0.5 + 0.2 * np.cos(theta[k]), 0.5 + 0.3 * np.sin(theta[k]))
    for idx, p in EYE_AND_MOUTH.items():
        xy[idx] = p
    return xy


def make_pulse(
    freq_hz: float,
    seconds: float,
    fs: float = 30.0,
    base: float = 120.0,
    amp: float = 2.0,
    phase: float = 0.0,
) -> tuple[np.ndarray, np.ndarray]:
    t = np.arange(0, seconds, 1 / fs)
    return t * 1000.0, base + amp * np.sin(2 * np.pi * freq_hz * t + phase)


@pytest.fixture
def dense_face() -> np.ndarray:
    return make_dense_face()
