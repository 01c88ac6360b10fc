"""Respiration rate (RR) estimation from the rPPG intensity trace.

Breathing modulates the baseline of the skin color signal, so the same
band-peak estimator used for heart rate is run over a lower band with a
wider (~1 s) detrend span.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .bpm import band_peak_rate


@dataclass
class RespirationResult:
    brpm: Optional[float]  # breaths per minute
    confidence: float
    sample_rate: Optional[float]
    window_seconds: float


def estimate_respiration_rate(
    t_ms: np.ndarray,
    values: np.ndarray,
    min_brpm: float = 6.0,
    max_brpm: float = 30.0,
) -> RespirationResult:
    est = band_peak_rate(t_ms, values, min_brpm, max_brpm, detrend_seconds=1.0)
    return RespirationResult(est.rate, est.confidence, est.sample_rate, est.window_seconds)
