from __future__ import annotations

import numpy as np
import pytest
from conftest import make_pulse

from facevitals.landmarks import LandmarkSet
from facevitals.session import AnalysisSession, SessionConfig, SmoothingConfig


def test_end_to_end_dense_face_and_pulse(dense_face: np.ndarray) -> None:
    session = AnalysisSession()
    lm = LandmarkSet.from_points(dense_face)
    t, x = make_pulse(1.2, 12.0)
    res = None
    for ti, xi in zip(t, x):
        res = session.update(lm, ti, xi)
    assert res is not None and res.face_detected
    assert 0.25 <= res.insights.ear_avg <= 0.35
    assert res.insights.mar < 0.1
    assert res.insights.blink_rate_per_min == 0.0
    assert res.insights.perclos == 0.0
    assert res.ppg.heart_rate.bpm is not None
    assert abs(res.ppg.heart_rate.bpm - 72.0) <= 3.0
    assert res.jawline_smoothed.shape[0] == 4 * res.metrics.jawline.shape[0]
    assert res.motion is not None
    assert res.motion.corrected == pytest.approx(0.0, abs=1e-9)
    assert session.frames == t.size


def test_raw_points_and_empty_frames(dense_face: np.ndarray) -> None:
    session = AnalysisSession()
    res = session.update(dense_face.tolist(), 0.0, 100.0)
    assert res.face_detected
    empty = session.update([], 33.0, 100.0)
    assert not empty.face_detected
    assert empty.metrics.left_eye.openness == 0.0
    assert empty.insights.ear_avg == 0.0
    assert empty.adiposity.category == "low"
    assert empty.jawline_smoothed.shape == (0, 2)
    assert empty.motion is None
    assert len(session.ppg) == 2


def test_intensity_sampled_from_frame(dense_face: np.ndarray) -> None:
    session = AnalysisSession()
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    frame[..., 1] = 90
    res = session.update(dense_face, 0.0, frame=frame)
    assert res.intensity == pytest.approx(90.0)
    assert len(session.ppg) == 1


def test_timestamps_must_not_go_backwards(dense_face: np.ndarray) -> None:
    session = AnalysisSession()
    session.update(dense_face, 100.0)
    with pytest.raises(ValueError):
        session.update(dense_face, 50.0)
    with pytest.raises(ValueError):
        session.update(dense_face, float("nan"))


def test_sessions_are_independent(dense_face: np.ndarray) -> None:
    a = AnalysisSession()
    b = AnalysisSession(SessionConfig(smoothing=SmoothingConfig(chaikin_iterations=0)))
    a.update(dense_face, 0.0, 1.0)
    a.update(dense_face, 10.0, 1.0)
    res_b = b.update(dense_face, 0.0, 1.0)
    assert len(a.ppg) == 2 and len(b.ppg) == 1
    assert res_b.jawline_smoothed.shape == res_b.metrics.jawline.shape
    a.reset()
    assert len(a.ppg) == 0 and a.frames == 0


def test_two_point_frame_reports_no_fullness() -> None:
    session = AnalysisSession()
    res = session.update([(0.2, 0.5), (0.8, 0.5)], 0.0)
    assert not res.face_detected
    assert res.adiposity.fullness_index == 0.0
    assert res.adiposity.category == "low"


def test_estimates_clear_after_face_is_lost(dense_face: np.ndarray) -> None:
    session = AnalysisSession()
    t, x = make_pulse(1.2, 20.0)
    for ti, xi in zip(t, x):
        res = session.update(dense_face, ti, xi)
    assert res.ppg.heart_rate.bpm is not None
    start = float(t[-1])
    for k in range(1, 901):
        res = session.update([], start + k * 1000.0 / 30.0)
    assert res.ppg.samples == 0
    assert res.ppg.heart_rate.bpm is None
    assert res.ppg.heart_rate.confidence == 0.0
    assert res.ppg.respiration.brpm is None
    assert res.ppg.hrv.rmssd is None
    assert res.ppg.confidence_label == "low"
