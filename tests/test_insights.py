from __future__ import annotations

import pytest

from facevitals.insights import EyeStateTracker, InsightsConfig, yawn_probability

OPEN = 0.3
CLOSED = 0.02
STEP = 10.0


def _run(trk: EyeStateTracker, start: float, end: float, ear: float, mar: float = 0.0):
    snaps = []
    t = start
    while t < end:
        snaps.append(trk.update(t, ear, ear, mar))
        t += STEP
    return snaps


def test_short_dip_registers_one_blink() -> None:
    trk = EyeStateTracker()
    _run(trk, 0.0, 2000.0, OPEN)
    dip = _run(trk, 2000.0, 2150.0, CLOSED)
    after = _run(trk, 2150.0, 3000.0, OPEN)
    assert not any(s.blink for s in dip)
    assert sum(s.blink for s in after) == 1
    assert after[0].blink
    assert after[-1].blink_rate_per_min == pytest.approx(1.0)
    assert after[-1].perclos == pytest.approx(150.0 / 60000.0)


def test_long_dip_counts_for_perclos_only() -> None:
    trk = EyeStateTracker()
    _run(trk, 0.0, 2000.0, OPEN)
    dip = _run(trk, 2000.0, 2700.0, CLOSED)
    after = _run(trk, 2700.0, 3000.0, OPEN)
    assert dip[-1].perclos == pytest.approx(690.0 / 60000.0)
    assert not any(s.blink for s in after)
    assert after[-1].blink_rate_per_min == 0.0
    assert after[-1].perclos == pytest.approx(700.0 / 60000.0)


def test_history_is_pruned_to_window() -> None:
    trk = EyeStateTracker(InsightsConfig(window_ms=1000.0))
    _run(trk, 0.0, 500.0, OPEN)
    _run(trk, 500.0, 650.0, CLOSED)
    snap = _run(trk, 650.0, 700.0, OPEN)[-1]
    assert snap.blink_rate_per_min == pytest.approx(60.0)
    late = _run(trk, 700.0, 2000.0, OPEN)[-1]
    assert late.blink_rate_per_min == 0.0
    assert late.perclos == 0.0
    assert trk.state.blink_times == []
    assert trk.state.closed_spans == []


def test_threshold_adapts_and_is_clamped() -> None:
    trk = EyeStateTracker()
    snap = trk.update(0.0, 0.3, 0.3)
    assert snap.threshold == pytest.approx(0.3 * 0.55)
    trk = EyeStateTracker()
    assert trk.update(0.0, 2.0, 2.0).threshold == pytest.approx(0.6)
    trk = EyeStateTracker()
    assert trk.update(0.0, 0.01, 0.01).threshold == pytest.approx(0.08)


def test_yawn_probability_ramp() -> None:
    assert yawn_probability(0.1) == 0.0
    assert yawn_probability(0.25) == 0.0
    assert yawn_probability(0.375) == pytest.approx(0.5)
    assert yawn_probability(0.9) == 1.0
    trk = EyeStateTracker()
    assert trk.update(0.0, OPEN, OPEN, mar=0.5).yawn_probability == pytest.approx(1.0)


def test_invalid_timestamps() -> None:
    trk = EyeStateTracker()
    with pytest.raises(ValueError):
        trk.update(-5.0, OPEN, OPEN)
    with pytest.raises(ValueError):
        trk.update(float("inf"), OPEN, OPEN)
    trk.update(100.0, OPEN, OPEN)
    with pytest.raises(ValueError):
        trk.update(50.0, OPEN, OPEN)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        InsightsConfig(window_ms=0.0)
    with pytest.raises(ValueError):
        InsightsConfig(blink_min_ms=600.0, blink_max_ms=500.0)


def test_idle_frames_validate_timestamps() -> None:
    trk = EyeStateTracker()
    trk.update(100.0, OPEN, OPEN)
    with pytest.raises(ValueError):
        trk.idle(float("nan"))
    with pytest.raises(ValueError):
        trk.idle(-5.0)
    with pytest.raises(ValueError):
        trk.update(50.0, OPEN, OPEN)
    snap = trk.idle(200.0)
    assert snap.ear_avg == 0.0
    with pytest.raises(ValueError):
        trk.idle(150.0)
