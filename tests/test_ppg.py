from __future__ import annotations

import pytest
from conftest import make_pulse

import facevitals.ppg as ppg_mod
from facevitals.ppg import PpgConfig, PpgProcessor


def test_buffer_is_time_bounded() -> None:
    proc = PpgProcessor(PpgConfig(window_ms=5000.0))
    t, x = make_pulse(1.2, 12.0)
    for ti, xi in zip(t, x):
        proc.push(ti, xi)
    ts, _ = proc.arrays()
    assert ts[-1] - ts[0] <= 5000.0
    assert 149 <= len(proc) <= 151


def test_recompute_is_rate_limited(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[int] = []
    real = ppg_mod.estimate_heart_rate

    def counting(*args, **kwargs):
        calls.append(1)
        return real(*args, **kwargs)

    monkeypatch.setattr(ppg_mod, "estimate_heart_rate", counting)
    proc = PpgProcessor()
    t, x = make_pulse(1.2, 6.0)
    for ti, xi in zip(t, x):
        proc.push(ti, xi)
        proc.update(ti)
    # first compute once 64 samples are buffered (~2.1 s), then at most once per second
    assert 3 <= len(calls) <= 4


def test_heart_rate_converges_on_stream() -> None:
    proc = PpgProcessor()
    t, x = make_pulse(1.2, 20.0)
    snap = None
    for ti, xi in zip(t, x):
        proc.push(ti, xi)
        snap = proc.update(ti)
    assert snap is not None
    assert snap.heart_rate.bpm is not None
    assert abs(snap.heart_rate.bpm - 72.0) <= 3.0
    assert snap.confidence_label == "high"
    assert snap.hrv.beats > 0
    assert snap.samples == len(proc)


def test_not_enough_samples_keeps_null_results() -> None:
    proc = PpgProcessor()
    t, x = make_pulse(1.2, 1.0)
    for ti, xi in zip(t, x):
        proc.push(ti, xi)
    snap = proc.update(t[-1])
    assert snap.heart_rate.bpm is None
    assert snap.heart_rate.confidence == 0.0
    assert snap.respiration.brpm is None
    assert snap.hrv.rmssd is None


def test_invalid_timestamps_fail_fast() -> None:
    proc = PpgProcessor()
    with pytest.raises(ValueError):
        proc.push(-1.0, 1.0)
    with pytest.raises(ValueError):
        proc.push(float("nan"), 1.0)
    proc.push(100.0, 1.0)
    with pytest.raises(ValueError):
        proc.push(50.0, 1.0)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        PpgConfig(window_ms=0.0)
    with pytest.raises(ValueError):
        PpgConfig(hr_min_bpm=200.0, hr_max_bpm=100.0)


def test_reset_clears_state() -> None:
    proc = PpgProcessor()
    t, x = make_pulse(1.2, 5.0)
    for ti, xi in zip(t, x):
        proc.push(ti, xi)
    proc.update(t[-1])
    proc.reset()
    assert len(proc) == 0
    assert proc.snapshot().heart_rate.bpm is None


def test_drained_buffer_clears_estimates() -> None:
    proc = PpgProcessor()
    t, x = make_pulse(1.2, 20.0)
    for ti, xi in zip(t, x):
        proc.push(ti, xi)
        proc.update(ti)
    assert proc.snapshot().heart_rate.bpm is not None
    snap = proc.update(float(t[-1]) + 30000.0)
    assert snap.samples == 0
    assert snap.heart_rate.bpm is None
    assert snap.heart_rate.confidence == 0.0
    assert snap.respiration.brpm is None
    assert snap.hrv.rmssd is None
    assert snap.hrv.beats == 0
    assert snap.signal_quality == 0.0
