"""FastAPI service hosting independent analysis sessions.

Each subject gets its own ``AnalysisSession``; frames are POSTed with their
landmarks, timestamp and (optionally) a color-intensity sample, and the
per-frame result is returned as JSON. Sessions share nothing, so requests
for different sessions only contend on the registry lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import numpy as np
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .insights import InsightsConfig
from .ppg import PpgConfig
from .session import AnalysisSession, FrameResult, SessionConfig, SmoothingConfig

logger = logging.getLogger(__name__)


class SessionConfigModel(BaseModel):
    hr_min_bpm: float = Field(42.0, gt=0.0, le=300.0)
    hr_max_bpm: float = Field(180.0, gt=0.0, le=300.0)
    rr_min_bpm: float = Field(6.0, gt=0.0, le=60.0)
    rr_max_bpm: float = Field(30.0, gt=0.0, le=60.0)
    ppg_window_ms: float = Field(20000.0, gt=0.0, le=120000.0)
    perclos_window_ms: float = Field(60000.0, gt=0.0, le=600000.0)
    blink_min_ms: float = Field(80.0, ge=0.0)
    blink_max_ms: float = Field(500.0, ge=0.0)
    chaikin_iterations: int = Field(2, ge=0, le=5)
    savgol_window: int = Field(7, ge=1)
    max_jaw_points: Optional[int] = Field(64, ge=2)

    def to_config(self) -> SessionConfig:
        return SessionConfig(
            ppg=PpgConfig(
                window_ms=self.ppg_window_ms,
                hr_min_bpm=self.hr_min_bpm,
                hr_max_bpm=self.hr_max_bpm,
                rr_min_bpm=self.rr_min_bpm,
                rr_max_bpm=self.rr_max_bpm,
            ),
            insights=InsightsConfig(
                window_ms=self.perclos_window_ms,
                blink_min_ms=self.blink_min_ms,
                blink_max_ms=self.blink_max_ms,
            ),
            smoothing=SmoothingConfig(
                chaikin_iterations=self.chaikin_iterations,
                savgol_window=self.savgol_window,
                max_jaw_points=self.max_jaw_points,
            ),
        )


class FrameModel(BaseModel):
    t_ms: float = Field(..., ge=0.0)
    intensity: Optional[float] = None
    landmarks: list[list[float]] = Field(default_factory=list)


@dataclass
class SessionEntry:
    session: AnalysisSession
    lock: asyncio.Lock
    touched: float = 0.0  # clock seconds of the last request
    last: Optional[dict] = None


def _points(a: np.ndarray) -> list[list[float]]:
    return np.asarray(a, dtype=np.float64).reshape(-1, 2).round(6).tolist()


def frame_payload(res: FrameResult) -> dict:
    m = res.metrics
    ins = res.insights
    hr = res.ppg.heart_rate
    rr = res.ppg.respiration
    hrv = res.ppg.hrv
    adip = res.adiposity
    payload = {
        "t": res.t_ms,
        "face": res.face_detected,
        "mode": m.kind.value,
        "box": {
            "min_x": m.box.min_x,
            "min_y": m.box.min_y,
            "max_x": m.box.max_x,
            "max_y": m.box.max_y,
        },
        "eyes": {"left": m.left_eye.openness, "right": m.right_eye.openness},
        "mar": m.mouth.open_ratio,
        "head": {"roll": m.head.roll, "yaw": m.head.yaw, "pitch": m.head.pitch},
        "jawline": _points(res.jawline_smoothed),
        "blink": ins.blink,
        "blink_rate": ins.blink_rate_per_min,
        "perclos": ins.perclos,
        "yawn": ins.yawn_probability,
        "bpm": hr.bpm,
        "hr_conf": hr.confidence,
        "hr_label": res.ppg.confidence_label,
        "snr": hr.snr_db,
        "rr": rr.brpm,
        "rmssd": hrv.rmssd,
        "sdnn": hrv.sdnn,
        "ibi": hrv.ibi_ms,
        "beats": hrv.beats,
        "signal_quality": res.ppg.signal_quality,
        "fullness": adip.fullness_index,
        "fat_category": adip.category,
    }
    if res.motion is not None:
        payload["motion"] = {"raw": res.motion.raw, "corrected": res.motion.corrected}
    return payload


def make_app(
    session_ttl_s: float = 900.0,
    max_sessions: int = 256,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Build the service.

    Args:
        session_ttl_s: sessions idle longer than this are dropped.
        max_sessions: registry cap; creating past it evicts the least
            recently used session.
        clock: seconds source used for idle bookkeeping.
    """
    if session_ttl_s <= 0 or max_sessions < 1:
        raise ValueError("session_ttl_s must be positive and max_sessions >= 1")
    app = FastAPI(title="Face Vitals Service", version="0.1.0")

    sessions: Dict[str, SessionEntry] = {}
    registry_lock = asyncio.Lock()

    def sweep(now: float) -> None:
        # caller holds registry_lock
        for sid in [s for s, e in sessions.items() if now - e.touched > session_ttl_s]:
            del sessions[sid]
            logger.info("Session %s expired", sid)
        while len(sessions) >= max_sessions:
            sid = min(sessions, key=lambda s: sessions[s].touched)
            del sessions[sid]
            logger.warning("Session %s evicted (registry full)", sid)

    async def get_entry(session_id: str) -> SessionEntry:
        now = clock()
        async with registry_lock:
            entry = sessions.get(session_id)
            if entry is not None and now - entry.touched > session_ttl_s:
                del sessions[session_id]
                logger.info("Session %s expired", session_id)
                entry = None
            if entry is not None:
                entry.touched = now
        if entry is None:
            raise HTTPException(status_code=404, detail="unknown session")
        return entry

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.post("/sessions")
    async def create_session(cfg: Optional[SessionConfigModel] = None) -> dict:
        try:
            config = (cfg or SessionConfigModel()).to_config()
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        session_id = uuid.uuid4().hex
        now = clock()
        async with registry_lock:
            sweep(now)
            sessions[session_id] = SessionEntry(AnalysisSession(config), asyncio.Lock(), now)
        logger.info("Session %s created", session_id)
        return {"session_id": session_id}

    @app.post("/sessions/{session_id}/frames")
    async def post_frame(session_id: str, frame: FrameModel) -> dict:
        entry = await get_entry(session_id)
        async with entry.lock:
            try:
                res = entry.session.update(frame.landmarks, frame.t_ms, frame.intensity)
            except ValueError as exc:
                raise HTTPException(status_code=422, detail=str(exc)) from exc
            entry.last = frame_payload(res)
            return entry.last

    @app.get("/sessions/{session_id}/metrics")
    async def get_metrics(session_id: str) -> dict:
        entry = await get_entry(session_id)
        async with entry.lock:
            return dict(entry.last) if entry.last is not None else {"status": "init"}

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str) -> dict:
        async with registry_lock:
            entry = sessions.pop(session_id, None)
        if entry is None:
            raise HTTPException(status_code=404, detail="unknown session")
        logger.info("Session %s closed after %d frames", session_id, entry.session.frames)
        return {"status": "ok"}

    return app


app = make_app()


def main() -> None:  # pragma: no cover - manual run helper
    from pathlib import Path

    import uvicorn

    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(logs_dir / "service.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    uvicorn.run(app, host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
