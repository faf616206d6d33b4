from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, HTTPException

from models.voice import VoiceSettings

from ..api_models import (
    ActionResponse,
    StatusResponse,
    ThresholdsModel,
    ThresholdsUpdate,
    VoiceSettingsUpdate,
    VoiceStateResponse,
)
from ..state import state

router = APIRouter()

# Frames older than this mean the detector has stalled
RUNNING_MAX_FRAME_AGE_S = 5.0


def _engine():
    engine = state.get_engine()
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def _frame_age(now: float) -> Optional[float]:
    last_frame_ts = state.get_system_stats_copy().get("last_frame_ts")
    return now - last_frame_ts if last_frame_ts else None


def _voice_state(engine) -> dict:
    snap = engine.snapshot()
    return {
        "enabled": snap["voice_enabled"],
        "paused": snap["paused"],
        "speech_state": snap["speech_state"],
        "last_message": snap["last_message"],
        "settings": snap["voice_settings"],
    }


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Aggregate engine status for the UI.
    Fields:
    - running: a detection frame arrived within the last 5 seconds
    - alerts: active safety alert texts (connection first)
    - processed: last cycle's stabilized detections
    - voice_settings / thresholds: current effective values
    - stats: frame, dropped frame and announcement counters
    """
    engine = _engine()
    now = time.time()
    snap = engine.snapshot()

    start_time = state.get_system_stats_copy().get("start_time") or None
    uptime = now - start_time if start_time else None
    last_frame_age = _frame_age(now)

    alerts = [text for text in snap["alerts"].values() if text]

    return {
        "running": last_frame_age is not None and last_frame_age <= RUNNING_MAX_FRAME_AGE_S,
        "last_frame_age_s": last_frame_age,
        "uptime_seconds": int(uptime) if uptime is not None else None,
        "voice_enabled": snap["voice_enabled"],
        "paused": snap["paused"],
        "speech_state": snap["speech_state"],
        "last_message": snap["last_message"],
        "alerts": alerts,
        "processed": snap["processed"],
        "voice_settings": snap["voice_settings"],
        "thresholds": snap["thresholds"],
        "stats": snap["stats"],
        "timestamp": now,
    }


@router.get("/voice", response_model=VoiceStateResponse)
def get_voice():
    return _voice_state(_engine())


@router.put("/voice", response_model=VoiceStateResponse)
def update_voice(req: VoiceSettingsUpdate):
    """Apply a partial voice settings update and announce the change."""
    engine = _engine()
    current: VoiceSettings = engine.voice_settings
    updated = current.copy_with(
        language=req.language,
        speech_rate=req.speech_rate,
        pitch=req.pitch,
        volume=req.volume,
    )
    try:
        engine.update_voice_settings(updated)
    except Exception as e:
        logging.error(f"Failed to update voice settings: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return _voice_state(engine)


@router.post("/voice/toggle", response_model=ActionResponse)
def toggle_voice():
    engine = _engine()
    enabled = engine.toggle_voice()
    return {"ok": True, "voice_enabled": enabled, "spoken": engine.snapshot()["last_message"]}


@router.post("/voice/pause", response_model=ActionResponse)
def pause_voice():
    """Silence narration until resumed; the voice toggle is left as is."""
    engine = _engine()
    engine.pause()
    return {"ok": True, "voice_enabled": engine.voice_enabled}


@router.post("/voice/resume", response_model=ActionResponse)
def resume_voice():
    engine = _engine()
    engine.resume()
    return {"ok": True, "voice_enabled": engine.voice_enabled}


@router.post("/voice/repeat", response_model=ActionResponse)
def repeat_last():
    """Speak the last message again. ok is false when there is nothing to repeat."""
    engine = _engine()
    spoken = engine.repeat_last()
    return {"ok": spoken is not None, "spoken": spoken, "voice_enabled": engine.voice_enabled}


@router.post("/voice/stop", response_model=ActionResponse)
def stop_speech():
    engine = _engine()
    engine.stop_speech()
    return {"ok": True, "voice_enabled": engine.voice_enabled}


@router.get("/thresholds", response_model=ThresholdsModel)
def get_thresholds():
    return _engine().snapshot()["thresholds"]


@router.put("/thresholds", response_model=ThresholdsModel)
def update_thresholds(req: ThresholdsUpdate):
    engine = _engine()
    return engine.update_thresholds(req.iou_threshold, req.close_obstacle_area_threshold)


@router.post("/history/clear", response_model=ActionResponse)
def clear_history():
    """Forget the previous frame, e.g. after switching detection models."""
    _engine().clear_history()
    return {"ok": True}
