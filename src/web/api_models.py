from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class VoiceSettingsModel(BaseModel):
    language: str
    speech_rate: float
    pitch: float
    volume: float


class VoiceSettingsUpdate(BaseModel):
    """
    Partial voice settings update. Omitted fields keep their current value;
    out-of-range values are clamped, unsupported languages fall back to the default.
    """
    language: Optional[str] = None
    speech_rate: Optional[float] = None
    pitch: Optional[float] = None
    volume: Optional[float] = None


class VoiceStateResponse(BaseModel):
    enabled: bool
    paused: bool = False
    speech_state: str = Field(..., description="idle|speaking")
    last_message: Optional[str] = None
    settings: VoiceSettingsModel


class ThresholdsModel(BaseModel):
    iou_threshold: float
    close_obstacle_area_threshold: float


class ThresholdsUpdate(BaseModel):
    """Values are clamped silently into their valid ranges."""
    iou_threshold: Optional[float] = None
    close_obstacle_area_threshold: Optional[float] = None


class ActionResponse(BaseModel):
    ok: bool = True
    spoken: Optional[str] = Field(None, description="Text handed to the speech engine, if any")
    voice_enabled: Optional[bool] = None


class StatusResponse(BaseModel):
    """
    Status response for polling clients (every 1-2s).
    """
    running: bool = Field(..., description="True if frames arrived recently")
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last detection frame")
    uptime_seconds: Optional[int] = None
    voice_enabled: bool
    paused: bool = False
    speech_state: str
    last_message: Optional[str] = None
    alerts: list[str] = Field(default_factory=list, description="Active safety alert texts")
    processed: Dict[str, Any] = Field(default_factory=dict)
    voice_settings: VoiceSettingsModel
    thresholds: ThresholdsModel
    stats: Dict[str, int] = Field(default_factory=dict)
    timestamp: float
