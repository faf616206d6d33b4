"""
Typed models for the vision narrator.

These are plain immutable values passed between pipeline stages; stage
state (tracker history, announcement state) lives in the stage that owns it.
"""

from .detection import BoundingBox, Candidate, Detection, TrafficLightSignal
from .frame import DetectionFrame
from .track import TrackedDetection
from .processed import ProcessedDetections, SafetyAlerts
from .voice import AnnouncementState, VoiceSettings
from .config import (
    Config,
    ProcessingConfig,
    TrackingConfig,
    AnnouncementConfig,
    AlertsConfig,
    SpeechConfig,
    WebConfig,
)

__all__ = [
    # Detection
    "BoundingBox",
    "Candidate",
    "Detection",
    "TrafficLightSignal",
    "DetectionFrame",
    # Tracking
    "TrackedDetection",
    # Per-cycle output
    "ProcessedDetections",
    "SafetyAlerts",
    # Voice
    "AnnouncementState",
    "VoiceSettings",
    # Config
    "Config",
    "ProcessingConfig",
    "TrackingConfig",
    "AnnouncementConfig",
    "AlertsConfig",
    "SpeechConfig",
    "WebConfig",
]
