"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .voice import VoiceSettings


IOU_THRESHOLD_RANGE = (0.05, 0.95)
CLOSE_AREA_THRESHOLD_RANGE = (0.05, 0.9)


def clamp(value: float, low: float, high: float) -> float:
    return min(max(float(value), low), high)


@dataclass
class TrackingConfig:
    """Previous-frame approach detection configuration."""
    min_match_iou: float = 0.2
    growth_ratio: float = 1.6
    vertical_tolerance: float = 0.05

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            min_match_iou=d.get("min_match_iou", 0.2),
            growth_ratio=d.get("growth_ratio", 1.6),
            vertical_tolerance=d.get("vertical_tolerance", 0.05),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_match_iou": self.min_match_iou,
            "growth_ratio": self.growth_ratio,
            "vertical_tolerance": self.vertical_tolerance,
        }


@dataclass
class ProcessingConfig:
    """Detection stabilization configuration."""
    iou_threshold: float = 0.45
    close_obstacle_area_threshold: float = 0.22
    merge_duplicates: bool = True
    merge_center_distance: float = 0.045
    merge_iou: float = 0.4
    frame_size: Optional[List[int]] = None
    tracking: TrackingConfig = field(default_factory=TrackingConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ProcessingConfig":
        """Adapter: Create from config dictionary. Thresholds are clamped."""
        return cls(
            iou_threshold=clamp(d.get("iou_threshold", 0.45), *IOU_THRESHOLD_RANGE),
            close_obstacle_area_threshold=clamp(
                d.get("close_obstacle_area_threshold", 0.22), *CLOSE_AREA_THRESHOLD_RANGE
            ),
            merge_duplicates=d.get("merge_duplicates", True),
            merge_center_distance=d.get("merge_center_distance", 0.045),
            merge_iou=d.get("merge_iou", 0.4),
            frame_size=d.get("frame_size"),
            tracking=TrackingConfig.from_dict(d.get("tracking", {}) or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "iou_threshold": self.iou_threshold,
            "close_obstacle_area_threshold": self.close_obstacle_area_threshold,
            "merge_duplicates": self.merge_duplicates,
            "merge_center_distance": self.merge_center_distance,
            "merge_iou": self.merge_iou,
            "tracking": self.tracking.to_dict(),
        }
        if self.frame_size is not None:
            d["frame_size"] = self.frame_size
        return d


@dataclass
class AnnouncementConfig:
    """Announcement composition and scheduling configuration."""
    min_pause_s: float = 3.0
    emergency_repeat_s: float = 1.0
    alert_repeat_s: float = 10.0
    max_items: int = 3
    close_distance_m: float = 1.5

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnnouncementConfig":
        return cls(
            min_pause_s=d.get("min_pause_s", 3.0),
            emergency_repeat_s=d.get("emergency_repeat_s", 1.0),
            alert_repeat_s=d.get("alert_repeat_s", 10.0),
            max_items=d.get("max_items", 3),
            close_distance_m=d.get("close_distance_m", 1.5),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "min_pause_s": self.min_pause_s,
            "emergency_repeat_s": self.emergency_repeat_s,
            "alert_repeat_s": self.alert_repeat_s,
            "max_items": self.max_items,
            "close_distance_m": self.close_distance_m,
        }


@dataclass
class AlertsConfig:
    """Safety alert monitor timings, in seconds."""
    tick_interval_s: float = 1.0
    connection_timeout_s: float = 5.0
    camera_idle_s: float = 6.0
    camera_missing_s: float = 8.0
    camera_recover_s: float = 3.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AlertsConfig":
        return cls(
            tick_interval_s=d.get("tick_interval_s", 1.0),
            connection_timeout_s=d.get("connection_timeout_s", 5.0),
            camera_idle_s=d.get("camera_idle_s", 6.0),
            camera_missing_s=d.get("camera_missing_s", 8.0),
            camera_recover_s=d.get("camera_recover_s", 3.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_interval_s": self.tick_interval_s,
            "connection_timeout_s": self.connection_timeout_s,
            "camera_idle_s": self.camera_idle_s,
            "camera_missing_s": self.camera_missing_s,
            "camera_recover_s": self.camera_recover_s,
        }


@dataclass
class SpeechConfig:
    """Speech engine backend selection."""
    backend: str = "log"
    enabled: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SpeechConfig":
        return cls(
            backend=d.get("backend", "log"),
            enabled=d.get("enabled", True),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"backend": self.backend, "enabled": self.enabled}


@dataclass
class WebConfig:
    """Control API configuration."""
    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", False),
            host=d.get("host", "127.0.0.1"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "host": self.host, "port": self.port}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    announcements: AnnouncementConfig = field(default_factory=AnnouncementConfig)
    voice: VoiceSettings = field(default_factory=VoiceSettings)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/vision_narrator.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            processing=ProcessingConfig.from_dict(d.get("processing", {}) or {}),
            announcements=AnnouncementConfig.from_dict(d.get("announcements", {}) or {}),
            voice=VoiceSettings.from_dict(d.get("voice", {}) or {}).validated(),
            alerts=AlertsConfig.from_dict(d.get("alerts", {}) or {}),
            speech=SpeechConfig.from_dict(d.get("speech", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/vision_narrator.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or passing to existing code)."""
        return {
            "processing": self.processing.to_dict(),
            "announcements": self.announcements.to_dict(),
            "voice": self.voice.to_dict(),
            "alerts": self.alerts.to_dict(),
            "speech": self.speech.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
