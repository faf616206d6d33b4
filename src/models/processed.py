"""
Per-cycle output models: processed detections and safety alerts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Tuple

from .detection import Detection, TrafficLightSignal


@dataclass(frozen=True)
class ProcessedDetections:
    """
    Immutable result of one processing cycle.

    Attributes:
        filtered_results: Surviving detections, highest confidence first.
        close_obstacle_labels: Labels whose box area reached the close threshold.
        movement_warnings: Human-readable "approaching" warnings.
        traffic_light_signal: Fused traffic light colour for the frame.
        approaching_labels: Raw labels behind movement_warnings, in order.
    """
    filtered_results: Tuple[Detection, ...] = ()
    close_obstacle_labels: Tuple[str, ...] = ()
    movement_warnings: Tuple[str, ...] = ()
    traffic_light_signal: TrafficLightSignal = TrafficLightSignal.UNKNOWN
    approaching_labels: Tuple[str, ...] = ()

    EMPTY: ClassVar["ProcessedDetections"]

    @property
    def is_empty(self) -> bool:
        return not self.filtered_results

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filtered_results": [d.to_dict() for d in self.filtered_results],
            "close_obstacle_labels": list(self.close_obstacle_labels),
            "movement_warnings": list(self.movement_warnings),
            "traffic_light_signal": self.traffic_light_signal.value,
            "approaching_labels": list(self.approaching_labels),
        }


ProcessedDetections.EMPTY = ProcessedDetections()


@dataclass(frozen=True)
class SafetyAlerts:
    """
    Alerts raised by the periodic status monitor.

    These always outrank detection narration.
    """
    connection_alert: Optional[str] = None
    camera_alert: Optional[str] = None

    def messages(self) -> Tuple[str, ...]:
        """Non-empty alert texts, connection first."""
        return tuple(
            text.strip()
            for text in (self.connection_alert, self.camera_alert)
            if text and text.strip()
        )

    @property
    def has_alerts(self) -> bool:
        return bool(self.messages())

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "connection_alert": self.connection_alert,
            "camera_alert": self.camera_alert,
        }
