"""
Announcement composer.

Builds at most one spoken message per processing cycle from the processed
detections and the current safety alerts. Priority, highest first:

1. Safety alerts: only the alert texts are spoken.
2. No detections: "nothing detected", once; silence while it stays empty.
3. Detections: up to `max_items` survivors with distance and side, then a
   close-object warning, close-obstacle, movement and traffic light
   sentences, in that order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from models.config import AnnouncementConfig
from models.detection import BoundingBox, Detection, TrafficLightSignal
from models.processed import ProcessedDetections, SafetyAlerts

from .localization import DEFAULT_LANG, Localization

LEFT_BOUNDARY = 0.33
RIGHT_BOUNDARY = 0.66

# (minimum normalized area, message key, counts as close)
AREA_BREAKPOINTS: Tuple[Tuple[float, str, bool], ...] = (
    (0.25, "distance_half_meter", True),
    (0.12, "distance_one_meter", True),
    (0.05, "distance_two_meters", False),
)


class Side(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True)
class DistanceDescription:
    text: str
    is_close: bool


@dataclass(frozen=True)
class Announcement:
    """
    A composed message.

    Attributes:
        text: Text to speak.
        emergency: Exempt from cooldown; identical repeats allowed after the
            emergency repeat window.
    """
    text: str
    emergency: bool = False


def describe_side(bbox: BoundingBox) -> Side:
    """Horizontal position of a box: strictly below 0.33 is left, strictly above 0.66 right."""
    center_x = bbox.center[0]
    if center_x < LEFT_BOUNDARY:
        return Side.LEFT
    if center_x > RIGHT_BOUNDARY:
        return Side.RIGHT
    return Side.CENTER


def has_valid_distance(meters: Optional[float]) -> bool:
    """True if the distance is finite and positive."""
    return meters is not None and math.isfinite(meters) and meters > 0


def distance_clause(meters: Optional[float], lang: str = DEFAULT_LANG) -> str:
    """Metric distance clause, e.g. "a aproximadamente 1.2 metros"."""
    if not has_valid_distance(meters):
        return Localization.t(lang, "distance_unknown")
    return Localization.t(lang, "distance_metric", meters=f"{meters:.1f}")


class AnnouncementComposer:
    """
    Turns one cycle's processed detections into an Announcement.

    Example:
        composer = AnnouncementComposer(AnnouncementConfig(), language="es-ES")
        announcement = composer.compose(processed, alerts, previous_message)
    """

    def __init__(
        self,
        config: Optional[AnnouncementConfig] = None,
        language: str = "es-ES",
    ):
        self.config = config or AnnouncementConfig()
        self.language = language

    @property
    def lang(self) -> str:
        return Localization.lang(self.language)

    @property
    def nothing_detected_message(self) -> str:
        return Localization.t(self.lang, "nothing_detected")

    def describe_distance(self, detection: Detection) -> DistanceDescription:
        """
        Distance wording for a detection.

        A supplied metric distance overrides the area heuristic; a supplied
        but invalid one is reported as unknown.
        """
        if detection.distance_m is not None:
            if not has_valid_distance(detection.distance_m):
                return DistanceDescription(Localization.t(self.lang, "distance_unknown"), False)
            return DistanceDescription(
                distance_clause(detection.distance_m, self.lang),
                detection.distance_m <= self.config.close_distance_m,
            )

        area = min(max(detection.bbox.area, 0.0), 1.0)
        for minimum, key, is_close in AREA_BREAKPOINTS:
            if area >= minimum:
                return DistanceDescription(Localization.t(self.lang, key), is_close)
        return DistanceDescription(Localization.t(self.lang, "distance_far"), False)

    def _describe_items(self, detections: Tuple[Detection, ...]) -> Tuple[List[str], Optional[str]]:
        descriptions: List[str] = []
        warning: Optional[str] = None

        for detection in detections[: self.config.max_items]:
            label = Localization.label(self.lang, detection.label)
            distance = self.describe_distance(detection)
            side = describe_side(detection.bbox)
            side_text = Localization.t(self.lang, f"side_{side.value}")
            descriptions.append(f"{label} {distance.text} {side_text}")

            if warning is None and distance.is_close:
                warning = Localization.t(
                    self.lang,
                    "close_warning",
                    side=Localization.t(self.lang, f"warning_side_{side.value}"),
                    label=label,
                )

        return descriptions, warning

    def _close_obstacle_sentence(self, processed: ProcessedDetections) -> Optional[str]:
        labels: List[str] = []
        for raw in processed.close_obstacle_labels:
            label = Localization.label(self.lang, raw)
            if label not in labels:
                labels.append(label)
        if not labels:
            return None
        return Localization.t(self.lang, "close_obstacles", labels=", ".join(labels))

    def _movement_sentences(self, processed: ProcessedDetections) -> List[str]:
        if not processed.approaching_labels:
            # warnings built without raw labels are spoken as given
            return [f"{w.rstrip('.')}." for w in processed.movement_warnings if w.strip()]
        return [
            Localization.t(self.lang, "movement", label=Localization.label(self.lang, raw))
            for raw in processed.approaching_labels
        ]

    def _traffic_light_sentence(self, signal: TrafficLightSignal) -> Optional[str]:
        if signal is TrafficLightSignal.RED:
            return Localization.t(self.lang, "traffic_red")
        if signal is TrafficLightSignal.GREEN:
            return Localization.t(self.lang, "traffic_green")
        return None

    def compose(
        self,
        processed: ProcessedDetections,
        alerts: Optional[SafetyAlerts] = None,
        previous_message: Optional[str] = None,
    ) -> Optional[Announcement]:
        """
        Compose this cycle's message.

        Args:
            processed: Output of the stabilize stage.
            alerts: Current safety alerts; when present nothing else is said.
            previous_message: Last spoken message, for the "nothing detected"
                one-shot.

        Returns:
            The Announcement, or None if there is nothing new to say.
        """
        if alerts is not None and alerts.has_alerts:
            return Announcement(" ".join(alerts.messages()), emergency=True)

        if processed.is_empty:
            message = self.nothing_detected_message
            if previous_message == message:
                return None
            return Announcement(message)

        descriptions, warning = self._describe_items(processed.filtered_results)
        separator = Localization.t(self.lang, "item_separator")
        segments: List[Optional[str]] = [
            Localization.t(self.lang, "detections", items=separator.join(descriptions)),
            warning,
            self._close_obstacle_sentence(processed),
            *self._movement_sentences(processed),
            self._traffic_light_sentence(processed.traffic_light_signal),
        ]
        text = " ".join(s.strip() for s in segments if s and s.strip())

        emergency = warning is not None or bool(processed.movement_warnings or processed.approaching_labels)
        return Announcement(text, emergency=emergency)
