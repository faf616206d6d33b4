"""
Detection models for object detection results.

All geometry here is in normalized image coordinates (0-1). Pixel-space
records are converted by the detection normalizer before they reach these
types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in normalized coordinates.

    Attributes:
        left: Left edge x coordinate.
        top: Top edge y coordinate.
        right: Right edge x coordinate.
        bottom: Bottom edge y coordinate.
    """
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return max(0.0, self.right - self.left)

    @property
    def height(self) -> float:
        return max(0.0, self.bottom - self.top)

    @property
    def center(self) -> Tuple[float, float]:
        return ((self.left + self.right) / 2, (self.top + self.bottom) / 2)

    @property
    def area(self) -> float:
        return self.width * self.height

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (left, top, right, bottom) tuple."""
        return (self.left, self.top, self.right, self.bottom)

    @classmethod
    def from_ltrb(cls, left: float, top: float, right: float, bottom: float) -> "BoundingBox":
        """Create from edges, reordering them so left <= right and top <= bottom."""
        return cls(
            left=min(left, right),
            top=min(top, bottom),
            right=max(left, right),
            bottom=max(top, bottom),
        )

    @classmethod
    def from_ltwh(cls, left: float, top: float, width: float, height: float) -> "BoundingBox":
        """Create from (left, top, width, height) format."""
        return cls.from_ltrb(left, top, left + width, top + height)

    def clipped(self) -> "BoundingBox":
        """Return a copy clamped to the unit square."""
        return BoundingBox(
            left=min(max(self.left, 0.0), 1.0),
            top=min(max(self.top, 0.0), 1.0),
            right=min(max(self.right, 0.0), 1.0),
            bottom=min(max(self.bottom, 0.0), 1.0),
        )


class TrafficLightSignal(str, Enum):
    """Traffic light colour inferred from a detection."""
    UNKNOWN = "unknown"
    RED = "red"
    GREEN = "green"


@dataclass(frozen=True)
class Detection:
    """
    A single canonical detection.

    Attributes:
        bbox: Bounding box in normalized coordinates.
        label: Class label as reported by the detector.
        confidence: Detection confidence score (0-1).
        distance_m: Optional metric distance supplied by a depth estimator.
        color: Optional colour hint (e.g. traffic light colour).
    """
    bbox: BoundingBox
    label: str
    confidence: float = 1.0
    distance_m: Optional[float] = None
    color: Optional[str] = None

    @property
    def center(self) -> Tuple[float, float]:
        return self.bbox.center

    @property
    def area(self) -> float:
        return self.bbox.area

    def to_dict(self) -> dict:
        return {
            "bbox": list(self.bbox.as_tuple()),
            "label": self.label,
            "confidence": self.confidence,
            "distance_m": self.distance_m,
            "color": self.color,
        }


@dataclass(frozen=True)
class Candidate:
    """
    A detection enriched with derived metrics prior to final selection.

    Attributes:
        detection: The canonical detection.
        normalized_area: Box area as a fraction of the image.
        signal: Traffic light signal inferred from label/colour.
        index: Position in the incoming frame, used as a stable tie-break.
    """
    detection: Detection
    normalized_area: float
    signal: TrafficLightSignal = TrafficLightSignal.UNKNOWN
    index: int = 0

    @property
    def label(self) -> str:
        return self.detection.label

    @property
    def confidence(self) -> float:
        return self.detection.confidence

    @property
    def bbox(self) -> BoundingBox:
        return self.detection.bbox


def boxes_to_numpy(boxes: List[BoundingBox]) -> np.ndarray:
    """
    Adapter: Convert bounding boxes to an (N, 4) array of [left, top, right, bottom].
    """
    if not boxes:
        return np.zeros((0, 4), dtype=float)
    return np.array([b.as_tuple() for b in boxes], dtype=float)
