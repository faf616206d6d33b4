"""
Previous-frame snapshot used for approach detection.

There are no track identities: a TrackedDetection only remembers what was
kept in the single previous frame.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from .detection import BoundingBox, Candidate


@dataclass(frozen=True)
class TrackedDetection:
    """
    Reduced snapshot of one kept detection from the previous frame.

    Attributes:
        label: Class label.
        bbox: Bounding box in normalized coordinates.
        normalized_area: Box area as a fraction of the image.
    """
    label: str
    bbox: BoundingBox
    normalized_area: float

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "TrackedDetection":
        return cls(
            label=candidate.label,
            bbox=candidate.bbox,
            normalized_area=candidate.normalized_area,
        )


def snapshot(candidates: Sequence[Candidate]) -> List[TrackedDetection]:
    """
    Adapter: Convert the kept candidates of a frame into the next history.
    """
    return [TrackedDetection.from_candidate(c) for c in candidates]
