"""
Approach detection across consecutive frames.

This module matches the kept detections of the current frame against the
kept detections of the previous frame only. It never assigns identities:
the history is one frame deep and is replaced wholesale every cycle. A
match whose box grew quickly while not moving up in the image (lower in the
frame means closer to the camera) is reported as approaching.

Slow continuous approaches are missed because growth is only measured over
a single frame gap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from algorithms.geometry import iou
from models.config import TrackingConfig
from models.detection import Candidate
from models.track import TrackedDetection, snapshot

AREA_EPSILON = 1e-6


@dataclass(frozen=True)
class ApproachMatch:
    """A current candidate paired with its best previous-frame match."""
    candidate: Candidate
    previous: TrackedDetection
    overlap: float
    growth: float
    approaching: bool


def best_previous_match(
    candidate: Candidate,
    previous: Sequence[TrackedDetection],
) -> Tuple[Optional[TrackedDetection], float]:
    """Same-label previous detection with maximal IoU, and that IoU."""
    best: Optional[TrackedDetection] = None
    best_iou = 0.0
    for tracked in previous:
        if tracked.label != candidate.label:
            continue
        overlap = iou(tracked.bbox, candidate.bbox)
        if overlap > best_iou:
            best_iou = overlap
            best = tracked
    return best, best_iou


def match_candidate(
    candidate: Candidate,
    previous: Sequence[TrackedDetection],
    config: TrackingConfig,
) -> Optional[ApproachMatch]:
    """
    Match one candidate against the previous frame.

    Returns None when no same-label previous detection overlaps by at
    least config.min_match_iou.
    """
    best, best_iou = best_previous_match(candidate, previous)
    if best is None or best_iou < config.min_match_iou:
        return None

    growth = candidate.normalized_area / (best.normalized_area + AREA_EPSILON)
    approaching = candidate.bbox.center[1] < best.bbox.center[1] + config.vertical_tolerance
    return ApproachMatch(
        candidate=candidate,
        previous=best,
        overlap=best_iou,
        growth=growth,
        approaching=approaching,
    )


def find_approaching(
    current: Sequence[Candidate],
    previous: Sequence[TrackedDetection],
    config: Optional[TrackingConfig] = None,
) -> List[Candidate]:
    """
    Current candidates that are rapidly approaching.

    Args:
        current: Kept candidates of this frame, in processing order.
        previous: Snapshot of the previous frame's kept candidates.
        config: Matching and growth thresholds.

    Returns:
        The approaching candidates, in processing order.
    """
    config = config or TrackingConfig()
    approaching: List[Candidate] = []
    for candidate in current:
        match = match_candidate(candidate, previous, config)
        if match is None:
            continue
        if match.growth > config.growth_ratio and match.approaching:
            approaching.append(candidate)
    return approaching


class ApproachTracker:
    """
    Holds exactly one previous frame of kept detections.

    Example:
        tracker = ApproachTracker()
        approaching = tracker.update(kept_candidates)   # each frame
        tracker.clear()                                 # empty frame / model change
    """

    def __init__(self, config: Optional[TrackingConfig] = None):
        self.config = config or TrackingConfig()
        self._history: List[TrackedDetection] = []

    @property
    def history(self) -> List[TrackedDetection]:
        """Copy of the previous-frame snapshot."""
        return list(self._history)

    def update(self, kept: Sequence[Candidate]) -> List[Candidate]:
        """
        Report approaching candidates, then replace the history with `kept`.
        """
        approaching = find_approaching(kept, self._history, self.config)
        self._history = snapshot(kept)
        if approaching:
            logging.debug(f"[TRACK] approaching={[c.label for c in approaching]}")
        return approaching

    def clear(self) -> None:
        self._history = []
