"""
Class-aware duplicate suppression for a single frame.

Two passes over the candidates of one frame:

1. Greedy NMS: candidates are visited in confidence order and dropped when an
   already kept candidate of the same label overlaps them by more than the
   IoU threshold. Different labels never suppress each other, so a bag
   overlapping a person keeps both.
2. Near-duplicate merge: same-label survivors whose centers almost coincide
   (or whose overlap is just under the NMS threshold) are folded into the
   highest-confidence member of their group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from models.config import IOU_THRESHOLD_RANGE, clamp
from models.detection import Candidate

from .geometry import center_distance, iou, pairwise_iou


@dataclass
class SuppressionConfig:
    """
    Configuration for duplicate suppression.

    Attributes:
        iou_threshold: Same-label IoU above which the weaker box is dropped.
        merge_duplicates: Whether to run the near-duplicate merge pass.
        merge_center_distance: Max center distance for a near duplicate.
        merge_iou: Min IoU for a near duplicate.
    """
    iou_threshold: float = 0.45
    merge_duplicates: bool = True
    merge_center_distance: float = 0.045
    merge_iou: float = 0.4

    def __post_init__(self):
        self.iou_threshold = clamp(self.iou_threshold, *IOU_THRESHOLD_RANGE)


def sort_by_confidence(candidates: Sequence[Candidate]) -> List[Candidate]:
    """Confidence descending; ties keep their original frame order."""
    return sorted(candidates, key=lambda c: (-c.confidence, c.index))


def non_max_suppression(candidates: Sequence[Candidate], iou_threshold: float) -> List[Candidate]:
    """
    Greedy class-aware NMS.

    Args:
        candidates: Candidates of one frame, in any order.
        iou_threshold: Same-label IoU above which a candidate is suppressed.

    Returns:
        Kept candidates, highest confidence first.
    """
    ordered = sort_by_confidence(candidates)
    if not ordered:
        return []

    overlaps = pairwise_iou([c.bbox for c in ordered])
    kept_idx: List[int] = []

    for i, candidate in enumerate(ordered):
        suppressed = any(
            ordered[k].label == candidate.label and overlaps[k, i] > iou_threshold
            for k in kept_idx
        )
        if not suppressed:
            kept_idx.append(i)

    return [ordered[i] for i in kept_idx]


def _is_near_duplicate(a: Candidate, b: Candidate, max_center_distance: float, min_iou: float) -> bool:
    if a.label != b.label:
        return False
    if a.normalized_area <= 0 or b.normalized_area <= 0:
        return False
    if center_distance(a.bbox, b.bbox) <= max_center_distance:
        return True
    return iou(a.bbox, b.bbox) >= min_iou


def merge_near_duplicates(
    candidates: Sequence[Candidate],
    max_center_distance: float = 0.045,
    min_iou: float = 0.4,
) -> List[Candidate]:
    """
    Fold same-label double fires into their strongest member.

    Input is re-sorted by confidence so the first member seen of any group is
    the one retained.
    """
    retained: List[Candidate] = []
    for candidate in sort_by_confidence(candidates):
        if any(_is_near_duplicate(r, candidate, max_center_distance, min_iou) for r in retained):
            continue
        retained.append(candidate)
    return retained


def suppress(candidates: Sequence[Candidate], config: SuppressionConfig) -> List[Candidate]:
    """Run NMS and, when enabled, the near-duplicate merge."""
    kept = non_max_suppression(candidates, config.iou_threshold)
    if config.merge_duplicates:
        kept = merge_near_duplicates(kept, config.merge_center_distance, config.merge_iou)
    return kept
