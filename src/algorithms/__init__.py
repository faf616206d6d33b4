"""
Pure algorithms over detection boxes.

- geometry: IoU, overlap and center distance
- suppression: class-aware NMS and near-duplicate merge
- signal_fusion: traffic light color inference
"""

from .geometry import center_distance, intersection_area, iou, pairwise_iou, union_area
from .signal_fusion import fuse_signals, infer_signal, merge_signal
from .suppression import (
    SuppressionConfig,
    merge_near_duplicates,
    non_max_suppression,
    sort_by_confidence,
    suppress,
)

__all__ = [
    "center_distance",
    "intersection_area",
    "iou",
    "pairwise_iou",
    "union_area",
    "fuse_signals",
    "infer_signal",
    "merge_signal",
    "SuppressionConfig",
    "merge_near_duplicates",
    "non_max_suppression",
    "sort_by_confidence",
    "suppress",
]
