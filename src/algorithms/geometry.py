"""
Rectangle geometry helpers.

Shared by suppression and approach detection. Boxes are normalized
BoundingBox values; a box with zero area never overlaps anything.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from models.detection import BoundingBox, boxes_to_numpy


def intersection_area(a: BoundingBox, b: BoundingBox) -> float:
    """Area of the overlap between two boxes (0 when disjoint)."""
    left = max(a.left, b.left)
    top = max(a.top, b.top)
    right = min(a.right, b.right)
    bottom = min(a.bottom, b.bottom)

    if right <= left or bottom <= top:
        return 0.0

    return (right - left) * (bottom - top)


def union_area(a: BoundingBox, b: BoundingBox) -> float:
    return a.area + b.area - intersection_area(a, b)


def iou(a: BoundingBox, b: BoundingBox) -> float:
    """
    Calculate Intersection over Union (IoU) between two bounding boxes.

    Args:
        a: First bounding box
        b: Second bounding box

    Returns:
        IoU value between 0 and 1
    """
    if a.area <= 0 or b.area <= 0:
        return 0.0

    intersection = intersection_area(a, b)
    union = a.area + b.area - intersection

    if union <= 0:
        return 0.0

    return intersection / union


def center_distance(a: BoundingBox, b: BoundingBox) -> float:
    """Euclidean distance between box centers, in normalized units."""
    (ax, ay), (bx, by) = a.center, b.center
    return math.hypot(ax - bx, ay - by)


def pairwise_iou(boxes: Sequence[BoundingBox]) -> np.ndarray:
    """
    IoU of every pair of boxes as an (N, N) matrix.

    Zero-area boxes get 0 on their whole row and column, diagonal included.
    """
    arr = boxes_to_numpy(list(boxes))
    if len(arr) == 0:
        return np.zeros((0, 0), dtype=float)

    left, top, right, bottom = arr[:, 0], arr[:, 1], arr[:, 2], arr[:, 3]
    areas = np.clip(right - left, 0, None) * np.clip(bottom - top, 0, None)

    inter_w = np.clip(
        np.minimum(right[:, None], right[None, :]) - np.maximum(left[:, None], left[None, :]),
        0,
        None,
    )
    inter_h = np.clip(
        np.minimum(bottom[:, None], bottom[None, :]) - np.maximum(top[:, None], top[None, :]),
        0,
        None,
    )
    intersection = inter_w * inter_h
    union = areas[:, None] + areas[None, :] - intersection

    valid = (areas[:, None] > 0) & (areas[None, :] > 0) & (union > 0)
    result = np.zeros_like(intersection)
    np.divide(intersection, union, out=result, where=valid)
    return result
