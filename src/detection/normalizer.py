"""
Detection normalizer.

Detectors and bindings hand over detections in many shapes. This module
converts each raw record into a canonical `Detection` with a normalized
bounding box, or rejects it. Supported shapes, tried in this order:

1. `Detection` instances (passed through, box clipped to the unit square)
2. Mappings with a nested box under `box` / `bbox` / `boundingBox` /
   `bounding_box` / `rect`, or flat `left/top/right/bottom`,
   `x/y/width/height` or `x1/y1/x2/y2` keys
3. Sequences and numpy rows `[x1, y1, x2, y2, confidence?, label_or_class_id?]`
4. Objects exposing the same names as attributes

A nested box may itself be a `BoundingBox`, a mapping, a 4-sequence in
x1/y1/x2/y2 order, or an object with `left/top/right/bottom` attributes.

Pixel-space boxes (any coordinate above 1) are divided by the frame size;
without a frame size they are rejected. A record that cannot be normalized
is dropped without affecting the rest of the frame.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from models.detection import BoundingBox, Detection

DEFAULT_LABEL = "object"
PIXEL_EPSILON = 1e-6

BOX_KEYS = ("box", "bbox", "boundingBox", "bounding_box", "rect")
LABEL_KEYS = ("label", "class_name", "className", "name")
CONFIDENCE_KEYS = ("confidence", "score", "conf")
DISTANCE_KEYS = ("distance_m", "distanceM", "distance")
COLOR_KEYS = ("color", "colour")
CLASS_ID_KEYS = ("class_id", "classId", "cls")
IMAGE_SIZE_KEYS = (("image_width", "image_height"), ("imageWidth", "imageHeight"))

# Attribute names read from plain objects (shape 4)
OBJECT_FIELDS = (
    BOX_KEYS
    + LABEL_KEYS
    + CONFIDENCE_KEYS
    + DISTANCE_KEYS
    + COLOR_KEYS
    + CLASS_ID_KEYS
    + ("left", "top", "right", "bottom", "x", "y", "width", "height", "x1", "y1", "x2", "y2")
    + ("image_width", "image_height")
)

FrameSize = Tuple[float, float]


class MalformedDetection(ValueError):
    """Raised when a raw detection record cannot be normalized."""


def to_float(value: Any) -> Optional[float]:
    """Best-effort numeric conversion; None for anything non-numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _finite(value: Any, name: str) -> float:
    number = to_float(value)
    if number is None or not math.isfinite(number):
        raise MalformedDetection(f"{name} is not a finite number: {value!r}")
    return number


def _first(d: Mapping, keys: Iterable[str]) -> Any:
    for key in keys:
        if key in d and d[key] is not None:
            return d[key]
    return None


def _box_from_mapping(d: Mapping) -> Optional[Tuple[float, float, float, float]]:
    """Read (left, top, right, bottom) from flat mapping keys, if present."""
    if all(d.get(k) is not None for k in ("left", "top", "right", "bottom")):
        return (
            _finite(d["left"], "left"),
            _finite(d["top"], "top"),
            _finite(d["right"], "right"),
            _finite(d["bottom"], "bottom"),
        )
    if all(d.get(k) is not None for k in ("x1", "y1", "x2", "y2")):
        return (
            _finite(d["x1"], "x1"),
            _finite(d["y1"], "y1"),
            _finite(d["x2"], "x2"),
            _finite(d["y2"], "y2"),
        )
    left = d.get("left", d.get("x"))
    top = d.get("top", d.get("y"))
    if all(v is not None for v in (left, top, d.get("width"), d.get("height"))):
        left_f = _finite(left, "left")
        top_f = _finite(top, "top")
        return (
            left_f,
            top_f,
            left_f + _finite(d["width"], "width"),
            top_f + _finite(d["height"], "height"),
        )
    return None


def _box_from_value(value: Any) -> Tuple[float, float, float, float]:
    """Read (left, top, right, bottom) from a nested box value."""
    if isinstance(value, BoundingBox):
        return value.as_tuple()
    if isinstance(value, Mapping):
        box = _box_from_mapping(value)
        if box is None:
            raise MalformedDetection(f"box mapping has no usable keys: {sorted(value)}")
        return box
    if isinstance(value, (list, tuple, np.ndarray)):
        if len(value) < 4:
            raise MalformedDetection(f"box sequence too short: {len(value)}")
        return tuple(_finite(value[i], f"box[{i}]") for i in range(4))  # type: ignore[return-value]
    fields = {k: getattr(value, k, None) for k in ("left", "top", "right", "bottom", "x", "y", "width", "height")}
    box = _box_from_mapping(fields)
    if box is None:
        raise MalformedDetection(f"unsupported box type: {type(value).__name__}")
    return box


def _normalize_box(
    ltrb: Tuple[float, float, float, float],
    frame_size: Optional[FrameSize],
) -> BoundingBox:
    left, top, right, bottom = ltrb
    if max(abs(left), abs(top), abs(right), abs(bottom)) > 1.0 + PIXEL_EPSILON:
        if frame_size is None:
            raise MalformedDetection("pixel-space box without a frame size")
        width, height = frame_size
        if not (math.isfinite(width) and math.isfinite(height) and width > 0 and height > 0):
            raise MalformedDetection(f"invalid frame size: {frame_size}")
        left, right = left / width, right / width
        top, bottom = top / height, bottom / height
    return BoundingBox.from_ltrb(left, top, right, bottom).clipped()


def _confidence(value: Any) -> float:
    number = to_float(value)
    if number is None or math.isnan(number):
        return 0.0
    return min(max(number, 0.0), 1.0)


def _label(value: Any, class_id: Any = None, class_names: Optional[Dict[int, str]] = None) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    cid = to_float(class_id)
    if cid is not None and math.isfinite(cid) and class_names:
        name = class_names.get(int(cid))
        if name:
            return name.strip()
    return DEFAULT_LABEL


def _frame_size_from_mapping(d: Mapping, fallback: Optional[FrameSize]) -> Optional[FrameSize]:
    for w_key, h_key in IMAGE_SIZE_KEYS:
        w, h = to_float(d.get(w_key)), to_float(d.get(h_key))
        if w and h and math.isfinite(w) and math.isfinite(h):
            return (w, h)
    return fallback


def _from_mapping(
    d: Mapping,
    frame_size: Optional[FrameSize],
    class_names: Optional[Dict[int, str]],
) -> Detection:
    nested = _first(d, BOX_KEYS)
    ltrb = _box_from_value(nested) if nested is not None else _box_from_mapping(d)
    if ltrb is None:
        raise MalformedDetection("record has no bounding box")

    color = _first(d, COLOR_KEYS)
    return Detection(
        bbox=_normalize_box(ltrb, _frame_size_from_mapping(d, frame_size)),
        label=_label(_first(d, LABEL_KEYS), _first(d, CLASS_ID_KEYS), class_names),
        confidence=_confidence(_first(d, CONFIDENCE_KEYS)),
        distance_m=to_float(_first(d, DISTANCE_KEYS)),
        color=str(color) if color is not None else None,
    )


def _from_sequence(
    row: Sequence[Any],
    frame_size: Optional[FrameSize],
    class_names: Optional[Dict[int, str]],
) -> Detection:
    if len(row) < 4:
        raise MalformedDetection(f"row too short: {len(row)}")
    ltrb = tuple(_finite(row[i], f"row[{i}]") for i in range(4))
    confidence = _confidence(row[4]) if len(row) > 4 else 0.0
    label_value = row[5] if len(row) > 5 else None
    if isinstance(label_value, str):
        label = _label(label_value)
    else:
        label = _label(None, label_value, class_names)
    return Detection(
        bbox=_normalize_box(ltrb, frame_size),  # type: ignore[arg-type]
        label=label,
        confidence=confidence,
    )


def normalize_record(
    record: Any,
    frame_size: Optional[FrameSize] = None,
    class_names: Optional[Dict[int, str]] = None,
) -> Optional[Detection]:
    """
    Convert one raw record into a Detection.

    Args:
        record: Raw detection in any supported shape.
        frame_size: (width, height) used to normalize pixel-space boxes.
        class_names: Optional class id to label mapping for numeric rows.

    Returns:
        The canonical Detection, or None if the record is malformed.
    """
    try:
        if isinstance(record, Detection):
            return Detection(
                bbox=record.bbox.clipped(),
                label=record.label.strip() or DEFAULT_LABEL,
                confidence=_confidence(record.confidence),
                distance_m=record.distance_m,
                color=record.color,
            )
        if isinstance(record, Mapping):
            return _from_mapping(record, frame_size, class_names)
        if isinstance(record, (list, tuple, np.ndarray)):
            return _from_sequence(record, frame_size, class_names)
        if record is None or isinstance(record, (str, bytes, int, float)):
            raise MalformedDetection(f"unsupported record type: {type(record).__name__}")
        fields = {k: getattr(record, k, None) for k in OBJECT_FIELDS}
        return _from_mapping(fields, frame_size, class_names)
    except MalformedDetection as e:
        logging.debug(f"Dropping malformed detection: {e}")
        return None


def normalize_detections(
    records: Any,
    frame_size: Optional[FrameSize] = None,
    class_names: Optional[Dict[int, str]] = None,
) -> List[Detection]:
    """
    Normalize every record of a frame, dropping the malformed ones.

    Args:
        records: Iterable of raw records, or an (N, 4+) numpy array.
        frame_size: (width, height) used to normalize pixel-space boxes.
        class_names: Optional class id to label mapping for numeric rows.
    """
    if records is None:
        return []
    if isinstance(records, np.ndarray) and records.ndim == 1:
        records = records.reshape(0, 4) if records.size == 0 else records.reshape(1, -1)

    out: List[Detection] = []
    for record in records:
        detection = normalize_record(record, frame_size, class_names)
        if detection is not None:
            out.append(detection)
    return out
