"""
Detection input module.

Converts raw detector output into canonical Detection values.
"""

from .normalizer import MalformedDetection, normalize_detections, normalize_record

__all__ = ["MalformedDetection", "normalize_detections", "normalize_record"]
