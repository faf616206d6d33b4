"""
DetectionFrame model for one detector callback.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple


@dataclass
class DetectionFrame:
    """
    Raw detector output for a single camera frame.

    Attributes:
        records: Raw detection records, in any shape the normalizer accepts.
        timestamp: Unix timestamp when the detections were produced.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the detector/camera source.
        width: Frame width in pixels, if the records are in pixel space.
        height: Frame height in pixels, if the records are in pixel space.
    """
    records: List[Any] = field(default_factory=list)
    timestamp: float = 0.0
    frame_index: int = 0
    source: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def frame_size(self) -> Optional[Tuple[int, int]]:
        """Return (width, height) when both are known."""
        if self.width and self.height:
            return (self.width, self.height)
        return None

    @property
    def is_empty(self) -> bool:
        return not self.records
