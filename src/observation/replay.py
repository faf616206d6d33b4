"""
Replay observation source.

Reads recorded detector output from a JSON Lines file, one frame per line.
Each line is either a bare list of detection records or an object:

    {"detections": [...], "width": 640, "height": 480, "timestamp": 12.5}

Blank lines and lines starting with "#" are skipped. A line that is not
valid JSON is logged and replayed as an empty frame, since a detector
callback with no detections is still a callback.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, TextIO

from models.frame import DetectionFrame
from .base import ObservationConfig, ObservationSource


@dataclass
class ReplaySourceConfig(ObservationConfig):
    """
    Configuration for replaying recorded detections.

    Attributes:
        path: Path to the JSON Lines file.
        loop: Restart from the first line when the file is exhausted.
        realtime: Sleep between frames to honor `fps`.
    """
    path: str = ""
    loop: bool = False
    realtime: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any], source_id: str = "replay") -> "ReplaySourceConfig":
        frame_size = d.get("frame_size")
        if frame_size:
            frame_size = tuple(frame_size)
        return cls(
            source_id=source_id,
            frame_size=frame_size,
            fps=d.get("fps"),
            path=d.get("path", ""),
            loop=d.get("loop", False),
            realtime=d.get("realtime", True),
        )


class ReplaySource(ObservationSource):
    """Observation source backed by a recorded detection log."""

    def __init__(self, config: ReplaySourceConfig):
        super().__init__(config)
        self._config: ReplaySourceConfig = config
        self._file: Optional[TextIO] = None
        self._last_read: Optional[float] = None
        self._line_no = 0

    def open(self) -> None:
        path = self._config.path
        if not path or not os.path.exists(path):
            raise RuntimeError(f"Replay file not found: {path}")
        self._file = open(path, "r", encoding="utf-8")
        self._is_open = True
        self._frame_index = 0
        self._line_no = 0
        self._last_read = None
        logging.info(f"Replay source opened: {path} (loop={self._config.loop})")

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        if self._is_open:
            logging.info(f"Replay source closed after {self._frame_index} frames")
        self._is_open = False

    def _next_line(self) -> Optional[str]:
        while True:
            line = self._file.readline()
            if not line:
                if not self._config.loop or self._frame_index == 0:
                    return None
                self._file.seek(0)
                self._line_no = 0
                continue
            self._line_no += 1
            stripped = line.strip()
            if stripped and not stripped.startswith("#"):
                return stripped

    def _throttle(self) -> None:
        fps = self._config.fps
        if not self._config.realtime or not fps or fps <= 0:
            return
        now = time.monotonic()
        if self._last_read is not None:
            wait = (1.0 / fps) - (now - self._last_read)
            if wait > 0:
                time.sleep(wait)
        self._last_read = time.monotonic()

    def parse_line(self, line: str) -> DetectionFrame:
        """Convert one JSON line into a DetectionFrame."""
        width, height = self._config.frame_size or (None, None)
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as e:
            logging.warning(f"Replay line {self._line_no} is not valid JSON: {e}")
            payload = []

        timestamp = time.time()
        if isinstance(payload, dict):
            records = payload.get("detections") or []
            width = payload.get("width", width)
            height = payload.get("height", height)
            timestamp = payload.get("timestamp", timestamp)
        elif isinstance(payload, list):
            records = payload
        else:
            logging.warning(f"Replay line {self._line_no} has unsupported type {type(payload).__name__}")
            records = []

        return DetectionFrame(
            records=list(records),
            timestamp=timestamp,
            frame_index=self._frame_index,
            source=self.source_id,
            width=width,
            height=height,
        )

    def read(self) -> Optional[DetectionFrame]:
        if not self._is_open or self._file is None:
            return None

        line = self._next_line()
        if line is None:
            return None

        self._throttle()
        self._frame_index += 1
        return self.parse_line(line)
