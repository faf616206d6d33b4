"""
ObservationSource interface for pluggable detection sources.

This defines the contract that all observation sources must implement,
enabling the assist engine to work with any producer of detections:
- On-device detector callbacks
- Recorded detection logs (replay)
- Remote detector streams
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from models.frame import DetectionFrame


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "replay", "cam-01").
        frame_size: Default (width, height) for pixel-space records. None = normalized.
        fps: Target frames per second. None = as fast as the source delivers.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    frame_size: Optional[Tuple[int, int]] = None
    fps: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get detection frames
        4. Call close() to release resources

    Can also be used as a context manager:
        with ReplaySource(config) as source:
            for frame in source:
                engine.on_detection_results(frame.records, frame.frame_size)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Current frame index (number of frames read since open)."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[DetectionFrame]:
        """
        Read the next detection frame.

        Returns:
            The next DetectionFrame, or None when the source is exhausted.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release any resources held by the source. Safe to call multiple times."""
        pass

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[DetectionFrame]:
        """
        Iterate over frames until the source is exhausted.

        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")

        while True:
            frame = self.read()
            if frame is None:
                break
            yield frame
