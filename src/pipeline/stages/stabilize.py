"""
Stabilize stage: raw detections in, ProcessedDetections out.

Runs, in order:
- normalization of raw records (malformed ones are dropped)
- class-aware suppression and near-duplicate merge
- approach detection against the previous frame
- traffic light signal fusion

The stage owns the previous-frame history; nothing else reads or writes it.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Tuple

from algorithms.signal_fusion import fuse_signals, infer_signal
from algorithms.suppression import SuppressionConfig, suppress
from detection.normalizer import FrameSize, normalize_detections
from models.config import CLOSE_AREA_THRESHOLD_RANGE, IOU_THRESHOLD_RANGE, ProcessingConfig, clamp
from models.detection import Candidate, Detection
from models.processed import ProcessedDetections
from speech.localization import Localization
from tracking.tracker import ApproachTracker


def build_candidates(detections: Sequence[Detection]) -> List[Candidate]:
    """Attach area, traffic light signal and frame order to each detection."""
    return [
        Candidate(
            detection=d,
            normalized_area=d.bbox.area,
            signal=infer_signal(d.label, d.color),
            index=i,
        )
        for i, d in enumerate(detections)
    ]


class StabilizeStage:
    """
    Pipeline stage that turns one frame of raw detections into a stable set.

    Example:
        stage = StabilizeStage(ProcessingConfig())

        # Each frame:
        processed = stage.process(raw_records)
    """

    def __init__(self, config: Optional[ProcessingConfig] = None, language: str = "es-ES"):
        self._config = config or ProcessingConfig()
        self._tracker = ApproachTracker(self._config.tracking)
        self.language = language
        self._frame_size: Optional[FrameSize] = (
            tuple(self._config.frame_size) if self._config.frame_size else None  # type: ignore[assignment]
        )

    @property
    def config(self) -> ProcessingConfig:
        return self._config

    @property
    def iou_threshold(self) -> float:
        return self._config.iou_threshold

    @property
    def close_obstacle_area_threshold(self) -> float:
        return self._config.close_obstacle_area_threshold

    @property
    def tracker(self) -> ApproachTracker:
        return self._tracker

    def update_thresholds(
        self,
        iou_threshold: Optional[float] = None,
        close_obstacle_area_threshold: Optional[float] = None,
    ) -> None:
        """Update thresholds, clamping silently into their valid ranges."""
        if iou_threshold is not None:
            self._config.iou_threshold = clamp(iou_threshold, *IOU_THRESHOLD_RANGE)
        if close_obstacle_area_threshold is not None:
            self._config.close_obstacle_area_threshold = clamp(
                close_obstacle_area_threshold, *CLOSE_AREA_THRESHOLD_RANGE
            )
        logging.info(
            f"Thresholds updated: iou={self._config.iou_threshold:.2f} "
            f"close_area={self._config.close_obstacle_area_threshold:.2f}"
        )

    def clear_history(self) -> None:
        self._tracker.clear()

    def _suppression_config(self) -> SuppressionConfig:
        return SuppressionConfig(
            iou_threshold=self._config.iou_threshold,
            merge_duplicates=self._config.merge_duplicates,
            merge_center_distance=self._config.merge_center_distance,
            merge_iou=self._config.merge_iou,
        )

    def process(self, raw_results: Any, frame_size: Optional[Tuple[float, float]] = None) -> ProcessedDetections:
        """
        Process one frame.

        Args:
            raw_results: Raw detection records for the frame (see
                detection.normalizer for supported shapes).
            frame_size: (width, height) for pixel-space records; defaults to
                the configured frame size.

        Returns:
            The frame's ProcessedDetections. An empty frame returns
            ProcessedDetections.EMPTY and clears the history.
        """
        if raw_results is not None and not hasattr(raw_results, "__len__"):
            raw_results = list(raw_results)
        if raw_results is None or len(raw_results) == 0:
            self._tracker.clear()
            return ProcessedDetections.EMPTY

        detections = normalize_detections(raw_results, frame_size or self._frame_size)
        kept = suppress(build_candidates(detections), self._suppression_config())
        approaching = self._tracker.update(kept)

        close_labels = tuple(
            c.label for c in kept
            if c.normalized_area >= self._config.close_obstacle_area_threshold
        )
        lang = Localization.lang(self.language)
        warnings = tuple(Localization.t(lang, "movement_warning", label=c.label) for c in approaching)

        if len(detections) != len(raw_results):
            logging.debug(f"[STABILIZE] dropped {len(raw_results) - len(detections)} malformed records")

        return ProcessedDetections(
            filtered_results=tuple(c.detection for c in kept),
            close_obstacle_labels=close_labels,
            movement_warnings=warnings,
            traffic_light_signal=fuse_signals(c.signal for c in kept),
            approaching_labels=tuple(c.label for c in approaching),
        )
