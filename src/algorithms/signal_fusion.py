"""
Traffic light signal inference and fusion.

Several traffic light detections in one frame are folded into a single
signal. Once red and green are both seen in a frame the result is red.
"""

from __future__ import annotations

from typing import Iterable, Optional

from models.detection import TrafficLightSignal

TRAFFIC_LIGHT_KEYWORDS = ("traffic", "semaforo", "semáforo")
RED_KEYWORDS = ("red", "rojo")
GREEN_KEYWORDS = ("green", "verde")


def _colour_from_text(text: str) -> TrafficLightSignal:
    if any(k in text for k in RED_KEYWORDS):
        return TrafficLightSignal.RED
    if any(k in text for k in GREEN_KEYWORDS):
        return TrafficLightSignal.GREEN
    return TrafficLightSignal.UNKNOWN


def infer_signal(label: str, color: Optional[str] = None) -> TrafficLightSignal:
    """
    Infer the traffic light colour of a single detection.

    The label wins when it names both a traffic light and a colour
    (e.g. "traffic_light_red"); otherwise an explicit colour hint is used.
    """
    normalized = (label or "").lower()
    if any(k in normalized for k in TRAFFIC_LIGHT_KEYWORDS):
        signal = _colour_from_text(normalized)
        if signal is not TrafficLightSignal.UNKNOWN:
            return signal

    if color:
        return _colour_from_text(str(color).lower())

    return TrafficLightSignal.UNKNOWN


def merge_signal(current: TrafficLightSignal, candidate: TrafficLightSignal) -> TrafficLightSignal:
    """Fold one more observation into the running signal."""
    if candidate is TrafficLightSignal.UNKNOWN:
        return current
    if current is TrafficLightSignal.UNKNOWN:
        return candidate
    if current is candidate:
        return current
    # red and green both seen
    return TrafficLightSignal.RED


def fuse_signals(signals: Iterable[TrafficLightSignal]) -> TrafficLightSignal:
    """Fold signals in processing order into one safety-biased signal."""
    result = TrafficLightSignal.UNKNOWN
    for signal in signals:
        result = merge_signal(result, signal)
    return result
