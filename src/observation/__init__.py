"""
Observation layer for pluggable detection sources.

This layer abstracts where detector output comes from (live detector,
recorded log, remote stream) from the assist engine. Each source implements
the ObservationSource interface and returns DetectionFrame objects.
"""

from .base import ObservationSource, ObservationConfig
from .replay import ReplaySource, ReplaySourceConfig

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "ReplaySource",
    "ReplaySourceConfig",
]
