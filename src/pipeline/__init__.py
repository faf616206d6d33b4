"""
Pipeline module for the vision narrator.

The pipeline turns detector callbacks into spoken feedback:
- Stabilization of raw detections (via StabilizeStage)
- Connection and camera safety alerts (via SafetyMonitor)
- Announcement composition and scheduling (via AssistEngine)
"""

from .alerts import SafetyMonitor
from .engine import AssistEngine, EngineStats, create_engine_from_config
from .stages.stabilize import StabilizeStage, build_candidates

__all__ = [
    "AssistEngine",
    "EngineStats",
    "create_engine_from_config",
    "SafetyMonitor",
    "StabilizeStage",
    "build_candidates",
]
