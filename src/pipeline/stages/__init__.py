"""
Pipeline stages for the vision narrator.

Each stage handles a specific part of the processing pipeline:
- stabilize: normalization, suppression, approach detection, signal fusion
"""

from .stabilize import StabilizeStage, build_candidates

__all__ = ["StabilizeStage", "build_candidates"]
