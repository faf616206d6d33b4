"""
Tracking module.

Identity-free approach detection against the previous frame lives in
tracking.tracker.
"""

from .tracker import ApproachTracker, ApproachMatch, find_approaching

__all__ = ["ApproachTracker", "ApproachMatch", "find_approaching"]
