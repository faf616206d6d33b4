"""
Spoken feedback: message composition, scheduling and speech backends.
"""

from .backend import LoggingSpeechEngine, SpeechEngine, create_speech_engine
from .composer import Announcement, AnnouncementComposer, Side, describe_side, distance_clause, has_valid_distance
from .localization import Localization
from .scheduler import AnnouncementScheduler, SchedulerState, Utterance

__all__ = [
    "Announcement",
    "AnnouncementComposer",
    "AnnouncementScheduler",
    "Localization",
    "LoggingSpeechEngine",
    "SchedulerState",
    "Side",
    "SpeechEngine",
    "Utterance",
    "create_speech_engine",
    "describe_side",
    "distance_clause",
    "has_valid_distance",
]
