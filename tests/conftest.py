"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import BoundingBox, Candidate, Detection  # noqa: E402


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSpeechEngine:
    """
    Speech engine double that records calls.

    Utterances stay "playing" until finish() is called, like a real engine.
    """

    def __init__(self):
        self.spoken = []
        self.stops = 0
        self.settings = {}
        self._on_finished = None
        self.fail_speak = False
        self.fail_stop = False

    def set_completion_callback(self, callback):
        self._on_finished = callback

    def speak(self, text, utterance_id):
        if self.fail_speak:
            raise RuntimeError("audio device busy")
        self.spoken.append((utterance_id, text))

    def finish(self):
        """Report the most recent utterance as finished."""
        if self.spoken and self._on_finished:
            self._on_finished(self.spoken[-1][0])

    @property
    def texts(self):
        return [text for _, text in self.spoken]

    def stop(self):
        self.stops += 1
        if self.fail_stop:
            raise RuntimeError("engine gone")

    def set_language(self, language):
        self.settings["language"] = language

    def set_speech_rate(self, rate):
        self.settings["speech_rate"] = rate

    def set_pitch(self, pitch):
        self.settings["pitch"] = pitch

    def set_volume(self, volume):
        self.settings["volume"] = volume


def make_detection(label, left, top, right, bottom, confidence=0.9, distance_m=None, color=None):
    return Detection(
        bbox=BoundingBox(left, top, right, bottom),
        label=label,
        confidence=confidence,
        distance_m=distance_m,
        color=color,
    )


def make_candidate(label, left, top, right, bottom, confidence=0.9, index=0):
    detection = make_detection(label, left, top, right, bottom, confidence)
    return Candidate(detection=detection, normalized_area=detection.area, index=index)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def speech():
    return RecordingSpeechEngine()


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
processing:
  iou_threshold: 0.45
  close_obstacle_area_threshold: 0.22

announcements:
  min_pause_s: 3.0
  max_items: 3

voice:
  language: "es-ES"
  speech_rate: 0.45

speech:
  backend: "log"

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "processing": {
            "iou_threshold": 0.45,
            "close_obstacle_area_threshold": 0.22,
            "merge_duplicates": True,
            "tracking": {"min_match_iou": 0.2, "growth_ratio": 1.6},
        },
        "announcements": {
            "min_pause_s": 3.0,
            "emergency_repeat_s": 1.0,
            "max_items": 3,
        },
        "voice": {
            "language": "es-ES",
            "speech_rate": 0.45,
            "pitch": 1.0,
            "volume": 1.0,
        },
        "speech": {"backend": "log", "enabled": True},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
