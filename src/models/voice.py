"""
Voice models: user voice settings and scheduler announcement state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

SUPPORTED_LANGUAGES: Tuple[str, ...] = ("es-ES", "es-MX", "en-US")
DEFAULT_LANGUAGE = "es-ES"

SPEECH_RATE_RANGE = (0.2, 0.8)
PITCH_RANGE = (0.7, 1.3)
VOLUME_RANGE = (0.2, 1.0)


def _clamp(value: float, bounds: Tuple[float, float], default: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(value):
        return default
    low, high = bounds
    return min(max(value, low), high)


@dataclass(frozen=True)
class VoiceSettings:
    """
    Voice configuration applied to the speech engine.

    Attributes:
        language: BCP-47 language tag (one of SUPPORTED_LANGUAGES).
        speech_rate: Relative speaking rate.
        pitch: Relative pitch.
        volume: Output volume.
    """
    language: str = DEFAULT_LANGUAGE
    speech_rate: float = 0.45
    pitch: float = 1.0
    volume: float = 1.0

    @property
    def language_code(self) -> str:
        """Two-letter language code used to pick message catalogs."""
        return self.language.split("-")[0].lower()

    def validated(self) -> "VoiceSettings":
        """Return a copy with every field clamped into its valid range."""
        language = self.language if self.language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE
        return VoiceSettings(
            language=language,
            speech_rate=_clamp(self.speech_rate, SPEECH_RATE_RANGE, 0.45),
            pitch=_clamp(self.pitch, PITCH_RANGE, 1.0),
            volume=_clamp(self.volume, VOLUME_RANGE, 1.0),
        )

    def copy_with(self, **changes: Any) -> "VoiceSettings":
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "VoiceSettings":
        return cls(
            language=d.get("language", DEFAULT_LANGUAGE),
            speech_rate=d.get("speech_rate", 0.45),
            pitch=d.get("pitch", 1.0),
            volume=d.get("volume", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "speech_rate": self.speech_rate,
            "pitch": self.pitch,
            "volume": self.volume,
        }


@dataclass
class AnnouncementState:
    """
    Mutable scheduler state. Owned exclusively by AnnouncementScheduler.

    Attributes:
        last_message: Last text handed to the speech engine.
        last_announcement_time: Clock value when it was spoken.
        is_paused: Whether narration is temporarily paused.
    """
    last_message: Optional[str] = None
    last_announcement_time: float = field(default=float("-inf"))
    is_paused: bool = False
