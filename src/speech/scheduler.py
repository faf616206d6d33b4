"""
Announcement scheduler.

Decides whether the message composed for a cycle is actually spoken. It
owns the announcement state (last message, last announcement time, pause
flag) and the current utterance, and is the only caller of the speech
engine.

Policy:
- voice disabled or paused: forget the last message, stop narration, stay
  idle; a system message such as the "narration disabled" confirmation is
  left to finish
- within `min_pause_s` of the last announcement: drop the cycle (no
  queueing), unless it is an emergency with a new hazard (alert texts,
  approaching labels, close labels) compared to the last one spoken
- empty or identical to the last message: drop, except an identical
  emergency once the previous utterance finished, after `emergency_repeat_s`
  (`alert_repeat_s` when the message is a safety alert)
- otherwise stop whatever is playing and speak

Speech engine failures are logged and swallowed here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Optional, Tuple

from models.config import AnnouncementConfig
from models.processed import ProcessedDetections, SafetyAlerts
from models.voice import AnnouncementState, VoiceSettings

from .backend import SpeechEngine
from .composer import Announcement, AnnouncementComposer


class SchedulerState(str, Enum):
    IDLE = "idle"
    SPEAKING = "speaking"


@dataclass
class Utterance:
    """Token for one speak() call. Cancelled utterances are never retried."""
    utterance_id: int
    text: str
    emergency: bool = False
    system: bool = False
    cancelled: bool = False


@dataclass(frozen=True)
class Hazard:
    """What made a cycle an emergency. Equal hazards never interrupt each other."""
    alerts: Tuple[str, ...] = ()
    approaching: FrozenSet[str] = frozenset()
    close: FrozenSet[str] = frozenset()

    @property
    def is_alert(self) -> bool:
        return bool(self.alerts)

    def __bool__(self) -> bool:
        return bool(self.alerts or self.approaching or self.close)


class AnnouncementScheduler:
    """
    Rate-limits, deduplicates and prioritizes speech requests.

    Example:
        scheduler = AnnouncementScheduler(engine, composer, config)
        spoken = scheduler.on_cycle(processed, alerts, voice_enabled=True)
    """

    def __init__(
        self,
        speech: SpeechEngine,
        composer: AnnouncementComposer,
        config: Optional[AnnouncementConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        tracks_completion: bool = True,
    ):
        self._speech = speech
        self.tracks_completion = tracks_completion
        self._composer = composer
        self._config = config or AnnouncementConfig()
        self._clock = clock
        self._state = AnnouncementState()
        self._status = SchedulerState.IDLE
        self._current: Optional[Utterance] = None
        self._last_hazard = Hazard()
        self._next_id = 1

    @property
    def state(self) -> AnnouncementState:
        return self._state

    @property
    def status(self) -> SchedulerState:
        return self._status

    @property
    def current_utterance(self) -> Optional[Utterance]:
        return self._current

    @property
    def last_message(self) -> Optional[str]:
        return self._state.last_message

    @property
    def composer(self) -> AnnouncementComposer:
        return self._composer

    @property
    def is_paused(self) -> bool:
        return self._state.is_paused

    def on_cycle(
        self,
        processed: ProcessedDetections,
        alerts: Optional[SafetyAlerts] = None,
        voice_enabled: bool = True,
    ) -> Optional[str]:
        """
        Handle one processing cycle.

        Returns:
            The text handed to the speech engine, or None if nothing was said.
        """
        if not voice_enabled or self._state.is_paused:
            self._state.last_message = None
            self._last_hazard = Hazard()
            current = self._current
            if current is None or not current.system:
                self.stop()
            return None

        now = self._clock()
        hazard = self.hazard(processed, alerts)
        elapsed = now - self._state.last_announcement_time
        within_pause = elapsed < self._config.min_pause_s

        if within_pause and (not hazard or hazard == self._last_hazard):
            if not self._may_repeat(hazard, elapsed):
                return None

        announcement = self._composer.compose(processed, alerts, self._state.last_message)
        if announcement is None or not announcement.text:
            return None

        if announcement.text == self._state.last_message:
            if not (announcement.emergency and self._may_repeat(hazard, elapsed)):
                return None
        elif within_pause and hazard == self._last_hazard:
            # same hazard, new wording: wait for the cooldown
            return None

        return self._say(announcement, now, hazard)

    def _may_repeat(self, hazard: Hazard, elapsed: float) -> bool:
        """Whether an unchanged emergency may be spoken again."""
        if not hazard:
            return False
        window = self._config.alert_repeat_s if hazard.is_alert else self._config.emergency_repeat_s
        if elapsed < window:
            return False
        return not self.tracks_completion or self._status is SchedulerState.IDLE

    def hazard(self, processed: ProcessedDetections, alerts: Optional[SafetyAlerts]) -> Hazard:
        """
        The emergency content of a cycle.

        Safety alerts, approaching objects and close objects among the first
        `max_items` are emergencies. An empty Hazard means a normal cycle.
        """
        if alerts is not None and alerts.has_alerts:
            return Hazard(alerts=alerts.messages())
        approaching = set(processed.approaching_labels)
        if processed.movement_warnings and not approaching:
            approaching = set(processed.movement_warnings)
        close = {
            d.label
            for d in processed.filtered_results[: self._config.max_items]
            if self._composer.describe_distance(d).is_close
        }
        return Hazard(approaching=frozenset(approaching), close=frozenset(close))

    def _say(
        self,
        announcement: Announcement,
        now: float,
        hazard: Optional[Hazard] = None,
        system: bool = False,
    ) -> Optional[str]:
        self.stop()

        utterance = Utterance(
            utterance_id=self._next_id,
            text=announcement.text,
            emergency=announcement.emergency,
            system=system,
        )
        self._next_id += 1
        self._current = utterance
        self._status = SchedulerState.SPEAKING

        try:
            self._speech.speak(utterance.text, utterance.utterance_id)
        except Exception as e:
            logging.warning(f"Speech engine failed to speak: {e}")
            self._current = None
            self._status = SchedulerState.IDLE
            return None

        self._state.last_announcement_time = now
        self._state.last_message = announcement.text
        self._last_hazard = hazard or Hazard()
        return announcement.text

    def announce_system(self, message: str) -> Optional[str]:
        """
        Speak a system message right away, ignoring cooldown and dedup.

        It is not cancelled by the disabled or paused path of on_cycle.
        """
        if not message or not message.strip():
            return None
        return self._say(Announcement(message.strip(), emergency=True), self._clock(), system=True)

    def utterance_finished(self, utterance_id: int) -> None:
        """Completion event from the speech engine; stale ids are ignored."""
        current = self._current
        if current is None or current.utterance_id != utterance_id:
            return
        self._current = None
        self._status = SchedulerState.IDLE

    def repeat_last(self) -> Optional[str]:
        """Re-speak the last message verbatim, ignoring cooldown and dedup."""
        message = self._state.last_message
        if not message:
            return None
        return self._say(Announcement(message), self._clock(), self._last_hazard)

    def stop(self) -> None:
        """Cancel the current utterance. Idempotent; never raises."""
        if self._current is not None:
            self._current.cancelled = True
            self._current = None
        self._status = SchedulerState.IDLE
        try:
            self._speech.stop()
        except Exception as e:
            logging.warning(f"Speech engine failed to stop: {e}")

    def pause(self) -> None:
        self._state.is_paused = True
        self._state.last_message = None
        self._last_hazard = Hazard()
        self.stop()

    def resume(self) -> None:
        self._state.is_paused = False

    def reset(self) -> None:
        """Cancel speech and forget all announcement state."""
        self.stop()
        paused = self._state.is_paused
        self._state = AnnouncementState(is_paused=paused)
        self._last_hazard = Hazard()

    def apply_settings(self, settings: VoiceSettings) -> VoiceSettings:
        """Push validated voice settings to the engine and the composer language."""
        settings = settings.validated()
        self._composer.language = settings.language
        for setter, value in (
            (self._speech.set_language, settings.language),
            (self._speech.set_speech_rate, settings.speech_rate),
            (self._speech.set_pitch, settings.pitch),
            (self._speech.set_volume, settings.volume),
        ):
            try:
                setter(value)
            except Exception as e:
                logging.warning(f"Speech engine rejected setting {value!r}: {e}")
        return settings
