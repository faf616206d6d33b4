"""
Assist engine for the vision narrator.

This module wires the per-frame detection callback to the stabilize stage,
the safety alert monitor and the announcement scheduler, and exposes the
user actions (voice toggle, pause, repeat, settings, thresholds).

Concurrency model: one detection cycle at a time. A frame that arrives while
a cycle is still running is dropped, never queued. The status tick and user
actions may come from other threads; they share one lock with the cycle so
alerts and detections are merged into one consistent view before composing.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from models.config import Config
from models.processed import ProcessedDetections, SafetyAlerts
from models.voice import VoiceSettings
from pipeline.alerts import SafetyMonitor
from pipeline.stages.stabilize import StabilizeStage
from speech.backend import LoggingSpeechEngine, SpeechEngine, create_speech_engine
from speech.composer import AnnouncementComposer
from speech.localization import Localization
from speech.scheduler import AnnouncementScheduler

CycleCallback = Callable[[ProcessedDetections, Optional[str]], None]


@dataclass
class EngineStats:
    """Runtime statistics for the engine."""
    frame_count: int = 0
    dropped_frames: int = 0
    announcements: int = 0
    start_time: float = 0.0


class AssistEngine:
    """
    Per-frame orchestration of stabilization and spoken feedback.

    Example:
        engine = AssistEngine(Config(), speech=LoggingSpeechEngine())
        engine.start()

        # From the detector callback:
        engine.on_detection_results(raw_results)

        # Once per second (or engine.start(status_timer=True)):
        engine.on_status_tick()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        speech: Optional[SpeechEngine] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or Config()
        self._clock = clock
        self._voice_settings = self.config.voice.validated()
        self._voice_enabled = self.config.speech.enabled

        self._speech = speech if speech is not None else LoggingSpeechEngine()
        tracks_completion = hasattr(self._speech, "set_completion_callback")
        if tracks_completion:
            self._speech.set_completion_callback(self._on_utterance_finished)

        self.stage = StabilizeStage(self.config.processing, language=self._voice_settings.language)
        self.monitor = SafetyMonitor(self.config.alerts, language=self._voice_settings.language, clock=clock)
        self.composer = AnnouncementComposer(self.config.announcements, language=self._voice_settings.language)
        self.scheduler = AnnouncementScheduler(
            self._speech,
            self.composer,
            self.config.announcements,
            clock=clock,
            tracks_completion=tracks_completion,
        )
        self.scheduler.apply_settings(self._voice_settings)

        self.stats = EngineStats()
        self._processed = ProcessedDetections.EMPTY
        self._alerts = SafetyAlerts()
        self._lock = threading.RLock()
        self._cycle_lock = threading.Lock()
        self._callbacks: List[CycleCallback] = []
        self._disposed = False
        self._timer_stop = threading.Event()
        self._timer_thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, status_timer: bool = False) -> None:
        """Start the alert monitor and, optionally, a background status tick."""
        with self._lock:
            self._disposed = False
            self.stats = EngineStats(start_time=self._clock())
            self.monitor.start()
        logging.info(
            f"Assist engine started: voice={'on' if self._voice_enabled else 'off'} "
            f"language={self._voice_settings.language}"
        )
        if status_timer:
            self._start_status_timer()

    def shutdown(self) -> None:
        """Cancel speech, clear scheduler state and stop the status tick."""
        self._timer_stop.set()
        with self._lock:
            self._disposed = True
            self.monitor.stop()
            self.scheduler.reset()
        if self._timer_thread is not None:
            self._timer_thread.join(timeout=2.0)
            self._timer_thread = None
        close = getattr(self._speech, "close", None)
        if callable(close):
            try:
                close()
            except Exception as e:
                logging.warning(f"Speech engine failed to close: {e}")
        logging.info(
            f"Assist engine stopped: frames={self.stats.frame_count} "
            f"dropped={self.stats.dropped_frames} announcements={self.stats.announcements}"
        )

    def _start_status_timer(self) -> None:
        self._timer_stop.clear()
        interval = self.config.alerts.tick_interval_s

        def _loop() -> None:
            while not self._timer_stop.wait(interval):
                try:
                    self.on_status_tick()
                except Exception as e:
                    logging.warning(f"Status tick error: {e}")

        self._timer_thread = threading.Thread(target=_loop, name="status-tick", daemon=True)
        self._timer_thread.start()

    def add_callback(self, callback: CycleCallback) -> None:
        """
        Add a callback to be called after each detection cycle.

        Args:
            callback: Function taking (processed, spoken_text) as arguments.
        """
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Cycles
    # ------------------------------------------------------------------

    def on_detection_results(
        self,
        raw_results: Any,
        frame_size: Optional[Tuple[float, float]] = None,
    ) -> Optional[str]:
        """
        Handle one detector callback.

        Returns:
            The text handed to the speech engine this cycle, if any.
        """
        if self._disposed:
            return None
        if not self._cycle_lock.acquire(blocking=False):
            self.stats.dropped_frames += 1
            return None

        try:
            with self._lock:
                self.stats.frame_count += 1
                processed = self.stage.process(raw_results, frame_size)
                self._processed = processed
                self._alerts = self.monitor.record_result(not processed.is_empty)
                spoken = self.scheduler.on_cycle(processed, self._alerts, self._voice_enabled)
                if spoken:
                    self.stats.announcements += 1
        finally:
            self._cycle_lock.release()

        for callback in self._callbacks:
            try:
                callback(processed, spoken)
            except Exception as e:
                logging.warning(f"Callback error: {e}")

        return spoken

    def on_status_tick(self) -> Optional[str]:
        """
        Periodic status update.

        A newly raised alert is announced right away instead of waiting for
        the next detection cycle (which may never come).
        """
        with self._lock:
            if self._disposed:
                return None
            previous = self._alerts
            self._alerts = self.monitor.tick()
            if not self._alerts.has_alerts or self._alerts.messages() == previous.messages():
                return None
            logging.info(f"Safety alert raised: {' '.join(self._alerts.messages())}")
            spoken = self.scheduler.on_cycle(self._processed, self._alerts, self._voice_enabled)
            if spoken:
                self.stats.announcements += 1
            return spoken

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    @property
    def voice_enabled(self) -> bool:
        return self._voice_enabled

    @property
    def voice_settings(self) -> VoiceSettings:
        return self._voice_settings

    @property
    def processed(self) -> ProcessedDetections:
        return self._processed

    @property
    def alerts(self) -> SafetyAlerts:
        return self._alerts

    def set_voice_enabled(self, enabled: bool) -> None:
        """Enable or disable narration. Disabling cancels speech at once."""
        with self._lock:
            if enabled == self._voice_enabled:
                return
            self._voice_enabled = enabled
            if not enabled:
                self.scheduler.reset()
                logging.info("Narration disabled")
                self.announce_system_message(Localization.t(self.composer.lang, "voice_disabled"), force=True)
                return
        logging.info("Narration enabled")
        self.announce_system_message(Localization.t(self.composer.lang, "voice_enabled"))

    def toggle_voice(self) -> bool:
        self.set_voice_enabled(not self._voice_enabled)
        return self._voice_enabled

    def announce_system_message(self, message: str, force: bool = False) -> Optional[str]:
        """
        Speak a system message at once, interrupting narration.

        Skipped while narration is disabled unless `force` is set. A forced
        message is not cut off by the following disabled cycles.
        """
        with self._lock:
            if self._disposed or (not force and not self._voice_enabled):
                return None
            return self.scheduler.announce_system(message)

    @property
    def paused(self) -> bool:
        return self.scheduler.is_paused

    def pause(self) -> None:
        """Silence narration temporarily without changing the voice toggle."""
        with self._lock:
            self.scheduler.pause()
        logging.info("Narration paused")

    def resume(self) -> None:
        with self._lock:
            self.scheduler.resume()
        logging.info("Narration resumed")

    def repeat_last(self) -> Optional[str]:
        with self._lock:
            return self.scheduler.repeat_last()

    def stop_speech(self) -> None:
        with self._lock:
            self.scheduler.stop()

    def update_voice_settings(self, settings: VoiceSettings) -> VoiceSettings:
        """Validate and apply new voice settings; the language also switches catalogs."""
        with self._lock:
            self._voice_settings = self.scheduler.apply_settings(settings)
            self.stage.language = self._voice_settings.language
            self.monitor.language = self._voice_settings.language
        logging.info(f"Voice settings updated: {self._voice_settings.to_dict()}")
        self.announce_system_message(Localization.t(self.composer.lang, "voice_settings_updated"))
        return self._voice_settings

    def update_thresholds(
        self,
        iou_threshold: Optional[float] = None,
        close_obstacle_area_threshold: Optional[float] = None,
    ) -> Dict[str, float]:
        with self._lock:
            self.stage.update_thresholds(iou_threshold, close_obstacle_area_threshold)
            return {
                "iou_threshold": self.stage.iou_threshold,
                "close_obstacle_area_threshold": self.stage.close_obstacle_area_threshold,
            }

    def clear_history(self) -> None:
        """Forget the previous frame (e.g. after the detection model changed)."""
        with self._lock:
            self.stage.clear_history()
            self._processed = ProcessedDetections.EMPTY

    def _on_utterance_finished(self, utterance_id: int) -> None:
        with self._lock:
            self.scheduler.utterance_finished(utterance_id)

    def snapshot(self) -> Dict[str, Any]:
        """Consistent view of the engine state for the control API."""
        with self._lock:
            state = self.scheduler.state
            return {
                "processed": self._processed.to_dict(),
                "alerts": self._alerts.to_dict(),
                "voice_enabled": self._voice_enabled,
                "paused": self.scheduler.is_paused,
                "speech_state": self.scheduler.status.value,
                "last_message": state.last_message,
                "voice_settings": self._voice_settings.to_dict(),
                "thresholds": {
                    "iou_threshold": self.stage.iou_threshold,
                    "close_obstacle_area_threshold": self.stage.close_obstacle_area_threshold,
                },
                "stats": {
                    "frame_count": self.stats.frame_count,
                    "dropped_frames": self.stats.dropped_frames,
                    "announcements": self.stats.announcements,
                },
            }


def create_engine_from_config(config: Dict[str, Any], speech: Optional[SpeechEngine] = None) -> AssistEngine:
    """
    Factory function to create an AssistEngine from a raw config dictionary.

    The speech backend named in config["speech"]["backend"] is created unless
    `speech` is given.
    """
    typed = Config.from_dict(config)
    if speech is None:
        speech = create_speech_engine(typed.speech.backend)
    return AssistEngine(typed, speech=speech)
