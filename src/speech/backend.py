"""
Speech engine interface.

The scheduler only talks to this protocol. Engines are fire-and-forget:
speak() returns immediately and stop() cuts off whatever is playing.
Engines that can tell when an utterance ends call the completion callback
they were given with the utterance id.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Protocol, Tuple

CompletionCallback = Callable[[int], None]


class SpeechEngine(Protocol):
    def speak(self, text: str, utterance_id: int) -> None:
        ...

    def stop(self) -> None:
        ...

    def set_language(self, language: str) -> None:
        ...

    def set_speech_rate(self, rate: float) -> None:
        ...

    def set_pitch(self, pitch: float) -> None:
        ...

    def set_volume(self, volume: float) -> None:
        ...


class LoggingSpeechEngine:
    """
    Speech engine that writes utterances to the log.

    Used when no audio backend is configured (headless runs, replays).
    Every utterance completes immediately.
    """

    def __init__(self, on_finished: Optional[CompletionCallback] = None):
        self._on_finished = on_finished
        self.spoken: List[Tuple[int, str]] = []
        self.language: Optional[str] = None

    def set_completion_callback(self, callback: Optional[CompletionCallback]) -> None:
        self._on_finished = callback

    def speak(self, text: str, utterance_id: int) -> None:
        self.spoken.append((utterance_id, text))
        logging.info(f"[SPEAK] #{utterance_id} {text}")
        if self._on_finished:
            self._on_finished(utterance_id)

    def stop(self) -> None:
        logging.debug("[SPEAK] stop")

    def set_language(self, language: str) -> None:
        self.language = language

    def set_speech_rate(self, rate: float) -> None:
        logging.debug(f"[SPEAK] rate={rate}")

    def set_pitch(self, pitch: float) -> None:
        logging.debug(f"[SPEAK] pitch={pitch}")

    def set_volume(self, volume: float) -> None:
        logging.debug(f"[SPEAK] volume={volume}")


def create_speech_engine(backend: str, on_finished: Optional[CompletionCallback] = None) -> SpeechEngine:
    """
    Factory for the configured speech backend.

    Args:
        backend: "log" or "pyttsx3".
        on_finished: Called with the utterance id when speech ends.
    """
    if backend == "pyttsx3":
        from .pyttsx3_backend import Pyttsx3SpeechEngine

        return Pyttsx3SpeechEngine(on_finished=on_finished)
    if backend != "log":
        logging.warning(f"Unknown speech backend '{backend}', using log backend")
    return LoggingSpeechEngine(on_finished=on_finished)
