"""
Offline text-to-speech backend (pyttsx3).

pyttsx3 blocks while speaking, so the engine lives on its own worker
thread and is only touched from there; speak() and the setters just queue
commands. Install with `pip install pyttsx3` (the `tts` extra).
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Optional, Tuple

from .backend import CompletionCallback

# pyttsx3 rates are words per minute; 0.5 is the platform's normal pace
NORMAL_RATE_WPM = 200
NORMAL_RATE = 0.5

_SAY = "say"
_PROPERTY = "property"
_VOICE = "voice"


class Pyttsx3SpeechEngine:
    def __init__(self, on_finished: Optional[CompletionCallback] = None):
        try:
            import pyttsx3  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "pyttsx3 is not installed. Install with `pip install pyttsx3` "
                "or switch speech.backend to 'log'."
            ) from e

        self._pyttsx3 = pyttsx3
        self._on_finished = on_finished
        self._commands: "queue.Queue[Optional[Tuple[str, Any, Any]]]" = queue.Queue()
        self._engine = None
        self._ready = threading.Event()
        self._thread = threading.Thread(target=self._run, name="pyttsx3-speech", daemon=True)
        self._thread.start()
        self._ready.wait(timeout=5.0)

    def set_completion_callback(self, callback: Optional[CompletionCallback]) -> None:
        self._on_finished = callback

    def _run(self) -> None:
        try:
            self._engine = self._pyttsx3.init()
        except Exception as e:
            logging.error(f"Failed to initialize pyttsx3: {e}")
            return
        finally:
            self._ready.set()

        while True:
            command = self._commands.get()
            if command is None:
                break
            kind, key, value = command
            try:
                if kind == _SAY:
                    self._engine.say(value)
                    self._engine.runAndWait()
                    if self._on_finished:
                        self._on_finished(key)
                elif kind == _PROPERTY:
                    self._engine.setProperty(key, value)
                elif kind == _VOICE:
                    self._select_voice(value)
            except Exception as e:
                logging.warning(f"pyttsx3 command {kind} failed: {e}")

    def _select_voice(self, language: str) -> None:
        code = language.split("-")[0].lower()
        for voice in self._engine.getProperty("voices") or []:
            languages = [
                lang.decode(errors="ignore") if isinstance(lang, bytes) else str(lang)
                for lang in (getattr(voice, "languages", None) or [])
            ]
            haystack = " ".join(languages + [str(voice.id), str(getattr(voice, "name", ""))]).lower()
            if language.lower() in haystack or code in haystack:
                self._engine.setProperty("voice", voice.id)
                return
        logging.info(f"No pyttsx3 voice for {language}; keeping default voice")

    def _drain(self) -> None:
        """Drop queued utterances, keep queued property changes."""
        kept = []
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                break
            if command is None or command[0] != _SAY:
                kept.append(command)
        for command in kept:
            self._commands.put(command)

    def speak(self, text: str, utterance_id: int) -> None:
        self._commands.put((_SAY, utterance_id, text))

    def stop(self) -> None:
        self._drain()
        if self._engine is not None:
            self._engine.stop()

    def set_language(self, language: str) -> None:
        self._commands.put((_VOICE, None, language))

    def set_speech_rate(self, rate: float) -> None:
        self._commands.put((_PROPERTY, "rate", int(NORMAL_RATE_WPM * rate / NORMAL_RATE)))

    def set_pitch(self, pitch: float) -> None:
        logging.debug(f"pyttsx3 has no pitch control; ignoring pitch={pitch}")

    def set_volume(self, volume: float) -> None:
        self._commands.put((_PROPERTY, "volume", float(volume)))

    def close(self) -> None:
        self.stop()
        self._commands.put(None)
