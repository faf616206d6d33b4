"""
Tests for the assist engine.
"""

import threading
from unittest.mock import MagicMock

import pytest

from models.config import Config
from models.voice import VoiceSettings
from pipeline.engine import AssistEngine, create_engine_from_config
from speech.backend import LoggingSpeechEngine, create_speech_engine
from speech.localization import Localization


def far_person():
    return [{"label": "person", "confidence": 0.9, "box": [0.4, 0.4, 0.5, 0.5]}]


def close_chair():
    return [{"label": "chair", "confidence": 0.9, "box": [0.3, 0.2, 0.7, 0.8]}]


@pytest.fixture
def engine(speech, clock):
    e = AssistEngine(Config(), speech=speech, clock=clock)
    e.start()
    return e


class TestDetectionCycle:
    def test_cycle_speaks_and_counts(self, engine, speech):
        spoken = engine.on_detection_results(far_person())
        assert spoken == "Veo persona a más de tres metros hacia el centro."
        assert speech.texts == [spoken]
        assert engine.stats.frame_count == 1
        assert engine.stats.announcements == 1

    def test_callbacks_receive_result(self, engine):
        callback = MagicMock()
        engine.add_callback(callback)
        engine.on_detection_results(far_person())
        processed, spoken = callback.call_args[0]
        assert processed.filtered_results[0].label == "person"
        assert spoken is not None

    def test_callback_errors_do_not_break_cycle(self, engine):
        engine.add_callback(MagicMock(side_effect=ValueError("boom")))
        assert engine.on_detection_results(far_person()) is not None

    def test_frame_dropped_while_cycle_running(self, engine):
        engine._cycle_lock.acquire()
        try:
            assert engine.on_detection_results(far_person()) is None
        finally:
            engine._cycle_lock.release()
        assert engine.stats.dropped_frames == 1
        assert engine.stats.frame_count == 0

    def test_no_speech_after_shutdown(self, engine, speech):
        engine.shutdown()
        assert engine.on_detection_results(close_chair()) is None
        assert speech.spoken == []

    def test_empty_frames_say_nothing_detected_once(self, engine, speech, clock):
        engine.on_detection_results([])
        clock.advance(4.0)
        engine.on_detection_results([])
        assert speech.texts == ["No detecto objetos frente a la cámara."]


class TestSpeechPacing:
    def test_static_close_object_does_not_restart_speech(self, engine, speech, clock):
        for i in range(10):
            dog_conf, person_conf = (0.6, 0.5) if i % 2 == 0 else (0.5, 0.6)
            engine.on_detection_results(close_chair() + [
                {"label": "dog", "confidence": dog_conf, "box": [0.0, 0.0, 0.1, 0.1]},
                {"label": "person", "confidence": person_conf, "box": [0.85, 0.0, 0.95, 0.1]},
            ])
            clock.advance(1 / 30)

        assert len(speech.spoken) == 1

    def test_sustained_camera_alert_is_not_repeated_every_second(self, engine, speech, clock):
        engine.on_detection_results(far_person())
        for step in range(1, 201):
            clock.advance(0.1)
            engine.on_detection_results([])
            if step % 10 == 0:
                engine.on_status_tick()
            speech.finish()

        idle_alert = Localization.t("es", "camera_idle_alert").strip()
        assert 1 <= speech.texts.count(idle_alert) <= 2


class TestStatusTick:
    def test_connection_alert_announced_once(self, engine, speech, clock):
        engine.on_detection_results(far_person())
        speech.finish()
        clock.advance(6.5)
        spoken = engine.on_status_tick()
        assert spoken.startswith("No recibo datos")

        clock.advance(1.0)
        assert engine.on_status_tick() is None
        assert len(speech.spoken) == 2

    def test_non_empty_frame_clears_alerts(self, engine, clock):
        clock.advance(9.0)
        engine.on_status_tick()
        assert engine.alerts.has_alerts
        engine.on_detection_results(far_person())
        assert not engine.alerts.has_alerts

    def test_status_timer_thread(self, speech):
        config = Config()
        config.alerts.tick_interval_s = 0.01
        engine = AssistEngine(config, speech=speech)
        ticked = threading.Event()
        engine.on_status_tick = lambda: ticked.set()
        engine.start(status_timer=True)
        try:
            assert ticked.wait(2.0)
        finally:
            engine.shutdown()


class TestUserActions:
    def test_disable_voice_cancels_and_confirms(self, engine, speech):
        engine.on_detection_results(far_person())
        engine.set_voice_enabled(False)
        assert not engine.voice_enabled
        assert speech.texts[-1] == "Narración desactivada."

        assert engine.on_detection_results(close_chair()) is None

    def test_disabled_confirmation_is_not_cut_off(self, engine, speech):
        engine.on_detection_results(far_person())
        engine.set_voice_enabled(False)
        engine.on_detection_results(close_chair())

        utterance = engine.scheduler.current_utterance
        assert utterance.text == "Narración desactivada."
        assert not utterance.cancelled

    def test_pause_and_resume(self, engine, speech):
        engine.pause()
        assert engine.paused
        assert engine.on_detection_results(close_chair()) is None
        assert engine.snapshot()["paused"] is True

        engine.resume()
        assert engine.on_detection_results(close_chair()) is not None
        assert engine.voice_enabled

    def test_toggle_voice(self, engine, speech, clock):
        assert engine.toggle_voice() is False
        clock.advance(2.0)
        assert engine.toggle_voice() is True
        assert speech.texts[-1] == "Narración activada."

    def test_system_message_skipped_when_disabled(self, engine, speech):
        engine.set_voice_enabled(False)
        count = len(speech.spoken)
        assert engine.announce_system_message("Hola") is None
        assert engine.announce_system_message("Hola", force=True) == "Hola"
        assert len(speech.spoken) == count + 1

    def test_repeat_last(self, engine, speech):
        spoken = engine.on_detection_results(far_person())
        assert engine.repeat_last() == spoken
        assert speech.texts == [spoken, spoken]

    def test_update_voice_settings_switches_language(self, engine, speech, clock):
        settings = engine.update_voice_settings(VoiceSettings(language="en-US", speech_rate=0.6))
        assert settings.language == "en-US"
        assert speech.settings["speech_rate"] == 0.6
        assert speech.texts[-1] == "Voice settings updated."

        clock.advance(4.0)
        engine.on_detection_results(far_person())
        assert speech.texts[-1] == "I see person more than three meters away in the center."

    def test_update_thresholds(self, engine):
        result = engine.update_thresholds(iou_threshold=0.3, close_obstacle_area_threshold=2.0)
        assert result == {"iou_threshold": 0.3, "close_obstacle_area_threshold": 0.9}

    def test_clear_history(self, engine):
        engine.on_detection_results(far_person())
        engine.clear_history()
        assert engine.stage.tracker.history == []
        assert engine.processed.is_empty

    def test_snapshot(self, engine):
        engine.on_detection_results(far_person())
        snap = engine.snapshot()
        assert snap["voice_enabled"] is True
        assert snap["speech_state"] == "speaking"
        assert snap["processed"]["filtered_results"][0]["label"] == "person"
        assert snap["stats"]["frame_count"] == 1
        assert snap["voice_settings"]["language"] == "es-ES"


class TestFactory:
    def test_create_engine_from_config(self, valid_config):
        engine = create_engine_from_config(valid_config)
        assert isinstance(engine, AssistEngine)
        assert engine.config.processing.iou_threshold == 0.45

    def test_log_engine_completes_immediately(self):
        engine = AssistEngine(Config(), speech=LoggingSpeechEngine())
        engine.start()
        engine.on_detection_results(far_person())
        assert engine.scheduler.status.value == "idle"

    def test_unknown_backend_falls_back_to_log(self):
        assert isinstance(create_speech_engine("festival"), LoggingSpeechEngine)
