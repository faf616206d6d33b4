"""
Tests for the announcement scheduler.
"""

import pytest

from models.config import AnnouncementConfig
from models.processed import ProcessedDetections, SafetyAlerts
from models.voice import VoiceSettings
from speech.composer import AnnouncementComposer
from speech.scheduler import AnnouncementScheduler, SchedulerState

from conftest import make_detection

FAR_PERSON = ProcessedDetections(filtered_results=(make_detection("person", 0.4, 0.4, 0.5, 0.5),))
FAR_DOG = ProcessedDetections(filtered_results=(make_detection("dog", 0.4, 0.4, 0.5, 0.5),))
CLOSE_CHAIR = ProcessedDetections(filtered_results=(make_detection("chair", 0.3, 0.2, 0.7, 0.8),))


@pytest.fixture
def scheduler(speech, clock):
    composer = AnnouncementComposer(AnnouncementConfig(), language="es-ES")
    scheduler = AnnouncementScheduler(speech, composer, AnnouncementConfig(), clock=clock)
    speech.set_completion_callback(scheduler.utterance_finished)
    return scheduler


class TestCooldown:
    def test_first_cycle_is_spoken(self, scheduler, speech):
        spoken = scheduler.on_cycle(FAR_PERSON)
        assert spoken == "Veo persona a más de tres metros hacia el centro."
        assert speech.texts == [spoken]
        assert scheduler.status is SchedulerState.SPEAKING
        assert scheduler.last_message == spoken

    def test_non_emergency_dropped_within_pause(self, scheduler, speech, clock):
        scheduler.on_cycle(FAR_PERSON)
        clock.advance(1.0)
        assert scheduler.on_cycle(FAR_DOG) is None
        clock.advance(2.5)
        assert scheduler.on_cycle(FAR_DOG) is not None
        assert len(speech.spoken) == 2

    def test_identical_message_not_repeated(self, scheduler, speech, clock):
        scheduler.on_cycle(FAR_PERSON)
        speech.finish()
        clock.advance(10.0)
        assert scheduler.on_cycle(FAR_PERSON) is None
        assert len(speech.spoken) == 1

    def test_nothing_detected_said_once(self, scheduler, speech, clock):
        assert scheduler.on_cycle(ProcessedDetections.EMPTY) == "No detecto objetos frente a la cámara."
        clock.advance(10.0)
        assert scheduler.on_cycle(ProcessedDetections.EMPTY) is None


class TestEmergency:
    def test_emergency_bypasses_pause_and_interrupts(self, scheduler, speech, clock):
        scheduler.on_cycle(FAR_PERSON)
        clock.advance(0.5)
        spoken = scheduler.on_cycle(CLOSE_CHAIR)
        assert spoken is not None
        assert "muy cerca" in spoken
        assert len(speech.spoken) == 2
        assert speech.stops >= 2

    def test_alerts_are_emergencies(self, scheduler, clock):
        scheduler.on_cycle(FAR_PERSON)
        clock.advance(0.1)
        spoken = scheduler.on_cycle(FAR_PERSON, SafetyAlerts(connection_alert="Sin conexión."))
        assert spoken == "Sin conexión."

    def test_identical_emergency_waits_for_repeat_window_and_completion(self, scheduler, speech, clock):
        scheduler.on_cycle(CLOSE_CHAIR)
        clock.advance(0.5)
        assert scheduler.on_cycle(CLOSE_CHAIR) is None

        clock.advance(0.6)
        # still playing
        assert scheduler.on_cycle(CLOSE_CHAIR) is None

        speech.finish()
        assert scheduler.on_cycle(CLOSE_CHAIR) is not None
        assert len(speech.spoken) == 2

    def test_repeat_without_completion_events(self, speech, clock):
        composer = AnnouncementComposer(AnnouncementConfig())
        scheduler = AnnouncementScheduler(speech, composer, AnnouncementConfig(), clock=clock, tracks_completion=False)
        scheduler.on_cycle(CLOSE_CHAIR)
        clock.advance(1.0)
        assert scheduler.on_cycle(CLOSE_CHAIR) is not None

    def test_emergency_classification(self, scheduler):
        assert not scheduler.hazard(FAR_PERSON, None)
        assert scheduler.hazard(CLOSE_CHAIR, None)
        assert scheduler.hazard(ProcessedDetections(approaching_labels=("car",)), None)
        assert scheduler.hazard(ProcessedDetections.EMPTY, SafetyAlerts(camera_alert="x"))


class TestVoiceDisabled:
    def test_disabled_stops_and_forgets(self, scheduler, speech):
        scheduler.on_cycle(FAR_PERSON)
        stops = speech.stops
        assert scheduler.on_cycle(FAR_PERSON, voice_enabled=False) is None
        assert scheduler.last_message is None
        assert scheduler.status is SchedulerState.IDLE
        assert speech.stops == stops + 1

    def test_paused(self, scheduler, speech):
        scheduler.pause()
        assert scheduler.on_cycle(CLOSE_CHAIR) is None
        scheduler.resume()
        assert scheduler.on_cycle(CLOSE_CHAIR) is not None


class TestControls:
    def test_repeat_last(self, scheduler, speech, clock):
        assert scheduler.repeat_last() is None
        scheduler.on_cycle(FAR_PERSON)
        clock.advance(0.1)
        assert scheduler.repeat_last() == FAR_PERSON_TEXT
        assert speech.texts == [FAR_PERSON_TEXT, FAR_PERSON_TEXT]

    def test_stop_is_idempotent(self, scheduler, speech):
        scheduler.on_cycle(FAR_PERSON)
        utterance = scheduler.current_utterance
        scheduler.stop()
        scheduler.stop()
        assert utterance.cancelled
        assert scheduler.current_utterance is None
        assert scheduler.status is SchedulerState.IDLE

    def test_stale_completion_ignored(self, scheduler, speech, clock):
        scheduler.on_cycle(FAR_PERSON)
        old_id = speech.spoken[-1][0]
        clock.advance(0.1)
        scheduler.on_cycle(CLOSE_CHAIR)
        scheduler.utterance_finished(old_id)
        assert scheduler.status is SchedulerState.SPEAKING
        speech.finish()
        assert scheduler.status is SchedulerState.IDLE

    def test_reset_keeps_pause(self, scheduler):
        scheduler.on_cycle(FAR_PERSON)
        scheduler.pause()
        scheduler.reset()
        assert scheduler.state.is_paused
        assert scheduler.last_message is None

    def test_apply_settings(self, scheduler, speech):
        applied = scheduler.apply_settings(VoiceSettings(language="en-US", speech_rate=5.0, pitch=0.1, volume=0.5))
        assert applied.speech_rate == 0.8
        assert applied.pitch == 0.7
        assert speech.settings == {"language": "en-US", "speech_rate": 0.8, "pitch": 0.7, "volume": 0.5}
        assert scheduler.composer.lang == "en"


class TestEngineFailures:
    def test_speak_failure_is_swallowed(self, scheduler, speech):
        speech.fail_speak = True
        assert scheduler.on_cycle(FAR_PERSON) is None
        assert scheduler.status is SchedulerState.IDLE
        assert scheduler.last_message is None

        speech.fail_speak = False
        assert scheduler.on_cycle(FAR_PERSON) == FAR_PERSON_TEXT

    def test_stop_failure_is_swallowed(self, scheduler, speech):
        speech.fail_stop = True
        scheduler.on_cycle(FAR_PERSON)
        scheduler.stop()
        assert scheduler.status is SchedulerState.IDLE

    def test_setting_failure_is_swallowed(self, scheduler, speech):
        def broken(_value):
            raise RuntimeError("unsupported")

        speech.set_pitch = broken
        applied = scheduler.apply_settings(VoiceSettings(volume=0.4))
        assert applied.volume == 0.4
        assert speech.settings["volume"] == 0.4


class TestHazardChanges:
    def test_unchanged_hazard_does_not_interrupt_on_new_wording(self, scheduler, speech, clock):
        chair = make_detection("chair", 0.3, 0.2, 0.7, 0.8)
        dog = make_detection("dog", 0.0, 0.0, 0.1, 0.1)
        person = make_detection("person", 0.85, 0.0, 0.95, 0.1)
        frames = [
            ProcessedDetections(filtered_results=(chair, dog, person)),
            ProcessedDetections(filtered_results=(chair, person, dog)),
        ]
        for i in range(10):
            scheduler.on_cycle(frames[i % 2])
            clock.advance(1 / 30)

        assert len(speech.spoken) == 1

    def test_new_hazard_interrupts_within_pause(self, scheduler, speech, clock):
        scheduler.on_cycle(CLOSE_CHAIR)
        clock.advance(0.5)
        approaching = ProcessedDetections(
            filtered_results=CLOSE_CHAIR.filtered_results,
            approaching_labels=("car",),
        )
        assert scheduler.on_cycle(approaching) is not None
        assert len(speech.spoken) == 2

    def test_hazard(self, scheduler):
        hazard = scheduler.hazard(CLOSE_CHAIR, None)
        assert hazard.close == frozenset({"chair"})
        assert not hazard.is_alert
        assert not scheduler.hazard(FAR_PERSON, None)
        assert scheduler.hazard(FAR_PERSON, SafetyAlerts(camera_alert="x")).is_alert


class TestSustainedAlerts:
    def test_identical_alert_waits_for_alert_repeat_window(self, scheduler, speech, clock):
        alerts = SafetyAlerts(camera_alert="No detecto nada.")
        assert scheduler.on_cycle(ProcessedDetections.EMPTY, alerts) == "No detecto nada."
        speech.finish()

        clock.advance(3.5)
        assert scheduler.on_cycle(ProcessedDetections.EMPTY, alerts) is None
        clock.advance(5.0)
        assert scheduler.on_cycle(ProcessedDetections.EMPTY, alerts) is None

        clock.advance(2.0)
        assert scheduler.on_cycle(ProcessedDetections.EMPTY, alerts) == "No detecto nada."
        assert len(speech.spoken) == 2


class TestSystemMessages:
    def test_system_message_survives_disabled_cycles(self, scheduler, speech):
        scheduler.on_cycle(FAR_PERSON)
        assert scheduler.announce_system("Narración desactivada.") == "Narración desactivada."
        stops = speech.stops

        scheduler.on_cycle(CLOSE_CHAIR, voice_enabled=False)

        utterance = scheduler.current_utterance
        assert utterance.text == "Narración desactivada."
        assert not utterance.cancelled
        assert speech.stops == stops
        assert scheduler.last_message is None

    def test_disabled_cycle_stops_after_system_message_finished(self, scheduler, speech):
        scheduler.announce_system("Narración desactivada.")
        speech.finish()
        stops = speech.stops
        scheduler.on_cycle(CLOSE_CHAIR, voice_enabled=False)
        assert speech.stops == stops + 1

    def test_blank_system_message_ignored(self, scheduler, speech):
        assert scheduler.announce_system("  ") is None
        assert speech.spoken == []


FAR_PERSON_TEXT = "Veo persona a más de tres metros hacia el centro."
