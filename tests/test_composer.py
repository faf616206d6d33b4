"""
Tests for announcement composition and localization.
"""

import math

import pytest

from models.config import AnnouncementConfig
from models.detection import BoundingBox, TrafficLightSignal
from models.processed import ProcessedDetections, SafetyAlerts
from speech.composer import AnnouncementComposer, Side, describe_side, distance_clause, has_valid_distance
from speech.localization import Localization, clean_label

from conftest import make_detection


def processed(*detections, **kwargs):
    return ProcessedDetections(filtered_results=tuple(detections), **kwargs)


@pytest.fixture
def composer():
    return AnnouncementComposer(AnnouncementConfig(), language="es-ES")


class TestDescribeSide:
    @pytest.mark.parametrize(
        "center_x,expected",
        [
            (0.2, Side.LEFT),
            (0.33, Side.CENTER),
            (0.5, Side.CENTER),
            (0.66, Side.CENTER),
            (0.9, Side.RIGHT),
        ],
    )
    def test_boundaries(self, center_x, expected):
        box = BoundingBox(center_x, 0.4, center_x, 0.6)
        assert describe_side(box) is expected


class TestDistance:
    def test_area_breakpoints(self, composer):
        cases = [
            ((0.0, 0.0, 0.5, 0.5), "a aproximadamente medio metro", True),
            ((0.0, 0.0, 0.4, 0.35), "a aproximadamente un metro", True),
            ((0.0, 0.0, 0.25, 0.24), "a unos dos metros", False),
            ((0.0, 0.0, 0.1, 0.1), "a más de tres metros", False),
        ]
        for box, text, is_close in cases:
            description = composer.describe_distance(make_detection("cup", *box))
            assert description.text == text
            assert description.is_close is is_close

    def test_metric_distance_overrides_area(self, composer):
        description = composer.describe_distance(make_detection("cup", 0.0, 0.0, 0.1, 0.1, distance_m=1.24))
        assert description.text == "a aproximadamente 1.2 metros"
        assert description.is_close

    def test_metric_distance_beyond_close_range(self, composer):
        description = composer.describe_distance(make_detection("cup", 0.0, 0.0, 0.9, 0.9, distance_m=4.0))
        assert not description.is_close

    @pytest.mark.parametrize("meters", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_metric_distance_is_unknown(self, composer, meters):
        description = composer.describe_distance(make_detection("cup", 0.0, 0.0, 0.9, 0.9, distance_m=meters))
        assert description.text == "a una distancia desconocida"
        assert not description.is_close

    def test_distance_clause_helpers(self):
        assert has_valid_distance(2.0)
        assert not has_valid_distance(None)
        assert not has_valid_distance(math.nan)
        assert distance_clause(2.0, "en") == "about 2.0 meters away"
        assert distance_clause(None, "es") == "a una distancia desconocida"


class TestCompose:
    def test_alerts_replace_narration(self, composer):
        alerts = SafetyAlerts(connection_alert="Sin conexión.", camera_alert="Cámara tapada.")
        result = composer.compose(processed(make_detection("person", 0.4, 0.4, 0.5, 0.5)), alerts)
        assert result.text == "Sin conexión. Cámara tapada."
        assert result.emergency

    def test_blank_alerts_are_ignored(self, composer):
        result = composer.compose(ProcessedDetections.EMPTY, SafetyAlerts(connection_alert="  "))
        assert result.text == "No detecto objetos frente a la cámara."

    def test_nothing_detected_is_said_once(self, composer):
        first = composer.compose(ProcessedDetections.EMPTY)
        assert first.text == composer.nothing_detected_message
        assert not first.emergency
        assert composer.compose(ProcessedDetections.EMPTY, previous_message=first.text) is None

    def test_single_far_object(self, composer):
        result = composer.compose(processed(make_detection("person", 0.4, 0.4, 0.5, 0.5)))
        assert result.text == "Veo persona a más de tres metros hacia el centro."
        assert not result.emergency

    def test_close_object_warning(self, composer):
        result = composer.compose(processed(make_detection("chair", 0.0, 0.2, 0.3, 0.8)))
        assert result.text == (
            "Veo silla a aproximadamente un metro hacia la izquierda. "
            "Cuidado a la izquierda, silla está muy cerca."
        )
        assert result.emergency

    def test_only_max_items_are_described(self, composer):
        detections = [make_detection(label, 0.4, 0.4, 0.5, 0.5) for label in ("cup", "book", "door", "dog")]
        result = composer.compose(processed(*detections))
        assert "perro" not in result.text
        assert result.text.count(", ") == 2

    def test_full_message_order(self, composer):
        result = composer.compose(
            processed(
                make_detection("car", 0.7, 0.1, 0.95, 0.6),
                close_obstacle_labels=("car", "cars"),
                movement_warnings=("car acercándose rápidamente",),
                approaching_labels=("car",),
                traffic_light_signal=TrafficLightSignal.RED,
            )
        )
        assert result.text == (
            "Veo coche a aproximadamente un metro hacia la derecha. "
            "Cuidado a la derecha, coche está muy cerca. "
            "Obstáculo cercano: coche. "
            "Atención, coche acercándose rápidamente. "
            "Semáforo en rojo, detente."
        )
        assert result.emergency

    def test_movement_warnings_without_labels_spoken_as_given(self, composer):
        result = composer.compose(
            processed(
                make_detection("dog", 0.4, 0.4, 0.5, 0.5),
                movement_warnings=("Perro acercándose",),
            )
        )
        assert result.text.endswith("Perro acercándose.")
        assert result.emergency

    def test_green_light(self, composer):
        result = composer.compose(
            processed(
                make_detection("traffic light", 0.45, 0.0, 0.5, 0.1),
                traffic_light_signal=TrafficLightSignal.GREEN,
            )
        )
        assert result.text.endswith("Semáforo en verde, avanza con precaución.")

    def test_english(self):
        composer = AnnouncementComposer(language="en-US")
        result = composer.compose(processed(make_detection("person", 0.8, 0.4, 0.9, 0.5)))
        assert result.text == "I see person more than three meters away to the right."


class TestLocalization:
    def test_language_tags(self):
        assert Localization.lang("es-MX") == "es"
        assert Localization.lang("en-US") == "en"
        assert Localization.lang("fr-FR") == "es"
        assert Localization.lang(None) == "es"

    def test_label_translation(self):
        assert Localization.label("es", "person") == "persona"
        assert Localization.label("es", "Traffic_Light") == "semáforo"
        assert Localization.label("es", "persons") == "persona"
        assert Localization.label("en", "sillas") == "chair"

    def test_unknown_label_is_cleaned(self):
        assert Localization.label("es", "Fire-Extinguisher") == "fire extinguisher"
        assert Localization.label("es", "") == "objeto"

    def test_clean_label(self):
        assert clean_label("  Dining__Table ") == "dining table"

    def test_unknown_key_returns_key(self):
        assert Localization.t("es", "no_such_key") == "no_such_key"
