"""
Message catalogs and label translation for spoken feedback.

Spanish is the primary language; English is kept in step with it.
"""

from __future__ import annotations

import re
from typing import Dict, Optional, Tuple

DEFAULT_LANG = "es"


class Localization:
    MESSAGES: dict[str, dict[str, str]] = {
        "es": {
            "nothing_detected": "No detecto objetos frente a la cámara.",
            "detections": "Veo {items}.",
            "item_separator": ", ",
            "distance_half_meter": "a aproximadamente medio metro",
            "distance_one_meter": "a aproximadamente un metro",
            "distance_two_meters": "a unos dos metros",
            "distance_far": "a más de tres metros",
            "distance_metric": "a aproximadamente {meters} metros",
            "distance_unknown": "a una distancia desconocida",
            "side_left": "hacia la izquierda",
            "side_right": "hacia la derecha",
            "side_center": "hacia el centro",
            "warning_side_left": "a la izquierda",
            "warning_side_right": "a la derecha",
            "warning_side_center": "al frente",
            "close_warning": "Cuidado {side}, {label} está muy cerca.",
            "close_obstacles": "Obstáculo cercano: {labels}.",
            "movement": "Atención, {label} acercándose rápidamente.",
            "movement_warning": "{label} acercándose rápidamente",
            "traffic_red": "Semáforo en rojo, detente.",
            "traffic_green": "Semáforo en verde, avanza con precaución.",
            "voice_enabled": "Narración activada.",
            "voice_disabled": "Narración desactivada.",
            "voice_settings_updated": "Configuración de voz actualizada.",
            "connection_alert": "No recibo datos de detección, revisa tu conexión o reinicia la cámara.",
            "camera_idle_alert": "No detecto objetos desde hace varios segundos, verifica que la cámara no esté obstruida.",
            "camera_missing_alert": "No puedo ver la imagen de la cámara.",
        },
        "en": {
            "nothing_detected": "No objects detected in front of the camera.",
            "detections": "I see {items}.",
            "item_separator": ", ",
            "distance_half_meter": "about half a meter away",
            "distance_one_meter": "about one meter away",
            "distance_two_meters": "about two meters away",
            "distance_far": "more than three meters away",
            "distance_metric": "about {meters} meters away",
            "distance_unknown": "at an unknown distance",
            "side_left": "to the left",
            "side_right": "to the right",
            "side_center": "in the center",
            "warning_side_left": "on your left",
            "warning_side_right": "on your right",
            "warning_side_center": "ahead",
            "close_warning": "Careful {side}, {label} is very close.",
            "close_obstacles": "Close obstacle: {labels}.",
            "movement": "Warning, {label} approaching fast.",
            "movement_warning": "{label} approaching fast",
            "traffic_red": "Red light, stop.",
            "traffic_green": "Green light, proceed with caution.",
            "voice_enabled": "Narration enabled.",
            "voice_disabled": "Narration disabled.",
            "voice_settings_updated": "Voice settings updated.",
            "connection_alert": "No detection data received, check your connection or restart the camera.",
            "camera_idle_alert": "No objects detected for several seconds, make sure the camera is not blocked.",
            "camera_missing_alert": "I cannot see the camera image.",
        },
    }

    # canonical english label -> (spanish, english)
    LABELS: Dict[str, Tuple[str, str]] = {
        "object": ("objeto", "object"),
        "person": ("persona", "person"),
        "bicycle": ("bicicleta", "bicycle"),
        "car": ("coche", "car"),
        "motorcycle": ("motocicleta", "motorcycle"),
        "bus": ("autobús", "bus"),
        "truck": ("camión", "truck"),
        "train": ("tren", "train"),
        "traffic light": ("semáforo", "traffic light"),
        "traffic light red": ("semáforo en rojo", "red traffic light"),
        "traffic light green": ("semáforo en verde", "green traffic light"),
        "stop sign": ("señal de alto", "stop sign"),
        "fire hydrant": ("hidrante", "fire hydrant"),
        "bench": ("banco", "bench"),
        "dog": ("perro", "dog"),
        "cat": ("gato", "cat"),
        "backpack": ("mochila", "backpack"),
        "umbrella": ("paraguas", "umbrella"),
        "handbag": ("bolso", "handbag"),
        "suitcase": ("maleta", "suitcase"),
        "bottle": ("botella", "bottle"),
        "cup": ("taza", "cup"),
        "chair": ("silla", "chair"),
        "couch": ("sofá", "couch"),
        "potted plant": ("planta", "potted plant"),
        "bed": ("cama", "bed"),
        "dining table": ("mesa", "table"),
        "table": ("mesa", "table"),
        "toilet": ("inodoro", "toilet"),
        "tv": ("televisor", "tv"),
        "laptop": ("portátil", "laptop"),
        "cell phone": ("teléfono", "cell phone"),
        "book": ("libro", "book"),
        "door": ("puerta", "door"),
        "stairs": ("escaleras", "stairs"),
        "pole": ("poste", "pole"),
        "crosswalk": ("paso de peatones", "crosswalk"),
    }

    _ALIASES: Dict[str, str] = {
        spanish: canonical for canonical, (spanish, _english) in LABELS.items()
    }

    @classmethod
    def lang(cls, language: Optional[str]) -> str:
        """Catalog key for a language tag ("es-MX" -> "es")."""
        code = (language or DEFAULT_LANG).split("-")[0].lower()
        return code if code in cls.MESSAGES else DEFAULT_LANG

    @classmethod
    def t(cls, lang: str, key: str, **kwargs: object) -> str:
        template = cls.MESSAGES.get(cls.lang(lang), cls.MESSAGES[DEFAULT_LANG]).get(key, key)
        return template.format(**kwargs) if kwargs else template

    @classmethod
    def label(cls, lang: str, raw_label: str) -> str:
        """
        Translate a detector label.

        Tries the cleaned label, then the cleaned label without a trailing
        "s", against both English and Spanish names; unknown labels are
        returned cleaned.
        """
        cleaned = clean_label(raw_label)
        index = 0 if cls.lang(lang) == "es" else 1
        for key in (cleaned, cleaned[:-1] if cleaned.endswith("s") else None):
            if not key:
                continue
            canonical = key if key in cls.LABELS else cls._ALIASES.get(key)
            if canonical is not None:
                return cls.LABELS[canonical][index]
        return cleaned or cls.LABELS["object"][index]


def clean_label(raw_label: str) -> str:
    """Lowercase, turn separators into spaces and collapse whitespace."""
    text = (raw_label or "").lower().replace("_", " ").replace("-", " ")
    return re.sub(r"\s+", " ", text).strip()
