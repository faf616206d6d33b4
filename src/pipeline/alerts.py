"""
Safety alert monitor.

Driven by a ~1 Hz status tick, independent of detection cycles. Watches how
long ago the last detection callback and the last non-empty frame arrived
and raises connection / camera alerts accordingly.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from models.config import AlertsConfig
from models.processed import SafetyAlerts
from speech.localization import Localization


class SafetyMonitor:
    """
    Derives SafetyAlerts from detection-callback timing.

    Example:
        monitor = SafetyMonitor(AlertsConfig())
        monitor.start()
        monitor.record_result(has_detections=True)   # each detection callback
        alerts = monitor.tick()                       # once per second
    """

    def __init__(
        self,
        config: Optional[AlertsConfig] = None,
        language: str = "es-ES",
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or AlertsConfig()
        self.language = language
        self._clock = clock
        self._running = False
        self._last_result: Optional[float] = None
        self._last_non_empty: Optional[float] = None
        self._alerts = SafetyAlerts()

    @property
    def alerts(self) -> SafetyAlerts:
        return self._alerts

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start watching; the callback clock starts now."""
        self._running = True
        self._last_result = self._clock()
        self._last_non_empty = None
        self._alerts = SafetyAlerts()

    def stop(self) -> None:
        self._running = False
        self._alerts = SafetyAlerts()

    def record_result(self, has_detections: bool) -> SafetyAlerts:
        """
        Note a detection callback.

        Any callback clears the connection alert; a non-empty one also
        clears the camera alert.
        """
        now = self._clock()
        self._last_result = now
        camera_alert = self._alerts.camera_alert
        if has_detections:
            self._last_non_empty = now
            camera_alert = None
        self._alerts = SafetyAlerts(connection_alert=None, camera_alert=camera_alert)
        return self._alerts

    def tick(self) -> SafetyAlerts:
        """Recompute alerts from elapsed time."""
        if not self._running:
            return self._alerts

        now = self._clock()
        lang = Localization.lang(self.language)
        since_result = now - self._last_result if self._last_result is not None else float("inf")

        connection_alert = None
        if since_result > self.config.connection_timeout_s:
            connection_alert = Localization.t(lang, "connection_alert")

        camera_alert = self._alerts.camera_alert
        if self._last_non_empty is not None:
            if now - self._last_non_empty > self.config.camera_idle_s:
                camera_alert = Localization.t(lang, "camera_idle_alert")
        elif since_result > self.config.camera_missing_s:
            camera_alert = Localization.t(lang, "camera_missing_alert")
        elif since_result < self.config.camera_recover_s:
            camera_alert = None

        self._alerts = SafetyAlerts(connection_alert=connection_alert, camera_alert=camera_alert)
        return self._alerts
