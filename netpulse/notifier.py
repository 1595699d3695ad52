"""Notification sinks for state-change and command alerts."""

import logging
from typing import Protocol

from PySide6.QtCore import QObject, Qt, Signal, Slot
from PySide6.QtWidgets import QSystemTrayIcon

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Fire-and-forget sink for user-visible alerts."""

    def notify(self, title: str, body: str) -> None:
        ...


class LogNotifier:
    """Notifier that only writes alerts to the log."""

    def notify(self, title: str, body: str) -> None:
        logger.info("Notification: %s - %s", title, body)


class TrayNotifier:
    """Shows alerts as system tray balloon messages (Qt main thread only)."""

    def __init__(self, tray_icon: QSystemTrayIcon, timeout_ms: int = 5000):
        self.tray_icon = tray_icon
        self.timeout_ms = timeout_ms

    def notify(self, title: str, body: str) -> None:
        logger.info("Notification: %s - %s", title, body)
        self.tray_icon.showMessage(
            title, body, QSystemTrayIcon.MessageIcon.Information, self.timeout_ms
        )


class NotificationRelay(QObject):
    """Notifier usable from worker threads.

    ``notify()`` may be called from any thread; delivery to the wrapped
    notifier always happens on the thread that owns the relay.
    """

    _requested = Signal(str, str)

    def __init__(self, target: Notifier, parent=None):
        super().__init__(parent)
        self.target = target
        self._requested.connect(self._deliver, Qt.ConnectionType.QueuedConnection)

    def notify(self, title: str, body: str) -> None:
        self._requested.emit(title, body)

    @Slot(str, str)
    def _deliver(self, title: str, body: str) -> None:
        self.target.notify(title, body)
