"""Entry point for NetPulse application."""

import logging
import os
import sys

from PySide6.QtCore import QObject, Slot
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication, QMenu, QStyle, QSystemTrayIcon

from netpulse.config import ConfigStore
from netpulse.dispatcher import CommandDispatcher
from netpulse.fake_prober import FakeProber
from netpulse.logging_config import configure_logging
from netpulse.models import SummaryIndicator, visible_actions
from netpulse.notifier import LogNotifier, NotificationRelay, TrayNotifier
from netpulse.prober import SystemProber
from netpulse.reconciler import StatusReconciler
from netpulse.scheduler import PollingScheduler, PollMode

# Configure logging early
configure_logging()
logger = logging.getLogger(__name__)

SUMMARY_TEXT = {
    SummaryIndicator.ALL_REACHABLE: "All devices online",
    SummaryIndicator.PARTIALLY_REACHABLE: "Some devices offline",
    SummaryIndicator.ALL_UNREACHABLE: "All devices offline",
    SummaryIndicator.INDETERMINATE: "Checking...",
    SummaryIndicator.CONFIGURATION_INVALID: "Settings need attention",
}


class TrayTooltip(QObject):
    """Mirrors the summary indicator in the tray tooltip."""

    def __init__(self, tray: QSystemTrayIcon, parent=None):
        super().__init__(parent)
        self.tray = tray

    @Slot(object)
    def update_status(self, snapshot):
        self.tray.setToolTip(SUMMARY_TEXT[snapshot.summary])


def build_menu(menu: QMenu, config, reconciler, dispatcher, scheduler, app) -> None:
    """Rebuild the tray menu from the current status and visible actions."""
    menu.clear()
    snapshot = reconciler.snapshot()
    for entity in config.current().entities:
        result = snapshot.get(entity.id)
        label = entity.name
        if result.latency_ms is not None:
            label = f"{entity.name} ({result.latency_ms:.1f} ms)"
        submenu = menu.addMenu(label)
        busy = dispatcher.is_in_flight(entity.id)
        for action in visible_actions(entity, result.state):
            item = submenu.addAction(
                action.name,
                lambda e=entity.id, a=action.name: dispatcher.dispatch(e, a),
            )
            item.setEnabled(not busy)
    menu.addSeparator()
    menu.addAction("Refresh now", scheduler.refresh)
    menu.addAction("Quit", app.quit)


def create_prober(config: ConfigStore):
    """Pick the system prober unless simulated data was requested."""
    settings = config.current()
    if os.environ.get("NETPULSE_PROBER", "").lower() == "fake":
        logger.info("Using FakeProber (NETPULSE_PROBER=fake)")
        return FakeProber()

    try:
        prober = SystemProber(
            settings.ssh_key_path,
            ping_timeout_ms=settings.ping_timeout_ms,
            command_timeout=settings.command_timeout,
        )
    except ValueError as e:
        logger.error("SystemProber configuration invalid, using simulated data: %s", e)
        return FakeProber()

    logger.info("SystemProber initialized")
    return prober


def main():
    """Main entry point for the NetPulse application."""
    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    config = ConfigStore()
    prober = create_prober(config)

    tray = None
    if QSystemTrayIcon.isSystemTrayAvailable():
        icon = app.style().standardIcon(QStyle.StandardPixmap.SP_DriveNetIcon)
        tray = QSystemTrayIcon(QIcon(icon), app)
        notifier = NotificationRelay(TrayNotifier(tray), parent=app)
    else:
        logger.warning("System tray unavailable, notifications go to the log only")
        notifier = NotificationRelay(LogNotifier(), parent=app)

    reconciler = StatusReconciler(config, prober, notifier, parent=app)
    dispatcher = CommandDispatcher(config, prober, notifier, parent=app)
    scheduler = PollingScheduler(reconciler, config, parent=app)

    if tray is not None:
        menu = QMenu()
        menu.aboutToShow.connect(lambda: build_menu(menu, config, reconciler, dispatcher, scheduler, app))
        build_menu(menu, config, reconciler, dispatcher, scheduler, app)
        menu.aboutToShow.connect(lambda: scheduler.start(PollMode.FAST))
        menu.aboutToHide.connect(lambda: scheduler.start(PollMode.BACKGROUND))
        tray.setContextMenu(menu)
        tray.setToolTip(SUMMARY_TEXT[SummaryIndicator.INDETERMINATE])
        tooltip = TrayTooltip(tray, parent=app)
        reconciler.status_changed.connect(tooltip.update_status)
        tray.show()

    def shutdown():
        logger.info("Shutting down")
        scheduler.stop()
        dispatcher.cancel_all()
        scheduler.thread_pool.waitForDone(5000)

    app.aboutToQuit.connect(shutdown)

    scheduler.start(PollMode.BACKGROUND)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
