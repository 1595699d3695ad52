"""Worker classes for background reconciliation and command tasks."""

import logging

from PySide6.QtCore import QObject, QRunnable, Signal

from netpulse.models import MonitoredEntity, RemoteAction
from netpulse.process_runner import CancellationToken

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals for communicating between worker threads and main thread."""

    finished = Signal(int)  # Emits generation_id when worker completes
    error = Signal(str)  # Emits error message


class CycleWorker(QRunnable):
    """Worker that runs one reconciliation cycle in a background thread."""

    def __init__(
        self,
        reconciler,
        is_background_check: bool,
        token: CancellationToken,
        generation_id: int,
        wait_s: float = 0.0,
    ):
        super().__init__()
        self.reconciler = reconciler
        self.is_background_check = is_background_check
        self.token = token
        self.generation_id = generation_id
        self.wait_s = wait_s  # Wait for a cycle that is still winding down
        self.signals = WorkerSignals()

    def run(self):
        """Execute the cycle; never lets an exception escape the thread."""
        try:
            logger.debug(
                "Cycle worker starting: generation_id=%d, background=%s",
                self.generation_id,
                self.is_background_check,
            )
            self.reconciler.reconcile(self.is_background_check, self.token, self.wait_s)

        except Exception as e:
            logger.exception(
                "Cycle worker exception: generation_id=%d, error=%s",
                self.generation_id,
                str(e),
            )
            self.signals.error.emit(str(e))

        finally:
            self.signals.finished.emit(self.generation_id)


class CommandSignals(QObject):
    """Signals for a remote-action worker."""

    finished = Signal(str)  # Emits entity_id when the command settles
    error = Signal(str)


class CommandWorker(QRunnable):
    """Worker that executes one remote action in a background thread."""

    def __init__(
        self,
        dispatcher,
        entity: MonitoredEntity,
        action: RemoteAction,
        token: CancellationToken,
    ):
        super().__init__()
        self.dispatcher = dispatcher
        self.entity = entity
        self.action = action
        self.token = token
        self.signals = CommandSignals()

    def run(self):
        try:
            self.dispatcher.execute(self.entity, self.action, self.token)
        except Exception as e:
            logger.exception("Command worker exception: entity=%s, error=%s", self.entity.id, e)
            self.signals.error.emit(str(e))
        finally:
            self.dispatcher.release_token(self.entity.id, self.token)
            self.signals.finished.emit(self.entity.id)
