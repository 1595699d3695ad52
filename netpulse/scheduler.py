"""Polling scheduler with fast and background cadences."""

import logging
from enum import Enum

from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal

from netpulse.config import ConfigStore
from netpulse.process_runner import CancellationToken
from netpulse.workers import CycleWorker

logger = logging.getLogger(__name__)

FAST_INTERVAL_S = 5.0

# Upper bound for a restart cycle waiting on the cancelled one to release
RESTART_WAIT_S = 5.0


class PollMode(str, Enum):
    FAST = "fast"  # A user-facing view is open
    BACKGROUND = "background"


class PollingScheduler(QObject):
    """Runs reconciliation cycles on a restartable repeating timer.

    Key features:
    - ``start(mode)`` cancels the running task and its in-flight probes, then
      runs a cycle immediately and every interval after that
    - The background interval is re-read from configuration on every tick;
      a change restarts the task with the new interval
    - The first cycle after a restart waits, bounded, for the cancelled
      cycle to let go of the reconciler instead of being skipped
    - Generation ID invalidates results of cycles from a previous start

    Thread-safe: scheduler state is only touched on the Qt main thread;
    cycles run on the thread pool.
    """

    # Signals
    cycle_finished = Signal(int)  # generation_id
    error = Signal(str)

    def __init__(
        self,
        reconciler,
        config: ConfigStore,
        fast_interval_s: float = FAST_INTERVAL_S,
        thread_pool: QThreadPool | None = None,
        parent=None,
    ):
        """Initialize scheduler.

        Args:
            reconciler: Object with ``reconcile(is_background_check, token, wait_s)``
            config: Source of the background interval
            fast_interval_s: Interval used in FAST mode
            thread_pool: Pool for cycle workers (global pool if omitted)
            parent: Qt parent object
        """
        super().__init__(parent)
        if fast_interval_s <= 0:
            raise ValueError("fast_interval_s must be positive")

        self.reconciler = reconciler
        self.config = config
        self.fast_interval_s = fast_interval_s
        self.thread_pool = thread_pool if thread_pool is not None else QThreadPool.globalInstance()

        self.mode: PollMode | None = None
        self.interval_s: float | None = None

        # Generation ID for invalidating stale results
        self._generation_id = 0
        self._token: CancellationToken | None = None

        self.timer = QTimer(self)
        self.timer.timeout.connect(self._on_tick)

    @property
    def is_running(self) -> bool:
        return self._token is not None

    @property
    def generation_id(self) -> int:
        return self._generation_id

    def start(self, mode: PollMode) -> None:
        """(Re)start the repeating task in the given mode."""
        self._cancel_current()

        self.mode = mode
        if mode is PollMode.FAST:
            self.interval_s = self.fast_interval_s
        else:
            self.interval_s = self.config.current().background_interval

        self._generation_id += 1
        self._token = CancellationToken()
        self.timer.start(int(self.interval_s * 1000))

        logger.info(
            "Polling started: mode=%s, interval=%.0fs (generation_id=%d)",
            mode.value,
            self.interval_s,
            self._generation_id,
        )
        # The cancelled cycle may still hold the reconciler for a moment
        self._submit_cycle(wait_s=RESTART_WAIT_S)

    def stop(self) -> None:
        """Stop polling and cancel the in-flight cycle."""
        if not self.is_running:
            return

        self._cancel_current()
        self._token = None
        self.mode = None
        self._generation_id += 1
        logger.info("Polling stopped (generation_id=%d)", self._generation_id)

    def refresh(self) -> None:
        """Run a user-initiated cycle now; no state-change notifications."""
        token = self._token if self._token is not None else CancellationToken()
        self._submit_cycle(is_background_check=False, token=token)

    def _cancel_current(self) -> None:
        self.timer.stop()
        if self._token is not None:
            self._token.cancel()

    def _on_tick(self) -> None:
        """Handle timer tick - pick up interval changes, then run a cycle."""
        if not self.is_running:
            return

        if self.mode is PollMode.BACKGROUND:
            configured = self.config.current().background_interval
            if configured != self.interval_s:
                logger.info(
                    "Background interval changed: %.0fs -> %.0fs",
                    self.interval_s,
                    configured,
                )
                self.start(PollMode.BACKGROUND)
                return

        self._submit_cycle()

    def _submit_cycle(
        self,
        is_background_check: bool | None = None,
        token: CancellationToken | None = None,
        wait_s: float = 0.0,
    ) -> None:
        if is_background_check is None:
            is_background_check = self.mode is PollMode.BACKGROUND
        if token is None:
            token = self._token

        worker = CycleWorker(
            self.reconciler, is_background_check, token, self._generation_id, wait_s
        )
        worker.signals.finished.connect(self._on_cycle_finished)
        worker.signals.error.connect(self.error)
        self.thread_pool.start(worker)

    def _on_cycle_finished(self, generation_id: int) -> None:
        if generation_id != self._generation_id:
            logger.debug(
                "Stale cycle finished: generation_id=%d (current=%d)",
                generation_id,
                self._generation_id,
            )
            return
        self.cycle_finished.emit(generation_id)

    def get_stats(self):
        """Get scheduler statistics.

        Returns:
            Dict with scheduler state info
        """
        return {
            "mode": self.mode.value if self.mode else None,
            "interval_s": self.interval_s,
            "running": self.is_running,
            "updating": getattr(self.reconciler, "is_updating", False),
            "generation_id": self._generation_id,
        }
