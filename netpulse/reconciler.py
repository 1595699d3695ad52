"""Reconciliation cycle: probe every entity, publish status, detect transitions."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

from PySide6.QtCore import QObject, Signal

from netpulse.config import AppSettings, ConfigStore
from netpulse.errors import ProbeError
from netpulse.models import MonitoredEntity, ProbeResult, ReachState
from netpulse.notifier import Notifier
from netpulse.probe_ping import parse_round_trip_ms
from netpulse.prober import Prober
from netpulse.process_runner import CancellationToken
from netpulse.status import StatusSnapshot, StatusTable

logger = logging.getLogger(__name__)

INTERNET_NAME = "Internet"


class StatusReconciler(QObject):
    """Owns the status table and the previous-cycle states.

    Key features:
    - One latency probe per entity plus the internet check host, run
      concurrently and joined before anything is published
    - Single-flight: a call while a cycle is running returns immediately
    - State-change notifications for background cycles only, and only for
      determinate-to-determinate changes

    Thread-safe: cycles run on worker threads; the table is swapped under a
    lock and readers get immutable snapshots.
    """

    # Signals
    status_changed = Signal(object)  # StatusSnapshot
    updating_changed = Signal(bool)

    def __init__(
        self,
        config: ConfigStore,
        prober: Prober,
        notifier: Notifier,
        max_concurrent: int = 8,
        parent=None,
    ):
        """Initialize reconciler.

        Args:
            config: Source of the current settings snapshot
            prober: Prober used for latency and remote checks
            notifier: Sink for state-change alerts
            max_concurrent: Maximum number of probes in flight per cycle
            parent: Qt parent object
        """
        super().__init__(parent)
        if max_concurrent <= 0:
            raise ValueError("max_concurrent must be positive")

        self.config = config
        self.prober = prober
        self.notifier = notifier
        self.max_concurrent = max_concurrent

        self.table = StatusTable()
        self._previous: dict[str, ReachState] = {}
        self._previous_internet = ReachState.UNKNOWN
        self._guard = threading.Lock()

    @property
    def is_updating(self) -> bool:
        return self._guard.locked()

    def snapshot(self) -> StatusSnapshot:
        return self.table.snapshot()

    def reconcile(
        self,
        is_background_check: bool = False,
        token: CancellationToken | None = None,
        wait_s: float = 0.0,
    ) -> StatusSnapshot | None:
        """Run one reconciliation cycle.

        Args:
            is_background_check: Notify state changes (scheduled cycles only)
            token: Cancels the cycle's in-flight probes
            wait_s: How long to wait for a running cycle to finish first;
                0 makes an overlapping call a no-op

        Returns:
            The published snapshot, or None if another cycle was already in
            progress or this one was cancelled before publishing.
        """
        if wait_s > 0:
            acquired = self._guard.acquire(timeout=wait_s)
        else:
            acquired = self._guard.acquire(blocking=False)
        if not acquired:
            logger.debug("Reconciliation already in progress, skipping")
            return None

        try:
            self.updating_changed.emit(True)
            settings = self.config.current()
            try:
                return self._run_cycle(settings, is_background_check, token)
            except Exception:
                logger.exception("Status update failed, marking all entities unreachable")
                return self._publish_failed_cycle(settings, token)
        finally:
            self._guard.release()
            self.updating_changed.emit(False)

    def _publish_failed_cycle(
        self,
        settings: AppSettings,
        token: CancellationToken | None,
    ) -> StatusSnapshot | None:
        # Previous states stay untouched; no alerts for a failed cycle
        if token is not None and token.cancelled:
            return None
        results = {entity.id: ProbeResult.unreachable() for entity in settings.entities}
        snapshot = self.table.publish(results, ProbeResult.unreachable())
        self.status_changed.emit(snapshot)
        return snapshot

    def _run_cycle(
        self,
        settings: AppSettings,
        is_background_check: bool,
        token: CancellationToken | None,
    ) -> StatusSnapshot | None:
        entities = list(settings.entities)

        if not settings.is_valid:
            logger.warning("Settings invalid, resetting status to unknown")
            self._previous = {}
            self._previous_internet = ReachState.UNKNOWN
            snapshot = self.table.reset([e.id for e in entities], config_valid=False)
            self.status_changed.emit(snapshot)
            return snapshot

        logger.info(
            "Status update started: %d entities, background=%s",
            len(entities),
            is_background_check,
        )

        results, internet = self._probe_all(settings, token)

        if internet.state is not ReachState.REACHABLE:
            gateway = settings.gateway
            # The ssh fallback needs a login on the gateway
            if (
                gateway is not None
                and gateway.user
                and results.get(gateway.id, internet).state is ReachState.REACHABLE
            ):
                internet = self._check_internet_via_gateway(gateway, settings.check_host, token)

        if token is not None and token.cancelled:
            logger.info("Status update cancelled, discarding results")
            return None

        snapshot = self.table.publish(results, internet)

        if is_background_check:
            for entity in entities:
                self._check_and_notify(
                    entity.name,
                    self._previous.get(entity.id, ReachState.UNKNOWN),
                    results[entity.id].state,
                )
            self._check_and_notify(INTERNET_NAME, self._previous_internet, internet.state)

        self._previous = {entity_id: result.state for entity_id, result in results.items()}
        self._previous_internet = internet.state

        logger.info("Status update finished: summary=%s", snapshot.summary.value)
        self.status_changed.emit(snapshot)
        return snapshot

    def _probe_all(
        self,
        settings: AppSettings,
        token: CancellationToken | None,
    ) -> tuple[dict[str, ProbeResult], ProbeResult]:
        """Probe every entity and the check host concurrently."""
        workers = max(1, min(self.max_concurrent, len(settings.entities) + 1))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probe") as executor:
            internet_future = executor.submit(self._probe, settings.check_host, token)
            futures = {
                entity.id: executor.submit(self._probe, entity.host, token)
                for entity in settings.entities
            }
            results = {entity_id: future.result() for entity_id, future in futures.items()}
            internet = internet_future.result()
        return results, internet

    def _probe(self, host: str, token: CancellationToken | None) -> ProbeResult:
        """Ping one host; every failure degrades to Unreachable."""
        try:
            latency = self.prober.ping(host, token=token)
        except ProbeError as e:
            logger.debug("Probe failed: host=%s, kind=%s, error=%s", host, e.kind, e)
            return ProbeResult.unreachable()
        except Exception:
            logger.exception("Unexpected probe error: host=%s", host)
            return ProbeResult.unreachable()
        return ProbeResult.reachable(latency)

    def _check_internet_via_gateway(
        self,
        gateway: MonitoredEntity,
        check_host: str,
        token: CancellationToken | None,
    ) -> ProbeResult:
        """Ask the gateway itself to ping the check host."""
        command = f"ping -c 1 -W 2 {check_host}"
        try:
            output = self.prober.run_remote(gateway.user, gateway.host, command, token=token)
            latency = parse_round_trip_ms(output)
        except ProbeError as e:
            logger.warning("Internet check via %s failed: kind=%s, error=%s", gateway.name, e.kind, e)
            return ProbeResult.unreachable()
        except Exception:
            logger.exception("Unexpected error checking internet via %s", gateway.name)
            return ProbeResult.unreachable()
        logger.info("Internet reachable via %s: latency=%.2fms", gateway.name, latency)
        return ProbeResult.reachable(latency)

    def _check_and_notify(self, name: str, old: ReachState, new: ReachState) -> None:
        # Unknown on either side means startup or reconfiguration
        if not old.is_determinate or not new.is_determinate or old is new:
            return

        title = f"{name} changed status"
        body = "Back online" if new is ReachState.REACHABLE else "Went offline"
        logger.info("Sending notification: %s - %s", title, body)
        self.notifier.notify(title, body)
