"""User-triggered remote actions, executed independently of polling."""

import logging
import threading

from PySide6.QtCore import QObject, QThreadPool, Signal

from netpulse.config import ConfigStore
from netpulse.errors import ProbeCancelledError, ProbeError, RemoteCommandFailedError
from netpulse.models import ActionKind, MonitoredEntity, RemoteAction
from netpulse.notifier import Notifier
from netpulse.prober import Prober
from netpulse.process_runner import CancellationToken
from netpulse.workers import CommandWorker

logger = logging.getLogger(__name__)


class CommandDispatcher(QObject):
    """Runs remote actions and tracks which entities have one in flight.

    Failures never propagate: every outcome becomes a notification.
    """

    command_state_changed = Signal(str, bool)  # (entity_id, in_flight)

    def __init__(
        self,
        config: ConfigStore,
        prober: Prober,
        notifier: Notifier,
        thread_pool: QThreadPool | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self.config = config
        self.prober = prober
        self.notifier = notifier
        self.thread_pool = thread_pool if thread_pool is not None else QThreadPool.globalInstance()

        self._lock = threading.Lock()
        self._in_flight: dict[str, bool] = {}
        self._tokens: dict[str, CancellationToken] = {}

    def in_flight(self) -> dict[str, bool]:
        """Snapshot of the command-in-flight map."""
        with self._lock:
            return dict(self._in_flight)

    def is_in_flight(self, entity_id: str) -> bool:
        with self._lock:
            return self._in_flight.get(entity_id, False)

    def dispatch(self, entity_id: str, action_name: str) -> CancellationToken | None:
        """Start an action on the thread pool.

        Returns:
            Token that cancels the command, or None if nothing was started.
        """
        settings = self.config.current()
        entity = settings.entity(entity_id)
        action = entity.find_action(action_name) if entity is not None else None
        if entity is None or action is None:
            logger.warning("Unknown action: entity=%s, action=%s", entity_id, action_name)
            return None
        if not action.command.strip():
            logger.debug("Empty command for %s/%s, nothing to do", entity.name, action.name)
            return None

        token = CancellationToken()
        with self._lock:
            if entity_id in self._tokens:
                logger.info("Command already running for %s, ignoring %r", entity.name, action_name)
                return None
            self._tokens[entity_id] = token

        # In flight while queued too; execute() clears it when the command settles
        self._set_in_flight(entity_id, True)
        self.thread_pool.start(CommandWorker(self, entity, action, token))
        return token

    def cancel(self, entity_id: str) -> bool:
        with self._lock:
            token = self._tokens.get(entity_id)
        if token is None:
            return False
        token.cancel()
        return True

    def cancel_all(self) -> None:
        with self._lock:
            tokens = list(self._tokens.values())
        for token in tokens:
            token.cancel()

    def release_token(self, entity_id: str, token: CancellationToken) -> None:
        """Forget a settled command's token and clear its in-flight flag."""
        with self._lock:
            if self._tokens.get(entity_id) is not token:
                return
            del self._tokens[entity_id]
        self._set_in_flight(entity_id, False)

    def execute(
        self,
        entity: MonitoredEntity,
        action: RemoteAction,
        token: CancellationToken | None = None,
    ) -> bool:
        """Run ``action`` for ``entity`` and notify the outcome.

        Returns:
            True if the remote command succeeded.
        """
        if not action.command.strip():
            logger.debug("Empty command for %s/%s, nothing to do", entity.name, action.name)
            return False

        target = self._resolve_target(entity, action)

        self._set_in_flight(entity.id, True)
        try:
            output = self.prober.run_remote(target.user, target.host, action.command, token=token)
        except ProbeCancelledError:
            logger.info("Command cancelled: %s/%s", entity.name, action.name)
            self.notifier.notify(entity.name, "Command cancelled")
            return False
        except RemoteCommandFailedError as e:
            logger.error("Command failed: %s/%s: %s", entity.name, action.name, e.detail)
            self.notifier.notify(f"Error: {entity.name}", e.detail)
            return False
        except ProbeError as e:
            logger.error("Command failed: %s/%s: kind=%s, error=%s", entity.name, action.name, e.kind, e)
            self.notifier.notify(f"Error: {entity.name}", str(e))
            return False
        except Exception as e:
            logger.exception("Unexpected command error: %s/%s", entity.name, action.name)
            self.notifier.notify(f"Error: {entity.name}", str(e))
            return False
        finally:
            self._set_in_flight(entity.id, False)

        body = output.strip() or f"{action.name} command sent."
        self.notifier.notify(entity.name, body)
        return True

    def _resolve_target(self, entity: MonitoredEntity, action: RemoteAction) -> MonitoredEntity:
        """Wake actions are physically issued from the gateway."""
        if action.kind is not ActionKind.WAKE:
            return entity

        gateway = self.config.current().gateway
        if gateway is None:
            logger.warning(
                "No gateway configured, running wake action %r on %s itself",
                action.name,
                entity.name,
            )
            return entity

        logger.info("Wake action %r for %s issued via gateway %s", action.name, entity.name, gateway.name)
        return gateway

    def _set_in_flight(self, entity_id: str, value: bool) -> None:
        with self._lock:
            changed = self._in_flight.get(entity_id, False) is not value
            self._in_flight[entity_id] = value
        if changed:
            self.command_state_changed.emit(entity_id, value)
