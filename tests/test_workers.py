"""Tests for the QRunnable workers, run synchronously on the test thread."""

from unittest.mock import MagicMock

from netpulse.models import MonitoredEntity, RemoteAction
from netpulse.process_runner import CancellationToken
from netpulse.workers import CommandWorker, CycleWorker


class TestCycleWorker:
    """Test the reconciliation worker."""

    def test_runs_cycle_and_reports_generation(self, qapp):
        """Test that the cycle runs and finished carries the generation."""
        reconciler = MagicMock()
        token = CancellationToken()
        worker = CycleWorker(reconciler, True, token, generation_id=7)

        finished = []
        worker.signals.finished.connect(finished.append)
        worker.run()

        reconciler.reconcile.assert_called_once_with(True, token, 0.0)
        assert finished == [7]

    def test_wait_passed_to_reconciler(self, qapp):
        """Test that a restart cycle forwards its wait to the reconciler."""
        reconciler = MagicMock()
        token = CancellationToken()
        CycleWorker(reconciler, False, token, generation_id=1, wait_s=5.0).run()

        reconciler.reconcile.assert_called_once_with(False, token, 5.0)

    def test_exception_is_reported_not_raised(self, qapp, caplog):
        """Test that a failing cycle emits error and still finishes."""
        reconciler = MagicMock()
        reconciler.reconcile.side_effect = RuntimeError("cycle exploded")
        worker = CycleWorker(reconciler, False, CancellationToken(), generation_id=2)

        errors, finished = [], []
        worker.signals.error.connect(errors.append)
        worker.signals.finished.connect(finished.append)
        worker.run()

        assert errors == ["cycle exploded"]
        assert finished == [2]
        assert "Cycle worker exception" in caplog.text


class TestCommandWorker:
    """Test the remote-action worker."""

    def setup_method(self):
        self.entity = MonitoredEntity(id="nas", name="NAS", host="10.0.0.5", user="admin")
        self.action = RemoteAction("Uptime", "uptime")

    def test_executes_and_releases_token(self, qapp):
        """Test that the command runs and its token is released."""
        dispatcher = MagicMock()
        token = CancellationToken()
        worker = CommandWorker(dispatcher, self.entity, self.action, token)

        worker.run()

        dispatcher.execute.assert_called_once_with(self.entity, self.action, token)
        dispatcher.release_token.assert_called_once_with("nas", token)

    def test_token_released_after_failure(self, qapp):
        """Test that the token is released even on failure."""
        dispatcher = MagicMock()
        dispatcher.execute.side_effect = RuntimeError("unexpected")
        token = CancellationToken()
        worker = CommandWorker(dispatcher, self.entity, self.action, token)

        errors = []
        worker.signals.error.connect(errors.append)
        worker.run()

        assert errors == ["unexpected"]
        dispatcher.release_token.assert_called_once_with("nas", token)

    def test_finished_carries_entity_id(self, qapp):
        """Test that a settled command reports its entity id."""
        worker = CommandWorker(MagicMock(), self.entity, self.action, CancellationToken())

        finished = []
        worker.signals.finished.connect(finished.append)
        worker.run()

        assert finished == ["nas"]
