"""Shared fixtures and fakes for NetPulse tests."""

import threading

import pytest
from PySide6.QtCore import QCoreApplication

from netpulse.config import AppSettings, ConfigStore
from netpulse.errors import InvalidHostError, ProbeCancelledError, ProbeTimeoutError
from netpulse.models import DisplayCondition, MonitoredEntity, RemoteAction


@pytest.fixture(scope="session")
def qapp():
    """Create QCoreApplication instance for timer and thread-pool tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


class RecordingNotifier:
    """Notifier that remembers every alert."""

    def __init__(self):
        self._lock = threading.Lock()
        self.messages: list[tuple[str, str]] = []

    def notify(self, title: str, body: str) -> None:
        with self._lock:
            self.messages.append((title, body))


class ScriptedProber:
    """Prober whose results are set per host by the test.

    ``latencies`` maps host -> latency in ms, None (timeout) or an exception
    instance to raise. ``remote`` is the remote-command output, or an
    exception instance to raise. ``on_ping`` is called before every ping.
    """

    def __init__(self, latencies=None, remote="", on_ping=None):
        self.latencies = dict(latencies or {})
        self.remote = remote
        self.on_ping = on_ping
        self._lock = threading.Lock()
        self.pinged: list[str] = []
        self.remote_calls: list[tuple[str, str, str]] = []

    def ping(self, host, token=None):
        with self._lock:
            self.pinged.append(host)
        if self.on_ping is not None:
            self.on_ping(host)
        if not host:
            raise InvalidHostError(host)
        if token is not None and token.cancelled:
            raise ProbeCancelledError("ping")
        value = self.latencies.get(host)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise ProbeTimeoutError("ping", 2.0)
        return value

    def run_remote(self, user, host, command, token=None):
        with self._lock:
            self.remote_calls.append((user, host, command))
        if token is not None and token.cancelled:
            raise ProbeCancelledError("ssh")
        if isinstance(self.remote, Exception):
            raise self.remote
        return self.remote


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def key_file(tmp_path):
    path = tmp_path / "id_ed25519"
    path.write_text("dummy key\n")
    return str(path)


@pytest.fixture
def entities():
    """Gateway router, a PC woken through it, and a NAS."""
    router = MonitoredEntity(
        id="router",
        name="Router",
        host="192.168.1.1",
        user="root",
        is_gateway=True,
        actions=(RemoteAction("Reboot", "sleep 2 && reboot", DisplayCondition.IF_REACHABLE),),
    )
    pc = MonitoredEntity(
        id="pc",
        name="Computer",
        host="192.168.1.20",
        user="alice",
        actions=(
            RemoteAction(
                "Wake",
                "/usr/bin/etherwake -i br-lan 74:D0:2B:96:27:AF",
                DisplayCondition.IF_UNREACHABLE,
            ),
            RemoteAction("Shut down", "sudo shutdown now", DisplayCondition.IF_REACHABLE),
        ),
    )
    nas = MonitoredEntity(id="nas", name="NAS", host="192.168.1.30", user="admin")
    return [router, pc, nas]


@pytest.fixture
def settings(entities, key_file):
    return AppSettings(entities=entities, check_host="1.1.1.1", ssh_key_path=key_file)


@pytest.fixture
def config(settings, tmp_path):
    return ConfigStore(path=tmp_path / "settings.json", settings=settings)
