"""Configuration management for NetPulse.

Settings are a read-only snapshot: the engine never mutates them, it asks the
``ConfigStore`` for ``current()`` whenever it needs fresh values.
"""

import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from netpulse.models import ActionKind, DisplayCondition, MonitoredEntity, RemoteAction

logger = logging.getLogger(__name__)

MIN_BACKGROUND_INTERVAL_S = 10.0
MAX_BACKGROUND_INTERVAL_S = 3600.0

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "netpulse" / "settings.json"

_IPV4_RE = re.compile(
    r"^((25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)
_HOSTNAME_RE = re.compile(r"^([a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,63}$")
_MAC_RE = re.compile(r"^([0-9A-Fa-f]{2}[:-]){5}([0-9A-Fa-f]{2})$")


def validate_ip(address: str) -> bool:
    return bool(_IPV4_RE.match(address))


def validate_host(host: str) -> bool:
    """Accept an IPv4 address or a dotted hostname."""
    return validate_ip(host) or bool(_HOSTNAME_RE.match(host))


def validate_mac(address: str) -> bool:
    return bool(_MAC_RE.match(address))


def validate_key_path(path: str) -> bool:
    if not path:
        return False
    return Path(path).expanduser().is_file()


def default_entities() -> list[MonitoredEntity]:
    """A router acting as gateway and one host machine woken through it."""
    return [
        MonitoredEntity(
            id="router",
            name="Router",
            host="192.168.1.1",
            user="root",
            is_gateway=True,
            actions=(
                RemoteAction("Reboot", "sleep 2 && reboot", DisplayCondition.IF_REACHABLE),
            ),
        ),
        MonitoredEntity(
            id="pc",
            name="Computer",
            host="192.168.1.243",
            user="user",
            actions=(
                RemoteAction(
                    "Wake",
                    "/usr/bin/etherwake -i br-lan 74:D0:2B:96:27:AF",
                    DisplayCondition.IF_UNREACHABLE,
                ),
                RemoteAction("Reboot", "sudo reboot", DisplayCondition.IF_REACHABLE),
                RemoteAction("Shut down", "sudo shutdown now", DisplayCondition.IF_REACHABLE),
            ),
        ),
    ]


class AppSettings(BaseModel):
    """Monitored entities and connection parameters."""

    model_config = ConfigDict(frozen=True)

    entities: list[MonitoredEntity] = Field(default_factory=default_entities)
    check_host: str = "1.1.1.1"
    ssh_key_path: str = str(Path.home() / ".ssh" / "id_ed25519")
    background_interval: float = 60.0
    ping_timeout_ms: int = Field(default=2000, gt=0)
    command_timeout: float = Field(default=30.0, gt=0)

    @field_validator("background_interval", mode="after")
    @classmethod
    def clamp_background_interval(cls, v: float) -> float:
        """Clamp the polling interval to a sane range."""
        return min(max(v, MIN_BACKGROUND_INTERVAL_S), MAX_BACKGROUND_INTERVAL_S)

    @property
    def gateway(self) -> MonitoredEntity | None:
        for entity in self.entities:
            if entity.is_gateway:
                return entity
        return None

    def entity(self, entity_id: str) -> MonitoredEntity | None:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def validation_errors(self) -> list[str]:
        """Return human-readable problems; empty when the settings are usable."""
        errors = []
        if not validate_host(self.check_host):
            errors.append(f"Invalid internet check host: {self.check_host!r}")

        seen_ids = set()
        for entity in self.entities:
            if entity.id in seen_ids:
                errors.append(f"Duplicate entity id: {entity.id!r}")
            seen_ids.add(entity.id)
            if not validate_host(entity.host):
                errors.append(f"{entity.name}: invalid address {entity.host!r}")
            if entity.actions and not entity.user:
                errors.append(f"{entity.name}: SSH user is required for remote actions")
            for action in entity.actions:
                if action.kind is ActionKind.WAKE and not any(
                    validate_mac(word) for word in action.command.split()
                ):
                    errors.append(f"{entity.name}: wake action {action.name!r} has no MAC address")

        if sum(1 for entity in self.entities if entity.is_gateway) > 1:
            errors.append("More than one gateway entity configured")

        if any(entity.actions for entity in self.entities) and not validate_key_path(
            self.ssh_key_path
        ):
            errors.append(f"SSH key not found: {self.ssh_key_path!r}")

        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()


class ConfigStore:
    """Loads, holds and saves the current ``AppSettings`` snapshot."""

    def __init__(self, path: Path | str | None = None, settings: AppSettings | None = None):
        if path is None:
            path = os.environ.get("NETPULSE_CONFIG") or DEFAULT_CONFIG_PATH
        self.path = Path(path).expanduser()
        self._settings = settings if settings is not None else self._load()

    def current(self) -> AppSettings:
        return self._settings

    def reload(self) -> AppSettings:
        self._settings = self._load()
        return self._settings

    def apply(self, settings: AppSettings, save: bool = True) -> None:
        """Replace the snapshot; optionally persist it."""
        self._settings = settings
        if save:
            self.save()

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(self._settings.model_dump_json(indent=2), encoding="utf-8")
            logger.info("Settings saved: %s", self.path)
        except OSError as e:
            logger.error("Failed to save settings to %s: %s", self.path, e)

    def _load(self) -> AppSettings:
        if not self.path.exists():
            logger.info("No settings file at %s, using defaults", self.path)
            return AppSettings()
        try:
            settings = AppSettings.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.error("Failed to load settings from %s, using defaults: %s", self.path, e)
            return AppSettings()

        logger.info("Settings loaded: %s (%d entities)", self.path, len(settings.entities))
        for problem in settings.validation_errors():
            logger.warning("Settings problem: %s", problem)
        return settings
