"""Data models for NetPulse entities and probe results."""

from dataclasses import dataclass, field
from enum import Enum
import uuid


class ReachState(str, Enum):
    """Reachability of a single entity."""

    UNKNOWN = "unknown"
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"

    @property
    def is_determinate(self) -> bool:
        return self is not ReachState.UNKNOWN


class DisplayCondition(str, Enum):
    """When a remote action is offered to the user."""

    ALWAYS = "always"
    IF_REACHABLE = "if_reachable"
    IF_UNREACHABLE = "if_unreachable"


class ActionKind(str, Enum):
    """What a remote action does. WAKE actions are issued from the gateway."""

    WAKE = "wake"
    REBOOT = "reboot"
    SHUTDOWN = "shutdown"
    CUSTOM = "custom"


class SummaryIndicator(str, Enum):
    """Compact health glyph derived from the status table."""

    ALL_REACHABLE = "all_reachable"
    PARTIALLY_REACHABLE = "partially_reachable"
    ALL_UNREACHABLE = "all_unreachable"
    INDETERMINATE = "indeterminate"
    CONFIGURATION_INVALID = "configuration_invalid"


WAKE_TOOLS = ("etherwake", "ether-wake", "wakeonlan", "wol")


def infer_action_kind(command: str) -> ActionKind:
    """Guess the kind of an action that was configured without one.

    Wake-on-LAN tools are recognised by name in the command text; reboot and
    shutdown by the command verb.
    """
    words = command.replace("/", " ").split()
    if any(tool in words for tool in WAKE_TOOLS):
        return ActionKind.WAKE
    if "reboot" in words:
        return ActionKind.REBOOT
    if "shutdown" in words or "poweroff" in words:
        return ActionKind.SHUTDOWN
    return ActionKind.CUSTOM


@dataclass(frozen=True)
class RemoteAction:
    """A named shell command that can be run on an entity."""

    name: str
    command: str
    display_condition: DisplayCondition = DisplayCondition.ALWAYS
    kind: ActionKind | None = None  # Inferred from the command when omitted

    def __post_init__(self):
        if self.kind is None:
            object.__setattr__(self, "kind", infer_action_kind(self.command))

    def is_visible(self, state: ReachState) -> bool:
        """Return True if the action should be offered for the given state."""
        if self.display_condition is DisplayCondition.IF_REACHABLE:
            return state is ReachState.REACHABLE
        if self.display_condition is DisplayCondition.IF_UNREACHABLE:
            return state is ReachState.UNREACHABLE
        return True


@dataclass(frozen=True)
class MonitoredEntity:
    """A monitored network endpoint (router, host machine, ...)."""

    name: str
    host: str
    user: str = ""
    actions: tuple[RemoteAction, ...] = ()
    is_gateway: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def find_action(self, name: str) -> RemoteAction | None:
        for action in self.actions:
            if action.name == name:
                return action
        return None


def visible_actions(entity: MonitoredEntity, state: ReachState) -> list[RemoteAction]:
    """Filter an entity's actions down to those visible in the given state."""
    return [action for action in entity.actions if action.is_visible(state)]


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one latency probe."""

    state: ReachState = ReachState.UNKNOWN
    latency_ms: float | None = None  # Set only when REACHABLE

    def __post_init__(self):
        """Ensure latency is present if and only if the entity is reachable."""
        if self.state is ReachState.REACHABLE:
            if self.latency_ms is None:
                raise ValueError("Reachable result requires latency_ms")
        elif self.latency_ms is not None:
            object.__setattr__(self, "latency_ms", None)

    @classmethod
    def reachable(cls, latency_ms: float) -> "ProbeResult":
        return cls(ReachState.REACHABLE, latency_ms)

    @classmethod
    def unreachable(cls) -> "ProbeResult":
        return cls(ReachState.UNREACHABLE)

    @classmethod
    def unknown(cls) -> "ProbeResult":
        return cls(ReachState.UNKNOWN)
