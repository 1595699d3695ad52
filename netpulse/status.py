"""Authoritative per-entity status table and summary derivation."""

import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from netpulse.models import ProbeResult, ReachState, SummaryIndicator


def summarize(
    results: Mapping[str, ProbeResult],
    config_valid: bool = True,
) -> SummaryIndicator:
    """Derive the summary indicator from entity results.

    The internet entry is not an entity and is not counted.
    """
    if not config_valid:
        return SummaryIndicator.CONFIGURATION_INVALID

    determinate = [r for r in results.values() if r.state.is_determinate]
    if not determinate:
        return SummaryIndicator.INDETERMINATE

    reachable = sum(1 for r in determinate if r.state is ReachState.REACHABLE)
    if reachable == len(determinate):
        return SummaryIndicator.ALL_REACHABLE
    if reachable == 0:
        return SummaryIndicator.ALL_UNREACHABLE
    return SummaryIndicator.PARTIALLY_REACHABLE


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable view of the status table handed to readers."""

    entities: Mapping[str, ProbeResult] = field(default_factory=lambda: MappingProxyType({}))
    internet: ProbeResult = ProbeResult()
    summary: SummaryIndicator = SummaryIndicator.INDETERMINATE

    def get(self, entity_id: str) -> ProbeResult:
        return self.entities.get(entity_id, ProbeResult.unknown())


class StatusTable:
    """Entity id -> ProbeResult, plus the distinguished internet entry.

    Writers replace the whole table under a lock; readers get a snapshot, so
    nobody observes a half-updated cycle.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = StatusSnapshot()

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return self._snapshot

    def publish(
        self,
        entities: Mapping[str, ProbeResult],
        internet: ProbeResult,
        config_valid: bool = True,
    ) -> StatusSnapshot:
        snapshot = StatusSnapshot(
            entities=MappingProxyType(dict(entities)),
            internet=internet,
            summary=summarize(entities, config_valid),
        )
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def reset(self, entity_ids: list[str], config_valid: bool = True) -> StatusSnapshot:
        """Set every entity and the internet entry back to Unknown."""
        return self.publish(
            {entity_id: ProbeResult.unknown() for entity_id in entity_ids},
            ProbeResult.unknown(),
            config_valid,
        )
