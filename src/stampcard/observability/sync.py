from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from threading import Lock
from typing import Dict


@dataclass
class SyncSnapshot:
    cycles: Dict[str, int]
    operations: Dict[str, int]
    conflicts: Dict[str, int]

    def as_dict(self) -> Dict[str, object]:
        return {
            "cycles": dict(self.cycles),
            "operations": dict(self.operations),
            "conflicts": dict(self.conflicts),
        }


class SyncObservabilityStore:
    """Collect sync engine telemetry for status screens and diagnostics."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._cycles: Dict[str, int] = defaultdict(int)
        self._operations: Dict[str, int] = defaultdict(int)
        self._conflicts: Dict[str, int] = defaultdict(int)

    def record_cycle(self, outcome: str) -> None:
        with self._lock:
            self._cycles[outcome] += 1

    def record_operation(self, outcome: str, entity_type: str | None = None) -> None:
        with self._lock:
            self._operations[outcome] += 1
            if entity_type:
                self._operations[f"{outcome}:{entity_type}"] += 1

    def record_conflict(self, winner: str) -> None:
        with self._lock:
            self._conflicts[winner] += 1

    def snapshot(self) -> SyncSnapshot:
        with self._lock:
            return SyncSnapshot(
                cycles=dict(self._cycles),
                operations=dict(self._operations),
                conflicts=dict(self._conflicts),
            )

    def reset(self) -> None:
        with self._lock:
            self._cycles.clear()
            self._operations.clear()
            self._conflicts.clear()


__all__ = ["SyncObservabilityStore", "SyncSnapshot"]
