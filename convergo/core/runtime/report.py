"""
Reporte de una corrida: resultado por recurso, en orden del plan.
"""

from typing import Dict, List, Optional

from convergo.core.resources.models import ResourceKey
from convergo.core.runtime.state import (
    Outcome,
    ResourceState,
    StateDiff,
    check_transition,
    is_terminal,
    outcome_for,
)


def first_line(text: str) -> str:
    lines = [line.strip() for line in str(text).strip().splitlines() if line.strip()]
    return lines[0] if lines else ""


class ResourceResult:
    """Resultado de un recurso; avanza por la máquina de estados de runtime.state."""

    def __init__(self, key: ResourceKey):
        self.key = key
        self.state = ResourceState.PENDING
        self.error: Optional[str] = None
        self.blocked_by: Optional[ResourceKey] = None
        self.diffs: List[StateDiff] = []
        self.notified = False
        self.refreshed = False
        self.probe_failed = False

    def advance(self, target: ResourceState) -> None:
        self.state = check_transition(self.state, target)

    @property
    def outcome(self) -> Outcome:
        return outcome_for(self.state)

    @property
    def changed(self) -> bool:
        return self.state == ResourceState.APPLIED

    @property
    def message(self) -> str:
        """Primera línea del error, o el recurso que lo bloqueó."""
        if self.state == ResourceState.FAILED:
            return first_line(self.error or "")
        if self.state == ResourceState.BLOCKED and self.blocked_by is not None:
            return f"bloqueado por {self.blocked_by}"
        return ""


class RunReport:
    """Reporte final: un ResourceResult por recurso del plan."""

    def __init__(self, results: List[ResourceResult], noop: bool = False):
        self.results = results
        self.noop = noop

    def __iter__(self):
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def get(self, key: ResourceKey) -> ResourceResult:
        for result in self.results:
            if result.key == key:
                return result
        raise KeyError(str(key))

    def outcome_of(self, key: ResourceKey) -> Outcome:
        return self.get(key).outcome

    def counts(self) -> Dict[Outcome, int]:
        counts = {o: 0 for o in Outcome}
        for result in self.results:
            counts[result.outcome] += 1
        return counts

    def with_outcome(self, outcome: Outcome) -> List[ResourceResult]:
        return [r for r in self.results if r.outcome == outcome]

    @property
    def complete(self) -> bool:
        return all(is_terminal(r.state) for r in self.results)

    @property
    def failed(self) -> bool:
        return any(r.outcome == Outcome.FAILED for r in self.results)

    @property
    def converged(self) -> bool:
        """True si se alcanzó el estado deseado completo (sin fallos ni bloqueos)."""
        return not any(r.outcome in (Outcome.FAILED, Outcome.SKIPPED) for r in self.results)

    def exit_code(self) -> int:
        return 0 if self.converged else 1
