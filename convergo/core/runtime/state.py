"""
Estado de ejecución de un recurso durante una corrida.

Máquina de estados por recurso:

    Pending → Probed → Unchanged
                     → Applying → Applied | Failed
    Pending → Blocked                (un ancestro falló o quedó bloqueado)

Unchanged, Applied, Failed y Blocked son terminales.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet

from convergo.core.errors import StateTransitionError


class StateDiff:
    """Diferencia entre estado deseado y real de un atributo."""
    def __init__(
        self,
        resource_id: str,
        field: str,
        desired: Any,
        actual: Any,
        severity: str = "warning"
    ):
        self.resource_id = resource_id
        self.field = field
        self.desired = desired
        self.actual = actual
        self.severity = severity  # "error", "warning", "info"

    def __repr__(self) -> str:
        return f"StateDiff({self.resource_id}.{self.field}: {self.actual!r} -> {self.desired!r})"


class ResourceState(str, Enum):
    PENDING = "pending"
    PROBED = "probed"
    UNCHANGED = "unchanged"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"
    BLOCKED = "blocked"


class Outcome(str, Enum):
    """Resultado visible en el reporte."""
    UNCHANGED = "unchanged"
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


_TRANSITIONS: Dict[ResourceState, FrozenSet[ResourceState]] = {
    ResourceState.PENDING: frozenset({ResourceState.PROBED, ResourceState.BLOCKED}),
    ResourceState.PROBED: frozenset({ResourceState.UNCHANGED, ResourceState.APPLYING}),
    ResourceState.APPLYING: frozenset({ResourceState.APPLIED, ResourceState.FAILED}),
    ResourceState.UNCHANGED: frozenset(),
    ResourceState.APPLIED: frozenset(),
    ResourceState.FAILED: frozenset(),
    ResourceState.BLOCKED: frozenset(),
}

_OUTCOMES: Dict[ResourceState, Outcome] = {
    ResourceState.UNCHANGED: Outcome.UNCHANGED,
    ResourceState.APPLIED: Outcome.APPLIED,
    ResourceState.FAILED: Outcome.FAILED,
    ResourceState.BLOCKED: Outcome.SKIPPED,
}


def is_terminal(state: ResourceState) -> bool:
    return not _TRANSITIONS[state]


def check_transition(current: ResourceState, target: ResourceState) -> ResourceState:
    """Valida la transición y devuelve el nuevo estado."""
    if target not in _TRANSITIONS[current]:
        raise StateTransitionError(f"Transición inválida: {current.value} → {target.value}")
    return target


def outcome_for(state: ResourceState) -> Outcome:
    if state not in _OUTCOMES:
        raise StateTransitionError(f"Estado no terminal: {state.value}")
    return _OUTCOMES[state]
