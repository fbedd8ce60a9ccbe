"""
Motor de convergencia: recorre el plan en orden topológico y aplica solo donde
el estado real difiere del deseado.

Por recurso:
1. Si un ancestro falló (o quedó bloqueado) → Blocked, sin consultar nada.
2. Consulta el estado actual; ProbeError = desconocido → hay que aplicar.
3. En sync y sin refresh pendiente → Unchanged (no notifica).
4. Fuera de sync → apply. En sync pero notificado y refrescable → refresh.
5. Si cambió, marca como notificados los destinos de sus notifies.

Un error del applier (ApplyError o cualquier otra excepción) es local: el recurso
queda Failed, sus dependientes Blocked, y las ramas independientes del grafo
siguen ejecutándose. ValidationError y CycleError
se lanzan al construir el plan, antes de cualquier apply.
"""

from typing import Any, Dict, Iterable, Optional, Set, Union

from rich.console import Console
from rich.markup import escape

from convergo.core.errors import ConvergoError, ProbeError
from convergo.core.graph.builder import ConvergencePlan, build_plan
from convergo.core.infra.contracts import ResourceApplier, StateProbe
from convergo.core.resources.models import Resource, ResourceKey
from convergo.core.runtime.report import ResourceResult, RunReport, first_line
from convergo.core.runtime.state import ResourceState


class ConvergenceEngine:
    """
    Ejecución secuencial y síncrona del plan.

    noop=True: consulta estado y reporta qué se aplicaría, sin llamar al applier.
    Las notificaciones se propagan igual que en una corrida real.
    """

    def __init__(
        self,
        probe: StateProbe,
        applier: ResourceApplier,
        console: Optional[Console] = None,
        noop: bool = False,
    ):
        self.probe = probe
        self.applier = applier
        self.console = console
        self.noop = noop

    def run(self, resources: Union[ConvergencePlan, Iterable[Resource]]) -> RunReport:
        plan = resources if isinstance(resources, ConvergencePlan) else build_plan(resources)

        results: Dict[ResourceKey, ResourceResult] = {k: ResourceResult(k) for k in plan.order}
        notified: Set[ResourceKey] = set()

        for resource in plan:
            result = results[resource.key]
            blocker = self._blocker(plan, resource.key, results)
            if blocker is not None:
                result.blocked_by = blocker
                result.advance(ResourceState.BLOCKED)
                self._print(
                    f"  [yellow]⚠[/yellow] {escape(str(resource.key))} "
                    f"[dim]bloqueado por {escape(str(blocker))}[/dim]"
                )
                continue

            result.notified = resource.key in notified
            if self._converge(resource, result):
                notified.update(resource.notifies)

        return RunReport([results[k] for k in plan.order], noop=self.noop)

    def _blocker(
        self,
        plan: ConvergencePlan,
        key: ResourceKey,
        results: Dict[ResourceKey, ResourceResult],
    ) -> Optional[ResourceKey]:
        """Primer ancestro directo que falló; si estaba bloqueado, el fallo de origen."""
        for dep in plan.graph.dependencies_of(key):
            dep_result = results[dep]
            if dep_result.state == ResourceState.FAILED:
                return dep
            if dep_result.state == ResourceState.BLOCKED:
                return dep_result.blocked_by or dep
        return None

    def _probe(self, resource: Resource, result: ResourceResult) -> Optional[Dict[str, Any]]:
        try:
            return resource.current_state(self.probe)
        except ProbeError as e:
            result.probe_failed = True
            self._print(
                f"  [yellow]⚠[/yellow] No se pudo consultar {escape(str(resource.key))}: {escape(first_line(str(e)))} "
                "[dim](se aplicará)[/dim]"
            )
            return None

    def _converge(self, resource: Resource, result: ResourceResult) -> bool:
        """Lleva un recurso a su estado deseado. Devuelve True si cambió."""
        current = self._probe(resource, result)
        result.advance(ResourceState.PROBED)

        in_sync = current is not None and resource.in_sync(current)
        refresh = (
            in_sync
            and result.notified
            and resource.is_refreshable()
            and resource.refresh_needed(current)
        )
        if in_sync and not refresh:
            result.advance(ResourceState.UNCHANGED)
            self._print(f"  [dim]· {escape(str(resource.key))} sin cambios[/dim]")
            return False

        if not in_sync:
            result.diffs = resource.diff(current)
        result.advance(ResourceState.APPLYING)
        try:
            if not self.noop:
                if refresh:
                    self.applier.refresh(resource)
                else:
                    self.applier.apply(resource, current)
        except ConvergoError as e:
            return self._fail(resource, result, str(e))
        except Exception as e:
            # applier de terceros: el fallo sigue siendo local al recurso
            return self._fail(resource, result, f"{type(e).__name__}: {e}")

        result.refreshed = refresh
        result.advance(ResourceState.APPLIED)
        action = "refrescado" if refresh else "aplicado"
        if self.noop:
            self._print(f"  [cyan]~[/cyan] {escape(str(resource.key))} [dim](noop) sería {action}[/dim]")
        else:
            self._print(f"  [green]✓[/green] {escape(str(resource.key))} {action}")
        return True

    def _fail(self, resource: Resource, result: ResourceResult, error: str) -> bool:
        result.error = error
        result.advance(ResourceState.FAILED)
        self._print(f"  [red]❌ {escape(str(resource.key))}: {escape(first_line(error))}[/red]")
        return False

    def _print(self, message: str) -> None:
        if self.console:
            self.console.print(message)


def converge(
    resources: Union[ConvergencePlan, Iterable[Resource]],
    probe: StateProbe,
    applier: ResourceApplier,
    console: Optional[Console] = None,
    noop: bool = False,
) -> RunReport:
    """Atajo: construye el motor y ejecuta una corrida."""
    return ConvergenceEngine(probe, applier, console=console, noop=noop).run(resources)
