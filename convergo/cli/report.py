"""
Salida legible (Rich) de planes y reportes de convergencia.
"""

from typing import List

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from convergo.core.graph.builder import ConvergencePlan
from convergo.core.runtime.report import ResourceResult, RunReport
from convergo.core.runtime.state import Outcome

_OUTCOME_STYLE = {
    Outcome.UNCHANGED: "[dim]sin cambios[/dim]",
    Outcome.APPLIED: "[green]aplicado[/green]",
    Outcome.FAILED: "[red]FALLÓ[/red]",
    Outcome.SKIPPED: "[yellow]omitido[/yellow]",
}


def display_plan(plan: ConvergencePlan, console: Console) -> None:
    """Orden de aplicación con sus aristas require/notify."""
    table = Table(title="Plan de convergencia", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Recurso", style="cyan")
    table.add_column("Requiere", style="green")
    table.add_column("Notifica", style="yellow")
    for i, key in enumerate(plan.order, 1):
        table.add_row(
            str(i),
            escape(str(key)),
            escape(", ".join(str(k) for k in plan.graph.requires[key])) or "-",
            escape(", ".join(str(k) for k in plan.graph.notifies[key])) or "-",
        )
    console.print(table)


def _detail(result: ResourceResult) -> str:
    if result.message:
        return result.message
    if result.refreshed:
        return "refresh por notificación"
    parts: List[str] = [f"{d.field}: {d.actual} → {d.desired}" for d in result.diffs]
    if result.probe_failed:
        parts.insert(0, "estado desconocido")
    return "; ".join(parts)


def display_report(report: RunReport, console: Console) -> None:
    """Resultado por recurso y resumen final."""
    title = "Resultado (noop)" if report.noop else "Resultado"
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Recurso", style="cyan")
    table.add_column("Resultado")
    table.add_column("Detalle", style="dim")
    for result in report:
        outcome = _OUTCOME_STYLE[result.outcome]
        if report.noop and result.outcome == Outcome.APPLIED:
            outcome = "[cyan]pendiente[/cyan]"
        table.add_row(escape(str(result.key)), outcome, escape(_detail(result)))
    console.print(table)

    counts = report.counts()
    applied_label = "pendientes" if report.noop else "aplicados"
    console.print(
        f"[bold]{len(report)} recursos:[/bold] "
        f"[green]{counts[Outcome.APPLIED]} {applied_label}[/green], "
        f"[dim]{counts[Outcome.UNCHANGED]} sin cambios[/dim], "
        f"[red]{counts[Outcome.FAILED]} fallidos[/red], "
        f"[yellow]{counts[Outcome.SKIPPED]} omitidos[/yellow]"
    )
    if report.converged:
        if not report.noop:
            console.print("[green]✅ Estado deseado alcanzado.[/green]")
    else:
        console.print("[red]❌ No se alcanzó el estado deseado.[/red]")
