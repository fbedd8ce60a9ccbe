"""
Aplicación CLI de convergo.

Solo compone comandos; la lógica vive en core, providers y modules.
Códigos de salida: 0 = estado deseado alcanzado, 1 = algún recurso falló u
quedó omitido, 2 = configuración/manifiesto inválido (no se aplicó nada).
"""

from pathlib import Path
from typing import List, Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from convergo import __version__
from convergo.cli.report import display_plan, display_report
from convergo.config.loader import load_settings
from convergo.config.manifest import load_manifest
from convergo.core.engine.convergence import ConvergenceEngine
from convergo.core.errors import ConfigError, ConvergoError, CycleError, ValidationError
from convergo.core.graph.builder import ConvergencePlan, build_plan
from convergo.core.resources.models import Resource
from convergo.core.runtime.resolver import config_path, project_base
from convergo.modules.openresty import OpenRestyConfig, declare
from convergo.providers.system import build_system_backends

app = typer.Typer(
    name="convergo",
    help="convergo - Provisioning declarativo e idempotente (OpenResty/nginx)",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

ConfigOption = typer.Option(None, "--config", "-c", help="YAML de configuración (default: $CONVERGO_CONFIG o ./convergo.yaml)")
ManifestOption = typer.Option(None, "--manifest", "-m", help="Manifiesto YAML de recursos (en vez del módulo openresty)")
UserOption = typer.Option(None, "--user", "-u", help="Cuenta que ejecuta nginx (default: nginx)")
GroupOption = typer.Option(None, "--group", "-g", help="Grupo de la cuenta (default: nginx)")
ReleaseOption = typer.Option(None, "--openresty-version", help="Versión de ngx_openresty a instalar")
TimeoutOption = typer.Option(None, "--timeout", "-t", help="Timeout (s) de cada Exec")
BackendOption = typer.Option(None, "--package-backend", help="dnf | yum | apt (default: autodetectar)")


@app.callback()
def main_callback():
    """Carga .env del proyecto (o del cwd) antes de cualquier comando."""
    for base in (project_base(), Path.cwd()):
        if base is not None and (base / ".env").exists():
            load_dotenv(base / ".env", override=False)
            break


def _fail(error: ConvergoError) -> typer.Exit:
    title = {
        CycleError: "Ciclo de dependencias",
        ConfigError: "Error de configuración",
    }.get(type(error), "Declaración inválida")
    console.print(Panel.fit(
        f"[red]{escape(str(error))}[/red]", title=f"[bold red]{title}[/bold red]", border_style="red"
    ))
    console.print("[dim]No se aplicó ningún recurso.[/dim]")
    return typer.Exit(code=2)


def _declared_resources(
    config: Optional[Path],
    manifest: Optional[Path],
    user: Optional[str],
    group: Optional[str],
    release: Optional[str],
    timeout: Optional[int],
    quiet: bool = False,
) -> List[Resource]:
    """Recursos del manifiesto indicado, o del módulo openresty con su configuración."""
    if manifest is not None:
        return load_manifest(manifest)
    settings = load_settings(
        OpenRestyConfig,
        path=config_path(config),
        section="openresty",
        overrides={"user": user, "group": group, "version": release, "exec_timeout": timeout},
        console=None if quiet else console,
    )
    return declare(settings)


def _plan(config, manifest, user, group, release, timeout, quiet: bool = False) -> ConvergencePlan:
    try:
        return build_plan(_declared_resources(config, manifest, user, group, release, timeout, quiet))
    except (ValidationError, ConfigError, CycleError) as e:
        raise _fail(e)


def _engine(noop: bool, package_backend: Optional[str], timeout: Optional[int] = None) -> ConvergenceEngine:
    try:
        probe, applier = build_system_backends(
            console=console, package_backend=package_backend, exec_timeout=timeout
        )
    except ConfigError as e:
        raise _fail(e)
    return ConvergenceEngine(probe, applier, console=console, noop=noop)


@app.command()
def plan(
    config: Optional[Path] = ConfigOption,
    manifest: Optional[Path] = ManifestOption,
    user: Optional[str] = UserOption,
    group: Optional[str] = GroupOption,
    release: Optional[str] = ReleaseOption,
    timeout: Optional[int] = TimeoutOption,
    package_backend: Optional[str] = BackendOption,
):
    """
    Muestra el orden de aplicación y qué recursos cambiarían (noop, no modifica el host)

    Ejemplo: convergo plan --user openresty --group openresty
    """
    convergence_plan = _plan(config, manifest, user, group, release, timeout)
    display_plan(convergence_plan, console)
    console.print()
    report = _engine(noop=True, package_backend=package_backend, timeout=timeout).run(convergence_plan)
    console.print()
    display_report(report, console)


@app.command()
def apply(
    config: Optional[Path] = ConfigOption,
    manifest: Optional[Path] = ManifestOption,
    user: Optional[str] = UserOption,
    group: Optional[str] = GroupOption,
    release: Optional[str] = ReleaseOption,
    timeout: Optional[int] = TimeoutOption,
    package_backend: Optional[str] = BackendOption,
):
    """
    Converge el host al estado declarado

    Requiere privilegios (sudo) para paquetes, cuentas y servicios.

    Ejemplo: sudo convergo apply -c convergo.yaml
    """
    convergence_plan = _plan(config, manifest, user, group, release, timeout)
    console.print(Panel.fit(
        f"[bold cyan]Convergencia[/bold cyan]\n[dim]{len(convergence_plan)} recursos[/dim]",
        border_style="cyan",
    ))
    report = _engine(noop=False, package_backend=package_backend, timeout=timeout).run(convergence_plan)
    console.print()
    display_report(report, console)
    raise typer.Exit(code=report.exit_code())


@app.command()
def catalog(
    config: Optional[Path] = ConfigOption,
    manifest: Optional[Path] = ManifestOption,
    user: Optional[str] = UserOption,
    group: Optional[str] = GroupOption,
    release: Optional[str] = ReleaseOption,
    timeout: Optional[int] = TimeoutOption,
):
    """
    Imprime los recursos declarados (YAML) sin consultar el host

    Ejemplo: convergo catalog --user openresty
    """
    convergence_plan = _plan(config, manifest, user, group, release, timeout, quiet=True)
    doc = {"resources": [
        {"kind": r.kind.value, "name": r.name, **r.describe()}
        for r in convergence_plan.graph.resources()
    ]}
    typer.echo(yaml.dump(doc, default_flow_style=False, sort_keys=False, allow_unicode=True))


@app.command()
def graph(
    config: Optional[Path] = ConfigOption,
    manifest: Optional[Path] = ManifestOption,
    user: Optional[str] = UserOption,
    group: Optional[str] = GroupOption,
    release: Optional[str] = ReleaseOption,
):
    """Muestra el orden topológico con sus aristas require/notify"""
    display_plan(_plan(config, manifest, user, group, release, None), console)


@app.command()
def version():
    """Muestra la versión de convergo"""
    console.print(Panel.fit(
        "[bold cyan]convergo[/bold cyan]\n"
        "[dim]Provisioning declarativo e idempotente[/dim]\n\n"
        f"[bold]Versión:[/bold] {__version__}\n"
        "[bold]Recursos:[/bold] Package, Group, User, Exec, Service",
        border_style="cyan",
    ))


def main():
    app()
