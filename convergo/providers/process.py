"""
Ejecución de comandos del host.

run_command() devuelve (éxito, stdout, stderr) y nunca lanza; los backends de
paquetes/cuentas/servicios lo usan para consultas. ProcessExecutor.execute() es
la variante para acciones: lanza ApplyError si el comando falla o excede el timeout.
"""

import os
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple, Union

from rich.console import Console
from rich.markup import escape

from convergo.core.errors import ApplyError

Command = Union[str, List[str]]

NOT_FOUND = "Comando o directorio no encontrado"


def command_missing(stderr: str) -> bool:
    """True si run_command falló porque el binario (o el cwd) no existe."""
    return stderr.startswith(NOT_FOUND)


def _display(command: Command) -> str:
    return command if isinstance(command, str) else " ".join(command)


def run_command(
    command: Command,
    cwd: Optional[Union[str, Path]] = None,
    path: Optional[str] = None,
    timeout: Optional[int] = 30,
    shell: bool = False,
) -> Tuple[bool, str, str]:
    """
    Ejecuta un comando del sistema de forma segura

    Args:
        command: Lista con comando y argumentos, o string si shell=True
        cwd: Directorio de trabajo
        path: PATH restringido para el comando (p. ej. '/sbin:/bin:/usr/bin')
        timeout: Timeout en segundos (None = sin límite)
        shell: Ejecutar vía /bin/sh (necesario para 'make && make install')

    Returns:
        Tuple (success, stdout, stderr)
    """
    env = None
    if path:
        env = dict(os.environ)
        env["PATH"] = path
    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            env=env,
            shell=shell,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
        return result.returncode == 0, result.stdout or "", result.stderr or ""
    except subprocess.TimeoutExpired:
        return False, "", f"Timeout ({timeout}s) ejecutando: {_display(command)}"
    except FileNotFoundError as e:
        missing = e.filename or (command[0] if isinstance(command, list) else command)
        return False, "", f"{NOT_FOUND}: {missing}"
    except OSError as e:
        return False, "", f"Error ejecutando {_display(command)}: {e}"


class ProcessExecutor:
    """Ejecuta comandos de recursos (Exec, restart de servicios, instalación de paquetes)."""

    def __init__(self, console: Optional[Console] = None, default_timeout: Optional[int] = 300):
        self.console = console
        self.default_timeout = default_timeout

    def execute(
        self,
        command: Command,
        cwd: Optional[str] = None,
        path: Optional[str] = None,
        timeout: Optional[int] = None,
        shell: bool = False,
    ) -> str:
        """
        Ejecuta y devuelve stdout.

        Raises:
            ApplyError: exit code != 0, timeout, o comando/cwd inexistente
        """
        if self.console:
            self.console.print(f"    [dim]$ {escape(_display(command))}[/dim]")
        ok, stdout, stderr = run_command(
            command,
            cwd=cwd,
            path=path,
            timeout=timeout if timeout is not None else self.default_timeout,
            shell=shell,
        )
        if not ok:
            detail = stderr.strip() or stdout.strip() or "exit code != 0"
            raise ApplyError(f"'{_display(command)}' falló: {detail}")
        return stdout
