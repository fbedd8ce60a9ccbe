"""
Usuarios y grupos del sistema: consulta vía getent/id, cambios vía groupadd/useradd/usermod.

Las operaciones que crean grupos o usuarios requieren ejecución con privilegios (sudo).
"""

from typing import Any, Dict, List, Optional

from rich.console import Console

from convergo.core.errors import ApplyError, ProbeError
from convergo.core.resources.models import Group, User
from convergo.providers.process import ProcessExecutor, run_command


def _getent(database: str, name: str) -> Optional[List[str]]:
    """Campos de la entrada getent, o None si no existe (exit code 2)."""
    ok, out, err = run_command(["getent", database, name])
    if ok:
        line = out.strip().splitlines()[0] if out.strip() else ""
        return line.split(":") if line else None
    # getent devuelve 2 sin salida cuando la clave no existe
    if not err.strip():
        return None
    raise ProbeError(f"getent {database} {name}: {err.strip()}")


def group_info(name: str) -> Optional[Dict[str, Any]]:
    """Comprueba si el grupo existe en el sistema."""
    fields = _getent("group", name)
    if not fields or len(fields) < 3:
        return None
    members = [m for m in (fields[3].split(",") if len(fields) > 3 else []) if m]
    return {"name": fields[0], "gid": int(fields[2]) if fields[2].isdigit() else None, "members": members}


def user_info(name: str) -> Optional[Dict[str, Any]]:
    """Comprueba si el usuario existe; incluye sus grupos (id -nG)."""
    fields = _getent("passwd", name)
    if not fields or len(fields) < 7:
        return None
    ok, out, err = run_command(["id", "-nG", name])
    if not ok:
        raise ProbeError(f"id -nG {name}: {err.strip()}")
    return {
        "name": fields[0],
        "uid": int(fields[2]) if fields[2].isdigit() else None,
        "comment": fields[4],
        "home": fields[5],
        "shell": fields[6],
        "groups": out.split(),
    }


def _lookup(info, name: str) -> Optional[Dict[str, Any]]:
    """Consulta previa a un cambio; si getent falla, la acción falla (ApplyError)."""
    try:
        return info(name)
    except ProbeError as e:
        raise ApplyError(f"No se pudo consultar {name} antes de aplicar: {e}") from e


class AccountManager:
    """Aplica Group y User. Cada método decide crear/modificar/eliminar según el estado real."""

    def __init__(self, executor: ProcessExecutor, console: Optional[Console] = None):
        self.executor = executor
        self.console = console

    def ensure_group(self, group: Group) -> None:
        """
        Crea el grupo si no existe (groupadd [-r] [-g gid]), ajusta gid si difiere,
        o lo elimina si ensure=absent.
        """
        info = _lookup(group_info, group.name)
        if group.ensure == "absent":
            if info is not None:
                self.executor.execute(["groupdel", group.name])
            return
        if info is None:
            cmd = ["groupadd"]
            if group.system:
                cmd.append("-r")
            if group.gid is not None:
                cmd += ["-g", str(group.gid)]
            self.executor.execute(cmd + [group.name])
            return
        if group.gid is not None and info.get("gid") != group.gid:
            self.executor.execute(["groupmod", "-g", str(group.gid), group.name])

    def ensure_user(self, user: User) -> None:
        """
        Crea el usuario (useradd) o ajusta comment/shell/home/grupos (usermod -a -G).
        system=True solo tiene efecto al crear (-r).
        """
        info = _lookup(user_info, user.name)
        if user.ensure == "absent":
            if info is not None:
                self.executor.execute(["userdel", user.name])
            return

        if info is None:
            cmd = ["useradd"]
            if user.system:
                cmd.append("-r")
            if user.comment is not None:
                cmd += ["-c", user.comment]
            if user.shell is not None:
                cmd += ["-s", user.shell]
            if user.home is not None:
                cmd += ["-d", user.home]
            if user.groups:
                cmd += ["-G", ",".join(user.groups)]
            self.executor.execute(cmd + [user.name])
            return

        cmd = ["usermod"]
        missing = [g for g in user.groups if g not in (info.get("groups") or [])]
        if missing:
            cmd += ["-a", "-G", ",".join(missing)]
        if user.comment is not None and info.get("comment") != user.comment:
            cmd += ["-c", user.comment]
        if user.shell is not None and info.get("shell") != user.shell:
            cmd += ["-s", user.shell]
        if user.home is not None and info.get("home") != user.home:
            cmd += ["-d", user.home]
        if len(cmd) > 1:
            self.executor.execute(cmd + [user.name])
