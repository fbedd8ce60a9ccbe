"""
Gestores de servicios: systemd (systemctl) y SysV (service/chkconfig).

El restart explícito de un Service (p. ej. '/etc/init.d/nginx reload') no pasa por
aquí: lo ejecuta el applier con el ProcessExecutor.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict

from convergo.core.errors import ProbeError
from convergo.providers.process import ProcessExecutor, command_missing, run_command


class ServiceManager(ABC):
    """Clase base abstracta para gestores de servicios."""

    name = "base"

    def __init__(self, executor: ProcessExecutor):
        self.executor = executor

    @abstractmethod
    def status(self, service: str) -> Dict[str, bool]:
        pass

    @abstractmethod
    def start(self, service: str) -> None:
        pass

    @abstractmethod
    def stop(self, service: str) -> None:
        pass

    @abstractmethod
    def restart(self, service: str) -> None:
        pass

    @abstractmethod
    def set_enabled(self, service: str, enabled: bool) -> None:
        pass


class SystemdServiceManager(ServiceManager):
    name = "systemd"

    def status(self, service: str) -> Dict[str, bool]:
        ok_active, out_active, err_active = run_command(["systemctl", "is-active", service])
        if not ok_active and command_missing(err_active):
            raise ProbeError(err_active)
        ok_enabled, _, _ = run_command(["systemctl", "is-enabled", service])
        return {"running": ok_active and out_active.strip() == "active", "enabled": ok_enabled}

    def start(self, service: str) -> None:
        self.executor.execute(["systemctl", "start", service])

    def stop(self, service: str) -> None:
        self.executor.execute(["systemctl", "stop", service])

    def restart(self, service: str) -> None:
        self.executor.execute(["systemctl", "restart", service])

    def set_enabled(self, service: str, enabled: bool) -> None:
        self.executor.execute(["systemctl", "enable" if enabled else "disable", service])


class SysVServiceManager(ServiceManager):
    """init.d + chkconfig (RHEL 6 y similares)."""

    name = "sysv"

    def status(self, service: str) -> Dict[str, bool]:
        ok_status, _, err_status = run_command(["service", service, "status"])
        if not ok_status and command_missing(err_status):
            raise ProbeError(err_status)
        ok_enabled, _, _ = run_command(["chkconfig", service])
        return {"running": ok_status, "enabled": ok_enabled}

    def start(self, service: str) -> None:
        self.executor.execute(["service", service, "start"])

    def stop(self, service: str) -> None:
        self.executor.execute(["service", service, "stop"])

    def restart(self, service: str) -> None:
        self.executor.execute(["service", service, "restart"])

    def set_enabled(self, service: str, enabled: bool) -> None:
        self.executor.execute(["chkconfig", service, "on" if enabled else "off"])


def detect_service_manager(executor: ProcessExecutor) -> ServiceManager:
    """systemd si el host arrancó con systemd; si no, SysV."""
    if Path("/run/systemd/system").is_dir():
        return SystemdServiceManager(executor)
    return SysVServiceManager(executor)
