"""
Provider del host local: implementa StateProbe y ResourceApplier sobre los
backends de paquetes, cuentas, servicios y procesos.
"""

import os
from typing import Any, Dict, Optional

from rich.console import Console

from convergo.core.infra.base import BaseApplier
from convergo.core.resources.models import Exec, Group, Package, Service, User
from convergo.providers import accounts
from convergo.providers.accounts import AccountManager
from convergo.providers.packages import PackageBackend, detect_package_backend
from convergo.providers.process import ProcessExecutor
from convergo.providers.services import ServiceManager, detect_service_manager


class SystemProbe:
    """Consulta el estado real del host."""

    def __init__(self, packages: PackageBackend, services: ServiceManager):
        self.packages = packages
        self.services = services

    def package_version(self, name: str) -> Optional[str]:
        return self.packages.installed_version(name)

    def group(self, name: str) -> Optional[Dict[str, Any]]:
        return accounts.group_info(name)

    def user(self, name: str) -> Optional[Dict[str, Any]]:
        return accounts.user_info(name)

    def path_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def service_status(self, name: str) -> Dict[str, bool]:
        return self.services.status(name)


class SystemApplier(BaseApplier):
    """Aplica recursos sobre el host local."""

    name = "system"

    def __init__(
        self,
        executor: ProcessExecutor,
        packages: PackageBackend,
        services: ServiceManager,
        console: Optional[Console] = None,
        exec_timeout: Optional[int] = None,
    ):
        self.executor = executor
        self.packages = packages
        self.services = services
        self.accounts = AccountManager(executor, console)
        self.console = console
        self.exec_timeout = exec_timeout

    def apply_package(self, resource: Package, current: Optional[Dict[str, Any]]) -> None:
        if resource.ensure == "absent":
            self.packages.remove(resource.name)
            return
        version = resource.desired_state().get("version")
        self.packages.install(resource.name, version)

    def apply_group(self, resource: Group, current: Optional[Dict[str, Any]]) -> None:
        self.accounts.ensure_group(resource)

    def apply_user(self, resource: User, current: Optional[Dict[str, Any]]) -> None:
        self.accounts.ensure_user(resource)

    def apply_exec(self, resource: Exec, current: Optional[Dict[str, Any]]) -> None:
        self._run_exec(resource)

    def refresh_exec(self, resource: Exec) -> None:
        self._run_exec(resource)

    def _run_exec(self, resource: Exec) -> None:
        # el timeout global (config/CLI) tiene prioridad sobre el del recurso
        timeout = self.exec_timeout or resource.timeout
        self.executor.execute(
            resource.command,
            cwd=resource.cwd,
            path=resource.path,
            timeout=timeout,
            shell=True,
        )

    def apply_service(self, resource: Service, current: Optional[Dict[str, Any]]) -> None:
        current = current or {}
        if resource.ensure == "running" and current.get("ensure") != "running":
            self.services.start(resource.name)
        elif resource.ensure == "stopped" and current.get("ensure") != "stopped":
            self.services.stop(resource.name)
        if resource.enable is not None and current.get("enable") != resource.enable:
            self.services.set_enabled(resource.name, resource.enable)

    def refresh_service(self, resource: Service) -> None:
        """
        restart explícito (hasrestart=false + restart → p. ej. reload), restart nativo
        si hasrestart, o stop + start.
        """
        if resource.restart:
            self.executor.execute(resource.restart, shell=True)
        elif resource.hasrestart:
            self.services.restart(resource.name)
        else:
            self.services.stop(resource.name)
            self.services.start(resource.name)


def build_system_backends(
    console: Optional[Console] = None,
    package_backend: Optional[str] = None,
    exec_timeout: Optional[int] = None,
):
    """Detecta backends del host y devuelve (probe, applier)."""
    executor = ProcessExecutor(console=console)
    packages = detect_package_backend(executor, package_backend)
    services = detect_service_manager(executor)
    probe = SystemProbe(packages, services)
    applier = SystemApplier(executor, packages, services, console=console, exec_timeout=exec_timeout)
    return probe, applier
