"""Fixtures compartidas: host simulado que implementa StateProbe y ResourceApplier."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import pytest

from convergo.core.errors import ApplyError, ProbeError
from convergo.core.infra.base import BaseApplier
from convergo.core.resources.models import Exec, Group, Package, Resource, Service, User
from convergo.modules.openresty import OpenRestyConfig, declare


class FakeHost(BaseApplier):
    """Host en memoria: el probe lee estos dicts y el applier los modifica."""

    name = "fake"

    def __init__(self) -> None:
        self.packages: Dict[str, str] = {}
        self.groups: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.paths: Set[str] = set()
        self.services: Dict[str, Dict[str, bool]] = {}
        self.calls: List[Tuple[str, str]] = []
        self.commands: List[str] = []
        self.fail_on: Set[str] = set()
        self.probe_fail_on: Set[str] = set()

    # --- StateProbe ---

    def _check_probe(self, key: str) -> None:
        if key in self.probe_fail_on:
            raise ProbeError(f"backend no disponible para {key}")

    def package_version(self, name: str) -> Optional[str]:
        self._check_probe(f"Package[{name}]")
        return self.packages.get(name)

    def group(self, name: str) -> Optional[Dict[str, Any]]:
        self._check_probe(f"Group[{name}]")
        return self.groups.get(name)

    def user(self, name: str) -> Optional[Dict[str, Any]]:
        self._check_probe(f"User[{name}]")
        return self.users.get(name)

    def path_exists(self, path: str) -> bool:
        return path in self.paths

    def service_status(self, name: str) -> Dict[str, bool]:
        self._check_probe(f"Service[{name}]")
        return dict(self.services.get(name, {"running": False, "enabled": False}))

    # --- ResourceApplier ---

    def apply(self, resource: Resource, current: Optional[Dict[str, Any]]) -> None:
        self.calls.append(("apply", str(resource.key)))
        if str(resource.key) in self.fail_on:
            raise ApplyError(f"{resource.key} falló con exit code 2\ndetalle en segunda línea")
        super().apply(resource, current)

    def refresh(self, resource: Resource) -> None:
        self.calls.append(("refresh", str(resource.key)))
        if str(resource.key) in self.fail_on:
            raise ApplyError(f"{resource.key}: refresh falló")
        super().refresh(resource)

    def apply_package(self, resource: Package, current) -> None:
        if resource.ensure == "absent":
            self.packages.pop(resource.name, None)
        else:
            self.packages[resource.name] = resource.desired_state().get("version", "1.0")

    def apply_group(self, resource: Group, current) -> None:
        self.groups[resource.name] = {"name": resource.name, "gid": resource.gid or 990}

    def apply_user(self, resource: User, current) -> None:
        self.users[resource.name] = {
            "name": resource.name,
            "groups": list(resource.groups),
            "comment": resource.comment,
            "shell": resource.shell,
            "home": resource.home,
        }

    def apply_exec(self, resource: Exec, current) -> None:
        self.refresh_exec(resource)

    def refresh_exec(self, resource: Exec) -> None:
        self.commands.append(resource.command)
        if resource.creates:
            self.paths.add(resource.creates)

    def apply_service(self, resource: Service, current) -> None:
        self.services[resource.name] = {
            "running": resource.ensure == "running",
            "enabled": bool(resource.enable),
        }

    def refresh_service(self, resource: Service) -> None:
        self.commands.append(resource.restart or f"restart {resource.name}")

    # --- helpers ---

    @property
    def applied(self) -> List[str]:
        return [key for op, key in self.calls if op == "apply"]

    @property
    def refreshed(self) -> List[str]:
        return [key for op, key in self.calls if op == "refresh"]

    def satisfy(self, resources: Iterable[Resource]) -> "FakeHost":
        """Deja el host en el estado deseado de todos los recursos, sin registrar llamadas."""
        for resource in resources:
            if isinstance(resource, Exec):
                if resource.creates:
                    self.paths.add(resource.creates)
            else:
                BaseApplier.apply(self, resource, None)
        return self


@pytest.fixture
def host() -> FakeHost:
    """Sistema recién instalado: nada existe."""
    return FakeHost()


@pytest.fixture
def default_resources() -> List[Resource]:
    return declare(OpenRestyConfig())


@pytest.fixture
def installed_host(default_resources) -> FakeHost:
    """Sistema con OpenResty ya instalado y nginx corriendo."""
    return FakeHost().satisfy(default_resources)
