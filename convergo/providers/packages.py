"""
Backends de paquetes: consulta con rpm/dpkg, instalación con yum/dnf/apt-get.

No reimplementan un gestor de paquetes; solo traducen Package a comandos del host.
"""

import shutil
from abc import ABC, abstractmethod
from typing import List, Optional

from convergo.core.errors import ConfigError, ProbeError
from convergo.providers.process import ProcessExecutor, run_command


RPM_QUERY_FORMAT = "%{VERSION}-%{RELEASE}\n"


class PackageBackend(ABC):
    """Clase base abstracta: installed_version / install / remove."""

    name = "base"

    def __init__(self, executor: ProcessExecutor):
        self.executor = executor

    @abstractmethod
    def installed_version(self, package: str) -> Optional[str]:
        """Versión instalada (versión-release en rpm), o None si no está instalado."""
        pass

    @abstractmethod
    def install(self, package: str, version: Optional[str] = None) -> None:
        pass

    @abstractmethod
    def remove(self, package: str) -> None:
        pass


class YumBackend(PackageBackend):
    """RHEL/CentOS (paquetes *-devel)."""

    name = "yum"
    binary = "yum"

    def installed_version(self, package: str) -> Optional[str]:
        ok, out, err = run_command(["rpm", "-q", "--qf", RPM_QUERY_FORMAT, package])
        if ok:
            # multilib: una línea por arquitectura instalada
            lines = out.strip().splitlines()
            return lines[0].strip() if lines else None
        if "not installed" in (out + err):
            return None
        raise ProbeError(f"rpm -q {package}: {err.strip() or out.strip()}")

    def install(self, package: str, version: Optional[str] = None) -> None:
        target = f"{package}-{version}" if version else package
        self.executor.execute([self.binary, "install", "-y", target])

    def remove(self, package: str) -> None:
        self.executor.execute([self.binary, "remove", "-y", package])


class DnfBackend(YumBackend):
    name = "dnf"
    binary = "dnf"


class AptBackend(PackageBackend):
    """Debian/Ubuntu."""

    name = "apt"

    def installed_version(self, package: str) -> Optional[str]:
        ok, out, err = run_command(["dpkg-query", "-W", "-f=${Status}|${Version}", package])
        if not ok:
            if "no packages found" in err.lower() or "not installed" in err.lower():
                return None
            raise ProbeError(f"dpkg-query {package}: {err.strip()}")
        status, _, version = out.partition("|")
        if "install ok installed" not in status:
            return None
        return version.strip() or None

    def install(self, package: str, version: Optional[str] = None) -> None:
        target = f"{package}={version}" if version else package
        self.executor.execute(["apt-get", "install", "-y", "-q", target])

    def remove(self, package: str) -> None:
        self.executor.execute(["apt-get", "remove", "-y", "-q", package])


BACKENDS = {
    "dnf": DnfBackend,
    "yum": YumBackend,
    "apt": AptBackend,
}


def detect_package_backend(executor: ProcessExecutor, preferred: Optional[str] = None) -> PackageBackend:
    """
    Selecciona backend: el preferido si se indica; si no, el primero disponible (dnf, yum, apt-get).
    """
    if preferred:
        if preferred not in BACKENDS:
            raise ConfigError(f"Backend de paquetes desconocido: {preferred} (opciones: {', '.join(BACKENDS)})")
        return BACKENDS[preferred](executor)
    candidates: List[tuple] = [("dnf", "dnf"), ("yum", "yum"), ("apt", "apt-get")]
    for name, binary in candidates:
        if shutil.which(binary):
            return BACKENDS[name](executor)
    raise ConfigError("No se encontró gestor de paquetes (dnf, yum, apt-get)")
