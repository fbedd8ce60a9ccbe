"""
Providers: implementaciones de StateProbe/ResourceApplier para el host.

Delegan en las herramientas del sistema (rpm/yum, dpkg/apt, getent/useradd,
systemctl/service, /bin/sh); no reimplementan ninguna de ellas.
"""

from convergo.providers.system import SystemApplier, SystemProbe, build_system_backends

__all__ = ["SystemApplier", "SystemProbe", "build_system_backends"]
