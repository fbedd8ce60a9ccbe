"""
Contratos que deben implementar los backends de un host.

El core solo define interfaces; la implementación vive en convergo/providers/*.
- StateProbe: consulta "¿este recurso ya está en su estado deseado?"
- ResourceApplier: ejecuta la acción de un recurso (crear grupo, correr comando, levantar servicio)
"""

from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol

if TYPE_CHECKING:
    from convergo.core.resources.models import Resource


class StateProbe(Protocol):
    """
    Consulta de estado real. Cualquier método puede lanzar ProbeError
    (backend no disponible); el motor lo trata como "desconocido" → aplicar.
    """

    def package_version(self, name: str) -> Optional[str]:
        """Versión instalada del paquete, o None si no está instalado."""
        ...

    def group(self, name: str) -> Optional[Dict[str, Any]]:
        """{'name', 'gid', 'members'} si el grupo existe, o None."""
        ...

    def user(self, name: str) -> Optional[Dict[str, Any]]:
        """{'name', 'uid', 'groups', 'comment', 'shell', 'home'} si el usuario existe, o None."""
        ...

    def path_exists(self, path: str) -> bool:
        """Guard de Exec: solo existencia del path, no inspecciona efectos del comando."""
        ...

    def service_status(self, name: str) -> Dict[str, bool]:
        """{'running': bool, 'enabled': bool}"""
        ...


class ResourceApplier(Protocol):
    """
    Acciones sobre el host. apply() lleva el recurso al estado deseado;
    refresh() reacciona a una notificación (restart de servicio, exec refreshonly).
    Ambos lanzan ApplyError si la acción falla.
    """

    def apply(self, resource: "Resource", current: Optional[Dict[str, Any]]) -> None:
        ...

    def refresh(self, resource: "Resource") -> None:
        ...
