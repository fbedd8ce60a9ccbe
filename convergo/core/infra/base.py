"""
Base opcional para appliers: despacha por tipo de recurso.

apply(Package) → apply_package(), refresh(Service) → refresh_service(), etc.
Los appliers pueden heredar de aquí o implementar solo el contrato (Protocol).
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

from convergo.core.errors import ApplyError

if TYPE_CHECKING:
    from convergo.core.resources.models import Resource


class BaseApplier:
    """Base opcional; un tipo sin método apply_<kind> falla con ApplyError."""

    name: str = "base"

    def apply(self, resource: "Resource", current: Optional[Dict[str, Any]]) -> None:
        handler = getattr(self, f"apply_{resource.kind.value.lower()}", None)
        if handler is None:
            raise ApplyError(f"{self.name}: {resource.kind.value} no soportado")
        handler(resource, current)

    def refresh(self, resource: "Resource") -> None:
        handler = getattr(self, f"refresh_{resource.kind.value.lower()}", None)
        if handler is None:
            raise ApplyError(f"{self.name}: refresh de {resource.kind.value} no soportado")
        handler(resource)
