"""
Errores del motor de convergencia.

El core solo define excepciones; las capas (CLI/providers) se encargan del formato de salida.
"""

from typing import Sequence


class ConvergoError(Exception):
    """Error base de convergo."""
    pass


class ValidationError(ConvergoError):
    """Error de validación de recursos o configuración estática (antes de aplicar nada)."""
    pass


class DuplicateResourceError(ValidationError):
    """Dos recursos declarados comparten (kind, name)."""
    pass


class UnresolvedReferenceError(ValidationError):
    """Un require/notify apunta a un recurso que no fue declarado."""

    def __init__(self, source: str, target: str, edge: str = "require"):
        self.source = source
        self.target = target
        self.edge = edge
        super().__init__(f"{source}: {edge} apunta a {target}, que no está declarado")


class ConfigError(ConvergoError):
    """Error de configuración (archivo faltante, formato inválido)."""
    pass


class CycleError(ConvergoError):
    """El grafo de dependencias tiene un ciclo; nada es seguro de aplicar."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__("Ciclo de dependencias: " + " -> ".join(self.cycle))


class ProbeError(ConvergoError):
    """No se pudo consultar el estado actual (backend no disponible, comando falló)."""
    pass


class ApplyError(ConvergoError):
    """La acción de un recurso falló (exit code != 0, backend rechazó la operación)."""
    pass


class StateTransitionError(ConvergoError):
    """Transición inválida en la máquina de estados de un recurso."""
    pass
