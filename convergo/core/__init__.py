"""
Core: lógica de convergencia pura.

ENFORCEMENT (arquitectura limpia):
- Este paquete NO debe importar: convergo.cli, convergo.providers (implementaciones),
  ni módulos que ejecuten comandos o modifiquen el host.
- Permitido: typing, pathlib.Path, pydantic, rich (solo Console inyectada), convergo.core.*.
- Los providers y la CLI importan desde core; nunca al revés.
"""

from convergo.core.errors import (
    ApplyError,
    ConfigError,
    ConvergoError,
    CycleError,
    DuplicateResourceError,
    ProbeError,
    UnresolvedReferenceError,
    ValidationError,
)

__all__ = [
    "ApplyError",
    "ConfigError",
    "ConvergoError",
    "CycleError",
    "DuplicateResourceError",
    "ProbeError",
    "UnresolvedReferenceError",
    "ValidationError",
]
