"""
Loader de configuración: YAML + variables de entorno + overrides de CLI → modelo Pydantic.

Precedencia (de menor a mayor):
  defaults del modelo → archivo YAML → CONVERGO_<CAMPO> → overrides (opciones de CLI)

El archivo puede tener los parámetros a nivel raíz o bajo una sección con el
nombre del módulo (p. ej. 'openresty:').
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from convergo.core.errors import ConfigError, ValidationError

ENV_PREFIX = "CONVERGO_"

M = TypeVar("M", bound=BaseModel)


def read_yaml(path: Path) -> Dict[str, Any]:
    """Lee un YAML (mapping en la raíz). Archivo vacío → {}."""
    if not path.exists():
        raise ConfigError(f"Archivo de configuración no encontrado: {path}")
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML inválido en {path.name}: {e}") from e
    except OSError as e:
        raise ConfigError(f"No se pudo leer {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name}: se esperaba un mapping en la raíz")
    return data


def env_overrides(model: Type[BaseModel], environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """CONVERGO_<CAMPO> para cada campo del modelo (p. ej. CONVERGO_USER, CONVERGO_EXEC_TIMEOUT)."""
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for field in model.model_fields:
        raw = environ.get(f"{ENV_PREFIX}{field.upper()}")
        if raw is not None and raw.strip():
            values[field] = raw.strip()
    return values


def load_settings(
    model: Type[M],
    path: Optional[Path] = None,
    section: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    console: Optional[Console] = None,
) -> M:
    """
    Construye la configuración efectiva.

    Args:
        model: Modelo Pydantic de configuración del módulo
        path: YAML opcional; si se indica debe existir
        section: Sección del YAML con los parámetros (si existe)
        overrides: Valores de CLI; los None se ignoran
        environ: Entorno a usar (por defecto os.environ)
        console: Console de Rich para salida

    Raises:
        ConfigError: archivo faltante o YAML inválido
        ValidationError: valores inválidos
    """
    data: Dict[str, Any] = {}
    if path is not None:
        raw = read_yaml(path)
        if section and isinstance(raw.get(section), dict):
            raw = raw[section]
        data.update(raw)
        if console:
            console.print(f"[dim]Configuración: {path}[/dim]")

    data.update(env_overrides(model, environ))
    data.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        return model(**data)
    except PydanticValidationError as e:
        err = e.errors()[0]
        loc = ".".join(str(p) for p in err.get("loc", ()))
        raise ValidationError(f"Configuración inválida ({loc}): {err.get('msg')}") from e
