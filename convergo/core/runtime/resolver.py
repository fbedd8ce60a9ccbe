"""
Resolución de rutas de configuración.

- config_path(): archivo YAML de configuración a usar (o None si no hay ninguno).
- project_base(): directorio base del proyecto (donde podría existir convergo.yaml / .env).

El core NO lee ni escribe en disco; solo expone estas rutas. Quien lee (config/CLI)
decide qué hacer si el archivo no existe.
"""

import os
from pathlib import Path
from typing import Optional


CONFIG_FILENAME = "convergo.yaml"
CONFIG_ENV = "CONVERGO_CONFIG"


def project_base() -> Optional[Path]:
    """
    Directorio base del proyecto.
    Resolución: CONVERGO_PROJECT_ROOT → primer ancestro de cwd que contenga convergo.yaml; si no, None.
    """
    explicit = os.environ.get("CONVERGO_PROJECT_ROOT", "").strip()
    if explicit:
        return Path(explicit).expanduser().resolve()

    cwd = Path.cwd()
    for d in [cwd] + list(cwd.parents):
        if (d / CONFIG_FILENAME).exists():
            return d.resolve()
    return None


def config_path(explicit: Optional[Path] = None) -> Optional[Path]:
    """
    Archivo de configuración efectivo.
    Orden: argumento explícito → $CONVERGO_CONFIG → <project_base>/convergo.yaml.
    Un path explícito se devuelve aunque no exista (el loader reporta el error).
    """
    if explicit is not None:
        return Path(explicit).expanduser()
    from_env = os.environ.get(CONFIG_ENV, "").strip()
    if from_env:
        return Path(from_env).expanduser()
    base = project_base()
    if base is not None:
        return base / CONFIG_FILENAME
    return None
