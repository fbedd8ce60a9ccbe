"""
Config: carga de parámetros (YAML, .env, entorno) y de manifiestos de recursos.
"""

from convergo.config.loader import env_overrides, load_settings, read_yaml
from convergo.config.manifest import load_manifest, resource_from_dict

__all__ = ["env_overrides", "load_settings", "read_yaml", "load_manifest", "resource_from_dict"]
