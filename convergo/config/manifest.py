"""
Manifiestos genéricos: lista de recursos declarada en YAML.

    resources:
      - kind: Package
        name: wget
      - kind: Exec
        name: download
        command: wget http://example.org/app.tar.gz
        cwd: /tmp
        creates: /tmp/app.tar.gz
        require: ["Package[wget]"]
        notify: ["Exec[untar]"]

require/notify (o requires/notifies) usan la forma Kind[name]; que cada referencia
exista se valida al construir el grafo, no aquí.
"""

from pathlib import Path
from typing import Any, Dict, List

from convergo.config.loader import read_yaml
from convergo.core.errors import ConfigError, ValidationError
from convergo.core.resources.models import RESOURCE_TYPES, Resource, ResourceKind

_ALIASES = {"require": "requires", "notify": "notifies", "title": "name"}


def _kind(value: Any, index: int) -> ResourceKind:
    text = str(value or "").strip().lower()
    for kind in ResourceKind:
        if kind.value.lower() == text:
            return kind
    raise ValidationError(f"resources[{index}]: kind desconocido {value!r}")


def resource_from_dict(entry: Dict[str, Any], index: int = 0) -> Resource:
    """Un recurso a partir de su entrada YAML."""
    if not isinstance(entry, dict):
        raise ValidationError(f"resources[{index}]: se esperaba un mapping")
    data = {_ALIASES.get(k, k): v for k, v in entry.items()}
    kind = _kind(data.pop("kind", None), index)
    return RESOURCE_TYPES[kind](**data)


def resources_from_data(data: Dict[str, Any]) -> List[Resource]:
    entries = data.get("resources")
    if entries is None:
        raise ConfigError("El manifiesto no tiene la clave 'resources'")
    if not isinstance(entries, list):
        raise ConfigError("'resources' debe ser una lista")
    return [resource_from_dict(entry, i) for i, entry in enumerate(entries)]


def load_manifest(path: Path) -> List[Resource]:
    """Carga y valida los recursos de un manifiesto YAML (en orden de declaración)."""
    return resources_from_data(read_yaml(path))
