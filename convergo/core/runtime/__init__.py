"""
Runtime: estado de ejecución por recurso y resolución de rutas de configuración.

El reporte (runtime.report) se importa explícitamente; depende de los modelos de recursos.
"""

from convergo.core.runtime.resolver import config_path, project_base
from convergo.core.runtime.state import Outcome, ResourceState, StateDiff

__all__ = ["config_path", "project_base", "Outcome", "ResourceState", "StateDiff"]
