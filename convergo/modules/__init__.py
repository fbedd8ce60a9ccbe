"""
Módulos: declaraciones concretas de recursos a partir de configuración.
"""

from convergo.modules.openresty import OpenRestyConfig, declare

MODULES = {
    "openresty": (OpenRestyConfig, declare),
}

__all__ = ["MODULES", "OpenRestyConfig", "declare"]
