"""
Resources: modelos tipados de recursos declarativos.
"""

from convergo.core.resources.models import (
    RESOURCE_TYPES,
    Exec,
    Group,
    Package,
    Resource,
    ResourceKey,
    ResourceKind,
    Service,
    User,
)

__all__ = [
    "RESOURCE_TYPES",
    "Exec",
    "Group",
    "Package",
    "Resource",
    "ResourceKey",
    "ResourceKind",
    "Service",
    "User",
]
