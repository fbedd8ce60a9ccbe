"""
Contratos y base para backends del host.

Los providers (sistema real, simulaciones) implementan estos contratos;
el core no depende de ningún provider concreto.
"""

from convergo.core.infra.base import BaseApplier
from convergo.core.infra.contracts import ResourceApplier, StateProbe

__all__ = ["BaseApplier", "ResourceApplier", "StateProbe"]
