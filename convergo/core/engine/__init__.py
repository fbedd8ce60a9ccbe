"""
Engine: motor de convergencia (probe → compare → apply/refresh → notify).
"""

from convergo.core.engine.convergence import ConvergenceEngine, converge

__all__ = ["ConvergenceEngine", "converge"]
