"""
Graph: grafo de dependencias (requires/notifies) y plan de convergencia ordenado.
"""

from convergo.core.graph.builder import ConvergencePlan, DependencyGraph, build_graph, build_plan

__all__ = ["ConvergencePlan", "DependencyGraph", "build_graph", "build_plan"]
