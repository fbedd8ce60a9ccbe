"""
Construcción del grafo de dependencias y del plan de convergencia.

Dos conjuntos de aristas separados:
- requires: A requires B ⇒ B se aplica antes que A (solo orden)
- notifies: A notifies C ⇒ A se aplica antes que C, y si A cambia, C se refresca

Ambos implican orden; solo notifies dispara refresh. El orden topológico es estable:
entre recursos listos a la vez gana el que se declaró primero.
"""

import heapq
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from convergo.core.errors import CycleError, DuplicateResourceError, UnresolvedReferenceError
from convergo.core.resources.models import Resource, ResourceKey

_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:
    """DAG de recursos: nodos en orden de declaración, aristas requires/notifies separadas."""

    def __init__(self, resources: Sequence[Resource]):
        self._resources: Dict[ResourceKey, Resource] = {}
        self._index: Dict[ResourceKey, int] = {}
        for i, resource in enumerate(resources):
            if resource.key in self._resources:
                raise DuplicateResourceError(f"Recurso duplicado: {resource.key}")
            self._resources[resource.key] = resource
            self._index[resource.key] = i

        # requires[A] = {B, ...}: A requiere B
        self.requires: Dict[ResourceKey, Tuple[ResourceKey, ...]] = {}
        # notifies[A] = {C, ...}: A notifica a C
        self.notifies: Dict[ResourceKey, Tuple[ResourceKey, ...]] = {}
        self._before: Dict[ResourceKey, Set[ResourceKey]] = {k: set() for k in self._resources}
        self._after: Dict[ResourceKey, Set[ResourceKey]] = {k: set() for k in self._resources}

        for key, resource in self._resources.items():
            for target in resource.requires:
                self._check_ref(key, target, "require")
                self._before[key].add(target)
                self._after[target].add(key)
            for target in resource.notifies:
                self._check_ref(key, target, "notify")
                self._before[target].add(key)
                self._after[key].add(target)
            self.requires[key] = resource.requires
            self.notifies[key] = resource.notifies

    def _check_ref(self, source: ResourceKey, target: ResourceKey, edge: str) -> None:
        if target not in self._resources:
            raise UnresolvedReferenceError(str(source), str(target), edge)
        if target == source:
            raise CycleError([str(source), str(source)])

    def __contains__(self, key: ResourceKey) -> bool:
        return key in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def resource(self, key: ResourceKey) -> Resource:
        return self._resources[key]

    def keys(self) -> List[ResourceKey]:
        """Claves en orden de declaración."""
        return sorted(self._resources, key=self._index.__getitem__)

    def resources(self) -> List[Resource]:
        """Recursos en orden de declaración."""
        return [self._resources[k] for k in self.keys()]

    def declaration_index(self, key: ResourceKey) -> int:
        return self._index[key]

    def dependencies_of(self, key: ResourceKey) -> List[ResourceKey]:
        """Recursos que deben aplicarse antes que key (requires + quienes lo notifican)."""
        return sorted(self._before[key], key=self._index.__getitem__)

    def dependents_of(self, key: ResourceKey) -> List[ResourceKey]:
        """Recursos que deben aplicarse después de key."""
        return sorted(self._after[key], key=self._index.__getitem__)

    def notified_by(self, key: ResourceKey) -> List[ResourceKey]:
        sources = [k for k, targets in self.notifies.items() if key in targets]
        return sorted(sources, key=self._index.__getitem__)

    def transitive_dependents(self, key: ResourceKey) -> Set[ResourceKey]:
        seen: Set[ResourceKey] = set()
        stack = list(self._after[key])
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            stack.extend(self._after[current])
        return seen

    def find_cycle(self) -> Optional[List[ResourceKey]]:
        """
        DFS con marcado blanco/gris/negro. Devuelve el ciclo (primer nodo repetido al
        final) o None. Iterativo para no depender del límite de recursión.
        """
        color = {k: _WHITE for k in self._resources}
        for root in self.keys():
            if color[root] != _WHITE:
                continue
            path: List[ResourceKey] = [root]
            stack: List[Iterator[ResourceKey]] = [iter(self.dependents_of(root))]
            color[root] = _GREY
            while stack:
                child = next(stack[-1], None)
                if child is None:
                    color[path.pop()] = _BLACK
                    stack.pop()
                    continue
                if color[child] == _GREY:
                    return path[path.index(child):] + [child]
                if color[child] == _WHITE:
                    color[child] = _GREY
                    path.append(child)
                    stack.append(iter(self.dependents_of(child)))
        return None

    def topological_order(self) -> List[ResourceKey]:
        """Kahn con el conjunto de listos ordenado por índice de declaración."""
        cycle = self.find_cycle()
        if cycle:
            raise CycleError([str(k) for k in cycle])

        pending = {k: len(self._before[k]) for k in self._resources}
        ready = [(self._index[k], k) for k, n in pending.items() if n == 0]
        heapq.heapify(ready)
        order: List[ResourceKey] = []
        while ready:
            _, key = heapq.heappop(ready)
            order.append(key)
            for dependent in self._after[key]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (self._index[dependent], dependent))
        return order


class ConvergencePlan:
    """Secuencia ordenada de recursos, consistente con el orden topológico del grafo."""

    def __init__(self, graph: DependencyGraph, order: List[ResourceKey]):
        self.graph = graph
        self.order = order
        self._position = {k: i for i, k in enumerate(order)}

    @property
    def resources(self) -> List[Resource]:
        return [self.graph.resource(k) for k in self.order]

    def __iter__(self) -> Iterator[Resource]:
        return iter(self.resources)

    def __len__(self) -> int:
        return len(self.order)

    def position(self, key: ResourceKey) -> int:
        return self._position[key]


def build_graph(resources: Iterable[Resource]) -> DependencyGraph:
    return DependencyGraph(list(resources))


def build_plan(resources: Iterable[Resource]) -> ConvergencePlan:
    """
    Valida y ordena los recursos.

    Raises:
        DuplicateResourceError, UnresolvedReferenceError: declaración inválida
        CycleError: requires/notifies forman un ciclo
    """
    graph = build_graph(resources)
    return ConvergencePlan(graph, graph.topological_order())
