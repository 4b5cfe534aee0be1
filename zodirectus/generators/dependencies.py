"""Dependency graph between generated collections.

Generated files import each other's schemas. When those imports form a
cycle, an ES module evaluates one side before the other has defined its
``const`` and the schema reference fails at load time. Every reference
inside a cycle is therefore emitted through ``z.lazy``.

Cycles are found with a depth-first search (Tarjan's strongly connected
components). A circular group is a component with more than one member, or
a single collection that references itself.
"""

from __future__ import annotations

from typing import Iterable

from zodirectus.models import GeneratedSchema


class DependencyGraph:
    """Directed graph ``collection -> referenced collections``."""

    def __init__(self, edges: dict[str, set[str]] | None = None) -> None:
        self.edges: dict[str, set[str]] = {}
        for node, targets in (edges or {}).items():
            self.add_node(node)
            for target in targets:
                self.add_edge(node, target)
        self._groups: list[list[str]] | None = None

    @classmethod
    def from_results(cls, results: Iterable[GeneratedSchema]) -> "DependencyGraph":
        """Build the graph from generation results.

        Only references to collections that are themselves part of
        *results* become edges.
        """
        results = list(results)
        names = {r.collection_name for r in results}
        graph = cls()
        for result in results:
            graph.add_node(result.collection_name)
            for target in sorted(result.references):
                if target in names:
                    graph.add_edge(result.collection_name, target)
        return graph

    def add_node(self, node: str) -> None:
        self.edges.setdefault(node, set())
        self._groups = None

    def add_edge(self, source: str, target: str) -> None:
        self.add_node(source)
        self.add_node(target)
        self.edges[source].add(target)

    # ------------------------------------------------------------------
    # Cycle detection
    # ------------------------------------------------------------------

    def strongly_connected_components(self) -> list[list[str]]:
        """Tarjan's algorithm, iterative so deep graphs do not hit the recursion limit."""
        index_of: dict[str, int] = {}
        lowlink: dict[str, int] = {}
        on_stack: set[str] = set()
        stack: list[str] = []
        components: list[list[str]] = []
        counter = 0

        for root in sorted(self.edges):
            if root in index_of:
                continue
            work: list[tuple[str, Iterable[str]]] = []
            index_of[root] = lowlink[root] = counter
            counter += 1
            stack.append(root)
            on_stack.add(root)
            work.append((root, iter(sorted(self.edges[root]))))

            while work:
                node, successors = work[-1]
                advanced = False
                for succ in successors:
                    if succ not in index_of:
                        index_of[succ] = lowlink[succ] = counter
                        counter += 1
                        stack.append(succ)
                        on_stack.add(succ)
                        work.append((succ, iter(sorted(self.edges[succ]))))
                        advanced = True
                        break
                    if succ in on_stack:
                        lowlink[node] = min(lowlink[node], index_of[succ])
                if advanced:
                    continue

                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index_of[node]:
                    component: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == node:
                            break
                    components.append(sorted(component))

        return components

    def circular_groups(self) -> list[list[str]]:
        """Groups of collections that depend on each other, sorted."""
        if self._groups is None:
            groups = [
                component
                for component in self.strongly_connected_components()
                if len(component) > 1 or component[0] in self.edges[component[0]]
            ]
            self._groups = sorted(groups)
        return self._groups

    def group_of(self, node: str) -> list[str] | None:
        for group in self.circular_groups():
            if node in group:
                return group
        return None

    def is_circular(self, source: str, target: str) -> bool:
        """``True`` if a reference from *source* to *target* closes a cycle."""
        group = self.group_of(source)
        return group is not None and target in group

    def lazy_targets(self, node: str) -> set[str]:
        """Targets of *node* that must be referenced lazily."""
        return {t for t in self.edges.get(node, set()) if self.is_circular(node, t)}

    def affected_collections(self) -> list[str]:
        """Every collection that belongs to some circular group."""
        return sorted({member for group in self.circular_groups() for member in group})
