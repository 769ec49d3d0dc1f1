"""Dependency graph builder: merges rule records, prunes patterns, detects cycles."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterable

from makedot import syntax
from makedot.models import Edge, Graph, GraphWarning, Node, NodeKind, RuleRecord

logger = logging.getLogger(__name__)

# Phony and pattern status are authoritative wherever declared.
_KIND_RANK = {NodeKind.FILE: 0, NodeKind.PATTERN: 1, NodeKind.PHONY: 2}


class GraphBuilder:
    """Build a dependency graph from parsed rule records."""

    def __init__(self) -> None:
        self.warnings: list[GraphWarning] = []

    def build(self, records: Iterable[RuleRecord]) -> Graph:
        graph = Graph()

        # Step 1: Upsert nodes and edges in first-seen order
        for record in records:
            if record.is_phony:
                kind = NodeKind.PHONY
            elif record.is_pattern:
                kind = NodeKind.PATTERN
            else:
                kind = NodeKind.FILE
            self._upsert(graph, record.target, kind)

            for prereq in record.prerequisites:
                self._upsert(graph, prereq, NodeKind.PATTERN if "%" in prereq else NodeKind.FILE)
                self._add_edge(graph, prereq, record.target)

        # Step 2: Drop pattern rules that no concrete node instantiates
        concrete = [
            node_id for node_id, node in graph.nodes.items()
            if node.kind != NodeKind.PATTERN
        ]
        unresolved = {
            node_id for node_id, node in graph.nodes.items()
            if node.kind == NodeKind.PATTERN and not _instantiated(node_id, concrete)
        }
        if unresolved:
            graph = self._without(graph, unresolved)
            logger.debug("pruned %d uninstantiated pattern node(s)", len(unresolved))

        # Step 3: Cycles are reported, not fatal
        for cycle in self.detect_cycles(graph):
            warning = GraphWarning(
                message=f"dependency cycle: {' -> '.join(cycle)}",
                cycle=tuple(cycle),
            )
            self.warnings.append(warning)
            logger.warning("%s", warning)

        return graph

    def detect_cycles(self, graph: Graph) -> list[list[str]]:
        """Detect cycles in the graph using an iterative DFS."""
        cycles: list[list[str]] = []
        visited: set[str] = set()
        rec_stack: set[str] = set()
        path: list[str] = []

        for start in graph.nodes:
            if start in visited:
                continue
            visited.add(start)
            rec_stack.add(start)
            path.append(start)
            pending = [iter(graph.forward.get(start, []))]

            while pending:
                for neighbor in pending[-1]:
                    if neighbor not in visited:
                        visited.add(neighbor)
                        rec_stack.add(neighbor)
                        path.append(neighbor)
                        pending.append(iter(graph.forward.get(neighbor, [])))
                        break
                    if neighbor in rec_stack:
                        idx = path.index(neighbor)
                        cycles.append(path[idx:] + [neighbor])
                else:
                    pending.pop()
                    rec_stack.discard(path.pop())

        return cycles

    def subgraph(self, graph: Graph, goals: Iterable[str]) -> Graph:
        """Restrict a graph to the given goals and their transitive prerequisites."""
        goals = list(goals)
        missing = [g for g in goals if g not in graph.nodes]
        if missing:
            raise ValueError(f"unknown target(s): {', '.join(missing)}")

        reverse: dict[str, list[str]] = {}
        for edge in graph.edges:
            reverse.setdefault(edge.target, []).append(edge.source)

        keep: set[str] = set()
        queue = deque(goals)
        while queue:
            current = queue.popleft()
            if current in keep:
                continue
            keep.add(current)
            queue.extend(reverse.get(current, []))

        return self._without(graph, set(graph.nodes) - keep)

    @staticmethod
    def _upsert(graph: Graph, node_id: str, kind: NodeKind) -> None:
        existing = graph.nodes.get(node_id)
        if existing is None:
            graph.nodes[node_id] = Node(id=node_id, kind=kind)
            graph.forward[node_id] = []
        elif _KIND_RANK[kind] > _KIND_RANK[existing.kind]:
            # Replacing a dict value keeps its first-seen position.
            graph.nodes[node_id] = Node(id=node_id, kind=kind)

    @staticmethod
    def _add_edge(graph: Graph, source: str, target: str) -> None:
        # Avoid duplicate edges
        if target in graph.forward.get(source, []):
            return
        graph.edges.append(Edge(source=source, target=target))
        graph.forward.setdefault(source, []).append(target)

    @staticmethod
    def _without(graph: Graph, removed: set[str]) -> Graph:
        pruned = Graph()
        for node_id, node in graph.nodes.items():
            if node_id not in removed:
                pruned.nodes[node_id] = node
                pruned.forward[node_id] = []
        for edge in graph.edges:
            if edge.source in removed or edge.target in removed:
                continue
            pruned.edges.append(edge)
            pruned.forward[edge.source].append(edge.target)
        return pruned


def _instantiated(pattern: str, names: list[str]) -> bool:
    return any(syntax.match_stem(pattern, name) for name in names)
