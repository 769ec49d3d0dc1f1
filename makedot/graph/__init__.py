"""Graph builder entry point."""

from __future__ import annotations

from typing import Iterable

from makedot.graph.builder import GraphBuilder
from makedot.models import Graph, GraphWarning, RuleRecord


def build_graph(records: Iterable[RuleRecord]) -> tuple[Graph, list[GraphWarning]]:
    """Build a graph from rule records, returning it with any cycle warnings."""
    builder = GraphBuilder()
    graph = builder.build(records)
    return graph, builder.warnings


__all__ = ["GraphBuilder", "build_graph"]
