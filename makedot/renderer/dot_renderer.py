"""Graphviz DOT renderer."""

from __future__ import annotations

from makedot.models import Graph, NodeKind
from makedot.renderer.base import BaseRenderer

_INDENT = "    "

# Display attributes per node kind
_NODE_STYLES: dict[NodeKind, dict[str, str]] = {
    NodeKind.FILE: {"shape": "box"},
    NodeKind.PHONY: {"shape": "ellipse", "style": "filled", "fillcolor": "lightgrey"},
    NodeKind.PATTERN: {"shape": "box", "style": "dashed"},
}

RANKDIRS = ("LR", "RL", "TB", "BT")


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _attributes(attrs: dict[str, str]) -> str:
    return ", ".join(f"{key}={quote(value)}" for key, value in attrs.items())


class DotRenderer(BaseRenderer):
    """Render a graph as a ``digraph`` with nodes and edges in first-seen order."""

    def __init__(self, rankdir: str = "LR", graph_name: str = "makefile"):
        if rankdir not in RANKDIRS:
            raise ValueError(f"invalid rankdir: {rankdir!r}")
        self.rankdir = rankdir
        self.graph_name = graph_name

    def render_to_string(self, graph: Graph) -> str:
        lines = [
            f"digraph {quote(self.graph_name)} {{",
            f"{_INDENT}rankdir={quote(self.rankdir)};",
        ]

        for node in graph.nodes.values():
            lines.append(f"{_INDENT}{quote(node.id)} [{_attributes(_NODE_STYLES[node.kind])}];")

        for edge in graph.edges:
            lines.append(f"{_INDENT}{quote(edge.source)} -> {quote(edge.target)};")

        lines.append("}")
        return "\n".join(lines) + "\n"
