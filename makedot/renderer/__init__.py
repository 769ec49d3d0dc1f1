"""Renderer entry points."""

from __future__ import annotations

from typing import TextIO

from makedot.models import Graph
from makedot.renderer.base import BaseRenderer, RenderError
from makedot.renderer.dot_renderer import RANKDIRS, DotRenderer


def render_to_string(graph: Graph, rankdir: str = "LR", graph_name: str = "makefile") -> str:
    return DotRenderer(rankdir=rankdir, graph_name=graph_name).render_to_string(graph)


def render_graph(
    graph: Graph,
    stream: TextIO,
    rankdir: str = "LR",
    graph_name: str = "makefile",
) -> None:
    """Write a graph to ``stream`` as a DOT document."""
    DotRenderer(rankdir=rankdir, graph_name=graph_name).render(graph, stream)


__all__ = [
    "BaseRenderer",
    "DotRenderer",
    "RANKDIRS",
    "RenderError",
    "render_graph",
    "render_to_string",
]
