"""4-stage pipeline orchestrator: source -> parse -> build -> render."""

from __future__ import annotations

import logging
from typing import TextIO

from makedot.graph import GraphBuilder
from makedot.models import PipelineConfig, PipelineResult
from makedot.parser import RuleParser
from makedot.renderer import DotRenderer
from makedot.source import CommandRunner, read_blocks

logger = logging.getLogger(__name__)


def extract_graph(config: PipelineConfig, runner: CommandRunner | None = None) -> PipelineResult:
    """Stages 1-3: read, parse and build the graph entirely in memory."""
    # Stage 1: Rule source
    source_name, blocks = read_blocks(config, runner)
    logger.info("read %d rule block(s) via %s", len(blocks), source_name)

    # Stage 2: Parse
    parser = RuleParser()
    records = list(parser.parse(blocks))

    # Stage 3: Build
    builder = GraphBuilder()
    graph = builder.build(records)
    if config.goals:
        graph = builder.subgraph(graph, config.goals)

    logger.info("graph: %d node(s), %d edge(s)", len(graph.nodes), len(graph.edges))
    return PipelineResult(
        graph=graph,
        source_name=source_name,
        parse_warnings=parser.warnings,
        graph_warnings=builder.warnings,
    )


def run_pipeline(
    config: PipelineConfig,
    stream: TextIO,
    runner: CommandRunner | None = None,
) -> PipelineResult:
    """Run the full pipeline, writing the DOT document to ``stream``.

    Nothing is written unless extraction succeeds.
    """
    result = extract_graph(config, runner)

    # Stage 4: Render
    renderer = DotRenderer(rankdir=config.rankdir, graph_name=config.graph_name)
    renderer.render(result.graph, stream)
    return result
