"""Click CLI: render a Makefile's dependency graph as Graphviz DOT."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from makedot.models import PipelineConfig, SourceMode
from makedot.pipeline import extract_graph
from makedot.renderer import RANKDIRS, DotRenderer, RenderError
from makedot.source import SourceError, resolve_makefile

_MODE_CHOICES = [mode.value for mode in SourceMode]


@click.command()
@click.version_option(version="0.1.0")
@click.argument("makefile", type=click.Path(path_type=Path), default=".")
@click.option("--mode", "-m", type=click.Choice(_MODE_CHOICES), default=SourceMode.AUTO.value,
              show_default=True, help="Read rules via make's database, a direct scan, or make with scan fallback")
@click.option("--make", "make_command", default="make", envvar="MAKEDOT_MAKE", show_default=True,
              help="GNU make compatible command")
@click.option("--fallback/--no-fallback", default=False,
              help="In auto mode, also scan directly when make fails")
@click.option("--timeout", type=float, default=None, help="Seconds to wait for make")
@click.option("--target", "-t", "goals", multiple=True, help="Only show this target and its prerequisites")
@click.option("--rankdir", type=click.Choice(RANKDIRS), default="LR", show_default=True)
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path), help="Write to a file instead of stdout")
@click.option("-v", "--verbose", count=True, help="Show progress (-v) or debug (-vv) logging")
def cli(
    makefile: Path,
    mode: str,
    make_command: str,
    fallback: bool,
    timeout: float | None,
    goals: tuple[str, ...],
    rankdir: str,
    output: Path | None,
    verbose: int,
):
    """makedot: turn a Makefile's dependency structure into a DOT graph.

    The graph goes to stdout; pipe it into `dot -Tsvg` to draw it.  Direct
    scanning (used when make is unavailable) does not expand variables.
    """
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    config = PipelineConfig(
        makefile=resolve_makefile(makefile),
        mode=SourceMode(mode),
        make_command=make_command,
        fallback_on_error=fallback,
        timeout=timeout,
        goals=list(goals),
        rankdir=rankdir,
    )

    try:
        result = extract_graph(config)
    except (SourceError, ValueError) as e:
        raise click.ClickException(str(e))

    renderer = DotRenderer(rankdir=config.rankdir, graph_name=config.graph_name)
    try:
        if output is not None:
            with output.open("w", encoding="utf-8") as stream:
                renderer.render(result.graph, stream)
        else:
            renderer.render(result.graph, click.get_text_stream("stdout"))
    except OSError as e:
        raise click.ClickException(f"cannot write {output}: {e}")
    except RenderError as e:
        raise click.ClickException(str(e))


if __name__ == "__main__":
    cli()
