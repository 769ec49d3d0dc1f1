"""Tests for the full pipeline."""

import io
import shutil
import subprocess
from pathlib import Path

import pytest

from makedot.models import NodeKind, PipelineConfig, SourceMode
from makedot.pipeline import extract_graph, run_pipeline
from makedot.source import SourceError

FIXTURES = Path(__file__).parent / "fixtures"
PROJECT = FIXTURES / "project" / "Makefile"
DATABASE = (FIXTURES / "make_database.txt").read_text()
TARGET_VARS = FIXTURES / "target_vars" / "Makefile"
TARGET_VARS_EDGES = [("main.o", "app"), ("app", "debug"), ("main.c", "main.o")]

EXPECTED_EDGES = {
    ("main.o", "app"),
    ("util.o", "app"),
    ("README.md", "docs"),
    ("build", "all"),
    ("test", "all"),
    ("app", "build"),
    ("build", "test"),
    ("logs", "test"),
}


def _runner(stdout=DATABASE, returncode=0):
    def run(argv, cwd, timeout=None):
        return subprocess.CompletedProcess(argv, returncode, stdout, "make: *** failed")
    return run


def _edges(graph):
    return [(e.source, e.target) for e in graph.edges]


def test_extract_from_make_database():
    result = extract_graph(PipelineConfig(makefile=PROJECT), runner=_runner())
    graph = result.graph

    assert result.source_name == "make"
    assert result.parse_warnings == []
    assert result.graph_warnings == []
    assert list(graph.nodes) == [
        "%.o", "app", "main.o", "util.o", "docs", "README.md",
        "logs", "clean", "all", "build", "test",
    ]
    assert set(_edges(graph)) == EXPECTED_EDGES
    assert len(graph.edges) == len(EXPECTED_EDGES)
    phony = {n for n, node in graph.nodes.items() if node.kind == NodeKind.PHONY}
    assert phony == {"clean", "all", "test"}
    # main.o and util.o instantiate the implicit rule
    assert graph.nodes["%.o"].kind == NodeKind.PATTERN


def test_extract_from_direct_scan():
    config = PipelineConfig(makefile=PROJECT, mode=SourceMode.SCAN)
    result = extract_graph(config)
    graph = result.graph

    assert result.source_name == "scan"
    assert list(graph.nodes) == [
        "all", "build", "test", "app", "$(OBJS)", "logs", "clean", "docs", "README.md",
    ]
    assert _edges(graph) == [
        ("build", "all"),
        ("test", "all"),
        ("app", "build"),
        ("$(OBJS)", "app"),
        ("build", "test"),
        ("logs", "test"),
        ("README.md", "docs"),
    ]


def test_target_specific_variables_keep_edges():
    dump = (FIXTURES / "make_database_target_vars.txt").read_text()
    result = extract_graph(PipelineConfig(makefile=TARGET_VARS), runner=_runner(stdout=dump))
    assert list(result.graph.nodes) == ["app", "main.o", "debug", "main.c"]
    assert _edges(result.graph) == TARGET_VARS_EDGES
    assert result.graph.nodes["debug"].kind == NodeKind.PHONY


def test_sub_makes_from_direct_scan():
    config = PipelineConfig(makefile=FIXTURES / "submake" / "Makefile", mode=SourceMode.SCAN)
    result = extract_graph(config)
    graph = result.graph

    assert result.parse_warnings == []
    assert list(graph.nodes) == [
        "all", "app", "main.o", "lib/Makefile:libutil.a", "docs", "docs/Makefile:html",
        "lib/Makefile:util.o", "lib/Makefile:util.c", "docs/Makefile:index.rst",
        "docs/Makefile:clean",
    ]
    assert _edges(graph) == [
        ("app", "all"),
        ("main.o", "app"),
        ("lib/Makefile:libutil.a", "app"),
        ("docs/Makefile:html", "docs"),
        ("lib/Makefile:util.o", "lib/Makefile:libutil.a"),
        ("lib/Makefile:util.c", "lib/Makefile:util.o"),
        ("docs/Makefile:index.rst", "docs/Makefile:html"),
    ]
    assert graph.nodes["docs/Makefile:html"].kind == NodeKind.PHONY


def test_goals_restrict_graph():
    config = PipelineConfig(makefile=PROJECT, goals=["build"])
    result = extract_graph(config, runner=_runner())
    assert set(result.graph.nodes) == {"build", "app", "main.o", "util.o"}


def test_malformed_line_end_to_end(tmp_path):
    makefile = tmp_path / "Makefile"
    makefile.write_text(
        ".PHONY: all test\n"
        "all: build test\n"
        "foo bar\n"
        "build: main.c\n"
        "test: build\n"
    )
    result = extract_graph(PipelineConfig(makefile=makefile, mode=SourceMode.SCAN))
    assert list(result.graph.nodes) == ["all", "build", "test", "main.c"]
    assert len(result.parse_warnings) == 1
    assert "foo" not in result.graph.nodes
    assert "bar" not in result.graph.nodes


def test_self_cycle_end_to_end(tmp_path):
    makefile = tmp_path / "Makefile"
    makefile.write_text("a: a\n")
    stream = io.StringIO()
    result = run_pipeline(PipelineConfig(makefile=makefile, mode=SourceMode.SCAN), stream)
    assert len(result.graph_warnings) == 1
    assert '"a" -> "a";' in stream.getvalue()


def test_run_pipeline_writes_dot():
    stream = io.StringIO()
    run_pipeline(PipelineConfig(makefile=PROJECT, rankdir="TB"), stream, runner=_runner())
    text = stream.getvalue()
    assert text.startswith('digraph "makefile" {\n    rankdir="TB";\n')
    assert '"main.o" -> "app";' in text
    assert text.endswith("}\n")


def test_identical_input_renders_identically():
    first, second = io.StringIO(), io.StringIO()
    run_pipeline(PipelineConfig(makefile=PROJECT), first, runner=_runner())
    run_pipeline(PipelineConfig(makefile=PROJECT), second, runner=_runner())
    assert first.getvalue() == second.getvalue()


def test_fatal_error_writes_nothing():
    stream = io.StringIO()
    with pytest.raises(SourceError):
        run_pipeline(PipelineConfig(makefile=PROJECT), stream, runner=_runner(returncode=2))
    assert stream.getvalue() == ""


@pytest.mark.skipif(shutil.which("make") is None, reason="make is not installed")
def test_real_make_database():
    result = extract_graph(PipelineConfig(makefile=PROJECT, mode=SourceMode.MAKE))
    assert set(_edges(result.graph)) == EXPECTED_EDGES
    assert result.graph.nodes["all"].kind == NodeKind.PHONY
    assert result.graph.nodes["%.o"].kind == NodeKind.PATTERN


@pytest.mark.skipif(shutil.which("make") is None, reason="make is not installed")
def test_real_make_target_specific_variables():
    result = extract_graph(PipelineConfig(makefile=TARGET_VARS, mode=SourceMode.MAKE))
    assert set(_edges(result.graph)) == set(TARGET_VARS_EDGES)
