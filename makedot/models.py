"""Data models for the makedot pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


class NodeKind(enum.Enum):
    FILE = "file"
    PHONY = "phony"
    PATTERN = "pattern"


class SourceMode(enum.Enum):
    AUTO = "auto"
    MAKE = "make"
    SCAN = "scan"


@dataclass
class RuleBlock:
    """Raw rule text from a rule source: a rule line plus its comments and recipe.

    ``from_database`` marks text printed by make itself, where names are
    already unescaped and static patterns already instantiated.  Blocks read
    from a sub-make's makefile carry a ``namespace`` prefixed to every name,
    and ``calls`` lists the (namespaced) goals its recipe hands to a sub-make.
    """
    lines: list[str]
    origin: str
    line_number: int = 1
    from_database: bool = False
    namespace: str = ""
    calls: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class RuleRecord:
    """Result from the parser stage."""
    target: str
    prerequisites: tuple[str, ...] = ()
    is_phony: bool = False
    is_pattern: bool = False
    has_recipe: bool = False


@dataclass(frozen=True)
class Node:
    id: str
    kind: NodeKind = NodeKind.FILE


@dataclass(frozen=True)
class Edge:
    source: str  # prerequisite
    target: str  # depends on source


@dataclass
class Graph:
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    forward: dict[str, list[str]] = field(default_factory=dict)  # prerequisite -> [targets]


@dataclass
class ParseWarning:
    message: str
    origin: str = ""
    line_number: int = 0
    text: str = ""

    def __str__(self) -> str:
        location = f"{self.origin}:{self.line_number}: " if self.origin else ""
        return f"{location}{self.message}"


@dataclass
class GraphWarning:
    message: str
    cycle: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.message


@dataclass
class PipelineConfig:
    """Configuration for the extraction pipeline."""
    makefile: Path = field(default_factory=lambda: Path("Makefile"))
    mode: SourceMode = SourceMode.AUTO
    make_command: str = "make"
    fallback_on_error: bool = False
    timeout: float | None = None
    goals: list[str] = field(default_factory=list)
    rankdir: str = "LR"
    graph_name: str = "makefile"


@dataclass
class PipelineResult:
    """Result of one extraction run."""
    graph: Graph
    source_name: str = ""
    parse_warnings: list[ParseWarning] = field(default_factory=list)
    graph_warnings: list[GraphWarning] = field(default_factory=list)
