"""Rule source that scans Makefile text directly.

This is the reduced-fidelity fallback for hosts without GNU make.  Rule lines
are passed through verbatim, so variable references in targets and
prerequisites stay unexpanded and both branches of every conditional are seen.
Only ``include`` paths and sub-make arguments get a best-effort expansion from
the simple variable assignments read so far.

Recipes that run ``$(MAKE) -C dir`` or ``$(MAKE) -f file`` are followed into
the sub-makefile.  Its names are prefixed with ``<makefile path>:`` (relative to
the top-level Makefile's directory) and the invoking target depends on the
goals it passes, or on the sub-makefile's default goal.
"""

from __future__ import annotations

import glob
import logging
import os
import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from makedot import syntax
from makedot.models import RuleBlock
from makedot.source.base import BaseRuleSource, SourceError, resolve_makefile

logger = logging.getLogger(__name__)

_INCLUDE_WORDS = {"include": False, "-include": True, "sinclude": True}
_DEFINE_PREFIXES = {"export", "override", "private"}

_SUBMAKE = re.compile(
    r"(?:^|[\s;&|(@+-])(?:\$\(MAKE\)|\$\{MAKE\}|make)(?=\s|$)(?P<args>[^;&|#]*)"
)
_DIRECTORY_OPTIONS = {"-C", "--directory"}
_FILE_OPTIONS = {"-f", "--file", "--makefile"}
_VALUE_OPTIONS = {
    "-I", "--include-dir", "-o", "--old-file", "--assume-old",
    "-W", "--what-if", "--new-file", "--assume-new", "--eval",
}
_NUMBER_OPTIONS = {"-j", "--jobs", "-l", "--load-average", "--max-load"}


@dataclass
class SubMake:
    """A ``$(MAKE)`` invocation found in a recipe."""
    makefile: Path
    directory: Path
    goals: list[str] = field(default_factory=list)


class DirectScanSource(BaseRuleSource):
    """Read rules straight from Makefile text, following includes and sub-makes."""

    name = "scan"

    def __init__(self, follow_submakes: bool = True) -> None:
        self.follow_submakes = follow_submakes
        self._root_dir = Path(".")
        self._seen: set[Path] = set()
        self._variables: dict[str, str] = {}
        self._namespace = ""

    def read(self, makefile: Path) -> list[RuleBlock]:
        self._check_readable(makefile)
        makefile = makefile.resolve()
        top_dir = makefile.parent

        namespaces = {makefile: ""}
        default_goals: dict[Path, str | None] = {}
        links: list[tuple[RuleBlock, SubMake]] = []
        queue = deque([(makefile, top_dir)])
        blocks: list[RuleBlock] = []

        while queue:
            path, directory = queue.popleft()
            file_blocks = self._read_makefile(path, directory, namespaces[path])
            blocks.extend(file_blocks)
            default_goals[path] = default_goal(file_blocks)
            if not self.follow_submakes:
                continue

            for block in file_blocks:
                for call in self.submake_calls(block, directory):
                    if call.makefile not in namespaces:
                        if not call.makefile.is_file():
                            logger.warning(
                                "%s:%d: sub-make makefile not found: %s",
                                block.origin, block.line_number, call.makefile,
                            )
                            continue
                        logger.debug("following sub-make into %s", call.makefile)
                        namespaces[call.makefile] = _namespace(call.makefile, top_dir)
                        queue.append((call.makefile, call.directory))
                    links.append((block, call))

        # Default goals are known only once every makefile has been read
        for block, call in links:
            goals = call.goals
            if not goals and default_goals[call.makefile]:
                goals = [default_goals[call.makefile]]
            for goal in goals:
                node_id = namespaces[call.makefile] + goal
                if node_id not in block.calls:
                    block.calls.append(node_id)

        logger.debug("direct scan: %d rule blocks from %d makefile(s)", len(blocks), len(namespaces))
        return blocks

    def _read_makefile(self, path: Path, directory: Path, namespace: str) -> list[RuleBlock]:
        self._root_dir = directory
        self._seen = set()
        self._variables = {"CURDIR": str(directory)}
        self._namespace = namespace

        blocks: list[RuleBlock] = []
        self._scan_file(path, blocks)
        return blocks

    def _scan_file(self, path: Path, blocks: list[RuleBlock]) -> None:
        self._seen.add(path)
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise SourceError(f"cannot read {path}: {e}") from e

        current: RuleBlock | None = None
        define_depth = 0

        for number, line in _logical_lines(text):
            stripped = line.strip()

            if define_depth:
                if _is_define(stripped):
                    define_depth += 1
                elif syntax.first_word(stripped) == "endef":
                    define_depth -= 1
                continue

            if line.startswith("\t"):
                if current is not None:
                    current.lines.append(line)
                continue

            if not stripped or stripped.startswith("#"):
                continue

            word = syntax.first_word(stripped)
            if word in syntax.CONDITIONALS and syntax.is_directive(stripped):
                # Recipes may continue across conditional lines.
                continue
            if _is_define(stripped):
                define_depth = 1
                current = None
                continue
            if word in _INCLUDE_WORDS and syntax.is_directive(stripped):
                current = None
                self._include(path, stripped, optional=_INCLUDE_WORDS[word], blocks=blocks)
                continue

            self._track_assignment(stripped)
            current = RuleBlock(
                lines=[line], origin=str(path), line_number=number, namespace=self._namespace,
            )
            blocks.append(current)

    def _include(self, including: Path, line: str, optional: bool, blocks: list[RuleBlock]) -> None:
        argument = syntax.strip_comment(line).split(None, 1)
        if len(argument) < 2:
            return
        expanded = syntax.expand_variables(argument[1], self._variables)

        for word in syntax.split_words(expanded):
            for candidate in self._resolve_include(word, including.parent):
                if candidate in self._seen:
                    continue
                if candidate.is_file():
                    logger.debug("including %s", candidate)
                    self._scan_file(candidate, blocks)
                elif optional:
                    logger.debug("optional include not found: %s", word)
                else:
                    logger.warning("%s: included makefile not found: %s", including, word)

    def _resolve_include(self, word: str, including_dir: Path) -> list[Path]:
        if "$" in word:
            # Unresolved variable reference; report it as missing.
            return [self._root_dir / word]
        bases = [self._root_dir] if including_dir == self._root_dir else [self._root_dir, including_dir]
        for base in bases:
            pattern = str(base / word)
            if glob.has_magic(pattern):
                matches = sorted(Path(p).resolve() for p in glob.glob(pattern))
                if matches:
                    return matches
                continue
            candidate = (base / word).resolve()
            if candidate.is_file():
                return [candidate]
        return [(self._root_dir / word).resolve()]

    def _track_assignment(self, line: str) -> None:
        match = syntax.ASSIGNMENT.match(syntax.strip_comment(line))
        if not match:
            return
        name, op, value = match.group("name", "op", "value")
        if op == "!=":
            return
        value = syntax.expand_variables(value.strip(), self._variables)
        if op == "?=":
            self._variables.setdefault(name, value)
        elif op == "+=" and name in self._variables:
            self._variables[name] = f"{self._variables[name]} {value}".strip()
        else:
            self._variables[name] = value

    def submake_calls(self, block: RuleBlock, directory: Path) -> list[SubMake]:
        """Sub-make invocations in a block's recipe, resolved against ``directory``."""
        calls = []
        for line in block.lines[1:]:
            if not line.startswith("\t"):
                continue
            for match in _SUBMAKE.finditer(line):
                call = self._parse_submake(match.group("args"), directory)
                if call is not None:
                    calls.append(call)
        return calls

    def _parse_submake(self, args: str, directory: Path) -> SubMake | None:
        words = [syntax.expand_variables(w, self._variables) for w in syntax.split_words(args)]
        makefile_arg = None
        has_path = False
        goals = []

        i = 0
        while i < len(words):
            word = words[i]
            i += 1
            option, value = word, None
            if "=" in word and word.startswith("--"):
                option, value = word.split("=", 1)
            elif word[:2] in ("-C", "-f") and len(word) > 2:
                option, value = word[:2], word[2:]

            if option in _DIRECTORY_OPTIONS or option in _FILE_OPTIONS:
                if value is None:
                    if i >= len(words):
                        break
                    value = words[i]
                    i += 1
                if "$" in value:
                    logger.warning("cannot follow sub-make with unexpanded path %s", value)
                    return None
                has_path = True
                if option in _DIRECTORY_OPTIONS:
                    directory = directory / value
                else:
                    makefile_arg = value
            elif option in _VALUE_OPTIONS:
                if value is None:
                    i += 1
            elif option in _NUMBER_OPTIONS:
                if value is None and i < len(words) and words[i].isdigit():
                    i += 1
            elif word.startswith("-") or "=" in word:
                continue
            elif "$" not in word:
                goals.append(word)

        # A bare $(MAKE) re-runs the current makefile
        if not has_path:
            return None
        directory = directory.resolve()
        if makefile_arg is not None:
            makefile = (directory / makefile_arg).resolve()
        else:
            makefile = resolve_makefile(directory).resolve()
        return SubMake(makefile=makefile, directory=directory, goals=goals)


def default_goal(blocks: list[RuleBlock]) -> str | None:
    """The first target make would build when given no goal."""
    for block in blocks:
        line = syntax.strip_comment(block.lines[0])
        if syntax.is_directive(line) or syntax.ASSIGNMENT.match(line):
            continue
        if syntax.is_target_variable(line):
            continue
        colon = syntax.find_separator(line, ":")
        if colon < 0:
            continue
        for target in syntax.split_words(line[:colon].rstrip("&")):
            if "%" in target or (target.startswith(".") and "/" not in target):
                continue
            return syntax.unescape(target)
    return None


def _namespace(makefile: Path, top_dir: Path) -> str:
    return Path(os.path.relpath(makefile, top_dir)).as_posix() + ":"


def _is_define(line: str) -> bool:
    words = line.split()
    while words and words[0] in _DEFINE_PREFIXES:
        words = words[1:]
    return bool(words) and words[0] == "define"


def _logical_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield (first line number, line) with backslash continuations joined."""
    pending: list[str] = []
    start = 1
    for number, raw in enumerate(text.splitlines(), start=1):
        if not pending:
            start = number
        if raw.endswith("\\"):
            pending.append(raw[:-1])
            continue
        pending.append(raw)
        yield start, _join(pending)
        pending = []
    if pending:
        yield start, _join(pending)


def _join(pieces: list[str]) -> str:
    if len(pieces) == 1:
        return pieces[0]
    head = pieces[0].rstrip()
    tail = [p.strip() for p in pieces[1:]]
    return " ".join([head, *[p for p in tail if p]])
