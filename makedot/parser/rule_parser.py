"""Rule parser: turns raw rule blocks into RuleRecords.

A block holds one rule line plus the comments and recipe lines around it.  The
same parser reads both GNU make's printed database (where comments such as
``# Not a target:`` annotate the rule) and plain Makefile text.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from makedot import syntax
from makedot.models import ParseWarning, RuleBlock, RuleRecord
from makedot.source.make_database import NOOP_GOAL

logger = logging.getLogger(__name__)

SPECIAL_TARGETS = frozenset({
    ".PHONY", ".SUFFIXES", ".DEFAULT", ".PRECIOUS", ".INTERMEDIATE",
    ".NOTINTERMEDIATE", ".SECONDARY", ".SECONDEXPANSION", ".DELETE_ON_ERROR",
    ".IGNORE", ".LOW_RESOLUTION_TIME", ".SILENT", ".EXPORT_ALL_VARIABLES",
    ".NOTPARALLEL", ".ONESHELL", ".POSIX", ".WAIT",
})

_NOT_A_TARGET = "# Not a target:"
_PHONY_NOTE = "Phony target (prerequisite of .PHONY)"


@dataclass
class _RuleLine:
    targets: list[str]
    prerequisites: list[str]
    has_recipe: bool = False
    target_pattern: str | None = None


@dataclass
class _BlockParts:
    rule: str | None = None
    offset: int = 0
    not_a_target: bool = False
    phony_note: bool = False
    recipe: list[str] = field(default_factory=list)


class RuleParser:
    """Parse rule blocks into records, collecting recoverable warnings.

    ``parse`` is lazy: ``warnings`` is complete once its result is consumed.
    """

    def __init__(self, ignored_targets: Iterable[str] = (NOOP_GOAL,)):
        self.ignored_targets = set(ignored_targets) | SPECIAL_TARGETS
        self.warnings: list[ParseWarning] = []

    def parse(self, blocks: Iterable[RuleBlock]) -> Iterator[RuleRecord]:
        blocks = list(blocks)
        phonies = self.collect_phonies(blocks)
        for block in blocks:
            yield from self._parse_block(block, phonies)

    def collect_phonies(self, blocks: list[RuleBlock]) -> set[str]:
        """Targets declared phony anywhere in the rule set, namespaced."""
        phonies: set[str] = set()
        for block in blocks:
            parts = _split_block(block)
            if parts.rule is None:
                continue
            line = syntax.strip_comment(parts.rule)
            colon = syntax.rule_separator(line, block.from_database)
            if colon < 0:
                continue
            targets = _names(line[:colon].rstrip("&"), block)
            if ".PHONY" in targets:
                prereqs = line[colon + 1:].lstrip(":").split(";", 1)[0]
                phonies.update(
                    block.namespace + w for w in _names(prereqs, block) if w != "|"
                )
            if parts.phony_note:
                phonies.update(block.namespace + t for t in targets)
        return phonies

    def _parse_block(self, block: RuleBlock, phonies: set[str]) -> Iterator[RuleRecord]:
        parts = _split_block(block)
        if parts.rule is None or parts.not_a_target:
            return

        line_number = block.line_number + parts.offset
        rule = self._parse_rule_line(parts.rule, block, line_number)
        if rule is None:
            return

        has_recipe = rule.has_recipe or any(r.strip() for r in parts.recipe)
        namespace = block.namespace
        for target in rule.targets:
            if target in self.ignored_targets:
                continue
            prerequisites = rule.prerequisites
            if rule.target_pattern is not None:
                prerequisites = self._instantiate(
                    target, rule.target_pattern, rule.prerequisites, block.origin, line_number,
                )
                if prerequisites is None:
                    continue

            yield RuleRecord(
                target=namespace + target,
                prerequisites=tuple(namespace + p for p in prerequisites) + tuple(block.calls),
                is_phony=namespace + target in phonies,
                is_pattern="%" in target,
                has_recipe=has_recipe,
            )

    def _parse_rule_line(self, text: str, block: RuleBlock, line_number: int) -> _RuleLine | None:
        line = syntax.strip_comment(text).rstrip()
        if not line.strip():
            return None
        if syntax.is_directive(line) or syntax.ASSIGNMENT.match(line):
            return None

        colon = syntax.rule_separator(line, block.from_database)
        if colon < 0:
            self._warn("missing ':' separator", block.origin, line_number, text)
            return None

        lhs = line[:colon].rstrip()
        rest = line[colon + 1:]
        if rest.startswith(":"):
            rest = rest[1:]
        if lhs.endswith("&"):
            lhs = lhs[:-1]

        has_recipe = False
        semicolon = syntax.find_separator(rest, ";")
        if semicolon >= 0:
            has_recipe = bool(rest[semicolon + 1:].strip())
            rest = rest[:semicolon]

        targets = _names(lhs, block)
        if not targets:
            self._warn("empty target", block.origin, line_number, text)
            return None

        # make prints static pattern rules already instantiated
        target_pattern = None
        second = -1 if block.from_database else syntax.find_separator(rest, ":")
        if second >= 0:
            target_pattern = syntax.unescape(rest[:second].strip())
            rest = rest[second + 1:]

        prerequisites = []
        for word in _names(rest, block):
            if word.startswith("|"):
                word = word[1:]
            if word:
                prerequisites.append(word)

        return _RuleLine(targets, prerequisites, has_recipe, target_pattern)

    def _instantiate(
        self,
        target: str,
        target_pattern: str,
        prereq_patterns: list[str],
        origin: str,
        line_number: int,
    ) -> list[str] | None:
        """Apply a static pattern rule to one of its targets."""
        stem = syntax.match_stem(target_pattern, target)
        if stem is None:
            if "$" in target:
                # Unexpanded variable from a direct scan; keep the raw patterns.
                return list(prereq_patterns)
            self._warn(
                f"target {target!r} doesn't match the target pattern {target_pattern!r}",
                origin, line_number, target,
            )
            return None
        return [p.replace("%", stem, 1) for p in prereq_patterns]

    def _warn(self, message: str, origin: str, line_number: int, text: str) -> None:
        warning = ParseWarning(message=message, origin=origin, line_number=line_number, text=text)
        self.warnings.append(warning)
        logger.warning("%s", warning)


def _names(text: str, block: RuleBlock) -> list[str]:
    words = syntax.split_words(text)
    if block.from_database:
        return words
    return [syntax.unescape(w) for w in words]


def _split_block(block: RuleBlock) -> _BlockParts:
    parts = _BlockParts()
    for i, line in enumerate(block.lines):
        if line.startswith("\t"):
            if parts.rule is not None:
                parts.recipe.append(line[1:])
            continue
        stripped = line.strip()
        if stripped.startswith("#"):
            if parts.rule is None and stripped == _NOT_A_TARGET:
                parts.not_a_target = True
            elif parts.rule is not None and _PHONY_NOTE in stripped:
                parts.phony_note = True
            continue
        if not stripped:
            continue
        # make prints a target's own variables ahead of its rule line
        if parts.rule is None and not syntax.is_target_variable(line, block.from_database):
            parts.rule = line
            parts.offset = i
    return parts
