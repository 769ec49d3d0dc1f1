"""Shared Makefile syntax helpers used by the direct scanner and the rule parser."""

from __future__ import annotations

import re

# FOO = bar, FOO := bar, FOO ::= bar, FOO :::= bar, FOO ?= bar, FOO += bar, FOO != cmd
ASSIGNMENT = re.compile(
    r"^\s*(?:(?:export|override|private|unexport)\s+)*"
    r"(?P<name>[^\s:#=?+!]+)\s*"
    r"(?P<op>=|:=|::=|:::=|\?=|\+=|!=)\s*"
    r"(?P<value>.*)$"
)

CONDITIONALS = frozenset({"ifeq", "ifneq", "ifdef", "ifndef", "else", "endif"})

DIRECTIVES = CONDITIONALS | frozenset({
    "define", "endef", "undefine",
    "include", "-include", "sinclude",
    "export", "unexport", "override", "private", "vpath",
    "load", "-load",
})

_VAR_REF = re.compile(r"\$[({]([A-Za-z0-9_.\-]+)[)}]")


def first_word(line: str) -> str:
    parts = line.split(None, 1)
    return parts[0] if parts else ""


def is_directive(line: str) -> bool:
    word = first_word(line)
    if word not in DIRECTIVES:
        return False
    # "export: foo" and "include: bar" are rules, not directives
    rest = line.strip()[len(word):]
    return not rest.lstrip().startswith(":") or rest.lstrip().startswith(":=")


def strip_comment(line: str) -> str:
    """Drop an unescaped ``#`` comment from a line."""
    i = 0
    while True:
        i = line.find("#", i)
        if i < 0:
            return line
        if i > 0 and line[i - 1] == "\\":
            i += 1
            continue
        return line[:i]


def split_words(text: str) -> list[str]:
    """Split on whitespace, keeping ``$(...)`` and ``${...}`` references whole."""
    words: list[str] = []
    current: list[str] = []
    depth = 0
    closers: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "$" and i + 1 < len(text) and text[i + 1] in "({":
            closers.append(")" if text[i + 1] == "(" else "}")
            depth += 1
            current.append(text[i:i + 2])
            i += 2
            continue
        if depth and ch == closers[-1]:
            closers.pop()
            depth -= 1
        elif ch.isspace() and not depth:
            if current:
                words.append("".join(current))
                current = []
            i += 1
            continue
        current.append(ch)
        i += 1
    if current:
        words.append("".join(current))
    return words


def find_separator(text: str, sep: str, start: int = 0) -> int:
    """Index of an unescaped ``sep`` outside variable references, or -1."""
    depth = 0
    i = start
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "$" and i + 1 < len(text) and text[i + 1] in "({":
            depth += 1
            i += 2
            continue
        if depth and ch in ")}":
            depth -= 1
        elif not depth and text.startswith(sep, i):
            return i
        i += 1
    return -1


def rule_separator(line: str, expanded: bool = False) -> int:
    """Index of the colon that ends a rule's target list, or -1.

    Names in make's printed database (``expanded``) are unescaped and may
    contain colons, so there the separator is the first colon followed by
    whitespace, a second colon or the end of the line.
    """
    if not expanded:
        return find_separator(line, ":")
    for i, ch in enumerate(line):
        if ch == ":" and (i + 1 == len(line) or line[i + 1] in " \t:"):
            return i
    return -1


def is_target_variable(line: str, expanded: bool = False) -> bool:
    """True for a target-specific assignment such as ``debug: CFLAGS += -g``."""
    line = strip_comment(line)
    if ASSIGNMENT.match(line):
        return False
    colon = rule_separator(line, expanded)
    if colon < 0:
        return False
    rest = line[colon + 1:]
    if rest.startswith(":"):
        rest = rest[1:]
    semicolon = find_separator(rest, ";")
    if semicolon >= 0:
        rest = rest[:semicolon]
    return bool(ASSIGNMENT.match(rest))


def unescape(name: str) -> str:
    return name.replace("\\:", ":")


def match_stem(pattern: str, name: str) -> str | None:
    """The part of ``name`` matched by ``%`` in ``pattern``, or None."""
    if "%" not in pattern:
        return "" if pattern == name else None
    prefix, suffix = pattern.split("%", 1)
    if len(name) < len(prefix) + len(suffix):
        return None
    if name.startswith(prefix) and name.endswith(suffix):
        return name[len(prefix):len(name) - len(suffix)]
    return None


def expand_variables(text: str, variables: dict[str, str]) -> str:
    """Substitute known ``$(VAR)`` / ``${VAR}`` references, leaving unknown ones."""
    return _VAR_REF.sub(lambda m: variables.get(m.group(1), m.group(0)), text)
