"""Rule source that delegates to GNU make's printed rule database.

``make --print-data-base --dry-run`` reads the Makefile with make's own
semantics (variables, includes, conditionals) and dumps every rule it knows
about without running a recipe.  Only the ``# Implicit Rules`` and ``# Files``
sections of the dump describe rules; everything else is skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path

from makedot.models import RuleBlock
from makedot.source.base import BaseRuleSource, CommandRunner, SourceError, run_command

logger = logging.getLogger(__name__)

# Goal given to make so the Makefile's default goal is never evaluated.
NOOP_GOAL = "__makedot_noop__"

DATABASE_FLAGS = (
    "--print-data-base",
    "--dry-run",
    "--no-builtin-rules",
)

_RULE_SECTIONS = {"# Implicit Rules", "# Files"}
_OTHER_SECTIONS = {
    "# Variables",
    "# Pattern-specific Variable Values",
    "# Directories",
    "# VPATH Search Paths",
}


class MakeDatabaseSource(BaseRuleSource):
    """Read rules from ``make --print-data-base``."""

    name = "make"

    def __init__(
        self,
        make_command: str = "make",
        runner: CommandRunner | None = None,
        timeout: float | None = None,
    ):
        self.make_command = make_command
        self.runner = runner or run_command
        self.timeout = timeout

    def command(self, makefile: Path) -> list[str]:
        return [
            self.make_command,
            *DATABASE_FLAGS,
            "-f", makefile.name,
            f"--eval={NOOP_GOAL}: ;",
            NOOP_GOAL,
        ]

    def read(self, makefile: Path) -> list[RuleBlock]:
        self._check_readable(makefile)
        argv = self.command(makefile)
        cwd = makefile.parent
        logger.debug("running %s in %s", " ".join(argv), cwd)

        result = self.runner(argv, cwd, self.timeout)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip().splitlines()
            detail = stderr[-1] if stderr else "no diagnostics"
            raise SourceError(
                f"{self.make_command} exited with status {result.returncode}: {detail}"
            )

        blocks = split_database(result.stdout or "", origin=f"{self.make_command} -p")
        logger.debug("make database: %d rule blocks", len(blocks))
        return blocks


def split_database(text: str, origin: str = "make -p") -> list[RuleBlock]:
    """Split a printed make database into blank-line separated rule blocks."""
    blocks: list[RuleBlock] = []
    current: list[str] = []
    start = 0
    in_rules = False

    def flush() -> None:
        if current:
            blocks.append(RuleBlock(
                lines=list(current), origin=origin, line_number=start, from_database=True,
            ))
            current.clear()

    for number, line in enumerate(text.splitlines(), start=1):
        header = line.rstrip()
        if header in _RULE_SECTIONS:
            flush()
            in_rules = True
            continue
        if header in _OTHER_SECTIONS or header.startswith("# Finished Make data base"):
            flush()
            in_rules = False
            continue
        if not in_rules:
            continue

        if not line.strip():
            flush()
            continue
        if not current:
            start = number
        current.append(line)

    flush()
    return blocks
