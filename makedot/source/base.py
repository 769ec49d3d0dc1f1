"""Abstract rule source and the default command runner."""

from __future__ import annotations

import abc
import subprocess
from pathlib import Path
from typing import Callable, Sequence

from makedot.models import RuleBlock


class SourceError(Exception):
    """The Makefile could not be read or the make command failed."""


class MakeNotFoundError(SourceError):
    """The external make command is not installed."""


CommandRunner = Callable[[Sequence[str], Path, float | None], subprocess.CompletedProcess]


def run_command(
    argv: Sequence[str],
    cwd: Path,
    timeout: float | None = None,
) -> subprocess.CompletedProcess:
    """Run a command to completion and capture its text output."""
    try:
        return subprocess.run(
            list(argv),
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise MakeNotFoundError(f"command not found: {argv[0]}") from e
    except subprocess.TimeoutExpired as e:
        raise SourceError(f"{argv[0]} timed out after {timeout}s") from e
    except OSError as e:
        raise SourceError(f"could not run {argv[0]}: {e}") from e


class BaseRuleSource(abc.ABC):
    """Base class for rule sources."""

    name: str

    @abc.abstractmethod
    def read(self, makefile: Path) -> list[RuleBlock]:
        """Return the raw rule blocks for a Makefile."""

    @staticmethod
    def _check_readable(makefile: Path) -> None:
        if not makefile.is_file():
            raise SourceError(f"Makefile not found: {makefile}")


# GNU make's default makefile lookup order
MAKEFILE_NAMES = ("GNUmakefile", "makefile", "Makefile")


def resolve_makefile(path: Path) -> Path:
    """Map a directory to the makefile make would read there."""
    if not path.is_dir():
        return path
    for name in MAKEFILE_NAMES:
        candidate = path / name
        if candidate.is_file():
            return candidate
    return path / "Makefile"
