"""Rule source registry and fallback dispatcher."""

from __future__ import annotations

import logging

from makedot.models import PipelineConfig, RuleBlock, SourceMode
from makedot.source.base import (
    BaseRuleSource,
    MAKEFILE_NAMES,
    CommandRunner,
    MakeNotFoundError,
    SourceError,
    resolve_makefile,
    run_command,
)
from makedot.source.direct_scan import DirectScanSource
from makedot.source.make_database import MakeDatabaseSource

logger = logging.getLogger(__name__)


def get_source(config: PipelineConfig, runner: CommandRunner | None = None) -> BaseRuleSource:
    """Return the primary rule source for a config."""
    if config.mode == SourceMode.SCAN:
        return DirectScanSource()
    return MakeDatabaseSource(
        make_command=config.make_command,
        runner=runner,
        timeout=config.timeout,
    )


def read_blocks(
    config: PipelineConfig,
    runner: CommandRunner | None = None,
) -> tuple[str, list[RuleBlock]]:
    """Read rule blocks for ``config.makefile``, falling back to a direct scan.

    In ``auto`` mode a missing make command always falls back to scanning the
    Makefile text; a failing make command only does when
    ``config.fallback_on_error`` is set.  Returns ``(source name, blocks)``.
    """
    makefile = config.makefile
    if not makefile.is_file():
        raise SourceError(f"Makefile not found: {makefile}")

    source = get_source(config, runner)
    try:
        return source.name, source.read(makefile)
    except MakeNotFoundError as e:
        if config.mode != SourceMode.AUTO:
            raise
        reason = str(e)
    except SourceError as e:
        if config.mode != SourceMode.AUTO or not config.fallback_on_error:
            raise
        reason = str(e)

    logger.warning(
        "%s; scanning %s directly (variables are not expanded and "
        "conditionals are not evaluated)",
        reason, makefile,
    )
    fallback = DirectScanSource()
    return fallback.name, fallback.read(makefile)


__all__ = [
    "BaseRuleSource",
    "CommandRunner",
    "DirectScanSource",
    "MakeDatabaseSource",
    "MAKEFILE_NAMES",
    "MakeNotFoundError",
    "SourceError",
    "get_source",
    "read_blocks",
    "resolve_makefile",
    "run_command",
]
