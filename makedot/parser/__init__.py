"""Rule parser entry point."""

from __future__ import annotations

from makedot.models import ParseWarning, RuleBlock, RuleRecord
from makedot.parser.rule_parser import SPECIAL_TARGETS, RuleParser


def parse_blocks(blocks: list[RuleBlock]) -> tuple[list[RuleRecord], list[ParseWarning]]:
    """Parse every block, returning the records and the warnings raised on the way."""
    parser = RuleParser()
    records = list(parser.parse(blocks))
    return records, parser.warnings


__all__ = ["RuleParser", "SPECIAL_TARGETS", "parse_blocks"]
