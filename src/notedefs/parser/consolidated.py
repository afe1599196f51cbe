"""Parser for consolidated definition documents (many phrases per file).

Layout::

    ---
    def-type: consolidated
    ---

    # Phrase
    *alias one, alias two*

    Definition content, any markdown.

    ---

    # Next phrase
    ...

A block starts at a ``# `` header. The line right after the header is an
alias list when it is wrapped in asterisks. The content runs until a divider
line (consumed), the next header (not consumed) or the end of the file.
"""

from __future__ import annotations

import logging

from ..config import DividerPattern
from ..frontmatter import find_frontmatter_end, split_lines
from ..models import Definition

log = logging.getLogger(__name__)

HEADER_PREFIX = "# "


def is_header(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(HEADER_PREFIX) and len(stripped) > len(HEADER_PREFIX)


def parse_alias_line(line: str) -> list[str] | None:
    """Parse ``*a, b*`` into ["a", "b"]; None when the line is not an alias line."""
    stripped = line.strip()
    if len(stripped) > 2 and stripped.startswith("*") and stripped.endswith("*"):
        return [alias.strip() for alias in stripped[1:-1].split(",") if alias.strip()]
    return None


def format_block(phrase: str, aliases: list[str], content: str) -> str:
    """Render a definition in the canonical block layout, without divider."""
    lines = [f"{HEADER_PREFIX}{phrase}"]
    if aliases:
        lines.append(f"*{', '.join(aliases)}*")
    lines.append("")
    lines.append(content)
    return "\n".join(lines)


class ConsolidatedParser:
    """Turn a consolidated document into an ordered list of Definitions."""

    def __init__(self, divider_pattern: DividerPattern = "hyphens"):
        self.divider_pattern = divider_pattern

    def is_divider(self, line: str) -> bool:
        stripped = line.strip()
        if stripped == "---":
            return True
        return self.divider_pattern == "both" and stripped == "___"

    @property
    def divider(self) -> str:
        return "---"

    def parse(self, content: str, path: str) -> list[Definition]:
        """Parse a consolidated definition file.

        Never raises on malformed input; a block that cannot be turned into
        a Definition is skipped.

        Args:
            content: Raw file content.
            path: Vault-relative path of the file.

        Returns:
            Definitions in file order.
        """
        lines = split_lines(content)
        definitions: list[Definition] = []

        fm_end = find_frontmatter_end(lines)
        i = fm_end + 1 if fm_end is not None else 0

        while i < len(lines):
            if is_header(lines[i]):
                definition, i = self._parse_block(lines, i, path)
                if definition is not None:
                    definitions.append(definition)
            else:
                i += 1

        return definitions

    def _parse_block(self, lines: list[str], start: int, path: str) -> tuple[Definition | None, int]:
        phrase = lines[start].strip()[len(HEADER_PREFIX) :].strip()
        if not phrase:
            return None, start + 1

        i = start + 1
        aliases: list[str] = []
        if i < len(lines):
            parsed = parse_alias_line(lines[i])
            if parsed is not None:
                aliases = parsed
                i += 1

        content_lines: list[str] = []
        while i < len(lines):
            line = lines[i]
            if self.is_divider(line):
                i += 1
                break
            if is_header(line):
                break
            content_lines.append(line)
            i += 1

        while content_lines and not content_lines[0].strip():
            content_lines.pop(0)
        while content_lines and not content_lines[-1].strip():
            content_lines.pop()

        try:
            definition = Definition(
                phrase=phrase,
                aliases=aliases,
                content="\n".join(content_lines),
                source_file=path,
                source_type="consolidated",
                line_number=start + 1,
            )
        except ValueError as e:
            log.debug("Skipping block at %s:%d: %s", path, start + 1, e)
            definition = None

        return definition, i

    def block_span(self, lines: list[str], start: int) -> tuple[int, int]:
        """Locate the extent of the block whose header is at ``start``.

        Returns:
            (content_end, block_end): content_end is the index of the first
            line after the block body (the divider, next header or EOF);
            block_end also covers a trailing divider line.
        """
        end = start + 1
        while end < len(lines):
            if self.is_divider(lines[end]) or is_header(lines[end]):
                break
            end += 1

        if end < len(lines) and self.is_divider(lines[end]):
            return end, end + 1
        return end, end
