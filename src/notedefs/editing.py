"""Creating, updating and deleting definitions on disk.

Every operation validates its input, computes the complete new file content
in memory and only then performs a single write, delete or rename. A failure
before that point leaves the document untouched. Successful writes trigger a
full index refresh.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Any

from .config import (
    ALIASES_KEY,
    CONSOLIDATED_FILE_TEMPLATE,
    DEF_TYPE_KEY,
    DEFAULT_DEFINITION_FILENAME,
    MARKDOWN_SUFFIX,
    DefinitionType,
)
from .context import with_context_file
from .errors import navigation_error, validation_error
from .frontmatter import get_definition_type, split_lines, update_frontmatter
from .manager import DefinitionManager
from .models import Definition, DefinitionLocation
from .parser.consolidated import HEADER_PREFIX, format_block, is_header

log = logging.getLogger(__name__)


def clean_aliases(aliases: list[str] | str | None) -> list[str]:
    """Trim aliases and drop empty ones; a string is split on commas."""
    if aliases is None:
        return []
    if isinstance(aliases, str):
        aliases = aliases.split(",")
    return [alias.strip() for alias in aliases if alias.strip()]


def validate_entry(phrase: str, content: str) -> tuple[str, str]:
    """Trim and check a phrase/content pair submitted by a user.

    Raises:
        DefinitionError: validation error when either is blank.
    """
    phrase = phrase.strip()
    content = content.strip()
    if not phrase:
        raise validation_error("Please enter a phrase")
    if not content:
        raise validation_error("Please enter a definition")
    if "\n" in phrase:
        raise validation_error("A phrase must fit on one line", phrase=phrase)
    return phrase, content


class DefinitionEditor:
    """Write path for definition documents."""

    def __init__(self, manager: DefinitionManager):
        self.manager = manager
        self.vault = manager.vault

    @property
    def _parser(self):
        return self.manager.consolidated_parser

    def _require_folder(self) -> str:
        folder = self.manager.definition_folder
        if not folder:
            raise validation_error("Please set a definition folder first")
        return folder

    # ─────────────────────────────────────────────────────────────────────
    # Create
    # ─────────────────────────────────────────────────────────────────────

    async def add_definition(
        self,
        phrase: str,
        aliases: list[str] | str | None,
        content: str,
        target_file: str | None = None,
    ) -> str:
        """Append a definition block to a consolidated file.

        Args:
            phrase: Phrase to define.
            aliases: Alternate terms.
            content: Definition body.
            target_file: Consolidated file to append to. Defaults to the last
                selected file, then ``<folder>/definitions.md``.

        Returns:
            Path of the file the definition was added to.
        """
        phrase, content = validate_entry(phrase, content)
        aliases = clean_aliases(aliases)
        folder = self._require_folder()

        settings = self.manager.settings
        target = target_file or settings.last_selected_definition_file
        if not target or (not target_file and not self.vault.exists(target)):
            target = f"{folder}/{DEFAULT_DEFINITION_FILENAME}"

        if self.vault.exists(target):
            existing = await self.vault.read(target)
            if get_definition_type(existing) == "atomic":
                raise validation_error(
                    f"{target} is an atomic definition file; choose a consolidated file",
                    path=target,
                )
            await self.vault.write(target, existing + self._new_block(existing, phrase, aliases, content))
        elif target_file:
            raise navigation_error(f"Definition file not found: {target}", path=target)
        else:
            await self.vault.create(
                target,
                CONSOLIDATED_FILE_TEMPLATE + self._new_block("", phrase, aliases, content).lstrip("\n"),
            )

        settings.last_selected_definition_file = target
        await self.manager.refresh()
        log.info("Definition added: %s -> %s", phrase, target)
        return target

    def _new_block(self, existing: str, phrase: str, aliases: list[str], content: str) -> str:
        lead = "" if not existing or existing.endswith("\n") else "\n"
        return f"{lead}\n{format_block(phrase, aliases, content)}\n\n{self._parser.divider}\n"

    # ─────────────────────────────────────────────────────────────────────
    # Update
    # ─────────────────────────────────────────────────────────────────────

    async def update_definition(
        self,
        definition: Definition,
        phrase: str,
        aliases: list[str] | str | None,
        content: str,
    ) -> str:
        """Rewrite an existing definition in place.

        Returns:
            Path of the file now holding the definition (atomic files are
            renamed when the phrase changes).
        """
        phrase, content = validate_entry(phrase, content)
        aliases = clean_aliases(aliases)
        self._require_file(definition)

        if definition.source_type == "consolidated":
            path = await self._update_consolidated(definition, phrase, aliases, content)
        else:
            path = await self._update_atomic(definition, phrase, aliases, content)

        await self.manager.refresh()
        log.info("Definition updated: %s", phrase)
        return path

    async def _update_consolidated(
        self, definition: Definition, phrase: str, aliases: list[str], content: str
    ) -> str:
        lines = split_lines(await self.vault.read(definition.source_file))
        start = self._block_start(definition, lines)
        content_end, _ = self._parser.block_span(lines, start)

        block = format_block(phrase, aliases, content).split("\n")
        new_lines = lines[:start] + block + [""] + lines[content_end:]

        await self.vault.write(definition.source_file, "\n".join(new_lines))
        return definition.source_file

    async def _update_atomic(
        self, definition: Definition, phrase: str, aliases: list[str], content: str
    ) -> str:
        old_path = definition.source_file
        new_path = old_path
        if phrase != definition.phrase:
            if "/" in phrase or "\\" in phrase:
                raise validation_error("A phrase used as a file name cannot contain slashes")
            new_path = str(PurePosixPath(old_path).with_name(f"{phrase}{MARKDOWN_SUFFIX}"))
            if self.vault.exists(new_path):
                raise validation_error(f"{new_path} already exists", path=new_path)

        def set_aliases(metadata: dict[str, Any]) -> None:
            if aliases:
                metadata[ALIASES_KEY] = aliases
            else:
                metadata.pop(ALIASES_KEY, None)

        updated = update_frontmatter(await self.vault.read(old_path), set_aliases, body=content)

        # A failed rename must leave the old document untouched
        if new_path != old_path:
            await self.vault.rename(old_path, new_path)
        await self.vault.write(new_path, updated)
        return new_path

    # ─────────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────────

    async def delete_definition(self, definition: Definition) -> None:
        """Remove a definition block, or the whole file for atomic entries."""
        self._require_file(definition)

        if definition.source_type == "consolidated":
            lines = split_lines(await self.vault.read(definition.source_file))
            start = self._block_start(definition, lines)
            _, block_end = self._parser.block_span(lines, start)
            await self.vault.write(definition.source_file, "\n".join(lines[:start] + lines[block_end:]))
        else:
            await self.vault.delete(definition.source_file)

        await self.manager.refresh()
        log.info("Definition deleted: %s", definition.phrase)

    # ─────────────────────────────────────────────────────────────────────
    # Front-matter registration
    # ─────────────────────────────────────────────────────────────────────

    async def register_definition_file(self, path: str, def_type: DefinitionType) -> None:
        """Mark a document as an atomic or consolidated definition file."""
        if def_type not in ("atomic", "consolidated"):
            raise validation_error(f"Unknown definition type: {def_type}")
        if not self.vault.exists(path):
            raise navigation_error(f"File not found: {path}", path=path)

        def set_type(metadata: dict[str, Any]) -> None:
            metadata[DEF_TYPE_KEY] = def_type

        updated = update_frontmatter(await self.vault.read(path), set_type)
        await self.vault.write(path, updated)
        await self.manager.refresh()

    async def add_context(self, note_path: str, definition_file: str) -> None:
        """Add a definition file to a note's ``def-context``."""
        self._require_folder()
        if not self.vault.exists(note_path):
            raise navigation_error(f"File not found: {note_path}", path=note_path)

        updated = with_context_file(await self.vault.read(note_path), definition_file)
        await self.vault.write(note_path, updated)
        log.info("Added context %s to %s", definition_file, note_path)

    # ─────────────────────────────────────────────────────────────────────
    # Navigation
    # ─────────────────────────────────────────────────────────────────────

    async def locate(self, definition: Definition) -> DefinitionLocation:
        """Where to jump to for a definition."""
        self._require_file(definition)
        if definition.source_type != "consolidated" or not definition.line_number:
            return DefinitionLocation(path=definition.source_file, line=1)

        lines = split_lines(await self.vault.read(definition.source_file))
        if definition.line_number > len(lines):
            raise navigation_error(
                f"Line {definition.line_number} no longer exists in {definition.source_file}",
                path=definition.source_file,
                line=definition.line_number,
            )
        return DefinitionLocation(path=definition.source_file, line=definition.line_number)

    def _require_file(self, definition: Definition) -> None:
        if not self.vault.exists(definition.source_file):
            raise navigation_error(
                f"Definition file not found: {definition.source_file}",
                path=definition.source_file,
            )

    def _block_start(self, definition: Definition, lines: list[str]) -> int:
        if not definition.line_number:
            raise navigation_error("Line number not found", phrase=definition.phrase)

        start = definition.line_number - 1
        if (
            start >= len(lines)
            or not is_header(lines[start])
            or lines[start].strip()[len(HEADER_PREFIX) :].strip() != definition.phrase
        ):
            raise navigation_error(
                f'"{definition.phrase}" is no longer at line {definition.line_number}; refresh and retry',
                path=definition.source_file,
                line=definition.line_number,
            )
        return start
