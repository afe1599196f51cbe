"""Per-note definition context.

A note can narrow which definition files apply to it with a ``def-context``
front-matter key:

    ---
    def-context:
      - Glossary/networking.md
      - Glossary/hardware.md
    ---

A single string is accepted too. Without the key every definition is visible.
"""

from __future__ import annotations

import logging
from typing import Any

from .config import DEF_CONTEXT_KEY
from .errors import DefinitionError
from .frontmatter import read_metadata, update_frontmatter
from .vault import Vault

log = logging.getLogger(__name__)


def get_context_files(metadata: dict[str, Any]) -> list[str] | None:
    """Extract context files from a note's parsed front-matter.

    Returns:
        The listed definition file paths, or None when the note does not
        restrict its context.
    """
    value = metadata.get(DEF_CONTEXT_KEY)

    if isinstance(value, str):
        value = value.strip()
        return [value] if value else None

    if isinstance(value, list):
        files = [str(item).strip() for item in value if item is not None and str(item).strip()]
        return files or None

    return None


async def read_context_files(vault: Vault, note_path: str) -> list[str] | None:
    """Context files declared by the note at ``note_path``.

    A note that cannot be read has no context restriction.
    """
    try:
        content = await vault.read(note_path)
    except DefinitionError as e:
        log.debug("No context for %s: %s", note_path, e.message)
        return None
    return get_context_files(read_metadata(content))


def with_context_file(content: str, definition_file: str) -> str:
    """Return note content with ``definition_file`` added to its context."""

    def add(metadata: dict[str, Any]) -> None:
        current = metadata.get(DEF_CONTEXT_KEY)
        if not current:
            current = []
        elif not isinstance(current, list):
            current = [current]
        if definition_file not in current:
            current.append(definition_file)
        metadata[DEF_CONTEXT_KEY] = current

    return update_frontmatter(content, add)
