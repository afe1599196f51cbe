"""Front-matter helpers for definition documents.

Definition documents use a strict delimiter rule: the first line must be
exactly ``---`` (ignoring surrounding whitespace) and the block ends at the
next line that is exactly ``---``. Anything else means "no front-matter".
Reading is tolerant, a YAML error simply yields an empty mapping.

Rewriting front-matter (registering a file type, adding a context, updating
atomic aliases) goes through python-frontmatter so the rest of the document
is preserved.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import frontmatter
import yaml

from .config import ALIASES_KEY, DEF_TYPE_KEY, DefinitionType
from .errors import ParseError

log = logging.getLogger(__name__)

DELIMITER = "---"


def split_lines(content: str) -> list[str]:
    """Split document text into lines, treating CRLF like LF."""
    return content.replace("\r\n", "\n").split("\n")


def find_frontmatter_end(lines: list[str]) -> int | None:
    """Return the index of the closing delimiter line, or None.

    Args:
        lines: Document lines as produced by split_lines().

    Returns:
        Index of the closing ``---`` line when the document opens with a
        well-formed block, None otherwise.
    """
    if len(lines) < 2 or lines[0].strip() != DELIMITER:
        return None

    for i in range(1, len(lines)):
        if lines[i].strip() == DELIMITER:
            return i
    return None


def extract_frontmatter(content: str) -> tuple[str | None, list[str]]:
    """Split a document into (front-matter text, body lines).

    When no well-formed block is found the front-matter is None and the
    body is every line of the document.
    """
    lines = split_lines(content)
    end = find_frontmatter_end(lines)
    if end is None:
        return None, lines
    return "\n".join(lines[1:end]), lines[end + 1 :]


def parse_frontmatter(content: str) -> dict[str, Any]:
    """Parse the leading front-matter block into a mapping.

    Never raises: missing blocks, YAML errors and non-mapping documents all
    yield an empty dict.
    """
    raw, _ = extract_frontmatter(content)
    if raw is None:
        return {}

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        log.debug("Ignoring malformed front-matter: %s", e)
        return {}

    return data if isinstance(data, dict) else {}


def get_definition_type(content: str) -> DefinitionType:
    """Classify a definition document by its ``def-type`` key.

    Absent or unrecognized values default to consolidated.
    """
    def_type = parse_frontmatter(content).get(DEF_TYPE_KEY)
    if def_type == "atomic":
        return "atomic"
    return "consolidated"


def extract_aliases(metadata: dict[str, Any]) -> list[str]:
    """Read the ``aliases`` key of parsed front-matter.

    A sequence yields its stringified, trimmed, non-empty elements; a single
    string yields a one-element list; any other shape yields no aliases.
    """
    aliases = metadata.get(ALIASES_KEY)

    if isinstance(aliases, list):
        result = []
        for alias in aliases:
            if alias is None:
                continue
            text = str(alias).strip()
            if text:
                result.append(text)
        return result

    if isinstance(aliases, str):
        text = aliases.strip()
        return [text] if text else []

    return []


def read_metadata(content: str) -> dict[str, Any]:
    """Read a document's metadata the way a host editor would.

    Used for notes outside the definition folder (``def-context`` lookup).
    """
    try:
        post = frontmatter.loads(content)
    except yaml.YAMLError as e:
        log.debug("Ignoring malformed note front-matter: %s", e)
        return {}
    return dict(post.metadata)


def update_frontmatter(
    content: str,
    mutate: Callable[[dict[str, Any]], None],
    body: str | None = None,
) -> str:
    """Return the document with its front-matter rewritten by ``mutate``.

    Args:
        content: Full document text.
        mutate: Called with the metadata dict; edits it in place.
        body: Replacement body. The existing body is kept when None.

    Returns:
        New document text. The front-matter block is dropped entirely when
        the mutated metadata is empty.

    Raises:
        ParseError: If the existing front-matter cannot be parsed. The
            caller must not write anything in that case.
    """
    try:
        post = frontmatter.loads(content)
    except yaml.YAMLError as e:
        raise ParseError("<front-matter>", f"cannot rewrite malformed front-matter: {e}") from e

    mutate(post.metadata)
    if body is not None:
        post.content = body.strip()

    if not post.metadata:
        return post.content + "\n"
    return frontmatter.dumps(post) + "\n"
