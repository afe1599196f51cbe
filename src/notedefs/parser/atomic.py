"""Parser for atomic definition documents (one phrase per file)."""

from __future__ import annotations

from pathlib import PurePosixPath

from ..frontmatter import extract_aliases, extract_frontmatter, parse_frontmatter
from ..models import Definition


class AtomicParser:
    """Turn an atomic document into a single Definition.

    The phrase is the file name without its extension, aliases come from
    the front-matter ``aliases`` key and the content is the body.
    """

    def parse(self, path: str, content: str) -> Definition:
        """Parse an atomic definition file.

        Args:
            path: Vault-relative path of the file.
            content: Raw file content.

        Returns:
            The Definition described by the file.
        """
        phrase = PurePosixPath(path).stem

        return Definition(
            phrase=phrase,
            aliases=extract_aliases(parse_frontmatter(content)),
            content=self.extract_content(content),
            source_file=path,
            source_type="atomic",
        )

    @staticmethod
    def extract_content(content: str) -> str:
        """Return the body after the front-matter, trimmed."""
        raw, body = extract_frontmatter(content)
        if raw is None:
            return content.strip()

        while body and not body[0].strip():
            body.pop(0)
        return "\n".join(body).strip()
