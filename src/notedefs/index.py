"""In-memory definition index and lookup API.

Two coupled mappings:

- ``by_key``: lowercased phrase or alias -> Definitions in discovery order.
- ``by_file``: source path -> phrases defined in that file.

Every Definition listed under a file in ``by_file`` is reachable from
``by_key`` under its own phrase key. Removing a file leaves no entry from
that file under any key and prunes keys that become empty.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime

from .models import Definition, IndexStatus


def phrase_key(term: str) -> str:
    """Index key for a phrase or alias."""
    return term.lower()


class DefinitionIndex:
    """Reverse index from phrase/alias keys to Definitions."""

    def __init__(self) -> None:
        self.by_key: dict[str, list[Definition]] = {}
        self.by_file: dict[str, list[str]] = {}
        self.last_update: datetime | None = None

    def __len__(self) -> int:
        return sum(len(phrases) for phrases in self.by_file.values())

    # ─────────────────────────────────────────────────────────────────────
    # Mutation
    # ─────────────────────────────────────────────────────────────────────

    def clear(self) -> None:
        self.by_key.clear()
        self.by_file.clear()
        self.touch()

    def touch(self) -> None:
        self.last_update = datetime.now(UTC)

    def add(self, definition: Definition) -> None:
        """Index a definition under its phrase and each alias."""
        for key in definition.keys:
            self.by_key.setdefault(key, []).append(definition)
        self.by_file.setdefault(definition.source_file, []).append(definition.phrase)

    def add_all(self, definitions: Iterable[Definition]) -> None:
        for definition in definitions:
            self.add(definition)

    def remove_file(self, path: str) -> list[Definition]:
        """Evict every definition contributed by ``path``.

        Returns:
            The evicted definitions (empty when the file was not indexed).
        """
        phrases = self.by_file.pop(path, None)
        if phrases is None:
            return []

        # Each evicted entry sits under its phrase key, which leads to its alias keys
        removed: list[Definition] = []
        seen: set[int] = set()
        keys: dict[str, None] = {}
        for phrase in phrases:
            for definition in self.by_key.get(phrase_key(phrase), []):
                if definition.source_file == path and id(definition) not in seen:
                    seen.add(id(definition))
                    removed.append(definition)
                    keys.update(dict.fromkeys(definition.keys))

        for key in keys:
            remaining = [d for d in self.by_key.get(key, []) if d.source_file != path]
            if remaining:
                self.by_key[key] = remaining
            else:
                self.by_key.pop(key, None)

        return removed

    def replace_file(self, path: str, definitions: Sequence[Definition]) -> None:
        """Remove then reinsert a file's contributions."""
        self.remove_file(path)
        self.add_all(definitions)
        self.touch()

    def rebuild(self, definitions: Iterable[Definition]) -> None:
        """Clear and repopulate in one synchronous step."""
        self.by_key.clear()
        self.by_file.clear()
        self.add_all(definitions)
        self.touch()

    # ─────────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────────

    def get_definition(self, phrase: str, context_files: Sequence[str] | None = None) -> Definition | None:
        """First definition for a phrase or alias, honoring context."""
        matches = self.get_definitions(phrase, context_files)
        return matches[0] if matches else None

    def get_definitions(self, phrase: str, context_files: Sequence[str] | None = None) -> list[Definition]:
        """All definitions for a phrase or alias, honoring context."""
        definitions = self.by_key.get(phrase_key(phrase))
        if not definitions:
            return []

        if context_files:
            allowed = set(context_files)
            return [d for d in definitions if d.source_file in allowed]
        return list(definitions)

    def get_all_definitions(self, context_files: Sequence[str] | None = None) -> list[Definition]:
        """Every definition once, de-duplicated by (source file, phrase)."""
        allowed = set(context_files) if context_files else None
        seen: set[tuple[str, str]] = set()
        result: list[Definition] = []

        for definitions in self.by_key.values():
            for definition in definitions:
                marker = (definition.source_file, definition.phrase)
                if marker in seen:
                    continue
                seen.add(marker)
                if allowed is None or definition.source_file in allowed:
                    result.append(definition)

        return result

    def get_all_phrases(self, context_files: Sequence[str] | None = None) -> list[str]:
        """Every phrase and alias, for driving the phrase scanner."""
        phrases: dict[str, None] = {}
        for definition in self.get_all_definitions(context_files):
            phrases[definition.phrase] = None
            for alias in definition.aliases:
                phrases[alias] = None
        return list(phrases)

    def is_definition_file(self, path: str) -> bool:
        return path in self.by_file

    def files(self) -> list[str]:
        """Paths currently contributing definitions, for highlighting."""
        return list(self.by_file)

    def status(self, definition_folder: str = "") -> IndexStatus:
        return IndexStatus(
            definition_folder=definition_folder,
            definitions=len(self),
            keys=len(self.by_key),
            files=self.files(),
            last_update=self.last_update,
        )
