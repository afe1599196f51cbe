"""Indexing controller: keeps the definition index in step with the vault.

Full loads walk the definition folder, classify each markdown file by its
``def-type`` front-matter (consolidated unless it says atomic), parse it and
rebuild the index in one synchronous step. File-system events scoped to the
definition folder update the index incrementally:

- create/modify: queued and flushed through a single trailing-edge debounce,
  so a burst of writes causes one reload per touched file.
- delete: evicted immediately.
- rename: the old path is evicted immediately, the new path is reloaded
  through the debounce when it is still inside the folder.

Reloads are serialized with a lock, so a rebuild and a per-file reload never
interleave their writes into the index.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .config import DividerPattern, Settings, normalize_folder
from .context import read_context_files
from .errors import DefinitionError, ParseError, filesystem_error
from .frontmatter import get_definition_type, split_lines
from .index import DefinitionIndex
from .models import Definition, LoadResult, Usage
from .parser import AtomicParser, ConsolidatedParser
from .scanner import PhraseMatch, find_phrases, phrase_pattern
from .scheduler import Debouncer, LoopScheduler, Scheduler
from .vault import Vault, is_within

log = logging.getLogger(__name__)

Listener = Callable[[], None]


def _log_notice(message: str) -> None:
    log.warning(message)


class DefinitionManager:
    """Owns the definition index and the parsers that feed it."""

    def __init__(
        self,
        vault: Vault,
        settings: Settings | None = None,
        *,
        index: DefinitionIndex | None = None,
        scheduler: Scheduler | None = None,
        notify: Callable[[str], None] | None = None,
    ):
        """Initialize the controller.

        Args:
            vault: File-system collaborator for reads and listings.
            settings: Folder and parsing settings. Defaults when None.
            index: Index to populate. A fresh one when None.
            scheduler: Deferred-call scheduler for debounced reloads.
            notify: Receives user-facing notices. Logs them when None.
        """
        self.vault = vault
        self.settings = settings or Settings()
        self.settings.definition_folder = normalize_folder(self.settings.definition_folder)
        self.index = index if index is not None else DefinitionIndex()
        self.atomic_parser = AtomicParser()
        self.consolidated_parser = ConsolidatedParser(self.settings.divider_pattern)
        self._debouncer = Debouncer(scheduler or LoopScheduler(), self.settings.debounce_seconds)
        self._pending: dict[str, None] = {}
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []
        self._notify = notify or _log_notice

    @property
    def definition_folder(self) -> str:
        return self.settings.definition_folder

    def is_in_definition_folder(self, path: str) -> bool:
        return is_within(path, self.definition_folder)

    # ─────────────────────────────────────────────────────────────────────
    # Change notification
    # ─────────────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` whenever the index changes.

        Returns:
            A function that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                log.exception("Index listener %r failed", listener)

    def report(self, error: DefinitionError) -> None:
        """Surface an error to the user once."""
        log.warning("%s: %s", error.kind.value, error.message)
        self._notify(error.user_message)

    # ─────────────────────────────────────────────────────────────────────
    # Loading
    # ─────────────────────────────────────────────────────────────────────

    async def load_definitions(self) -> LoadResult:
        """Rebuild the index from the definition folder.

        The index always ends up either fully rebuilt or empty: a missing
        folder is reported and leaves nothing indexed.
        """
        async with self._lock:
            result = await self._load_all()
        self._emit()
        return result

    async def refresh(self) -> LoadResult:
        self._debouncer.cancel()
        self._pending.clear()
        return await self.load_definitions()

    async def _load_all(self) -> LoadResult:
        folder = self.definition_folder
        if not folder:
            self.index.clear()
            return LoadResult()

        try:
            if not self.vault.exists(folder):
                raise filesystem_error(f'Definition folder "{folder}" not found', folder=folder)
            if not self.vault.is_dir(folder):
                raise filesystem_error(f'"{folder}" is not a folder', folder=folder)
            paths = self.vault.list_markdown(folder)
        except DefinitionError as e:
            self.index.clear()
            self.report(e)
            return LoadResult(error=e.message)

        result = LoadResult()
        definitions: list[Definition] = []
        for path in paths:
            try:
                parsed = await self._parse_file(path)
            except DefinitionError as e:
                log.warning("Skipping %s: %s", path, e.message)
                result.skipped.append(path)
                continue
            result.files_indexed += 1
            definitions.extend(parsed)

        self.index.rebuild(definitions)
        result.definitions = len(definitions)
        log.info(
            "Indexed %d definitions from %d files in %s",
            result.definitions,
            result.files_indexed,
            folder,
        )
        return result

    async def _parse_file(self, path: str) -> list[Definition]:
        content = await self.vault.read(path)
        try:
            if get_definition_type(content) == "atomic":
                return [self.atomic_parser.parse(path, content)]
            return self.consolidated_parser.parse(content, path)
        except ValueError as e:
            raise ParseError(path, str(e)) from e

    async def reload_file(self, path: str) -> None:
        """Remove then reinsert one file's definitions."""
        async with self._lock:
            if not self.is_in_definition_folder(path) or not self.vault.exists(path):
                self.index.remove_file(path)
                self.index.touch()
            else:
                try:
                    parsed = await self._parse_file(path)
                except DefinitionError as e:
                    log.warning("Dropping definitions from %s: %s", path, e.message)
                    parsed = []
                self.index.replace_file(path, parsed)
                log.debug("Reloaded %d definitions from %s", len(parsed), path)
        self._emit()

    async def set_definition_folder(self, folder: str) -> LoadResult:
        self.settings.definition_folder = normalize_folder(folder)
        return await self.refresh()

    async def set_divider_pattern(self, pattern: DividerPattern) -> LoadResult:
        self.settings.divider_pattern = pattern
        self.consolidated_parser.divider_pattern = pattern
        return await self.refresh()

    # ─────────────────────────────────────────────────────────────────────
    # File-system events
    # ─────────────────────────────────────────────────────────────────────

    def on_file_change(self, path: str) -> None:
        """Handle a create or modify event (debounced)."""
        if not self.is_in_definition_folder(path):
            return
        self._pending[path] = None
        self._debouncer.call(self._flush_pending)

    def on_file_delete(self, path: str) -> None:
        if not self.is_in_definition_folder(path):
            return
        self.index.remove_file(path)
        self.index.touch()
        if self._lock.locked():
            # A load in flight may have read the file before it went away
            self._pending[path] = None
            self._debouncer.call(self._flush_pending)
        self._emit()

    def on_file_rename(self, path: str, old_path: str) -> None:
        if not self.is_in_definition_folder(old_path) and not self.is_in_definition_folder(path):
            return
        self.index.remove_file(old_path)
        self.index.touch()
        self._pending.pop(old_path, None)
        if self._lock.locked():
            # The load in flight may have read old_path before the move
            self._pending[old_path] = None
            self._debouncer.call(self._flush_pending)
        self._emit()
        self.on_file_change(path)

    @property
    def has_pending_reload(self) -> bool:
        return self._debouncer.pending

    async def _flush_pending(self) -> None:
        paths = list(self._pending)
        self._pending.clear()
        for path in paths:
            await self.reload_file(path)

    # ─────────────────────────────────────────────────────────────────────
    # Queries that need the vault
    # ─────────────────────────────────────────────────────────────────────

    def get_available_definition_files(self) -> list[str]:
        folder = self.definition_folder
        try:
            if not folder or not self.vault.is_dir(folder):
                return []
            return self.vault.list_markdown(folder)
        except DefinitionError as e:
            log.debug("No definition files: %s", e.message)
            return []

    async def find_usages(self, phrase: str) -> list[Usage]:
        """Lines mentioning ``phrase`` in documents that are not definition files."""
        if not phrase.strip():
            return []

        pattern = phrase_pattern(phrase)
        usages: list[Usage] = []

        for path in self.vault.list_markdown():
            if self.index.is_definition_file(path) or self.is_in_definition_folder(path):
                continue
            try:
                content = await self.vault.read(path)
            except DefinitionError as e:
                log.debug("Skipping %s in usage search: %s", path, e.message)
                continue

            for number, line in enumerate(split_lines(content), start=1):
                if pattern.search(line):
                    usages.append(Usage(file=path, line=number, text=line.strip()))

        return usages

    async def context_for(self, note_path: str) -> list[str] | None:
        return await read_context_files(self.vault, note_path)

    async def scan_note(
        self, note_path: str, text: str | None = None
    ) -> list[tuple[PhraseMatch, Definition | None]]:
        """Find defined phrases in a note and resolve each one.

        Args:
            note_path: Vault-relative path of the note (drives its context).
            text: Text to scan. The note's current content when None.

        Returns:
            (match, definition) pairs in document order.
        """
        context_files = await self.context_for(note_path)
        if text is None:
            text = await self.vault.read(note_path)

        phrases = self.index.get_all_phrases(context_files)
        if not phrases:
            return []
        return [
            (match, self.index.get_definition(match.phrase, context_files))
            for match in find_phrases(text, phrases)
        ]
