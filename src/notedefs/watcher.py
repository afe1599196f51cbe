"""File watcher that keeps the definition index current.

Watchdog delivers events on its observer thread; they are marshalled onto
the asyncio loop that owns the DefinitionManager, which does its own
folder scoping and debouncing.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import MARKDOWN_SUFFIX
from .manager import DefinitionManager
from .vault import FileSystemVault

log = logging.getLogger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """Translate watchdog events into DefinitionManager calls."""

    def __init__(
        self,
        manager: DefinitionManager,
        vault: FileSystemVault,
        loop: asyncio.AbstractEventLoop,
    ):
        super().__init__()
        self._manager = manager
        self._vault = vault
        self._loop = loop

    def _relative(self, raw_path: str | bytes) -> str | None:
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode()
        if Path(raw_path).suffix.lower() != MARKDOWN_SUFFIX:
            return None
        return self._vault.relative(raw_path)

    def _dispatch(self, callback, *args) -> None:
        self._loop.call_soon_threadsafe(callback, *args)

    def on_created(self, event: FileSystemEvent) -> None:
        self._changed(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._changed(event)

    def _changed(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._relative(event.src_path)
        if path is not None:
            self._dispatch(self._manager.on_file_change, path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = self._relative(event.src_path)
        if path is not None:
            self._dispatch(self._manager.on_file_delete, path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        old_path = self._relative(event.src_path)
        dest = getattr(event, "dest_path", None)
        new_path = self._relative(dest) if dest else None

        if old_path and new_path:
            self._dispatch(self._manager.on_file_rename, new_path, old_path)
        elif old_path:
            # Renamed to something that is no longer markdown
            self._dispatch(self._manager.on_file_delete, old_path)
        elif new_path:
            self._dispatch(self._manager.on_file_change, new_path)


class FileWatcher:
    """Watch a vault for file changes and feed them to a DefinitionManager."""

    def __init__(
        self,
        manager: DefinitionManager,
        vault: FileSystemVault,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        """Initialize the file watcher.

        Args:
            manager: Controller to notify of changes.
            vault: Vault whose root is watched.
            loop: Loop the manager runs on. The running loop when None.
        """
        self._manager = manager
        self._vault = vault
        self._loop = loop
        self._observer: Observer | None = None
        self._running = False

    def start(self) -> None:
        """Start watching for file changes."""
        if self._running:
            return

        root = self._vault.root
        if not root.exists():
            log.warning("Vault root does not exist: %s", root)
            return

        loop = self._loop or asyncio.get_running_loop()
        handler = VaultEventHandler(self._manager, self._vault, loop)
        self._observer = Observer()
        self._observer.schedule(handler, str(root), recursive=True)
        self._observer.start()
        self._running = True
        log.info("Started watching: %s", root)

    def stop(self) -> None:
        """Stop watching for file changes."""
        if not self._running or self._observer is None:
            return

        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        self._running = False
        log.info("Stopped file watcher")

    @property
    def is_running(self) -> bool:
        return self._running

    def __enter__(self) -> "FileWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
