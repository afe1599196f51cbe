"""File-system collaborator used by the indexing controller and write path.

Paths handed to and returned from a vault are vault-relative POSIX strings
("Glossary/terms.md"), which is also what Definition.source_file holds.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Protocol

from .config import MARKDOWN_SUFFIX
from .errors import filesystem_error

log = logging.getLogger(__name__)


class Vault(Protocol):
    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    async def read(self, path: str) -> str: ...

    async def write(self, path: str, content: str) -> None: ...

    async def create(self, path: str, content: str) -> None: ...

    async def delete(self, path: str) -> None: ...

    async def rename(self, old_path: str, new_path: str) -> None: ...

    def list_markdown(self, folder: str = "") -> list[str]: ...


def is_within(path: str, folder: str) -> bool:
    """True when ``path`` is ``folder`` itself or lives underneath it."""
    if not folder:
        return False
    return path == folder or path.startswith(folder.rstrip("/") + "/")


class FileSystemVault:
    """Vault backed by a directory on local disk."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"FileSystemVault({str(self.root)!r})"

    def resolve(self, path: str) -> Path:
        """Absolute path for a vault-relative path, refusing escapes."""
        resolved = (self.root / path).resolve()
        root = self.root.resolve()
        if resolved != root and root not in resolved.parents:
            raise filesystem_error(f"Path escapes the vault: {path}", path=path)
        return resolved

    def relative(self, absolute: Path | str) -> str | None:
        """Vault-relative POSIX path, or None when outside the vault."""
        try:
            rel = Path(absolute).resolve().relative_to(self.root.resolve())
        except ValueError:
            return None
        return PurePosixPath(*rel.parts).as_posix()

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self.resolve(path).is_dir()

    async def read(self, path: str) -> str:
        try:
            return self.resolve(path).read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise filesystem_error(f"File not found: {path}", path=path) from e
        except (OSError, UnicodeDecodeError) as e:
            raise filesystem_error(f"Cannot read {path}: {e}", path=path) from e

    async def write(self, path: str, content: str) -> None:
        target = self.resolve(path)
        if not target.is_file():
            raise filesystem_error(f"File not found: {path}", path=path)
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise filesystem_error(f"Cannot write {path}: {e}", path=path) from e

    async def create(self, path: str, content: str) -> None:
        target = self.resolve(path)
        if target.exists():
            raise filesystem_error(f"File already exists: {path}", path=path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise filesystem_error(f"Cannot create {path}: {e}", path=path) from e

    async def delete(self, path: str) -> None:
        try:
            self.resolve(path).unlink()
        except FileNotFoundError as e:
            raise filesystem_error(f"File not found: {path}", path=path) from e
        except OSError as e:
            raise filesystem_error(f"Cannot delete {path}: {e}", path=path) from e

    async def rename(self, old_path: str, new_path: str) -> None:
        source = self.resolve(old_path)
        target = self.resolve(new_path)
        if target.exists():
            raise filesystem_error(f"File already exists: {new_path}", path=new_path)
        try:
            source.rename(target)
        except OSError as e:
            raise filesystem_error(f"Cannot rename {old_path}: {e}", path=old_path) from e

    def list_markdown(self, folder: str = "") -> list[str]:
        """Markdown files under ``folder`` (recursive), sorted by path.

        Hidden files and directories (dot-prefixed) are skipped.
        """
        base = self.resolve(folder) if folder else self.root.resolve()
        if not base.is_dir():
            return []

        paths = []
        for md_file in base.rglob(f"*{MARKDOWN_SUFFIX}"):
            rel = md_file.relative_to(self.root.resolve())
            if any(part.startswith(".") for part in rel.parts):
                continue
            if md_file.is_file():
                paths.append(PurePosixPath(*rel.parts).as_posix())
        return sorted(paths)
