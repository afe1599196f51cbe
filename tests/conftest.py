"""Shared test fixtures for the notedefs test suite.

Design:
- vault_root: isolated vault in a temp directory with an empty Glossary/ folder
- scheduler: ManualScheduler so debounced reloads fire only when a test says so
- manager: DefinitionManager wired to both, definition folder = Glossary
"""

import inspect
import logging
import os
from pathlib import Path
from typing import Any, Callable, Generator

import pytest
from click.testing import CliRunner

from notedefs.config import Settings
from notedefs.manager import DefinitionManager
from notedefs.vault import FileSystemVault

WIDGET_FILE = """# Widget
*gadget*

A small mechanical device.

---

# Gizmo

Another small device.
"""


# ─────────────────────────────────────────────────────────────────────────────
# Scheduler fake
# ─────────────────────────────────────────────────────────────────────────────


class ManualTask:
    def __init__(self, delay: float, fn: Callable[[], Any]):
        self.delay = delay
        self.fn = fn
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that only runs callbacks when fire() is awaited."""

    def __init__(self) -> None:
        self.tasks: list[ManualTask] = []

    def schedule(self, delay: float, fn: Callable[[], Any]) -> ManualTask:
        task = ManualTask(delay, fn)
        self.tasks.append(task)
        return task

    @property
    def live(self) -> list[ManualTask]:
        return [t for t in self.tasks if not t.cancelled]

    async def fire(self) -> int:
        """Run every live task once, awaiting coroutine results."""
        live = self.live
        self.tasks.clear()
        for task in live:
            result = task.fn()
            if inspect.isawaitable(result):
                await result
        return len(live)


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    (root / "Glossary").mkdir(parents=True)
    (root / "notes").mkdir()
    return root


@pytest.fixture
def vault(vault_root: Path) -> FileSystemVault:
    return FileSystemVault(vault_root)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def notices() -> list[str]:
    return []


@pytest.fixture
def manager(vault: FileSystemVault, scheduler: ManualScheduler, notices: list[str]) -> DefinitionManager:
    return DefinitionManager(
        vault,
        Settings(definition_folder="Glossary"),
        scheduler=scheduler,
        notify=notices.append,
    )


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def isolated_env(vault_root: Path) -> Generator[Path, None, None]:
    """Point NOTEDEFS_VAULT at the temp vault for the duration of a test."""
    original = os.environ.get("NOTEDEFS_VAULT")
    os.environ["NOTEDEFS_VAULT"] = str(vault_root)
    os.environ.pop("NOTEDEFS_FOLDER", None)

    yield vault_root

    if original is not None:
        os.environ["NOTEDEFS_VAULT"] = original
    else:
        os.environ.pop("NOTEDEFS_VAULT", None)


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def write_file(vault_root: Path, path: str, content: str) -> Path:
    """Helper to create a file inside the vault.

    Usage in tests:
        from conftest import write_file
        write_file(vault_root, "Glossary/terms.md", "# Term\\n\\nMeaning")
    """
    file_path = vault_root / path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content, encoding="utf-8")
    return file_path


def atomic_file(aliases: list[str] | None = None, body: str = "Definition body.") -> str:
    lines = ["---", "def-type: atomic"]
    if aliases:
        lines.append("aliases:")
        lines.extend(f"  - {alias}" for alias in aliases)
    lines.append("---")
    lines.append("")
    lines.append(body)
    return "\n".join(lines) + "\n"


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Drop handlers bound to a previous CliRunner's streams."""
    yield
    logger = logging.getLogger("notedefs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
