"""Configuration management for notedefs.

This module contains the settings model and the constants shared by the
parsers, the indexing controller and the write path. Magic values are
documented here rather than scattered throughout the codebase.

Settings are persisted per vault in ``.notedefs.yaml``:
    definition_folder: Glossary
    divider_pattern: both
    debounce_seconds: 0.5
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, ValidationError

log = logging.getLogger(__name__)

DividerPattern = Literal["hyphens", "both"]
DefinitionType = Literal["atomic", "consolidated"]

# Front-matter keys
DEF_TYPE_KEY = "def-type"
DEF_CONTEXT_KEY = "def-context"
ALIASES_KEY = "aliases"

# Only markdown documents are indexed or searched for usages
MARKDOWN_SUFFIX = ".md"

# Default target when adding a definition without choosing a file
DEFAULT_DEFINITION_FILENAME = "definitions.md"
CONSOLIDATED_FILE_TEMPLATE = f"---\n{DEF_TYPE_KEY}: consolidated\n---\n\n"

# Trailing-edge debounce window for file-system change bursts
DEFAULT_DEBOUNCE_SECONDS = 0.5

SETTINGS_FILENAME = ".notedefs.yaml"


class Settings(BaseModel):
    """Plain-value settings handed to the core by the host."""

    definition_folder: str = ""
    divider_pattern: DividerPattern = "hyphens"
    debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    last_selected_definition_file: str = ""
    # Presentation preferences, carried through untouched
    enable_hover_preview: bool = True
    popover_delay: int = 300
    hide_popover_on_mouse_out: bool = False
    underline_color: str = ""


def normalize_folder(folder: str) -> str:
    """Normalize a vault-relative folder path ("./Glossary/" -> "Glossary")."""
    normalized = folder.replace("\\", "/").strip().strip("/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return "" if normalized == "." else normalized


def get_vault_root() -> Path:
    """Get the vault root from NOTEDEFS_VAULT, defaulting to the cwd."""
    root = os.environ.get("NOTEDEFS_VAULT")
    if root:
        return Path(root)
    return Path.cwd()


def load_settings(vault_root: Path) -> Settings:
    """Load settings for a vault.

    A missing, empty or malformed settings file yields defaults. The
    NOTEDEFS_FOLDER environment variable overrides the definition folder.

    Args:
        vault_root: Root directory of the vault.

    Returns:
        Settings for the vault.
    """
    settings_file = vault_root / SETTINGS_FILENAME
    data: dict = {}

    if settings_file.exists():
        try:
            loaded = yaml.safe_load(settings_file.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", settings_file, e)
            loaded = None
        if isinstance(loaded, dict):
            data = loaded

    folder_override = os.environ.get("NOTEDEFS_FOLDER")
    if folder_override:
        data["definition_folder"] = folder_override

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        log.warning("Invalid settings in %s, using defaults: %s", settings_file, e)
        settings = Settings()

    settings.definition_folder = normalize_folder(settings.definition_folder)
    return settings


def save_settings(vault_root: Path, settings: Settings) -> Path:
    """Persist settings to the vault's settings file."""
    settings_file = vault_root / SETTINGS_FILENAME
    settings_file.write_text(
        yaml.safe_dump(settings.model_dump(), default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return settings_file
