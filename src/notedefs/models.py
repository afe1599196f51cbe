"""Pydantic models for the definition index."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator


class Definition(BaseModel):
    """A resolved definition entry."""

    phrase: str  # Display form of the defined word or phrase
    aliases: list[str] = Field(default_factory=list)  # Alternate terms, in file order
    content: str = ""  # Markdown body
    source_file: str  # Vault-relative path of the owning document
    source_type: Literal["atomic", "consolidated"]
    line_number: int | None = None  # 1-indexed header line, consolidated entries only

    @field_validator("phrase")
    @classmethod
    def _phrase_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("phrase must not be empty")
        return value

    @property
    def keys(self) -> list[str]:
        """Lowercased phrase and alias keys, phrase first, without repeats."""
        keys: list[str] = []
        for term in [self.phrase, *self.aliases]:
            key = term.lower()
            if key and key not in keys:
                keys.append(key)
        return keys


class Usage(BaseModel):
    """A line in a non-definition document that mentions a phrase."""

    file: str
    line: int  # 1-indexed
    text: str  # Trimmed line text


class DefinitionLocation(BaseModel):
    """Where a definition lives on disk."""

    path: str
    line: int  # 1-indexed


class IndexStatus(BaseModel):
    """Status of the definition index."""

    definition_folder: str
    definitions: int
    keys: int
    files: list[str] = Field(default_factory=list)
    last_update: datetime | None = None


class LoadResult(BaseModel):
    """Outcome of a full index rebuild."""

    files_indexed: int = 0
    definitions: int = 0
    skipped: list[str] = Field(default_factory=list)  # Files that failed to read or parse
    error: str | None = None  # Set when the folder itself could not be indexed
