"""Error taxonomy for definition indexing and editing.

Every recoverable problem is a DefinitionError carrying one of four kinds:

- parse: malformed front-matter or an unrecognizable block. Recovered locally,
  the offending file or block is skipped.
- filesystem: a missing or unreadable folder or file. Surfaced as a notice,
  the operation yields an empty result.
- navigation: the target file or line no longer exists.
- validation: user-submitted data rejected before any write happens.
"""

from __future__ import annotations

import json
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    PARSE = "parse"
    FILESYSTEM = "filesystem"
    NAVIGATION = "navigation"
    VALIDATION = "validation"


_USER_PREFIXES = {
    ErrorKind.PARSE: "Failed to parse definition file",
    ErrorKind.FILESYSTEM: "File system error",
    ErrorKind.NAVIGATION: "Navigation error",
    ErrorKind.VALIDATION: "Validation error",
}


class DefinitionError(Exception):
    """Base error for all definition operations."""

    def __init__(self, kind: ErrorKind, message: str, context: dict[str, Any] | None = None):
        self.kind = ErrorKind(kind)
        self.message = message
        self.context = context or {}
        super().__init__(message)

    @property
    def user_message(self) -> str:
        """Message suitable for a user-facing notice."""
        return f"{_USER_PREFIXES[self.kind]}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.context:
            data["context"] = self.context
        return data

    def to_json(self) -> str:
        return json.dumps({"error": self.to_dict()}, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.kind.value!r}, {self.message!r})"


class ParseError(DefinitionError):
    """Raised when a definition document cannot be parsed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(ErrorKind.PARSE, f"{path}: {message}", {"path": path})


def filesystem_error(message: str, **context: Any) -> DefinitionError:
    return DefinitionError(ErrorKind.FILESYSTEM, message, context)


def navigation_error(message: str, **context: Any) -> DefinitionError:
    return DefinitionError(ErrorKind.NAVIGATION, message, context)


def validation_error(message: str, **context: Any) -> DefinitionError:
    return DefinitionError(ErrorKind.VALIDATION, message, context)
