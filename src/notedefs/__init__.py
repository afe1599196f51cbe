"""notedefs: definition index and phrase lookup for markdown knowledge bases."""

__version__ = "0.3.0"

from .config import Settings
from .errors import DefinitionError, ErrorKind
from .index import DefinitionIndex
from .manager import DefinitionManager
from .models import Definition
from .scanner import PhraseMatch, find_phrases
from .vault import FileSystemVault

__all__ = [
    "Definition",
    "DefinitionError",
    "DefinitionIndex",
    "DefinitionManager",
    "ErrorKind",
    "FileSystemVault",
    "PhraseMatch",
    "Settings",
    "find_phrases",
]
