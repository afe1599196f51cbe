"""Parsers for the two definition document layouts."""

from .atomic import AtomicParser
from .consolidated import ConsolidatedParser, format_block

__all__ = [
    "AtomicParser",
    "ConsolidatedParser",
    "format_block",
]
