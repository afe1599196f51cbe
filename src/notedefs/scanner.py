"""Phrase scanning over document text.

Finds case-insensitive whole-word occurrences of known phrases. Longer
phrases are scanned first and claim their spans; a later match overlapping
any claimed span is dropped rather than retried at another offset.
"""

from __future__ import annotations

import re
from bisect import bisect_right
from collections.abc import Iterable
from functools import lru_cache
from typing import NamedTuple


class PhraseMatch(NamedTuple):
    """A phrase occurrence; ``phrase`` is the text as written in the document."""

    phrase: str
    from_: int
    to: int


@lru_cache(maxsize=4096)
def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Whole-word, case-insensitive pattern for a phrase."""
    return re.compile(rf"\b{re.escape(phrase)}\b", re.IGNORECASE)


def _ordered_phrases(phrases: Iterable[str]) -> list[str]:
    # One entry per case-insensitive phrase, longest first, stable otherwise
    unique: dict[str, str] = {}
    for phrase in phrases:
        if phrase and phrase.strip():
            unique.setdefault(phrase.lower(), phrase)
    return sorted(unique.values(), key=len, reverse=True)


def find_phrases(text: str, phrases: Iterable[str]) -> list[PhraseMatch]:
    """Find non-overlapping phrase occurrences in ``text``.

    Args:
        text: Flat document text.
        phrases: Phrases and aliases to look for, in any order.

    Returns:
        Matches sorted by ascending start offset.
    """
    starts: list[int] = []
    matches: list[PhraseMatch] = []

    for phrase in _ordered_phrases(phrases):
        for found in phrase_pattern(phrase).finditer(text):
            start, end = found.span()
            if start == end:
                continue

            # Accepted spans never overlap, so sorting by start sorts by end too
            pos = bisect_right(starts, start)
            if pos > 0 and matches[pos - 1].to > start:
                continue
            if pos < len(starts) and starts[pos] < end:
                continue

            starts.insert(pos, start)
            matches.insert(pos, PhraseMatch(found.group(0), start, end))

    return matches


def phrase_at(line: str, column: int, phrases: Iterable[str]) -> str | None:
    """Return the phrase occurrence covering ``column`` in ``line``.

    Both ends of a span count as inside, so a cursor sitting right after
    the last character still resolves. Longer phrases win.
    """
    for phrase in _ordered_phrases(phrases):
        for found in phrase_pattern(phrase).finditer(line):
            if found.start() <= column <= found.end():
                return found.group(0)
    return None
