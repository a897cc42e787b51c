"""Highlight spans for matched text."""

import re

from cc_archive.models import Highlight


def literal_pattern(phrase: str) -> re.Pattern | None:
    """Case-insensitive pattern for phrase taken literally; None if blank.

    Used with pattern_highlights() it yields every non-overlapping occurrence,
    with offsets into the original text and the original-case substring.
    """
    if not phrase.strip():
        return None
    return re.compile(re.escape(phrase), re.IGNORECASE)


def pattern_highlights(text: str, pattern: re.Pattern, message_index: int) -> list[Highlight]:
    """One highlight per match of pattern, using the match's own offsets.

    Offsets are str (code point) indices, not byte offsets.
    """
    return [
        Highlight(
            message_index=message_index,
            start=m.start(),
            end=m.end(),
            text=m.group(),
        )
        for m in pattern.finditer(text)
    ]


def count_matches(text: str, pattern: re.Pattern) -> int:
    return sum(1 for _ in pattern.finditer(text))


def contains_phrase(text: str, phrase: str) -> bool:
    return bool(phrase) and phrase.lower() in text.lower()


def word_pattern(words: list[str]) -> re.Pattern:
    """Case-insensitive pattern matching any of the words as a whole word."""
    alternatives = "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)
