"""Bounded edit-distance matching for fuzzy queries."""

from collections.abc import Iterable

from cc_archive.config import FUZZY_SHORT_TERM_LENGTH


def max_edits(term: str) -> int:
    """Edits tolerated for a query term of this length."""
    return 1 if len(term) <= FUZZY_SHORT_TERM_LENGTH else 2


def levenshtein(a: str, b: str, limit: int | None = None) -> int:
    """Levenshtein distance between a and b.

    With a limit, computation stops as soon as the distance is known to
    exceed it and limit + 1 is returned.
    """
    if len(a) < len(b):
        a, b = b, a
    if limit is not None and len(a) - len(b) > limit:
        return limit + 1
    if not b:
        return len(a)

    previous_row = list(range(len(b) + 1))
    for i, ca in enumerate(a):
        current_row = [i + 1]
        for j, cb in enumerate(b):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (ca != cb)
            current_row.append(min(insertions, deletions, substitutions))
        if limit is not None and min(current_row) > limit:
            return limit + 1
        previous_row = current_row

    return previous_row[-1]


def expand_term(term: str, vocabulary: Iterable[str]) -> list[tuple[str, int]]:
    """Vocabulary terms within max_edits(term) of term, with their distance.

    Sorted by distance, then alphabetically.
    """
    bound = max_edits(term)
    matches = []
    for candidate in vocabulary:
        if abs(len(candidate) - len(term)) > bound:
            continue
        distance = levenshtein(term, candidate, limit=bound)
        if distance <= bound:
            matches.append((candidate, distance))
    matches.sort(key=lambda m: (m[1], m[0]))
    return matches


def variant_weight(term: str, distance: int) -> float:
    """1.0 for an exact match, shrinking with each edit."""
    return 1.0 - distance / (max_edits(term) + 1)
