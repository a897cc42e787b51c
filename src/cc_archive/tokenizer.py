"""Text normalization shared by indexing and querying."""

from cc_archive.config import MIN_TERM_LENGTH


def normalize_token(token: str) -> str:
    """Drop every non-alphanumeric character from a token."""
    return "".join(c for c in token if c.isalnum())


def tokenize(text: str) -> list[str]:
    """Split text into lower-case index terms.

    Tokens are whitespace separated, stripped of punctuation, and dropped when
    shorter than MIN_TERM_LENGTH characters.
    """
    terms = []
    for raw in text.lower().split():
        term = normalize_token(raw)
        if len(term) >= MIN_TERM_LENGTH:
            terms.append(term)
    return terms
