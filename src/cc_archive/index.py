"""In-memory inverted index over parsed conversations."""

import logging
import math
from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from cc_archive.config import UNSEEN_TERM_IDF
from cc_archive.errors import IndexBuildError
from cc_archive.models import Conversation, Posting
from cc_archive.tokenizer import tokenize

logger = logging.getLogger(__name__)


@dataclass
class InvertedIndex:
    """Term -> postings, plus the statistics needed for TF-IDF scoring.

    Built once by build_index() and never modified afterwards.
    """

    postings: dict[str, list[Posting]] = field(default_factory=dict)
    document_frequencies: dict[str, int] = field(default_factory=dict)
    total_conversations: int = 0
    # term -> conversation id -> occurrences across all units
    term_counts: dict[str, dict[str, int]] = field(default_factory=dict)
    # conversation id -> number of indexed tokens
    conversation_lengths: dict[str, int] = field(default_factory=dict)

    def __contains__(self, term: str) -> bool:
        return term in self.postings

    def document_frequency(self, term: str) -> int:
        return self.document_frequencies.get(term, 0)

    def idf(self, term: str) -> float:
        """Inverse document frequency, ln(N / df), never negative.

        Terms that never occur in the corpus get UNSEEN_TERM_IDF.
        """
        doc_freq = self.document_frequencies.get(term)
        if not doc_freq:
            return UNSEEN_TERM_IDF
        if self.total_conversations <= 0:
            return 0.0
        return max(0.0, math.log(self.total_conversations / doc_freq))

    def term_frequency(self, term: str, conversation_id: str) -> float:
        """Occurrences of term in a conversation divided by its token count."""
        total = self.conversation_lengths.get(conversation_id, 0)
        if total == 0:
            return 0.0
        return self.term_counts.get(term, {}).get(conversation_id, 0) / total

    def vocabulary(self) -> list[str]:
        return list(self.postings)

    def stats(self) -> dict[str, int]:
        return {
            "conversations": self.total_conversations,
            "terms": len(self.postings),
            "postings": sum(len(p) for p in self.postings.values()),
            "tokens": sum(self.conversation_lengths.values()),
        }


def _text_units(conversation: Conversation) -> Iterable[tuple[int, str]]:
    """Yield (unit index, text) pairs; the summary shares index 0."""
    if conversation.summary:
        yield 0, conversation.summary
    for msg_idx, message in enumerate(conversation.messages):
        yield msg_idx, message.content


def build_index(conversations: list[Conversation]) -> InvertedIndex:
    """Index every conversation's summary and messages.

    Document frequency counts conversations, not text units: a term seen in
    several messages of one conversation adds one to its document frequency.

    Raises:
        IndexBuildError: If two conversations share an id, or a conversation
            is malformed.
    """
    postings: dict[str, list[Posting]] = defaultdict(list)
    document_frequencies: Counter[str] = Counter()
    term_counts: dict[str, dict[str, int]] = defaultdict(dict)
    conversation_lengths: dict[str, int] = defaultdict(int)
    indexed_ids: set[str] = set()

    try:
        for conversation in conversations:
            # Per-conversation statistics are keyed by id
            if conversation.id in indexed_ids:
                raise IndexBuildError(f"Duplicate conversation id: {conversation.id}")
            indexed_ids.add(conversation.id)

            seen_terms: set[str] = set()
            for unit_index, text in _text_units(conversation):
                frequencies = Counter(tokenize(text))
                conversation_lengths[conversation.id] += sum(frequencies.values())

                for term, frequency in frequencies.items():
                    postings[term].append(
                        Posting(
                            conversation_id=conversation.id,
                            message_index=unit_index,
                            term_frequency=frequency,
                        )
                    )
                    counts = term_counts[term]
                    counts[conversation.id] = counts.get(conversation.id, 0) + frequency
                seen_terms.update(frequencies)

            # Once per conversation, however many units contain the term
            document_frequencies.update(seen_terms)
    except (AttributeError, TypeError) as e:
        raise IndexBuildError(f"Failed to index conversations: {e}") from e

    index = InvertedIndex(
        postings=dict(postings),
        document_frequencies=dict(document_frequencies),
        total_conversations=len(conversations),
        term_counts=dict(term_counts),
        conversation_lengths=dict(conversation_lengths),
    )
    logger.debug(
        "Indexed %d conversations: %d terms, %d postings",
        index.total_conversations,
        len(index.postings),
        sum(len(p) for p in index.postings.values()),
    )
    return index
