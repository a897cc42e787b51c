"""Query engine: candidate filtering, scoring, ranking and caching.

A SearchEngine is built once from the full conversation collection and then
answers queries from memory. Scoring of individual candidates runs on a
thread pool; everything that touches shared state (the two caches, the
ranking) happens before or after that parallel phase.

The engine follows a single-writer discipline: build_index() and search()
must not run concurrently on one instance, and concurrent searches need
external locking because both caches reorder entries on every read. Neither
cache is invalidated by build_index(); discard the engine when the
underlying conversations change.
"""

import copy
import logging
import re
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone

from cc_archive.cache import LRUCache
from cc_archive.config import (
    DEFAULT_MAX_WORKERS,
    LENGTH_BOOST,
    LENGTH_BOOST_MAX_MESSAGES,
    LENGTH_BOOST_MIN_MESSAGES,
    PATTERN_CACHE_SIZE,
    RECENCY_MAX_BOOST,
    RECENCY_WINDOW_DAYS,
    RESULT_CACHE_SIZE,
    SUMMARY_MATCH_BONUS,
)
from cc_archive.errors import ConfigurationError
from cc_archive.fuzzy import expand_term, variant_weight
from cc_archive.highlight import (
    contains_phrase,
    count_matches,
    literal_pattern,
    pattern_highlights,
    word_pattern,
)
from cc_archive.index import InvertedIndex, build_index
from cc_archive.models import Conversation, Highlight, SearchResult
from cc_archive.query import (
    And,
    BooleanNode,
    Group,
    Not,
    Or,
    SearchMode,
    SearchQuery,
    Term,
    as_utc,
)
from cc_archive.tokenizer import tokenize

logger = logging.getLogger(__name__)

Scorer = Callable[[Conversation], SearchResult | None]


def calculate_recency_boost(conversation: Conversation, now: datetime | None = None) -> float:
    """Multiplier from 1.5 (updated today) down to 1.0 (30 days or older)."""
    if conversation.last_updated is None:
        return 1.0
    now = now or datetime.now(tz=timezone.utc)
    age = now - as_utc(conversation.last_updated)
    days_old = max(0, int(age.total_seconds() // 86400))
    if days_old >= RECENCY_WINDOW_DAYS:
        return 1.0
    return 1.0 + (RECENCY_WINDOW_DAYS - days_old) / RECENCY_WINDOW_DAYS * RECENCY_MAX_BOOST


def calculate_length_boost(conversation: Conversation) -> float:
    """Slight preference for conversations of a reasonable length."""
    count = len(conversation.messages)
    if LENGTH_BOOST_MIN_MESSAGES <= count <= LENGTH_BOOST_MAX_MESSAGES:
        return LENGTH_BOOST
    return 1.0


def matches_filters(conversation: Conversation, query: SearchQuery) -> bool:
    """Apply every metadata filter of query to one conversation."""
    if query.date_range is not None:
        if conversation.started_at is None:
            return False
        if not query.date_range.contains(conversation.started_at):
            return False

    if query.project_filter is not None and query.project_filter not in conversation.project:
        return False

    if query.model_filter is not None and not any(
        m.model and query.model_filter in m.model for m in conversation.messages
    ):
        return False

    if query.tool_filter is not None and not any(
        query.tool_filter in tool.name for m in conversation.messages for tool in m.tool_uses
    ):
        return False

    if query.role_filter is not None and not any(
        m.role is query.role_filter for m in conversation.messages
    ):
        return False

    count = len(conversation.messages)
    if query.min_messages is not None and count < query.min_messages:
        return False
    if query.max_messages is not None and count > query.max_messages:
        return False

    if query.min_duration_minutes is not None or query.max_duration_minutes is not None:
        duration = conversation.duration()
        if duration is None:
            return False
        minutes = int(duration.total_seconds() // 60)
        if query.min_duration_minutes is not None and minutes < query.min_duration_minutes:
            return False
        if query.max_duration_minutes is not None and minutes > query.max_duration_minutes:
            return False

    return True


@dataclass
class _Evaluation:
    """Outcome of a boolean expression against one conversation."""

    matches: bool
    score: float = 0.0
    highlights: list[Highlight] = field(default_factory=list)
    match_count: int = 0
    matched_messages: list[int] = field(default_factory=list)


def _merge_indices(left: list[int], right: list[int]) -> list[int]:
    return list(dict.fromkeys(left + right))


def _collect_terms(node: BooleanNode) -> list[str]:
    if isinstance(node, Term):
        return [node.text]
    if isinstance(node, (And, Or)):
        return _collect_terms(node.left) + _collect_terms(node.right)
    return _collect_terms(node.inner)


class SearchEngine:
    """Full-text search over an in-memory conversation collection."""

    def __init__(
        self,
        max_workers: int = DEFAULT_MAX_WORKERS,
        pattern_cache_size: int = PATTERN_CACHE_SIZE,
        result_cache_size: int = RESULT_CACHE_SIZE,
    ):
        self.max_workers = max_workers
        self._index = InvertedIndex()
        self._conversations: list[Conversation] = []
        self.pattern_cache: LRUCache[str, re.Pattern] = LRUCache(
            pattern_cache_size, name="pattern cache"
        )
        self.result_cache: LRUCache[str, list[SearchResult]] = LRUCache(
            result_cache_size, name="result cache"
        )

    @property
    def index(self) -> InvertedIndex:
        return self._index

    @property
    def conversations(self) -> list[Conversation]:
        return self._conversations

    def build_index(self, conversations: Iterable[Conversation]) -> None:
        """Replace the index and the retained corpus.

        Raises:
            IndexBuildError: If a conversation cannot be indexed. The engine
                should then be discarded.
        """
        corpus = list(conversations)
        self._index = build_index(corpus)
        self._conversations = corpus
        logger.debug("Search index ready with %d conversations", len(corpus))

    def compile_pattern(self, pattern: str) -> re.Pattern:
        """Compile a regex through the pattern cache.

        Raises:
            ConfigurationError: If the pattern is not a valid regex. The
                pattern cache is left untouched.
        """
        cached = self.pattern_cache.get(pattern)
        if cached is not None:
            return cached
        try:
            compiled = re.compile(pattern)
        except re.error as e:
            raise ConfigurationError(f"Invalid regex: {e}") from e
        self.pattern_cache.put(pattern, compiled)
        return compiled

    def search(self, query: SearchQuery) -> list[SearchResult]:
        """Run a query and return results ranked best first.

        Identical queries are answered from the result cache, even if the
        corpus has changed since they were first run.

        Raises:
            ConfigurationError: If the query's regex is invalid. No results
                are produced and neither cache changes.
        """
        cache_key = query.cache_key()
        cached = self.result_cache.get(cache_key)
        if cached is not None:
            logger.debug("Result cache hit for %s", cache_key)
            return list(cached)

        # Prepared before any candidate is scanned so errors surface first
        scorer = self._prepare_scorer(query)

        candidates = [
            (position, conversation)
            for position, conversation in enumerate(self._conversations)
            if matches_filters(conversation, query)
        ]
        scored = self._score_candidates(candidates, scorer)
        results = self._rank(scored, query.mode)

        if query.max_results is not None:
            results = results[: query.max_results]

        self.result_cache.put(cache_key, results)
        logger.debug(
            "%s query matched %d of %d candidates",
            query.mode.value,
            len(results),
            len(candidates),
        )
        return list(results)

    def _score_candidates(
        self, candidates: list[tuple[int, Conversation]], scorer: Scorer
    ) -> list[tuple[int, SearchResult | None]]:
        """Score every candidate; the output order carries no meaning."""

        def score_one(item: tuple[int, Conversation]) -> tuple[int, SearchResult | None]:
            position, conversation = item
            return position, scorer(conversation)

        if self.max_workers <= 1 or len(candidates) < 2:
            return [score_one(item) for item in candidates]

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(score_one, candidates))

    @staticmethod
    def _rank(
        scored: list[tuple[int, SearchResult | None]], mode: SearchMode
    ) -> list[SearchResult]:
        """Sort best first; equal keys keep corpus order."""
        kept = [(position, result) for position, result in scored if result is not None]
        if mode is SearchMode.REGEX:
            kept.sort(key=lambda item: (-item[1].match_count, item[0]))
        else:
            kept.sort(key=lambda item: (-item[1].score, item[0]))
        return [result for _, result in kept]

    def _prepare_scorer(self, query: SearchQuery) -> Scorer:
        if query.mode is SearchMode.REGEX:
            if query.regex_pattern is None:
                return self._listing_scorer()
            return self._regex_scorer(self.compile_pattern(query.regex_pattern))

        if query.text is None:
            return self._listing_scorer()

        now = datetime.now(tz=timezone.utc)
        if query.mode is SearchMode.FUZZY:
            return self._fuzzy_scorer(query.text)
        if query.mode is SearchMode.ADVANCED and query.boolean_query is not None:
            return self._boolean_scorer(query.boolean_query, now)
        return self._text_scorer(query.text, now)

    def _tfidf(self, conversation_id: str, terms: list[str]) -> float:
        total = 0.0
        for term in terms:
            tf = self._index.term_frequency(term, conversation_id)
            total += tf * self._index.idf(term)
        return max(0.0, total)

    @staticmethod
    def _scan_messages(
        conversation: Conversation, pattern: re.Pattern
    ) -> tuple[list[Highlight], list[int]]:
        highlights: list[Highlight] = []
        matched_messages: list[int] = []
        for msg_idx, message in enumerate(conversation.messages):
            spans = pattern_highlights(message.content, pattern, msg_idx)
            if spans:
                highlights.extend(spans)
                matched_messages.append(msg_idx)
        return highlights, matched_messages

    def _listing_scorer(self) -> Scorer:
        def score(conversation: Conversation) -> SearchResult:
            return SearchResult(conversation=copy.copy(conversation), score=1.0)

        return score

    def _text_scorer(self, text: str, now: datetime) -> Scorer:
        terms = tokenize(text)
        phrase = literal_pattern(text)

        def score(conversation: Conversation) -> SearchResult | None:
            relevance = self._tfidf(conversation.id, terms)

            highlights: list[Highlight] = []
            matched_messages: list[int] = []
            match_count = 0
            if phrase is not None:
                highlights, matched_messages = self._scan_messages(conversation, phrase)
                match_count = len(highlights)
                # A summary counts once, however often the phrase recurs in it
                if conversation.summary and contains_phrase(conversation.summary, text):
                    match_count += 1

            relevance *= calculate_recency_boost(conversation, now)
            relevance *= calculate_length_boost(conversation)

            if relevance <= 0.0 and match_count == 0:
                return None
            return SearchResult(
                conversation=copy.copy(conversation),
                score=relevance,
                highlights=highlights,
                match_count=match_count,
                matched_messages=matched_messages,
            )

        return score

    def _regex_scorer(self, pattern: re.Pattern) -> Scorer:
        def score(conversation: Conversation) -> SearchResult | None:
            highlights, matched_messages = self._scan_messages(conversation, pattern)
            match_count = len(highlights)
            if conversation.summary:
                match_count += count_matches(conversation.summary, pattern)

            if match_count == 0:
                return None
            return SearchResult(
                conversation=copy.copy(conversation),
                score=float(match_count),
                highlights=highlights,
                match_count=match_count,
                matched_messages=matched_messages,
            )

        return score

    def _fuzzy_scorer(self, text: str) -> Scorer:
        vocabulary = self._index.vocabulary()
        # (variant, weight) pairs per query term
        expansions = [
            [
                (variant, variant_weight(term, distance))
                for variant, distance in expand_term(term, vocabulary)
            ]
            for term in tokenize(text)
        ]
        variants = sorted({variant for expansion in expansions for variant, _ in expansion})
        pattern = word_pattern(variants) if variants else None
        logger.debug("Fuzzy query %r expanded to %s", text, variants)

        def score(conversation: Conversation) -> SearchResult | None:
            if pattern is None:
                return None

            relevance = 0.0
            for expansion in expansions:
                for variant, weight in expansion:
                    relevance += (
                        self._index.term_frequency(variant, conversation.id)
                        * self._index.idf(variant)
                        * weight
                    )

            highlights, matched_messages = self._scan_messages(conversation, pattern)
            match_count = len(highlights)
            if conversation.summary:
                match_count += count_matches(conversation.summary, pattern)

            if relevance <= 0.0 and match_count == 0:
                return None
            return SearchResult(
                conversation=copy.copy(conversation),
                score=relevance,
                highlights=highlights,
                match_count=match_count,
                matched_messages=matched_messages,
            )

        return score

    def _boolean_scorer(self, node: BooleanNode, now: datetime) -> Scorer:
        patterns = {term: literal_pattern(term) for term in _collect_terms(node)}

        def evaluate(node: BooleanNode, conversation: Conversation) -> _Evaluation:
            if isinstance(node, Term):
                return evaluate_term(node.text, conversation)
            if isinstance(node, Group):
                return evaluate(node.inner, conversation)
            if isinstance(node, Not):
                inner = evaluate(node.inner, conversation)
                if inner.matches:
                    return _Evaluation(matches=False)
                return _Evaluation(matches=True, score=1.0, match_count=1)

            left = evaluate(node.left, conversation)
            right = evaluate(node.right, conversation)
            if isinstance(node, And):
                matches = left.matches and right.matches
                combined = left.score + right.score if matches else 0.0
            else:
                matches = left.matches or right.matches
                combined = left.score + right.score
            return _Evaluation(
                matches=matches,
                score=combined,
                highlights=left.highlights + right.highlights,
                match_count=left.match_count + right.match_count,
                matched_messages=_merge_indices(left.matched_messages, right.matched_messages),
            )

        def evaluate_term(term: str, conversation: Conversation) -> _Evaluation:
            pattern = patterns.get(term)
            if pattern is None:
                return _Evaluation(matches=False)

            highlights, matched_messages = self._scan_messages(conversation, pattern)
            match_count = len(highlights)
            relevance = 0.0
            if conversation.summary and contains_phrase(conversation.summary, term):
                match_count += 1
                relevance += SUMMARY_MATCH_BONUS
            if match_count > 0:
                relevance += self._tfidf(conversation.id, tokenize(term))
            return _Evaluation(
                matches=match_count > 0,
                score=relevance,
                highlights=highlights,
                match_count=match_count,
                matched_messages=matched_messages,
            )

        def score(conversation: Conversation) -> SearchResult | None:
            outcome = evaluate(node, conversation)
            if not outcome.matches:
                return None

            relevance = outcome.score
            relevance *= calculate_recency_boost(conversation, now)
            relevance *= calculate_length_boost(conversation)

            if relevance <= 0.0 and outcome.match_count == 0:
                return None
            return SearchResult(
                conversation=copy.copy(conversation),
                score=relevance,
                highlights=outcome.highlights,
                match_count=outcome.match_count,
                matched_messages=outcome.matched_messages,
            )

        return score
