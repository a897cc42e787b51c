"""Search queries: modes, filters, and boolean expressions."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum

from cc_archive.errors import ConfigurationError
from cc_archive.models import Role


class SearchMode(Enum):
    """How the query text (or pattern) is matched against conversations."""

    TEXT = "text"
    REGEX = "regex"
    FUZZY = "fuzzy"
    ADVANCED = "advanced"


def as_utc(ts: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of conversation start times; either end may be open."""

    start: datetime | None = None
    end: datetime | None = None

    def contains(self, ts: datetime) -> bool:
        ts = as_utc(ts)
        if self.start is not None and ts < as_utc(self.start):
            return False
        if self.end is not None and ts > as_utc(self.end):
            return False
        return True

    def serialize(self) -> str:
        start = self.start.isoformat() if self.start else "*"
        end = self.end.isoformat() if self.end else "*"
        return f"{start}..{end}"

    @classmethod
    def last_days(cls, days: int) -> DateRange:
        end = datetime.now(tz=timezone.utc)
        return cls(start=end - timedelta(days=days), end=end)

    @classmethod
    def last_week(cls) -> DateRange:
        return cls.last_days(7)

    @classmethod
    def last_month(cls) -> DateRange:
        return cls.last_days(30)

    @classmethod
    def last_year(cls) -> DateRange:
        return cls.last_days(365)


# Boolean expression tree


@dataclass(frozen=True)
class Term:
    text: str


@dataclass(frozen=True)
class And:
    left: BooleanNode
    right: BooleanNode


@dataclass(frozen=True)
class Or:
    left: BooleanNode
    right: BooleanNode


@dataclass(frozen=True)
class Not:
    inner: BooleanNode


@dataclass(frozen=True)
class Group:
    inner: BooleanNode


BooleanNode = Term | And | Or | Not | Group

_KEYWORDS = {"AND", "OR", "NOT"}


def _lex(expr: str) -> list[tuple[str, str]]:
    """Split a boolean expression into (kind, value) tokens.

    Kinds are "term", "phrase", "op", "(" and ")". Quoted text is a phrase and
    never an operator.
    """
    tokens: list[tuple[str, str]] = []
    word: list[str] = []
    in_quotes = False

    def flush(kind: str = "term") -> None:
        if not word:
            return
        value = "".join(word)
        word.clear()
        if kind == "term" and value.upper() in _KEYWORDS:
            tokens.append(("op", value.upper()))
        else:
            tokens.append((kind, value))

    for ch in expr:
        if ch == '"':
            flush("phrase" if in_quotes else "term")
            in_quotes = not in_quotes
        elif in_quotes:
            word.append(ch)
        elif ch.isspace():
            flush()
        elif ch in "()":
            flush()
            tokens.append((ch, ch))
        else:
            word.append(ch)

    if in_quotes:
        raise ConfigurationError("Unclosed quote in search query")
    flush()
    return tokens


class _BooleanParser:
    """Left-associative parser; AND and OR share one precedence level.

    Adjacent operands without an operator between them are joined with AND.
    """

    def __init__(self, tokens: list[tuple[str, str]]):
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def parse_expression(self) -> BooleanNode:
        left = self.parse_unary()
        while (token := self.peek()) is not None and token[0] != ")":
            if token[0] == "op" and token[1] in ("AND", "OR"):
                self.pos += 1
                operator = token[1]
            else:
                operator = "AND"
            right = self.parse_unary()
            left = And(left, right) if operator == "AND" else Or(left, right)
        return left

    def parse_unary(self) -> BooleanNode:
        token = self.peek()
        if token is None:
            raise ConfigurationError("Unexpected end of query")
        kind, value = token
        self.pos += 1
        if kind == "op" and value == "NOT":
            return Not(self.parse_unary())
        if kind == "(":
            inner = self.parse_expression()
            closing = self.peek()
            if closing is None or closing[0] != ")":
                raise ConfigurationError("Missing closing parenthesis")
            self.pos += 1
            return Group(inner)
        if kind in ("term", "phrase"):
            return Term(value)
        raise ConfigurationError(f"Unexpected token in query: {value}")


def parse_boolean(expr: str) -> BooleanNode:
    """Parse an expression such as `rust AND (error OR panic) NOT "unsafe code"`."""
    parser = _BooleanParser(_lex(expr))
    node = parser.parse_expression()
    leftover = parser.peek()
    if leftover is not None:
        raise ConfigurationError(f"Unexpected token in query: {leftover[1]}")
    return node


@dataclass(frozen=True)
class SearchQuery:
    """A search request. Build one with the factory classmethods and the
    `with_*` methods, each of which returns a new query."""

    text: str | None = None
    regex_pattern: str | None = None
    boolean_query: BooleanNode | None = None
    date_range: DateRange | None = None
    project_filter: str | None = None
    model_filter: str | None = None
    tool_filter: str | None = None
    role_filter: Role | None = None
    min_messages: int | None = None
    max_messages: int | None = None
    min_duration_minutes: int | None = None
    max_duration_minutes: int | None = None
    mode: SearchMode = SearchMode.TEXT
    max_results: int | None = None

    @classmethod
    def from_text(cls, text: str) -> SearchQuery:
        return cls(text=text, mode=SearchMode.TEXT)

    @classmethod
    def from_regex(cls, pattern: str) -> SearchQuery:
        return cls(regex_pattern=pattern, mode=SearchMode.REGEX)

    @classmethod
    def fuzzy(cls, text: str) -> SearchQuery:
        return cls(text=text, mode=SearchMode.FUZZY)

    @classmethod
    def advanced(cls, text: str) -> SearchQuery:
        return cls(text=text, mode=SearchMode.ADVANCED)

    @classmethod
    def boolean(cls, expr: str) -> SearchQuery:
        """Advanced query driven by a boolean expression.

        Raises:
            ConfigurationError: If the expression cannot be parsed.
        """
        return cls(text=expr, boolean_query=parse_boolean(expr), mode=SearchMode.ADVANCED)

    def with_date_range(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> SearchQuery:
        return replace(self, date_range=DateRange(start=start, end=end))

    def with_project(self, project: str) -> SearchQuery:
        return replace(self, project_filter=project)

    def with_model(self, model: str) -> SearchQuery:
        return replace(self, model_filter=model)

    def with_tool(self, tool: str) -> SearchQuery:
        return replace(self, tool_filter=tool)

    def with_role(self, role: Role) -> SearchQuery:
        return replace(self, role_filter=role)

    def with_message_count(
        self, minimum: int | None = None, maximum: int | None = None
    ) -> SearchQuery:
        return replace(self, min_messages=minimum, max_messages=maximum)

    def with_duration(
        self, min_minutes: int | None = None, max_minutes: int | None = None
    ) -> SearchQuery:
        return replace(self, min_duration_minutes=min_minutes, max_duration_minutes=max_minutes)

    def with_max_results(self, limit: int) -> SearchQuery:
        if limit < 0:
            raise ValueError(f"max_results must be non-negative, got {limit}")
        return replace(self, max_results=limit)

    def cache_key(self) -> str:
        """Stable digest identifying this query in the result cache."""
        parts = [
            f"text:{self.text!r}",
            f"regex:{self.regex_pattern!r}",
            f"project:{self.project_filter!r}",
            f"dates:{self.date_range.serialize() if self.date_range else None}",
            f"mode:{self.mode.value}",
            f"boolean:{self.boolean_query is not None}",
            f"model:{self.model_filter!r}",
            f"tool:{self.tool_filter!r}",
            f"role:{self.role_filter.value if self.role_filter else None}",
            f"messages:{self.min_messages}-{self.max_messages}",
            f"duration:{self.min_duration_minutes}-{self.max_duration_minutes}",
            f"limit:{self.max_results}",
        ]
        return hashlib.md5("|".join(parts).encode()).hexdigest()
