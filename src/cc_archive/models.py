"""Data models for cc-archive."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class Role(Enum):
    """Who sent a message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


@dataclass
class ToolUse:
    """A tool invocation made by the assistant."""

    name: str
    input: Any = None


@dataclass
class Message:
    """A single message within a conversation."""

    role: Role
    content: str
    timestamp: datetime
    model: str | None = None
    tool_uses: list[ToolUse] = field(default_factory=list)


@dataclass
class Conversation:
    """A parsed conversation transcript (one session file)."""

    id: str
    project: str
    messages: list[Message] = field(default_factory=list)
    summary: str | None = None
    started_at: datetime | None = None
    last_updated: datetime | None = None

    def duration(self) -> timedelta | None:
        if self.started_at is None or self.last_updated is None:
            return None
        return self.last_updated - self.started_at

    def user_message_count(self) -> int:
        return sum(1 for m in self.messages if m.role is Role.USER)

    def assistant_message_count(self) -> int:
        return sum(1 for m in self.messages if m.role is Role.ASSISTANT)


@dataclass(frozen=True)
class Posting:
    """One unique term within one text unit of a conversation.

    The summary is indexed as unit 0, messages by their position.
    """

    conversation_id: str
    message_index: int
    term_frequency: int


@dataclass
class Highlight:
    """A `[start, end)` span of matched text within a message.

    Offsets are Python str (code point) indices into the message content, so
    `content[start:end] == text`. They differ from UTF-8 byte offsets once
    non-ASCII text precedes the match.
    """

    message_index: int
    start: int
    end: int
    text: str


@dataclass
class SearchResult:
    """A ranked conversation with its match details."""

    conversation: Conversation
    score: float
    highlights: list[Highlight] = field(default_factory=list)
    match_count: int = 0
    matched_messages: list[int] = field(default_factory=list)
