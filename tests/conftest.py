"""Pytest fixtures for cc-archive tests."""

import json
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from cc_archive.models import Conversation, Message, Role, ToolUse

# Old enough that no recency boost applies
OLD = datetime(2020, 1, 1, tzinfo=timezone.utc)


def build_conversation(
    conv_id: str,
    *contents: str,
    project: str = "project",
    summary: str | None = None,
    started_at: datetime | None = OLD,
    last_updated: datetime | None = None,
    model: str | None = None,
    tools: list[str] | None = None,
) -> Conversation:
    """Conversation alternating user/assistant messages with the given contents."""
    messages = []
    for i, content in enumerate(contents):
        role = Role.USER if i % 2 == 0 else Role.ASSISTANT
        messages.append(
            Message(
                role=role,
                content=content,
                timestamp=(started_at or OLD) + timedelta(minutes=i),
                model=model if role is Role.ASSISTANT else None,
                tool_uses=[ToolUse(name=t, input={}) for t in tools or []]
                if role is Role.ASSISTANT
                else [],
            )
        )
    return Conversation(
        id=conv_id,
        project=project,
        messages=messages,
        summary=summary,
        started_at=started_at,
        last_updated=last_updated if last_updated is not None else started_at,
    )


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_records():
    return [
        {"type": "summary", "summary": "JWT authentication walkthrough", "leafUuid": "msg-004"},
        {
            "type": "user",
            "uuid": "msg-001",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:00:00Z",
            "message": {"role": "user", "content": "How do I implement authentication?"},
        },
        {
            "type": "assistant",
            "uuid": "msg-002",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:00:05Z",
            "message": {
                "id": "resp-1",
                "type": "message",
                "role": "assistant",
                "model": "claude-sonnet-4",
                "content": [
                    {"type": "text", "text": "For authentication, you can use JWT tokens..."},
                    {
                        "type": "tool_use",
                        "id": "tool-1",
                        "name": "Read",
                        "input": {"file_path": "/app/auth.py"},
                    },
                ],
            },
        },
        {"type": "file-history-snapshot", "snapshot": {}},
        {
            "type": "user",
            "uuid": "msg-003",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:01:00Z",
            "message": {
                "role": "user",
                "content": [{"type": "text", "text": "Can you show me an example?"}],
            },
        },
        {
            "type": "assistant",
            "uuid": "msg-004",
            "sessionId": "test-session-123",
            "timestamp": "2024-01-15T10:01:10Z",
            "message": {
                "id": "resp-2",
                "type": "message",
                "role": "assistant",
                "model": "claude-sonnet-4",
                "content": [
                    {"type": "text", "text": "Here's an example of JWT authentication in Python."},
                ],
            },
        },
    ]


@pytest.fixture
def projects_dir(temp_dir, sample_records):
    """A Claude projects directory with one project holding one session."""
    project = temp_dir / "-Users-dev-Code-webapp"
    project.mkdir()
    with open(project / "test-session-123.jsonl", "w") as f:
        for record in sample_records:
            f.write(json.dumps(record) + "\n")
    return temp_dir


@pytest.fixture
def sample_session_jsonl(projects_dir):
    return projects_dir / "-Users-dev-Code-webapp" / "test-session-123.jsonl"


@pytest.fixture
def make_conversation():
    """Factory for in-memory conversations; see build_conversation()."""
    return build_conversation
