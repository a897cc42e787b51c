"""Load Claude Code JSONL session files into Conversation objects."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from cc_archive.models import Conversation, Message, Role, ToolUse

logger = logging.getLogger(__name__)


def discover_sessions(projects_dir: Path) -> list[Path]:
    """Discover all JSONL session files, one directory level per project."""
    if not projects_dir.exists():
        return []
    return sorted(projects_dir.glob("*/*.jsonl"))


def parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _user_content(content: Any) -> str:
    """User content is either a string or a list of content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "\n".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


def _assistant_content(blocks: Any) -> tuple[str, list[ToolUse]]:
    if isinstance(blocks, str):
        return blocks, []
    texts: list[str] = []
    tool_uses: list[ToolUse] = []
    for block in blocks if isinstance(blocks, list) else []:
        if not isinstance(block, dict):
            continue
        block_type = block.get("type")
        if block_type == "text":
            texts.append(block.get("text", ""))
        elif block_type == "tool_use":
            tool_uses.append(ToolUse(name=block.get("name", "unknown"), input=block.get("input")))
    return "\n".join(texts), tool_uses


def parse_session(path: Path, project: str | None = None) -> Conversation:
    """Parse one JSONL session file.

    Malformed lines are logged and skipped, as are user records without text
    (tool results). The conversation id combines the project directory and
    the file stem, since the same session file name can appear in several
    projects. The project label defaults to the parent directory name.

    Raises:
        OSError: If the file cannot be read.
    """
    summary: str | None = None
    messages: list[Message] = []
    started_at: datetime | None = None
    last_updated: datetime | None = None

    with open(path, encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning("Skipping line %d in %s: %s", line_num, path, e)
                continue

            if not isinstance(record, dict):
                logger.warning("Skipping line %d in %s: not an object", line_num, path)
                continue

            record_type = record.get("type")
            if record_type == "summary":
                summary = record.get("summary") or summary
                continue

            if record_type not in ("user", "assistant", "system"):
                # file-history-snapshot and other bookkeeping records
                continue

            ts = parse_timestamp(record.get("timestamp"))
            msg_data = record.get("message")
            if not isinstance(msg_data, dict):
                msg_data = {}

            if record_type == "user":
                if ts is None:
                    logger.warning("Skipping line %d in %s: missing timestamp", line_num, path)
                    continue
                content = _user_content(msg_data.get("content"))
                if content.strip():
                    if started_at is None:
                        started_at = ts
                    messages.append(Message(role=Role.USER, content=content, timestamp=ts))
                # tool_result-only records carry no text but still mark activity

            elif record_type == "assistant":
                if ts is None:
                    logger.warning("Skipping line %d in %s: missing timestamp", line_num, path)
                    continue
                content, tool_uses = _assistant_content(msg_data.get("content", []))
                messages.append(
                    Message(
                        role=Role.ASSISTANT,
                        content=content,
                        timestamp=ts,
                        model=msg_data.get("model"),
                        tool_uses=tool_uses,
                    )
                )

            else:
                content = record.get("content")
                if not isinstance(content, str) or ts is None:
                    continue
                messages.append(Message(role=Role.SYSTEM, content=content, timestamp=ts))

            last_updated = ts

    return Conversation(
        id=f"{path.parent.name}_{path.stem}",
        project=project if project is not None else path.parent.name,
        messages=messages,
        summary=summary,
        started_at=started_at,
        last_updated=last_updated,
    )


def load_conversations(projects_dir: Path) -> list[Conversation]:
    """Parse every session under projects_dir; unreadable files are skipped."""
    conversations: list[Conversation] = []
    for path in discover_sessions(projects_dir):
        try:
            conversations.append(parse_session(path))
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to parse %s: %s", path, e)
    logger.debug("Loaded %d conversations from %s", len(conversations), projects_dir)
    return conversations
