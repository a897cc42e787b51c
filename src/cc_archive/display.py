"""Rendering of search results for the terminal."""

from datetime import datetime, timezone

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from cc_archive.models import Conversation, Role, SearchResult

console = Console()

SNIPPET_CHARS = 400
SNIPPET_LEAD = 80


def format_age(timestamp: datetime | None) -> str:
    """Relative age such as "3 days ago"."""
    if timestamp is None:
        return "unknown time"
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    age = datetime.now(tz=timezone.utc) - timestamp
    if age.days > 0:
        return f"{age.days} days ago"
    elif age.seconds > 3600:
        return f"{age.seconds // 3600} hours ago"
    return f"{age.seconds // 60} minutes ago"


def build_snippet(result: SearchResult) -> Text:
    """Excerpt of the first matched message with its matches highlighted."""
    messages = result.conversation.messages
    if result.highlights:
        msg_idx = result.highlights[0].message_index
        anchor = result.highlights[0].start
    elif result.conversation.summary:
        return Text(result.conversation.summary[:SNIPPET_CHARS])
    elif messages:
        msg_idx, anchor = 0, 0
    else:
        return Text("(empty conversation)", style="dim")

    message = messages[msg_idx]
    start = max(0, anchor - SNIPPET_LEAD)
    end = min(len(message.content), start + SNIPPET_CHARS)

    snippet = Text()
    role_style = "cyan" if message.role is Role.USER else "green"
    snippet.append(f"{message.role.value}: ", style=role_style)
    if start > 0:
        snippet.append("…")
    offset = len(snippet)
    snippet.append(message.content[start:end])
    for highlight in result.highlights:
        if highlight.message_index != msg_idx:
            continue
        if highlight.end <= start or highlight.start >= end:
            continue
        snippet.stylize(
            "bold yellow",
            offset + max(highlight.start, start) - start,
            offset + min(highlight.end, end) - start,
        )
    if end < len(message.content):
        remaining = len(message.content) - end
        snippet.append(f"\n[truncated - {remaining} more chars]", style="dim")
    return snippet


def format_human_output(
    results: list[SearchResult],
    search_time_ms: int,
    project_filter: str | None = None,
) -> None:
    """Format results for human-readable output."""
    if not results:
        if project_filter:
            console.print(f"[yellow]No conversations in project '{project_filter}'[/yellow]")
        else:
            console.print("[yellow]No results found. Try a different query.[/yellow]")
        return

    for i, result in enumerate(results, 1):
        conversation = result.conversation

        header = Text()
        header.append(f"[{i}] ", style="bold cyan")
        header.append(f"Project: {conversation.project}", style="green")
        header.append(f" | {format_age(conversation.last_updated)}", style="dim")
        header.append(f" | score {result.score:.3f}", style="dim")
        header.append(f" | {result.match_count} matches", style="dim")

        panel = Panel(
            build_snippet(result),
            title=header,
            subtitle=f"→ session {conversation.id}",
            subtitle_align="left",
        )
        console.print(panel)
        console.print()

    console.print("─" * 50)
    console.print(f"Found {len(results)} results in {search_time_ms}ms")


def result_to_dict(rank: int, result: SearchResult) -> dict:
    conversation = result.conversation
    return {
        "rank": rank,
        "score": round(result.score, 4),
        "match_count": result.match_count,
        "session_id": conversation.id,
        "project": conversation.project,
        "summary": conversation.summary,
        "user_messages": conversation.user_message_count(),
        "assistant_messages": conversation.assistant_message_count(),
        "started_at": conversation.started_at.isoformat() if conversation.started_at else None,
        "last_updated": (
            conversation.last_updated.isoformat() if conversation.last_updated else None
        ),
        "matched_messages": result.matched_messages,
        "highlights": [
            {
                "message_index": h.message_index,
                "start": h.start,
                "end": h.end,
                "text": h.text,
            }
            for h in result.highlights
        ],
    }


def format_json_output(results: list[SearchResult], query: str, search_time_ms: int) -> None:
    """Format results as JSON for programmatic use."""
    output = {
        "results": [result_to_dict(i + 1, result) for i, result in enumerate(results)],
        "query": query,
        "total_results": len(results),
        "search_time_ms": search_time_ms,
    }
    console.print_json(data=output)


def project_counts(conversations: list[Conversation]) -> list[dict]:
    """Conversation count per project label, most active first."""
    counts: dict[str, int] = {}
    for conversation in conversations:
        counts[conversation.project] = counts.get(conversation.project, 0) + 1
    return [
        {"project": project, "conversations": count}
        for project, count in sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    ]
