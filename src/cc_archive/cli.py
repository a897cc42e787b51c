"""CLI for cc-archive."""

import re
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape

from cc_archive import __version__
from cc_archive.config import LOG_LEVEL, PROJECTS_DIR
from cc_archive.errors import ArchiveError, ConfigurationError
from cc_archive.logging_config import setup_logging
from cc_archive.models import Role

app = typer.Typer(
    name="cc-archive",
    help="Browse and search Claude Code conversation history.",
    no_args_is_help=True,
)
console = Console()

ProjectsDirOption = Annotated[
    Path, typer.Option("--dir", "-d", help="Claude projects directory")
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"cc-archive {__version__}")
        raise typer.Exit()


def parse_since(since: str | None) -> datetime | None:
    """Parse a since/until string into a UTC-aware datetime.

    Supports:
    - Relative: "1w", "7d", "30d", "2h", "1m", "1y"
    - Absolute: "2024-01-01", "2024-01-01T00:00:00"

    Raises:
        ConfigurationError: If the string matches neither form.
    """
    if since is None:
        return None

    since = since.strip().lower()

    match = re.match(r"^(\d+)([hdwmy])$", since)
    if match:
        amount = int(match.group(1))
        unit = match.group(2)

        now = datetime.now(tz=timezone.utc)
        if unit == "h":
            return now - timedelta(hours=amount)
        elif unit == "d":
            return now - timedelta(days=amount)
        elif unit == "w":
            return now - timedelta(weeks=amount)
        elif unit == "m":
            return now - timedelta(days=amount * 30)  # Approximate
        else:
            return now - timedelta(days=amount * 365)  # Approximate

    try:
        if "t" in since:
            dt = datetime.fromisoformat(since.upper())
        else:
            dt = datetime.fromisoformat(since + "T00:00:00")
    except ValueError:
        raise ConfigurationError(f"Invalid date format: {since}") from None
    # If naive, assume UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _load_engine(projects_dir: Path):
    from cc_archive.engine import SearchEngine
    from cc_archive.loader import load_conversations

    engine = SearchEngine()
    engine.build_index(load_conversations(projects_dir))
    return engine


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
) -> None:
    """Browse and search Claude Code conversation history."""
    setup_logging("DEBUG" if verbose else LOG_LEVEL)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Search text, regex or boolean expression")],
    regex: Annotated[
        bool, typer.Option("--regex", "-r", help="Treat the query as a regular expression")
    ] = False,
    fuzzy: Annotated[
        bool, typer.Option("--fuzzy", "-z", help="Tolerate typos in query terms")
    ] = False,
    boolean: Annotated[
        bool, typer.Option("--boolean", "-b", help="Parse AND/OR/NOT and parentheses")
    ] = False,
    project: Annotated[
        str | None, typer.Option("--project", "-p", help="Filter by project (substring)")
    ] = None,
    since: Annotated[
        str | None, typer.Option("--since", "-s", help="Start time (e.g., 1w, 30d, 2024-01-01)")
    ] = None,
    until: Annotated[
        str | None, typer.Option("--until", "-u", help="End time (e.g., 1d, 2024-06-30)")
    ] = None,
    model: Annotated[
        str | None, typer.Option("--model", help="Only conversations using this model")
    ] = None,
    tool: Annotated[
        str | None, typer.Option("--tool", help="Only conversations that used this tool")
    ] = None,
    role: Annotated[
        Role | None, typer.Option("--role", help="Only conversations with this role")
    ] = None,
    min_messages: Annotated[
        int | None, typer.Option("--min-messages", help="Minimum message count")
    ] = None,
    max_messages: Annotated[
        int | None, typer.Option("--max-messages", help="Maximum message count")
    ] = None,
    limit: Annotated[
        int, typer.Option("--limit", "-n", min=1, help="Number of results")
    ] = 10,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    projects_dir: ProjectsDirOption = PROJECTS_DIR,
) -> None:
    """Search conversations for a query."""
    if not query.strip():
        console.print("[red]Error: Query required[/red]")
        raise typer.Exit(1)
    if sum([regex, fuzzy, boolean]) > 1:
        console.print("[red]Error: --regex, --fuzzy and --boolean are mutually exclusive[/red]")
        raise typer.Exit(1)

    from cc_archive.display import format_human_output, format_json_output
    from cc_archive.query import SearchQuery

    try:
        if regex:
            search_query = SearchQuery.from_regex(query)
        elif fuzzy:
            search_query = SearchQuery.fuzzy(query)
        elif boolean:
            search_query = SearchQuery.boolean(query)
        else:
            search_query = SearchQuery.from_text(query)

        since_dt = parse_since(since)
        until_dt = parse_since(until)
        if since_dt or until_dt:
            search_query = search_query.with_date_range(since_dt, until_dt)
        if project:
            search_query = search_query.with_project(project)
        if model:
            search_query = search_query.with_model(model)
        if tool:
            search_query = search_query.with_tool(tool)
        if role:
            search_query = search_query.with_role(role)
        if min_messages is not None or max_messages is not None:
            search_query = search_query.with_message_count(min_messages, max_messages)
        search_query = search_query.with_max_results(limit)

        engine = _load_engine(projects_dir)
        start_time = time.time()
        results = engine.search(search_query)
    except ArchiveError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    search_time_ms = int((time.time() - start_time) * 1000)

    if json_output:
        format_json_output(results, query, search_time_ms)
    else:
        format_human_output(results, search_time_ms, project_filter=project)


@app.command()
def projects(
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
    projects_dir: ProjectsDirOption = PROJECTS_DIR,
) -> None:
    """List projects with their conversation counts."""
    from cc_archive.display import project_counts
    from cc_archive.loader import load_conversations

    project_list = project_counts(load_conversations(projects_dir))

    if json_output:
        console.print_json(data={"projects": project_list})
        return

    if not project_list:
        console.print(f"[yellow]No conversations found in {projects_dir}[/yellow]")
        return

    for proj in project_list:
        console.print(f"[cyan]{proj['project']}[/cyan] ({proj['conversations']} conversations)")


@app.command()
def stats(projects_dir: ProjectsDirOption = PROJECTS_DIR) -> None:
    """Show search index statistics."""
    engine = _load_engine(projects_dir)
    index_stats = engine.index.stats()
    message_count = sum(len(c.messages) for c in engine.conversations)

    console.print(f"Projects directory: {projects_dir}")
    console.print(f"Conversations indexed: {index_stats['conversations']}")
    console.print(f"Messages indexed: {message_count}")
    console.print(f"Distinct terms: {index_stats['terms']}")
    console.print(f"Postings: {index_stats['postings']}")


if __name__ == "__main__":
    app()
