"""cc-archive: browse and search Claude Code conversation history."""

from cc_archive.engine import SearchEngine
from cc_archive.errors import ArchiveError, ConfigurationError, IndexBuildError
from cc_archive.models import Conversation, Highlight, Message, Role, SearchResult, ToolUse
from cc_archive.query import DateRange, SearchMode, SearchQuery

__version__ = "0.1.0"

__all__ = [
    "ArchiveError",
    "ConfigurationError",
    "Conversation",
    "DateRange",
    "Highlight",
    "IndexBuildError",
    "Message",
    "Role",
    "SearchEngine",
    "SearchMode",
    "SearchQuery",
    "SearchResult",
    "ToolUse",
    "__version__",
]
