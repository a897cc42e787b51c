"""Exceptions raised by cc-archive."""


class ArchiveError(Exception):
    """Base class for cc-archive errors."""


class ConfigurationError(ArchiveError):
    """A query could not be prepared (bad regex, bad boolean expression, bad date)."""


class IndexBuildError(ArchiveError):
    """Building the search index failed; the engine must be rebuilt."""
