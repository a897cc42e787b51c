"""Settings for cc-archive.

Paths can be overridden through environment variables; everything else is a
tuning constant for the search engine.
"""

import os
from pathlib import Path

# Claude Code sessions location
PROJECTS_DIR = Path(
    os.environ.get("CC_ARCHIVE_PROJECTS_DIR", str(Path.home() / ".claude" / "projects"))
).expanduser()

LOG_LEVEL = os.environ.get("CC_ARCHIVE_LOG_LEVEL", "WARNING")

# Cache capacities
PATTERN_CACHE_SIZE = 100
RESULT_CACHE_SIZE = 50

# Worker threads used to score candidates
DEFAULT_MAX_WORKERS = min(8, os.cpu_count() or 1)

# Tokens shorter than this are not indexed
MIN_TERM_LENGTH = 3

# idf used for query terms that never occur in the corpus
UNSEEN_TERM_IDF = 1.0

# Ranking adjustments for text queries
RECENCY_WINDOW_DAYS = 30
RECENCY_MAX_BOOST = 0.5
LENGTH_BOOST = 1.1
LENGTH_BOOST_MIN_MESSAGES = 5
LENGTH_BOOST_MAX_MESSAGES = 50

# Boolean queries: score added when a term appears in the summary
SUMMARY_MATCH_BONUS = 0.5

# Fuzzy queries: terms up to this length tolerate one edit, longer ones two
FUZZY_SHORT_TERM_LENGTH = 5
