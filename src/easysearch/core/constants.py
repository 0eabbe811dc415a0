"""
Centralized constants for easysearch.

Hard limits and defaults live here so settings, indexer and query code agree
on a single value.
"""

# ============================================================================
# Index Limits
# ============================================================================

MAX_FILE_SIZE = 512 * 1024
"""Files larger than this (bytes) are never read or indexed."""

MAX_INDEXED_FILES = 5000
"""Upper bound on entries held by the IndexStore."""

INDEX_BATCH_SIZE = 20
"""Files processed between cooperative yields during an index pass."""

BINARY_SNIFF_BYTES = 8192
"""Leading bytes inspected for a NUL byte before a file is treated as binary."""


# ============================================================================
# Query Configuration
# ============================================================================

MIN_QUERY_LENGTH = 2
"""Trimmed queries shorter than this return no matches."""

SEARCH_YIELD_EVERY = 20
"""Indexed files scanned between cooperative yields during a search."""

DOCUMENT_YIELD_EVERY_LINES = 2000
"""Lines scanned between cooperative yields in single-document mode."""


# ============================================================================
# Memory Janitor
# ============================================================================

JANITOR_INTERVAL_SEC = 5 * 60
STALE_AFTER_SEC = 30 * 60
SOFT_TARGET_FILES = 4000


# ============================================================================
# Persisted State
# ============================================================================

HISTORY_LIMIT = 20

KEY_CASE_SENSITIVE = "search.caseSensitive"
KEY_EXCLUDE_PATTERNS = "search.excludePatterns"
KEY_EXCLUDE_ENABLED = "search.excludeEnabled"
KEY_HISTORY = "search.history"

DEFAULT_EXCLUDE_PATTERNS = [
    "node_modules",
    ".git",
    "dist",
    "out",
    "build",
    "__pycache__",
    ".venv",
    "*.min.js",
]
