"""
Constants for MDB_BLUEPRINT.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# QUERY-STRING CONSTANTS
# ============================================================================

LIMIT_PARAM: Final[str] = "_limit"
"""Query parameter capping the number of returned records."""

OFFSET_PARAM: Final[str] = "_offset"
"""Query parameter skipping the first N matching records."""

SORT_PARAM: Final[str] = "_sort"
"""Query parameter naming the sort field(s); a leading '-' sorts descending."""

RESERVED_QUERY_PARAMS: Final[frozenset[str]] = frozenset({LIMIT_PARAM, OFFSET_PARAM, SORT_PARAM})
"""Query parameters that never become filter clauses."""

# ============================================================================
# REQUEST CONTEXT CONSTANTS
# ============================================================================

STORE_STATE_KEY: Final[str] = "db"
"""Attribute name on request.state holding the per-request store handle."""

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
"""Header carrying the correlation id in and out of a request."""

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing connections (milliseconds)."""

DEFAULT_MAX_PAGE_SIZE: Final[int] = 0
"""Default upper bound for _limit (0 disables clamping)."""

# ============================================================================
# VALIDATION CONSTANTS
# ============================================================================

MAX_COLLECTION_NAME_LENGTH: Final[int] = 255
"""Maximum length for MongoDB collection names."""

MAX_DATABASE_NAME_LENGTH: Final[int] = 63
"""Maximum length for MongoDB database names."""

INVALID_DATABASE_NAME_CHARS: Final[str] = '/\\. "$*<>:|?'
"""Characters MongoDB rejects in database names."""

RESERVED_COLLECTION_PREFIXES: Final[tuple[str, ...]] = ("system.",)
"""Reserved MongoDB collection name prefixes that cannot be used."""

IMMUTABLE_FIELDS: Final[frozenset[str]] = frozenset({"id", "_id"})
"""Fields a partial update may never touch."""
