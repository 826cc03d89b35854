"""Data models for querycache.

- **result** -- ``QueryResult`` / ``ColumnDescription``, the cached payload.
- **query** -- ``QueryFingerprint``, ``QueryKey``, ``key_of`` and the
  ``QueryOptions`` parsed from ``-- @cache-*`` SQL directives.
- **cache** -- ``CacheRecord`` and the shared expiry/decode step.
- **connection** -- ``ConnectionAttempt`` and ``AuthMode`` for the dial hook.
"""

from querycache.models.result import ColumnDescription, QueryResult
from querycache.models.query import QueryFingerprint, QueryKey, QueryOptions, key_of, parse_duration
from querycache.models.cache import CacheRecord, resolve_record, utc_now
from querycache.models.connection import AuthMode, ConnectionAttempt, DialFunc

__all__ = [
    "AuthMode",
    "CacheRecord",
    "ColumnDescription",
    "ConnectionAttempt",
    "DialFunc",
    "QueryFingerprint",
    "QueryKey",
    "QueryOptions",
    "QueryResult",
    "key_of",
    "parse_duration",
    "resolve_record",
    "utc_now",
]
