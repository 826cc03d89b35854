"""querycache -- Google Cloud result caching and Cloud SQL connection auth for query executors.

Public surface:

- ``FirestoreQueryCache`` / ``DatastoreQueryCache`` / ``StorageQueryCache``
  -- interchangeable :class:`IQueryCacheProvider` adapters.
- ``key_of`` / ``QueryFingerprint`` -- stable cache keys.
- ``QueryResult`` -- the cached payload.
- ``CachedQuerier`` -- read-through caching for an executor.
- ``ConnectionAuthenticator`` -- before-connect hook for connection pools.
"""

from querycache.interfaces import IDialer, IQueryCacheProvider
from querycache.models import (
    AuthMode,
    ColumnDescription,
    ConnectionAttempt,
    QueryFingerprint,
    QueryOptions,
    QueryResult,
    key_of,
)
from querycache.providers.cache import DatastoreQueryCache, FirestoreQueryCache, StorageQueryCache
from querycache.services import CachedQuerier, ConnectionAuthenticator, detect_credentials
from querycache.utils.errors import ConfigurationError, QueryCacheError, SerializationError

__all__ = [
    "AuthMode",
    "CachedQuerier",
    "ColumnDescription",
    "ConfigurationError",
    "ConnectionAttempt",
    "ConnectionAuthenticator",
    "DatastoreQueryCache",
    "FirestoreQueryCache",
    "IDialer",
    "IQueryCacheProvider",
    "QueryCacheError",
    "QueryFingerprint",
    "QueryOptions",
    "QueryResult",
    "SerializationError",
    "StorageQueryCache",
    "detect_credentials",
    "key_of",
]
