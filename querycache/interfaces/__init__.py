"""Public interface definitions for querycache's external collaborators.

Every external store or service is accessed exclusively through the
abstract base classes defined here.  Concrete adapters live in
``querycache/providers/`` and are chosen by the caller at construction time.

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementations
    ──────────────────────────────────────────────────────────
    IQueryCacheProvider    →  FirestoreQueryCache, DatastoreQueryCache,
                              StorageQueryCache
    IDialer                →  CloudSQLDialer
"""

from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.interfaces.dialer_provider import IDialer

__all__ = [
    "IDialer",
    "IQueryCacheProvider",
]
