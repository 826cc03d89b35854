"""Query-cache providers.

Three peer adapters implement :class:`IQueryCacheProvider` against Google
Cloud stores, each translating its backend's "not found" and expiry
signals into the same contract:

- FirestoreQueryCache -- document per key; not-found via snapshot/status.
- DatastoreQueryCache -- entity per key; not-found via the lookup sentinel.
- StorageQueryCache   -- object per key; expiry in the native ``customTime``.
"""

from querycache.providers.cache.datastore_cache import DatastoreQueryCache
from querycache.providers.cache.firestore_cache import FirestoreQueryCache
from querycache.providers.cache.storage_cache import StorageQueryCache

__all__ = ["DatastoreQueryCache", "FirestoreQueryCache", "StorageQueryCache"]
