"""Abstract base class for query-result cache providers.

Defines the contract every backend adapter (Firestore, Datastore, Cloud
Storage) satisfies so that the query executor can swap backends without
touching its own logic.  Adapters are selected at construction time by the
caller choosing which one to build (see :mod:`querycache.main`).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

from querycache.models.result import QueryResult


class IQueryCacheProvider(ABC):
    """Contract for query-result caches.

    All operations are async and accept an optional ``timeout`` (seconds);
    cancelling the awaiting task aborts the call.  Implementations must be
    safe for concurrent use against one shared backend client.
    """

    @abstractmethod
    async def get(self, key: str, *, timeout: float | None = None) -> QueryResult | None:
        """Retrieve the result cached under *key*.

        Parameters
        ----------
        key:
            Cache key, as produced by :func:`querycache.models.query.key_of`.
        timeout:
            Optional deadline in seconds.

        Returns
        -------
        QueryResult or None
            The cached result if present and not expired; ``None`` otherwise.
            Expired records are not deleted.

        Raises
        ------
        querycache.utils.errors.SerializationError
            If the stored payload cannot be decoded.
        google.api_core.exceptions.GoogleAPIError
            Any backend failure other than "not found", unmodified.
        """

    @abstractmethod
    async def set(
        self,
        key: str,
        result: QueryResult,
        ttl: timedelta | float,
        *,
        timeout: float | None = None,
    ) -> None:
        """Store *result* under *key*, replacing any previous record.

        Parameters
        ----------
        key:
            The cache key.
        result:
            The result to encode and store.
        ttl:
            Time-to-live (``timedelta`` or seconds).  The record expires at
            ``now(UTC) + ttl``.
        timeout:
            Optional deadline in seconds.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying client if this provider owns it.

        Calling it more than once is a no-op.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"firestore"``."""
