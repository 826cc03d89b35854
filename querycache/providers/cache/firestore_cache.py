"""Google Cloud Firestore query-cache adapter.

Stores each cached result as a document ``<collection>/<key>`` with three
fields: ``query_id``, ``query_data`` (msgpack bytes) and ``query_expire_at``.
Firestore does not enforce ``query_expire_at`` by itself, so the adapter
compares it against the current UTC time on every read.  A Firestore TTL
policy on ``query_expire_at`` can be configured on the collection to have
expired documents garbage-collected; the adapter works with or without it.
"""

from __future__ import annotations

from datetime import timedelta

import structlog
from google.api_core.exceptions import NotFound
from google.cloud import firestore

from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.models.cache import CacheRecord, Clock, expire_at_for, resolve_record, utc_now
from querycache.models.result import QueryResult
from querycache.utils import codec
from querycache.utils.concurrency import close_client, with_deadline

logger = structlog.get_logger(logger_name=__name__)

FIELD_ID = "query_id"
FIELD_DATA = "query_data"
FIELD_EXPIRE_AT = "query_expire_at"


class FirestoreQueryCache(IQueryCacheProvider):
    """Query cache backed by a Firestore collection.

    Parameters
    ----------
    client:
        A ``google.cloud.firestore.AsyncClient``.
    collection:
        Name of the collection holding cache documents.
    owns_client:
        When ``True``, :meth:`close` also closes *client*.
    clock:
        Source of the current UTC time.
    """

    def __init__(
        self,
        client: firestore.AsyncClient,
        collection: str = "queries",
        *,
        owns_client: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._collection = collection
        self._owns_client = owns_client
        self._clock = clock
        self._closed = False

    def _document(self, key: str) -> firestore.AsyncDocumentReference:
        return self._client.collection(self._collection).document(key)

    async def _fetch(self, key: str) -> CacheRecord | None:
        """Read the document, mapping Firestore's not-found signals to ``None``."""
        try:
            snapshot = await self._document(key).get()
        except NotFound:
            return None
        if not snapshot.exists:
            return None

        fields = snapshot.to_dict() or {}
        return CacheRecord(
            id=fields.get(FIELD_ID, key),
            data=fields.get(FIELD_DATA, b""),
            expire_at=fields.get(FIELD_EXPIRE_AT),
        )

    # ------------------------------------------------------------------
    # IQueryCacheProvider implementation
    # ------------------------------------------------------------------

    async def get(self, key: str, *, timeout: float | None = None) -> QueryResult | None:
        """Return the cached result for *key*, or ``None`` if missing/expired."""
        record = await with_deadline(self._fetch(key), timeout)
        result = resolve_record(record, self._clock, provider_name=self.get_provider_name())
        if result is None:
            logger.debug("query_cache_miss", key=key, collection=self._collection, found=record is not None)
        else:
            logger.debug("query_cache_hit", key=key, collection=self._collection)
        return result

    async def set(
        self,
        key: str,
        result: QueryResult,
        ttl: timedelta | float,
        *,
        timeout: float | None = None,
    ) -> None:
        """Replace the document for *key* with the encoded result and its expiry."""
        data = codec.encode(result, provider_name=self.get_provider_name())
        expire_at = expire_at_for(ttl, self._clock)
        # set() without merge replaces the whole document in one write.
        await with_deadline(
            self._document(key).set(
                {
                    FIELD_ID: key,
                    FIELD_DATA: data,
                    FIELD_EXPIRE_AT: expire_at,
                }
            ),
            timeout,
        )
        logger.debug("query_cache_set", key=key, collection=self._collection, expire_at=expire_at.isoformat())

    async def close(self) -> None:
        """Close the Firestore client if this cache owns it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await close_client(self._client)
            logger.info("query_cache_closed", provider=self.get_provider_name())

    def get_provider_name(self) -> str:
        return "firestore"
