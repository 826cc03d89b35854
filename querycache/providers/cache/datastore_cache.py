"""Google Cloud Datastore query-cache adapter.

Each cached result is an entity of the configured kind, named by the cache
key, with properties ``query_id``, ``query_data`` and ``query_expire_at``.
``query_data`` is excluded from indexes (indexed byte strings are capped at
1500 bytes).  Expiry is checked by the adapter on read.

The Datastore client is synchronous; every call is offloaded with
``asyncio.to_thread`` so the event loop stays responsive.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from google.api_core.exceptions import NotFound
from google.cloud import datastore

from querycache.interfaces.cache_provider import IQueryCacheProvider
from querycache.models.cache import CacheRecord, Clock, expire_at_for, resolve_record, utc_now
from querycache.models.result import QueryResult
from querycache.utils import codec
from querycache.utils.concurrency import close_client, run_blocking
from querycache.utils.logging import get_logger

FIELD_ID = "query_id"
FIELD_DATA = "query_data"
FIELD_EXPIRE_AT = "query_expire_at"


class DatastoreQueryCache(IQueryCacheProvider):
    """Query cache backed by Datastore entities of a single kind."""

    def __init__(
        self,
        client: datastore.Client,
        kind: str = "queries",
        *,
        owns_client: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        self._client = client
        self._kind = kind
        self._owns_client = owns_client
        self._clock = clock
        self._closed = False
        self._logger = get_logger(__name__)

    # -- Sync helpers (executed via asyncio.to_thread) -------------------------

    def _fetch_sync(self, key: str) -> CacheRecord | None:
        """Look up the entity; the client's ``None`` sentinel means not found."""
        try:
            entity: Any = self._client.get(self._client.key(self._kind, key))
        except NotFound:
            return None
        if entity is None:
            return None
        return CacheRecord(
            id=entity.get(FIELD_ID, key),
            data=entity.get(FIELD_DATA, b""),
            expire_at=entity.get(FIELD_EXPIRE_AT),
        )

    def _put_sync(self, key: str, data: bytes, expire_at: Any) -> None:
        entity = datastore.Entity(
            key=self._client.key(self._kind, key),
            exclude_from_indexes=(FIELD_DATA,),
        )
        entity.update(
            {
                FIELD_ID: key,
                FIELD_DATA: data,
                FIELD_EXPIRE_AT: expire_at,
            }
        )
        self._client.put(entity)

    # -- IQueryCacheProvider implementation ------------------------------------

    async def get(self, key: str, *, timeout: float | None = None) -> QueryResult | None:
        """Return the cached result for *key*, or ``None`` if missing/expired."""
        record = await run_blocking(self._fetch_sync, key, timeout=timeout)
        result = resolve_record(record, self._clock, provider_name=self.get_provider_name())
        if result is None:
            self._logger.debug("query_cache_miss", key=key, kind=self._kind, found=record is not None)
        else:
            self._logger.debug("query_cache_hit", key=key, kind=self._kind)
        return result

    async def set(
        self,
        key: str,
        result: QueryResult,
        ttl: timedelta | float,
        *,
        timeout: float | None = None,
    ) -> None:
        """Upsert the entity for *key*; ``put`` replaces every property at once."""
        data = codec.encode(result, provider_name=self.get_provider_name())
        expire_at = expire_at_for(ttl, self._clock)
        await run_blocking(self._put_sync, key, data, expire_at, timeout=timeout)
        self._logger.debug("query_cache_set", key=key, kind=self._kind, expire_at=expire_at.isoformat())

    async def close(self) -> None:
        """Close the Datastore client if this cache owns it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await close_client(self._client)
            self._logger.info("query_cache_closed", provider=self.get_provider_name())

    def get_provider_name(self) -> str:
        return "datastore"
